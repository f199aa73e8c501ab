"""
Data models for fideldoc.

These records are produced on demand from caller-supplied text and are
never persisted by the engine. Offsets are code-point indices.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fideldoc.exceptions import InvalidSpanError

# =============================================================================
# SPANS
# =============================================================================


@dataclass(frozen=True, order=True)
class TextSpan:
    """Half-open [start, end) code-point range into an immutable source string."""

    start: int
    end: int

    def __post_init__(self):
        """Validate 0 <= start < end."""
        if self.start < 0 or self.end <= self.start:
            raise InvalidSpanError(f"Invalid span [{self.start}, {self.end})")

    @property
    def length(self) -> int:
        return self.end - self.start

    def within(self, text: str) -> bool:
        """Return True if the span fits inside text."""
        return self.end <= len(text)

    def overlaps(self, other: TextSpan) -> bool:
        """Return True if the two half-open ranges share a code point."""
        return self.start < other.end and other.start < self.end

    def slice(self, text: str) -> str:
        """
        Return the covered substring.

        Raises:
            InvalidSpanError: If the span runs past the end of text.
        """
        if not self.within(text):
            raise InvalidSpanError(
                f"Span [{self.start}, {self.end}) outside text of length {len(text)}"
            )
        return text[self.start : self.end]


# =============================================================================
# FINDINGS
# =============================================================================


class FindingCategory(Enum):
    """Kinds of OCR corruption the pattern detector recognizes."""

    ASCII_NOISE_IN_SCRIPT = "ascii_noise_in_script"
    MIXED_SCRIPT_FRAGMENT = "mixed_script_fragment"
    INCOMPLETE_FRAGMENT = "incomplete_fragment"
    PUNCTUATION_CONFUSION = "punctuation_confusion"


@dataclass(frozen=True)
class Finding:
    """A deterministic pattern-rule detection of a likely OCR artifact."""

    span: TextSpan
    matched_text: str
    category: FindingCategory
    confidence: float  # 0-1
    suggested_fix: str  # "" means remove
    rule: str
    reason: str = ""


# =============================================================================
# SUGGESTIONS
# =============================================================================


class SuggestionSource(Enum):
    """Where a batch of suggestions came from."""

    PRIMARY_MODEL = "primary-model"
    FALLBACK_MODEL = "fallback-model"
    LOCAL = "local"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CorrectionSuggestion:
    """
    A candidate replacement with a confidence score.

    Identity for de-duplication and idempotent application is
    (document_id, span.start, span.end). Suggestions without a span are
    content-anchored and use (document_id, original) instead.
    """

    document_id: str
    original: str
    corrected: str
    reason: str
    confidence: float
    span: TextSpan | None = None
    source: SuggestionSource = SuggestionSource.LOCAL

    @property
    def key(self) -> tuple[str, int, int] | tuple[str, str]:
        if self.span is None:
            return (self.document_id, self.original)
        return (self.document_id, self.span.start, self.span.end)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "documentId": self.document_id,
            "original": self.original,
            "corrected": self.corrected,
            "reason": self.reason,
            "confidence": self.confidence,
            "position": (
                {"start": self.span.start, "end": self.span.end} if self.span else None
            ),
            "source": self.source.value,
        }


# =============================================================================
# DOCUMENTS & ANALYSIS
# =============================================================================


@dataclass
class SourceDocument:
    """A caller-supplied document. The engine never fetches or stores these."""

    id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, value: SourceDocument | Mapping[str, Any]) -> SourceDocument:
        """Accept a SourceDocument or a mapping with id/text/metadata keys."""
        if isinstance(value, SourceDocument):
            return value
        return cls(
            id=str(value["id"]),
            text=value.get("text"),
            metadata=dict(value.get("metadata") or {}),
        )


class QualityLevel(Enum):
    """Quality buckets used for triage."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @classmethod
    def from_score(cls, score: float) -> QualityLevel:
        if score >= 0.9:
            return cls.EXCELLENT
        if score >= 0.75:
            return cls.GOOD
        if score >= 0.6:
            return cls.FAIR
        return cls.POOR


class CorruptionLevel(Enum):
    """Severity of corruption signals in a document."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_score(cls, corruption_score: float) -> CorruptionLevel:
        if corruption_score < 0.3:
            return cls.LOW
        if corruption_score < 0.6:
            return cls.MEDIUM
        return cls.HIGH


def grade_for_score(score: float) -> str:
    """Letter grade A-F for a quality score."""
    if score >= 0.9:
        return "A"
    if score >= 0.8:
        return "B"
    if score >= 0.7:
        return "C"
    if score >= 0.6:
        return "D"
    return "F"


@dataclass(frozen=True)
class QualitySignals:
    """Corruption indicators that feed the quality score."""

    word_count: int = 0
    target_script_word_count: int = 0
    problematic_word_count: int = 0
    finding_count: int = 0
    finding_density: float = 0.0
    mixed_script_ratio: float = 0.0
    mean_word_confidence: float = 0.0
    corruption_score: float = 0.0
    findings_by_category: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "wordCount": self.word_count,
            "targetScriptWordCount": self.target_script_word_count,
            "problematicWordCount": self.problematic_word_count,
            "findingCount": self.finding_count,
            "findingDensity": self.finding_density,
            "mixedScriptRatio": self.mixed_script_ratio,
            "meanWordConfidence": self.mean_word_confidence,
            "corruptionScore": self.corruption_score,
            "findingsByCategory": dict(self.findings_by_category),
        }


@dataclass(frozen=True)
class DocumentAnalysis:
    """
    Quality assessment of one document.

    Immutable; a re-analysis produces a new record.
    """

    document_id: str
    quality_score: float
    signals: QualitySignals
    quality_level: QualityLevel
    grade: str
    corruption_level: CorruptionLevel
    is_target_script: bool
    issues: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    findings: tuple[Finding, ...] = ()
    processing_time_ms: float = 0.0

    @property
    def is_corrupted(self) -> bool:
        return self.signals.corruption_score > 0.3

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "documentId": self.document_id,
            "qualityScore": self.quality_score,
            "qualityLevel": self.quality_level.value,
            "grade": self.grade,
            "corruptionLevel": self.corruption_level.value,
            "isTargetScript": self.is_target_script,
            "signals": self.signals.to_dict(),
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            "processingTimeMs": self.processing_time_ms,
        }


# =============================================================================
# BATCH RESULTS
# =============================================================================


@dataclass(frozen=True)
class DocumentFailure:
    """A document that could not be analyzed, keyed by its input position."""

    index: int
    document_id: str
    error: str


@dataclass
class CorruptionPattern:
    """Findings of one category aggregated across a batch."""

    category: FindingCategory
    frequency: int = 0
    weight: float = 0.0  # summed finding confidence
    examples: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.category.value,
            "frequency": self.frequency,
            "weight": round(self.weight, 4),
            "examples": list(self.examples),
        }


@dataclass
class CorruptionSummary:
    """Ranked corruption patterns and the recommendations they imply."""

    patterns: list[CorruptionPattern] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": [p.to_dict() for p in self.patterns],
            "recommendations": list(self.recommendations),
        }


class BatchStatus(Enum):
    """Terminal status of a batch run."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class BatchSummary:
    """Aggregate statistics for a batch run."""

    total_documents: int = 0
    successfully_processed: int = 0
    failed: int = 0
    average_quality: float = 0.0
    total_corrupted_words: int = 0
    total_suggestions: int = 0
    auto_applied: int = 0
    processing_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalDocuments": self.total_documents,
            "successfullyProcessed": self.successfully_processed,
            "failed": self.failed,
            "averageQuality": self.average_quality,
            "totalCorruptedWords": self.total_corrupted_words,
            "totalSuggestions": self.total_suggestions,
            "autoApplied": self.auto_applied,
            "processingTime": self.processing_time_ms,
        }


@dataclass
class BatchProcessingResult:
    """
    The outcome of one batch run, owned by the caller.

    documents holds the successful analyses in caller-supplied order;
    documents that failed are omitted there and listed in failures.
    """

    documents: list[DocumentAnalysis] = field(default_factory=list)
    failures: list[DocumentFailure] = field(default_factory=list)
    suggestions: dict[str, list[CorrectionSuggestion]] = field(default_factory=dict)
    corrected_texts: dict[str, str] = field(default_factory=dict)
    auto_applied: list[CorrectionSuggestion] = field(default_factory=list)
    corruption_summary: CorruptionSummary = field(default_factory=CorruptionSummary)
    common_issues: list[tuple[str, int]] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)
    status: BatchStatus = BatchStatus.SUCCESS
    message: str = ""

    def all_suggestions(self) -> list[CorrectionSuggestion]:
        """Suggestions of every document, highest confidence first."""
        merged = [s for group in self.suggestions.values() for s in group]
        return sorted(merged, key=lambda s: s.confidence, reverse=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "message": self.message,
            "summary": self.summary.to_dict(),
            "documents": [d.to_dict() for d in self.documents],
            "failures": [
                {"index": f.index, "documentId": f.document_id, "error": f.error}
                for f in self.failures
            ],
            "suggestions": {
                doc_id: [s.to_dict() for s in group]
                for doc_id, group in self.suggestions.items()
            },
            "correctedTexts": dict(self.corrected_texts),
            "autoApplied": [s.to_dict() for s in self.auto_applied],
            "corruptionPatterns": self.corruption_summary.to_dict(),
            "commonIssues": [
                {"issue": issue, "frequency": frequency} for issue, frequency in self.common_issues
            ],
            "recommendations": list(self.recommendations),
        }
