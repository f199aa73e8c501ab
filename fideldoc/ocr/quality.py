"""
OCR quality scoring for Ethiopic documents.

Quality is estimated from three signals:
- word-level validation (mixed scripts, digits, symbol noise, repetition)
- document-level corruption indicators
- pattern-detector finding density

The analyzer is pure: no I/O, and the same text always yields the same
score.
"""

from __future__ import annotations

import logging
import re
import time
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from fideldoc.exceptions import AnalysisError
from fideldoc.models import (
    CorruptionLevel,
    DocumentAnalysis,
    QualityLevel,
    QualitySignals,
    SourceDocument,
    grade_for_score,
)
from fideldoc.ocr.detector import PatternDetector
from fideldoc.script import (
    ETHIOPIC_CLASS,
    ETHIOPIC_PATTERN,
    NOISE_CLASS,
    NOISE_PATTERN,
    ScriptClassifier,
    contains_latin,
    is_target_script,
    is_target_script_word,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Confidence for words without any Ethiopic character
FOREIGN_WORD_CONFIDENCE = 0.9

# Word-level penalties
MIXED_SCRIPT_PENALTY = 0.4
DIGIT_PENALTY = 0.3
NOISE_PENALTY = 0.5
REPETITION_PENALTY = 0.4
LONE_SCRIPT_CHAR_PENALTY = 0.3
INVALID_COMBINATION_PENALTY = 0.4
SHORT_WORD_PENALTY = 0.2
LONG_WORD_PENALTY = 0.3

MIN_VALID_WORD_CONFIDENCE = 0.6
MAX_WORD_LENGTH = 20

# Document-level corruption indicators
NOISE_RUN_WEIGHT = 0.3
CAPS_OR_NUMBER_WEIGHT = 0.2
MIXED_SCRIPT_WEIGHT = 0.3
CORRUPTED_THRESHOLD = 0.3

# Score penalties
CORRUPTION_PENALTY = 0.3
MAX_FINDING_PENALTY = 0.3

REPEATED_CHAR = re.compile(r"(.)\1{4,}")
DIGIT = re.compile(r"[0-9]")
INVALID_COMBINATIONS = re.compile("[ዘዙዚዛዜዝዞዟ]{3,}|[ጰጱጲጳጴጵጶጷ]{3,}")
NOISE_RUN = re.compile(f"[{NOISE_CLASS}]{{2,}}")
CAPS_OR_NUMBER_SEQUENCE = re.compile(r"[A-Z0-9]{2,}|[0-9]{3,}")
MIXED_SCRIPT_SEQUENCE = re.compile(f"[{ETHIOPIC_CLASS}][A-Za-z]")


# =============================================================================
# WORD VALIDATION
# =============================================================================


@dataclass
class WordValidation:
    """Validation outcome for a single word."""

    word: str
    confidence: float
    issues: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues and self.confidence > MIN_VALID_WORD_CONFIDENCE


def validate_word(word: str) -> WordValidation:
    """
    Score a single whitespace-delimited word.

    Words without Ethiopic characters are accepted with a fixed
    confidence of 0.9.

    Example:
        >>> validate_word("ሰላም").is_valid
        True
        >>> validate_word("ሰላm").issues
        ['Mixed Amharic and Latin scripts']
    """
    clean = word.strip()
    if not clean:
        return WordValidation(word=word, confidence=0.0, issues=["Empty word"])
    if not is_target_script(clean):
        return WordValidation(word=word, confidence=FOREIGN_WORD_CONFIDENCE)

    issues = []
    confidence = 1.0

    if contains_latin(clean):
        issues.append("Mixed Amharic and Latin scripts")
        confidence -= MIXED_SCRIPT_PENALTY
    if DIGIT.search(clean):
        issues.append("Numbers mixed with Amharic text")
        confidence -= DIGIT_PENALTY
    if NOISE_PATTERN.search(clean):
        issues.append("Contains ASCII noise characters")
        confidence -= NOISE_PENALTY
    if REPEATED_CHAR.search(clean):
        issues.append("Excessive character repetition")
        confidence -= REPETITION_PENALTY
    if len(ETHIOPIC_PATTERN.findall(clean)) == 1 and len(clean) > 3:
        issues.append("Single Amharic character with noise")
        confidence -= LONE_SCRIPT_CHAR_PENALTY
    if INVALID_COMBINATIONS.search(clean):
        issues.append("Invalid character combinations")
        confidence -= INVALID_COMBINATION_PENALTY

    if len(clean) < 2:
        confidence -= SHORT_WORD_PENALTY
    elif len(clean) > MAX_WORD_LENGTH:
        confidence -= LONG_WORD_PENALTY

    return WordValidation(word=word, confidence=min(1.0, max(0.0, confidence)), issues=issues)


# =============================================================================
# CORRUPTION
# =============================================================================


@dataclass
class CorruptionAssessment:
    """Document-level corruption indicators."""

    score: float = 0.0
    level: CorruptionLevel = CorruptionLevel.LOW
    problematic_words: int = 0
    issues: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_corrupted(self) -> bool:
        return self.score > CORRUPTED_THRESHOLD


def assess_corruption(text: str, validations: list[WordValidation]) -> CorruptionAssessment:
    """
    Combine word validation with document-wide corruption indicators.

    The score is the share of problematic words plus fixed weights for
    symbol runs, caps/number sequences and mixed-script words.
    """
    assessment = CorruptionAssessment()
    if not text.strip():
        return assessment

    for validation in validations:
        if not validation.is_valid or validation.confidence < MIN_VALID_WORD_CONFIDENCE:
            assessment.problematic_words += 1
            if validation.issues:
                assessment.issues.append(f'"{validation.word}": {", ".join(validation.issues)}')

    score = assessment.problematic_words / len(validations) if validations else 0.0

    if NOISE_RUN.search(text):
        score += NOISE_RUN_WEIGHT
        assessment.issues.append("Multiple ASCII noise characters detected")
        assessment.suggestions.append("Remove noise characters (#, ;, :, /, \\, |, etc.)")
    if CAPS_OR_NUMBER_SEQUENCE.search(text):
        score += CAPS_OR_NUMBER_WEIGHT
        assessment.issues.append("Suspicious uppercase letters or number sequences")
        assessment.suggestions.append("Verify if letter/number sequences belong in text")
    if MIXED_SCRIPT_SEQUENCE.search(text):
        score += MIXED_SCRIPT_WEIGHT
        assessment.issues.append("Mixed scripts within words")
        assessment.suggestions.append("Separate Amharic and Latin text properly")

    assessment.score = score
    assessment.level = CorruptionLevel.from_score(score)
    if assessment.level is CorruptionLevel.HIGH:
        assessment.suggestions.append(
            "Consider re-scanning the document with higher quality settings"
        )
        assessment.suggestions.append("Try using a different OCR engine")
    elif assessment.level is CorruptionLevel.MEDIUM:
        assessment.suggestions.append("Manual review and correction recommended")
    return assessment


# =============================================================================
# DOCUMENT ANALYZER
# =============================================================================


class DocumentAnalyzer:
    """
    Scores the OCR quality of a document.

    quality_score = clamp(mean word confidence
                          - 0.3 if the document is corrupted
                          - min(0.3, finding density))

    where finding density is the summed confidence of pattern findings
    per word.

    Attributes:
        detector: Pattern detector supplying findings.
        classifier: Target-script gate.

    Example:
        >>> analysis = DocumentAnalyzer().analyze_text("ሰላም ለዓለም።", "page-1")
        >>> analysis.grade
        'A'
    """

    def __init__(
        self,
        detector: PatternDetector | None = None,
        classifier: ScriptClassifier | None = None,
    ):
        self.detector = detector or PatternDetector()
        self.classifier = classifier or ScriptClassifier()

    def analyze(self, document: SourceDocument | Mapping[str, Any]) -> DocumentAnalysis:
        """
        Analyze a caller-supplied document.

        Raises:
            AnalysisError: If the document has no id or its text is not a string.
        """
        try:
            doc = SourceDocument.coerce(document)
        except (KeyError, TypeError, AttributeError) as e:
            raise AnalysisError(f"Malformed document: {e}") from e
        return self.analyze_text(doc.text, doc.id)

    def analyze_text(self, text: str, document_id: str = "document") -> DocumentAnalysis:
        """Analyze raw text under the given document id."""
        if not isinstance(text, str):
            raise AnalysisError(
                f"Document {document_id} text must be a string, got {type(text).__name__}"
            )
        start_time = time.time()

        if not text.strip():
            return DocumentAnalysis(
                document_id=document_id,
                quality_score=0.0,
                signals=QualitySignals(),
                quality_level=QualityLevel.POOR,
                grade=grade_for_score(0.0),
                corruption_level=CorruptionLevel.LOW,
                is_target_script=False,
                issues=("Empty document",),
                processing_time_ms=(time.time() - start_time) * 1000,
            )

        words = text.split()
        validations = [validate_word(w) for w in words]
        corruption = assess_corruption(text, validations)
        findings = self.detector.detect(text)

        mean_confidence = sum(v.confidence for v in validations) / len(validations)
        finding_weight = sum(f.confidence for f in findings)
        density = finding_weight / len(words)
        mixed = sum(1 for w in words if is_target_script(w) and contains_latin(w))

        score = mean_confidence
        if corruption.is_corrupted:
            score -= CORRUPTION_PENALTY
        score -= min(MAX_FINDING_PENALTY, density)
        score = min(1.0, max(0.0, score))

        signals = QualitySignals(
            word_count=len(words),
            target_script_word_count=sum(1 for w in words if is_target_script_word(w)),
            problematic_word_count=corruption.problematic_words,
            finding_count=len(findings),
            finding_density=density,
            mixed_script_ratio=mixed / len(words),
            mean_word_confidence=mean_confidence,
            corruption_score=corruption.score,
            findings_by_category=dict(Counter(f.category.value for f in findings)),
        )

        recommendations = self._recommendations(score, corruption, len(words))
        logger.debug(
            "Document %s: score=%.3f corruption=%.3f findings=%d",
            document_id,
            score,
            corruption.score,
            len(findings),
        )

        return DocumentAnalysis(
            document_id=document_id,
            quality_score=score,
            signals=signals,
            quality_level=QualityLevel.from_score(score),
            grade=grade_for_score(score),
            corruption_level=corruption.level,
            is_target_script=self.classifier.is_target_script(text),
            issues=tuple(corruption.issues),
            recommendations=tuple(recommendations),
            findings=tuple(findings),
            processing_time_ms=(time.time() - start_time) * 1000,
        )

    def _recommendations(
        self, score: float, corruption: CorruptionAssessment, word_count: int
    ) -> list[str]:
        recommendations = []
        if score < 0.7:
            recommendations.append("Consider re-scanning the document with higher quality settings")
        if corruption.is_corrupted:
            recommendations.append("Manual review and correction required for corrupted sections")
        if corruption.problematic_words > word_count * 0.3:
            recommendations.append(
                "High number of problematic words detected - verify OCR engine settings"
            )
        for suggestion in corruption.suggestions:
            if suggestion not in recommendations:
                recommendations.append(suggestion)
        return recommendations
