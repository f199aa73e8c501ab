"""
Batch processing of OCR documents.

BatchCoordinator drives the analysis and correction paths across N
caller-supplied documents and folds the outcome into one
BatchProcessingResult. Phases and their progress ceilings:

    analyze                       0 -> 30
    generate-corrections         30 -> 50
    auto-apply-high-confidence   50 -> 80
    finalize                     80 -> 100

A document that fails is omitted from the result's documents and
recorded in its failures; the rest of the batch continues.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import time
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Literal

from fideldoc.config import EngineSettings
from fideldoc.exceptions import ConfigurationError
from fideldoc.models import (
    BatchProcessingResult,
    BatchStatus,
    BatchSummary,
    CorruptionLevel,
    CorruptionPattern,
    CorruptionSummary,
    DocumentAnalysis,
    DocumentFailure,
    FindingCategory,
    QualityLevel,
    SourceDocument,
)
from fideldoc.ocr.applier import CorrectionApplier, CorrectionLedger
from fideldoc.ocr.oracle import ImageContext, Oracle
from fideldoc.ocr.quality import DocumentAnalyzer
from fideldoc.ocr.suggestions import GenerationResult, SuggestionGenerator
from fideldoc.script import ScriptClassifier

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]

PHASE_ANALYZE = "analyze"
PHASE_GENERATE = "generate-corrections"
PHASE_AUTO_APPLY = "auto-apply-high-confidence"
PHASE_FINALIZE = "finalize"

# Progress ceiling reached at the end of each phase
ANALYZE_CEILING = 30
GENERATE_CEILING = 50
AUTO_APPLY_CEILING = 80
FINALIZE_CEILING = 100

MAX_COMMON_ISSUES = 10
MAX_PATTERN_EXAMPLES = 3

# Pattern recommendation thresholds
NOISE_FREQUENCY_THRESHOLD = 10
MIXED_SCRIPT_FREQUENCY_THRESHOLD = 5
DIGIT_FREQUENCY_THRESHOLD = 3
DIGIT_RULES = ("digits_in_script", "numeric_noise_token")

# Overall recommendation thresholds
POOR_AVERAGE_QUALITY = 0.6
HIGH_CORRUPTION_SHARE = 0.3
MANUAL_REVIEW_SHARE = 0.4

CSV_HEADER = [
    "Document",
    "Quality Score",
    "Grade",
    "Corrupted Words",
    "Corruption Level",
    "Issues Count",
]


# =============================================================================
# PROGRESS
# =============================================================================


class _ProgressReporter:
    """Forwards (phase, percent) to a callback, never moving backwards."""

    def __init__(self, callback: ProgressCallback | None):
        self.callback = callback
        self.percent = 0

    def report(self, phase: str, percent: int) -> None:
        percent = max(self.percent, min(FINALIZE_CEILING, int(percent)))
        self.percent = percent
        if self.callback is not None:
            self.callback(phase, percent)

    def step(self, phase: str, floor: int, ceiling: int, done: int, total: int) -> None:
        if total:
            self.report(phase, floor + (ceiling - floor) * done // total)


# =============================================================================
# BATCH COORDINATOR
# =============================================================================


class BatchCoordinator:
    """
    Orchestrates analysis, suggestion generation and auto-application.

    Attributes:
        settings: Engine settings. max_workers > 1 processes documents
            on a thread pool; results are always joined by input index.
        analyzer: DocumentAnalyzer for quality scoring.
        generator: SuggestionGenerator for corrections.

    Example:
        >>> coordinator = BatchCoordinator(EngineSettings(strategy="local"))
        >>> result = coordinator.run([{"id": "p1", "text": "ሰ#ላ ለዓለም"}])
        >>> result.status, result.corrected_texts["p1"]
        (<BatchStatus.SUCCESS: 'success'>, 'ሰ ላ ለዓለም')
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        analyzer: DocumentAnalyzer | None = None,
        generator: SuggestionGenerator | None = None,
        oracle: Oracle | None = None,
    ):
        self.settings = settings or EngineSettings()
        self.generator = generator or SuggestionGenerator(self.settings, oracle=oracle)
        self.analyzer = analyzer or DocumentAnalyzer(
            detector=self.generator.detector,
            classifier=ScriptClassifier(self.settings.force_target_script),
        )

    def run(
        self,
        documents: Iterable[SourceDocument | Mapping[str, Any]],
        ledger: CorrectionLedger | None = None,
        progress: ProgressCallback | None = None,
        image_contexts: Mapping[str, ImageContext | bytes | str] | None = None,
    ) -> BatchProcessingResult:
        """
        Process a batch of documents.

        Args:
            documents: Ordered SourceDocuments or mappings with id/text/metadata.
            ledger: Caller-held ledger of applied suggestions; a fresh one when None.
            progress: Called with (phase, percent) as the batch advances.
            image_contexts: Optional page images keyed by document id.

        Returns:
            BatchProcessingResult owned by the caller.

        Raises:
            ConfigurationError: If the oracle strategy is requested without a credential.
        """
        if self.settings.strategy == "oracle" and self.settings.api_key is None:
            raise ConfigurationError("strategy 'oracle' requires an api_key")

        start_time = time.time()
        reporter = _ProgressReporter(progress)
        ledger = ledger if ledger is not None else CorrectionLedger()
        images = image_contexts or {}
        items = list(documents)
        result = BatchProcessingResult()

        reporter.report(PHASE_ANALYZE, 0)
        if not items:
            result.status = BatchStatus.FAILED
            result.message = "No documents to process"
            reporter.report(PHASE_FINALIZE, FINALIZE_CEILING)
            return result

        logger.info("Processing batch of %d documents", len(items))

        # Phase 1: analysis
        sources: dict[int, SourceDocument] = {}
        analyses: dict[int, DocumentAnalysis] = {}
        seen_ids: set[str] = set()
        pending: list[tuple[int, SourceDocument]] = []
        for index, item in enumerate(items):
            try:
                doc = SourceDocument.coerce(item)
            except (KeyError, TypeError, AttributeError) as e:
                self._record_failure(result, index, _raw_id(item, index), f"Malformed document: {e}")
                continue
            if doc.id in seen_ids:
                self._record_failure(result, index, doc.id, "Duplicate document id")
                continue
            seen_ids.add(doc.id)
            sources[index] = doc
            pending.append((index, doc))

        for done, (index, outcome) in enumerate(
            self._map(self._analyze_one, pending), start=1
        ):
            if isinstance(outcome, Exception):
                self._record_failure(result, index, sources.pop(index).id, str(outcome))
            else:
                analyses[index] = outcome
            reporter.step(PHASE_ANALYZE, 0, ANALYZE_CEILING, done, len(pending))
        reporter.report(PHASE_ANALYZE, ANALYZE_CEILING)

        # Phase 2: suggestion generation
        to_generate = [(index, sources[index]) for index in sorted(analyses)]
        generate = partial(self._generate_one, images)
        for done, (index, outcome) in enumerate(self._map(generate, to_generate), start=1):
            doc = sources[index]
            if isinstance(outcome, Exception):
                analyses.pop(index)
                self._record_failure(result, index, doc.id, str(outcome))
            else:
                result.suggestions[doc.id] = outcome.suggestions
            reporter.step(PHASE_GENERATE, ANALYZE_CEILING, GENERATE_CEILING, done, len(to_generate))
        reporter.report(PHASE_GENERATE, GENERATE_CEILING)

        # Phase 3: auto-apply high-confidence suggestions
        applier = CorrectionApplier(ledger)
        ordered = sorted(analyses)
        for done, index in enumerate(ordered, start=1):
            doc = sources[index]
            outcome = applier.auto_apply(
                doc.text,
                result.suggestions.get(doc.id, []),
                self.settings.auto_apply_threshold,
            )
            result.corrected_texts[doc.id] = outcome.text
            result.auto_applied.extend(outcome.applied)
            reporter.step(PHASE_AUTO_APPLY, GENERATE_CEILING, AUTO_APPLY_CEILING, done, len(ordered))
        reporter.report(PHASE_AUTO_APPLY, AUTO_APPLY_CEILING)

        # Phase 4: finalize
        result.documents = [analyses[index] for index in ordered]
        result.failures.sort(key=lambda f: f.index)
        result.corruption_summary = identify_corruption_patterns(result.documents)
        result.common_issues = common_issues(result.documents)
        result.recommendations = overall_recommendations(result.documents, result.common_issues)
        for recommendation in result.corruption_summary.recommendations:
            if recommendation not in result.recommendations:
                result.recommendations.append(recommendation)

        result.summary = self._summarize(result, len(items), start_time)
        result.status, result.message = _status_for(result.summary)
        reporter.report(PHASE_FINALIZE, FINALIZE_CEILING)

        logger.info(
            "Batch finished: %d processed, %d failed, average quality %.3f",
            result.summary.successfully_processed,
            result.summary.failed,
            result.summary.average_quality,
        )
        return result

    def _analyze_one(self, doc: SourceDocument) -> DocumentAnalysis:
        return self.analyzer.analyze_text(doc.text, doc.id)

    def _generate_one(
        self, images: Mapping[str, ImageContext | bytes | str], doc: SourceDocument
    ) -> GenerationResult:
        return self.generator.generate(doc.text, doc.id, image_context=images.get(doc.id))

    def _map(
        self,
        func: Callable[[SourceDocument], Any],
        work: list[tuple[int, SourceDocument]],
    ):
        """Yield (index, result or exception) in input order."""

        def guarded(doc: SourceDocument) -> Any:
            try:
                return func(doc)
            except Exception as e:
                logger.debug("Document %s raised %s", doc.id, type(e).__name__)
                return e

        if self.settings.max_workers > 1 and len(work) > 1:
            with ThreadPoolExecutor(max_workers=self.settings.max_workers) as pool:
                futures = [(index, pool.submit(guarded, doc)) for index, doc in work]
                for index, future in futures:
                    yield index, future.result()
        else:
            for index, doc in work:
                yield index, guarded(doc)

    def _record_failure(
        self, result: BatchProcessingResult, index: int, document_id: str, error: str
    ) -> None:
        logger.warning("Document %s (index %d) failed: %s", document_id, index, error)
        result.failures.append(DocumentFailure(index=index, document_id=document_id, error=error))

    def _summarize(
        self, result: BatchProcessingResult, total: int, start_time: float
    ) -> BatchSummary:
        documents = result.documents
        average = sum(d.quality_score for d in documents) / len(documents) if documents else 0.0
        return BatchSummary(
            total_documents=total,
            successfully_processed=len(documents),
            failed=len(result.failures),
            average_quality=average,
            total_corrupted_words=sum(d.signals.problematic_word_count for d in documents),
            total_suggestions=sum(len(group) for group in result.suggestions.values()),
            auto_applied=len(result.auto_applied),
            processing_time_ms=(time.time() - start_time) * 1000,
        )


def _raw_id(item: Any, index: int) -> str:
    if isinstance(item, Mapping) and item.get("id") is not None:
        return str(item["id"])
    return f"document-{index}"


def _status_for(summary: BatchSummary) -> tuple[BatchStatus, str]:
    if summary.successfully_processed == 0:
        return BatchStatus.FAILED, "No documents could be processed"
    if summary.failed:
        return (
            BatchStatus.PARTIAL,
            f"Processed {summary.successfully_processed} of {summary.total_documents} "
            f"documents; {summary.failed} failed",
        )
    return BatchStatus.SUCCESS, f"Processed {summary.successfully_processed} documents"


# =============================================================================
# AGGREGATION
# =============================================================================


def identify_corruption_patterns(analyses: Iterable[DocumentAnalysis]) -> CorruptionSummary:
    """
    Group findings across documents by category.

    Patterns are ranked by weight (summed finding confidence), heaviest
    first, and keep up to three distinct examples each.
    """
    patterns: dict[FindingCategory, CorruptionPattern] = {}
    rule_counts: Counter[str] = Counter()

    for analysis in analyses:
        for finding in analysis.findings:
            pattern = patterns.setdefault(finding.category, CorruptionPattern(finding.category))
            pattern.frequency += 1
            pattern.weight += finding.confidence
            if (
                len(pattern.examples) < MAX_PATTERN_EXAMPLES
                and finding.matched_text not in pattern.examples
            ):
                pattern.examples.append(finding.matched_text)
            rule_counts[finding.rule] += 1

    ranked = sorted(patterns.values(), key=lambda p: p.weight, reverse=True)

    recommendations = []
    noise = patterns.get(FindingCategory.ASCII_NOISE_IN_SCRIPT)
    if noise is not None and noise.frequency > NOISE_FREQUENCY_THRESHOLD:
        recommendations.append("High frequency of ASCII noise detected - consider OCR preprocessing")
    mixed = patterns.get(FindingCategory.MIXED_SCRIPT_FRAGMENT)
    if mixed is not None and mixed.frequency > MIXED_SCRIPT_FREQUENCY_THRESHOLD:
        recommendations.append("Mixed script issues common - verify language detection settings")
    if sum(rule_counts[rule] for rule in DIGIT_RULES) > DIGIT_FREQUENCY_THRESHOLD:
        recommendations.append("Numbers embedded in Amharic text - check digit recognition settings")

    return CorruptionSummary(patterns=ranked, recommendations=recommendations)


def common_issues(
    analyses: Iterable[DocumentAnalysis], limit: int = MAX_COMMON_ISSUES
) -> list[tuple[str, int]]:
    """Most frequent issue strings across documents, most frequent first."""
    counts: Counter[str] = Counter()
    for analysis in analyses:
        counts.update(analysis.issues)
    return counts.most_common(limit)


def overall_recommendations(
    analyses: list[DocumentAnalysis], issues: list[tuple[str, int]]
) -> list[str]:
    """Batch-level recommendations from average quality, corruption and grades."""
    if not analyses:
        return []
    recommendations = []
    total = len(analyses)

    average = sum(a.quality_score for a in analyses) / total
    if average < POOR_AVERAGE_QUALITY:
        recommendations.append(
            "Overall document quality is poor - consider re-scanning with higher DPI settings"
        )
    high_corruption = sum(1 for a in analyses if a.corruption_level is CorruptionLevel.HIGH)
    if high_corruption > total * HIGH_CORRUPTION_SHARE:
        recommendations.append("High corruption rate detected - verify OCR engine configuration")
    needs_review = sum(1 for a in analyses if a.grade in ("D", "F"))
    if needs_review > total * MANUAL_REVIEW_SHARE:
        recommendations.append(
            "Many documents require manual review - prioritize highest quality documents first"
        )

    if any("ASCII noise" in issue for issue, _ in issues):
        recommendations.append(
            "ASCII noise is a common issue - implement preprocessing to remove special characters"
        )
    if any("Mixed scripts" in issue for issue, _ in issues):
        recommendations.append(
            "Mixed script detection needed - separate Amharic and Latin text during processing"
        )
    return recommendations


# =============================================================================
# RANKING & STATISTICS
# =============================================================================


def rank_documents_by_quality(
    analyses: Iterable[DocumentAnalysis], descending: bool = False
) -> list[DocumentAnalysis]:
    """
    Order analyses by quality score, worst first by default.

    The sort is stable: documents with equal scores keep their input order.
    """
    return sorted(analyses, key=lambda a: a.quality_score, reverse=descending)


def quality_stats(analyses: Iterable[DocumentAnalysis]) -> dict[str, Any]:
    """Bucket counts per quality level and grade, plus the average score."""
    analyses = list(analyses)
    levels = Counter(a.quality_level for a in analyses)
    grades = Counter(a.grade for a in analyses)
    return {
        "total": len(analyses),
        "average_quality": (
            sum(a.quality_score for a in analyses) / len(analyses) if analyses else 0.0
        ),
        "levels": {level.value: levels.get(level, 0) for level in QualityLevel},
        "grades": {grade: grades.get(grade, 0) for grade in "ABCDF"},
        "corrupted": sum(1 for a in analyses if a.is_corrupted),
    }


# =============================================================================
# EXPORT
# =============================================================================


def export_batch_results(
    result: BatchProcessingResult,
    format: Literal["json", "csv", "summary"] = "json",
) -> str:
    """
    Export batch results as JSON, CSV or a plain-text summary.

    Raises:
        ValueError: If format is not one of json, csv or summary.
    """
    if format == "json":
        return json.dumps(result.to_dict(), ensure_ascii=False, indent=2)
    if format == "csv":
        return _export_csv(result)
    if format == "summary":
        return _export_summary(result)
    raise ValueError(f"Unsupported export format: {format!r}")


def _export_csv(result: BatchProcessingResult) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for analysis in result.documents:
        writer.writerow(
            [
                analysis.document_id,
                f"{analysis.quality_score:.2f}",
                analysis.grade,
                analysis.signals.problematic_word_count,
                analysis.corruption_level.value,
                len(analysis.issues),
            ]
        )
    return buffer.getvalue().rstrip("\n")


def _export_summary(result: BatchProcessingResult) -> str:
    summary = result.summary
    lines = [
        "AMHARIC DOCUMENT BATCH PROCESSING SUMMARY",
        "=========================================",
        "",
        f"Total Documents: {summary.total_documents}",
        f"Successfully Processed: {summary.successfully_processed}",
        f"Failed: {summary.failed}",
        f"Average Quality: {summary.average_quality * 100:.1f}%",
        f"Total Corrupted Words: {summary.total_corrupted_words}",
        f"Total Suggestions: {summary.total_suggestions}",
        f"Auto-applied: {summary.auto_applied}",
        f"Processing Time: {summary.processing_time_ms:.0f}ms",
        "",
        "DOCUMENT QUALITY BREAKDOWN:",
    ]
    for analysis in result.documents:
        lines.append(
            f"{analysis.document_id}: {analysis.grade} ({analysis.quality_score * 100:.1f}%)"
            f" - {analysis.signals.problematic_word_count} corrupted words"
        )
    if result.failures:
        lines.extend(["", "FAILURES:"])
        lines.extend(f"{f.document_id} (#{f.index}): {f.error}" for f in result.failures)
    lines.extend(["", "COMMON ISSUES:"])
    lines.extend(f"{issue}: {count} occurrences" for issue, count in result.common_issues[:5])
    lines.extend(["", "RECOMMENDATIONS:"])
    lines.extend(f"• {rec}" for rec in result.recommendations)
    return "\n".join(lines)
