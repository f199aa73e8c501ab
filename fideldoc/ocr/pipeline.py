"""
Per-document correction pipeline.

Runs the same stages the batch coordinator runs, for a single text:
1. Quality analysis (pattern findings, word validation, score)
2. Suggestion generation (oracle or local rules, filtered and ranked)
3. Optional auto-application of high-confidence suggestions

Nothing is persisted; the caller owns the ledger.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from fideldoc.config import EngineSettings
from fideldoc.models import CorrectionSuggestion, DocumentAnalysis
from fideldoc.normalizers.hyphenation import Hyphenator
from fideldoc.normalizers.text import TextNormalizer
from fideldoc.ocr.applier import CorrectionApplier, CorrectionLedger
from fideldoc.ocr.oracle import ImageContext, Oracle
from fideldoc.ocr.quality import DocumentAnalyzer
from fideldoc.ocr.suggestions import GenerationResult, SuggestionGenerator
from fideldoc.script import ScriptClassifier

logger = logging.getLogger(__name__)


# =============================================================================
# DATA STRUCTURES
# =============================================================================


@dataclass
class PipelineResult:
    """Result of pipeline processing for a single document."""

    document_id: str
    original_text: str
    corrected_text: str
    analysis: DocumentAnalysis
    generation: GenerationResult
    applied: list[CorrectionSuggestion]
    processing_time_ms: float

    @property
    def suggestions(self) -> list[CorrectionSuggestion]:
        return self.generation.suggestions

    @property
    def corrections_made(self) -> int:
        return len(self.applied)


# =============================================================================
# CORRECTION PIPELINE
# =============================================================================


@dataclass
class CorrectionPipeline:
    """
    Analyze, suggest and optionally auto-apply for one document.

    Attributes:
        settings: Engine settings shared by every stage.
        oracle: Injected oracle; when None the generator decides.
        analyzer: DocumentAnalyzer for quality scoring.
        generator: SuggestionGenerator for corrections.
        ledger: Caller-held ledger of applied suggestions.
        auto_apply: Whether to apply suggestions at or above
            settings.auto_apply_threshold.
        hyphenator: Optional long-word strategy for preview().

    Example:
        >>> pipeline = CorrectionPipeline(EngineSettings(strategy="local"), auto_apply=True)
        >>> result = pipeline.process_text("ሰ#ላ ለዓለም", "page-1")
        >>> result.corrected_text
        'ሰ ላ ለዓለም'
    """

    settings: EngineSettings = field(default_factory=EngineSettings)
    oracle: Oracle | None = None
    analyzer: DocumentAnalyzer | None = None
    generator: SuggestionGenerator | None = None
    ledger: CorrectionLedger = field(default_factory=CorrectionLedger)
    auto_apply: bool = False
    hyphenator: Hyphenator | None = None

    def __post_init__(self) -> None:
        """Initialize pipeline components."""
        if self.generator is None:
            self.generator = SuggestionGenerator(self.settings, oracle=self.oracle)
        if self.analyzer is None:
            self.analyzer = DocumentAnalyzer(
                detector=self.generator.detector,
                classifier=ScriptClassifier(self.settings.force_target_script),
            )
        self.applier = CorrectionApplier(self.ledger)
        self.normalizer = TextNormalizer(hyphenator=self.hyphenator)

    def process_text(
        self,
        text: str,
        document_id: str = "document",
        image_context: ImageContext | bytes | str | None = None,
    ) -> PipelineResult:
        """
        Process one document through analysis and suggestion generation.

        Args:
            text: Raw OCR text.
            document_id: Identifier stamped on the analysis and suggestions.
            image_context: Optional page image passed to the oracle.

        Returns:
            PipelineResult. corrected_text equals text unless auto_apply is set.

        Raises:
            AnalysisError: If text is not a string.
        """
        start_time = time.time()

        analysis = self.analyzer.analyze_text(text, document_id)
        generation = self.generator.generate(text, document_id, image_context=image_context)

        corrected = text
        applied: list[CorrectionSuggestion] = []
        if self.auto_apply and generation.suggestions:
            outcome = self.applier.auto_apply(
                text, generation.suggestions, self.settings.auto_apply_threshold
            )
            corrected = outcome.text
            applied = outcome.applied

        processing_time_ms = (time.time() - start_time) * 1000
        logger.debug(
            "Processed %s: score=%.3f suggestions=%d applied=%d",
            document_id,
            analysis.quality_score,
            len(generation.suggestions),
            len(applied),
        )

        return PipelineResult(
            document_id=document_id,
            original_text=text,
            corrected_text=corrected,
            analysis=analysis,
            generation=generation,
            applied=applied,
            processing_time_ms=processing_time_ms,
        )

    def preview(self, text: str) -> str:
        """Markdown preview of text."""
        return self.normalizer.to_markdown(text)

    def get_info(self) -> dict[str, Any]:
        """Get information about pipeline configuration."""
        return {
            "strategy": self.settings.strategy,
            "oracle_enabled": self.generator.oracle is not None and self.settings.oracle_enabled,
            "models": self.settings.model_chain(),
            "max_suggestions": self.settings.max_suggestions,
            "auto_apply": self.auto_apply,
            "auto_apply_threshold": self.settings.auto_apply_threshold,
            "applied_count": len(self.ledger),
        }


def create_pipeline(
    settings: EngineSettings | None = None,
    oracle: Oracle | None = None,
    auto_apply: bool = False,
) -> CorrectionPipeline:
    """
    Create a correction pipeline.

    Args:
        settings: Engine settings; defaults to local-only settings without a credential.
        oracle: Optional injected oracle.
        auto_apply: Whether to apply high-confidence suggestions.

    Returns:
        Configured CorrectionPipeline.
    """
    return CorrectionPipeline(
        settings=settings or EngineSettings(),
        oracle=oracle,
        auto_apply=auto_apply,
    )
