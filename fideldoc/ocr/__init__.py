"""
OCR correction and quality scoring for Ethiopic documents.

This module provides:
- Pattern-rule detection of OCR artifacts
- Suggestion generation from local rules or a language-model oracle
- A single filtering and ranking policy for suggestions
- Idempotent application of corrections against a caller-held ledger
- Per-document quality scoring

Example:
    >>> from fideldoc.ocr import CorrectionPipeline
    >>> pipeline = CorrectionPipeline()
    >>> result = pipeline.process_text("ሰ#ላ ለዓለም")
    >>> [(s.original, s.corrected) for s in result.suggestions]
    [('ሰ#ላ', 'ሰ ላ')]
"""

from fideldoc.ocr.applier import (
    ApplyResult,
    CorrectionApplier,
    CorrectionLedger,
    sort_for_application,
)
from fideldoc.ocr.detector import (
    DEFAULT_RULES,
    DetectionRule,
    DetectionStats,
    PatternDetector,
    apply_findings,
)
from fideldoc.ocr.filtering import FilterStats, SuggestionFilter
from fideldoc.ocr.oracle import (
    GeminiOracle,
    ImageContext,
    Oracle,
    OracleSuggestion,
    build_correction_prompt,
    parse_suggestion_payload,
    prepare_image_context,
)
from fideldoc.ocr.pipeline import CorrectionPipeline, PipelineResult, create_pipeline
from fideldoc.ocr.quality import DocumentAnalyzer, WordValidation, validate_word
from fideldoc.ocr.suggestions import GenerationResult, SuggestionGenerator, local_suggestions

__all__ = [
    # Pipeline
    "CorrectionPipeline",
    "PipelineResult",
    "create_pipeline",
    # Detection
    "PatternDetector",
    "DetectionRule",
    "DetectionStats",
    "DEFAULT_RULES",
    "apply_findings",
    # Suggestions
    "SuggestionGenerator",
    "GenerationResult",
    "local_suggestions",
    "SuggestionFilter",
    "FilterStats",
    # Oracle
    "Oracle",
    "GeminiOracle",
    "ImageContext",
    "OracleSuggestion",
    "build_correction_prompt",
    "parse_suggestion_payload",
    "prepare_image_context",
    # Application
    "CorrectionApplier",
    "CorrectionLedger",
    "ApplyResult",
    "sort_for_application",
    # Quality
    "DocumentAnalyzer",
    "WordValidation",
    "validate_word",
]
