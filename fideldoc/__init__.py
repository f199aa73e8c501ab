"""
fideldoc: OCR correction and quality scoring for Ethiopic documents.

This library takes OCR output (emphasis on Amharic/Ethiopic script),
scores its quality, and produces ranked, position-anchored correction
suggestions that can be applied without touching unrelated text.

Example:
    >>> import fideldoc
    >>> settings = fideldoc.EngineSettings(strategy="local")
    >>> result = fideldoc.BatchCoordinator(settings).run(
    ...     [{"id": "page-1", "text": "ሰ#ላ ለዓለም"}]
    ... )
    >>> result.corrected_texts["page-1"]
    'ሰ ላ ለዓለም'

    >>> # Worst documents first, for manual review
    >>> for analysis in fideldoc.rank_documents_by_quality(result.documents):
    ...     print(analysis.document_id, analysis.grade)
"""

from fideldoc.batch import (
    BatchCoordinator,
    export_batch_results,
    quality_stats,
    rank_documents_by_quality,
)
from fideldoc.config import EngineSettings
from fideldoc.exceptions import (
    AnalysisError,
    ConfigurationError,
    FidelDocError,
    InvalidSpanError,
    OracleError,
    OracleResponseError,
)
from fideldoc.lexicon import Lexicon, build_lexicon_hint, contains_lexicon_term
from fideldoc.models import (
    BatchProcessingResult,
    BatchStatus,
    BatchSummary,
    CorrectionSuggestion,
    CorruptionLevel,
    CorruptionPattern,
    CorruptionSummary,
    DocumentAnalysis,
    DocumentFailure,
    Finding,
    FindingCategory,
    QualityLevel,
    QualitySignals,
    SourceDocument,
    SuggestionSource,
    TextSpan,
)
from fideldoc.normalizers import TextNormalizer, normalize_text, to_markdown
from fideldoc.ocr import (
    CorrectionApplier,
    CorrectionLedger,
    CorrectionPipeline,
    DocumentAnalyzer,
    GeminiOracle,
    Oracle,
    PatternDetector,
    SuggestionFilter,
    SuggestionGenerator,
)
from fideldoc.script import ScriptClassifier, is_target_script

__version__ = "0.1.0"
__all__ = [
    # Main API
    "BatchCoordinator",
    "CorrectionPipeline",
    "rank_documents_by_quality",
    "quality_stats",
    "export_batch_results",
    # Configuration
    "EngineSettings",
    # Components
    "ScriptClassifier",
    "is_target_script",
    "PatternDetector",
    "TextNormalizer",
    "normalize_text",
    "to_markdown",
    "SuggestionGenerator",
    "SuggestionFilter",
    "CorrectionApplier",
    "CorrectionLedger",
    "DocumentAnalyzer",
    "Lexicon",
    "build_lexicon_hint",
    "contains_lexicon_term",
    # Oracle
    "Oracle",
    "GeminiOracle",
    # Enums
    "FindingCategory",
    "SuggestionSource",
    "QualityLevel",
    "CorruptionLevel",
    "BatchStatus",
    # Records
    "TextSpan",
    "Finding",
    "CorrectionSuggestion",
    "SourceDocument",
    "QualitySignals",
    "DocumentAnalysis",
    "DocumentFailure",
    "CorruptionPattern",
    "CorruptionSummary",
    "BatchSummary",
    "BatchProcessingResult",
    # Exceptions
    "FidelDocError",
    "ConfigurationError",
    "OracleError",
    "OracleResponseError",
    "InvalidSpanError",
    "AnalysisError",
]
