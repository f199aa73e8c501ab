"""
Correction suggestion generation.

Two strategies sit behind one contract:

- oracle: a language model proofreads the text. The preferred model is
  tried first, then at most two alternates. Any failure moves on to the
  next model.
- local: deterministic pattern rules. Always available, never fails.

Whatever the source, every batch passes through SuggestionFilter exactly
once before it is returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fideldoc.config import EngineSettings
from fideldoc.exceptions import ConfigurationError, OracleError
from fideldoc.lexicon import DEFAULT_LEXICON, Lexicon
from fideldoc.models import CorrectionSuggestion, Finding, SuggestionSource, TextSpan
from fideldoc.ocr.detector import PatternDetector
from fideldoc.ocr.filtering import SuggestionFilter
from fideldoc.ocr.oracle import (
    GeminiOracle,
    ImageContext,
    Oracle,
    build_correction_prompt,
    parse_suggestion_payload,
    prepare_image_context,
)
from fideldoc.script import ScriptClassifier, is_target_script

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

NOISE_REASON = "የ ASCII ጫጫታ ማስወገጃ"
LATIN_REASON = "የላቲን ፊደላት በአማርኛ ቃል ውስጥ"

NOISE_CONFIDENCE = 0.9
LATIN_CONFIDENCE = 0.8


# =============================================================================
# DATA STRUCTURES
# =============================================================================


@dataclass
class GenerationResult:
    """Suggestions for one document and where they came from."""

    suggestions: list[CorrectionSuggestion] = field(default_factory=list)
    source: SuggestionSource = SuggestionSource.LOCAL
    attempts: list[str] = field(default_factory=list)  # model ids tried, in order
    error: str | None = None  # last oracle failure, if any

    @property
    def used_fallback(self) -> bool:
        return self.source is not SuggestionSource.PRIMARY_MODEL and bool(self.attempts)


# =============================================================================
# LOCAL STRATEGY
# =============================================================================


def _script_run_bounds(text: str, start: int, end: int) -> tuple[int, int]:
    while start > 0 and is_target_script(text[start - 1]):
        start -= 1
    while end < len(text) and is_target_script(text[end]):
        end += 1
    return start, end


def local_suggestions(
    text: str,
    findings: list[Finding],
    document_id: str,
) -> list[CorrectionSuggestion]:
    """
    Turn pattern findings into suggestions.

    Symbol noise between two Ethiopic characters becomes "x y" with the
    neighbouring characters included; a Latin run inside an Ethiopic word
    is removed, with the whole word as the anchor.

    Args:
        text: Document text the findings were detected in.
        findings: PatternDetector output for text.
        document_id: Owning document.

    Returns:
        Suggestions in text order.
    """
    suggestions = []
    for finding in sorted(findings, key=lambda f: f.span.start):
        start, end = finding.span.start, finding.span.end

        if finding.rule == "ascii_symbol_in_script" and finding.suggested_fix == " ":
            anchor = TextSpan(start - 1, end + 1)
            suggestions.append(
                CorrectionSuggestion(
                    document_id=document_id,
                    span=anchor,
                    original=anchor.slice(text),
                    corrected=f"{text[start - 1]} {text[end]}",
                    reason=NOISE_REASON,
                    confidence=NOISE_CONFIDENCE,
                    source=SuggestionSource.LOCAL,
                )
            )
        elif finding.rule == "latin_in_script_word":
            word_start, word_end = _script_run_bounds(text, start, end)
            suggestions.append(
                CorrectionSuggestion(
                    document_id=document_id,
                    span=TextSpan(word_start, word_end),
                    original=text[word_start:word_end],
                    corrected=text[word_start:start] + text[end:word_end],
                    reason=LATIN_REASON,
                    confidence=LATIN_CONFIDENCE,
                    source=SuggestionSource.LOCAL,
                )
            )
    return suggestions


# =============================================================================
# SUGGESTION GENERATOR
# =============================================================================


class SuggestionGenerator:
    """
    Produces filtered, ranked correction suggestions for a document.

    Strategy selection follows ``settings.strategy``:

    - "auto": oracle when a credential is configured, local otherwise.
    - "oracle": requires a credential. Falls back to local rules when every
      model fails, unless allow_local_fallback is False, in which case the
      result is empty with source UNAVAILABLE.
    - "local": always pattern rules.

    Attributes:
        settings: Engine settings.
        oracle: Injected oracle; a GeminiOracle is built from the api_key
            when omitted.
        detector: Pattern detector used by the local strategy.
        suggestion_filter: Reconciliation policy applied to every batch.

    Example:
        >>> generator = SuggestionGenerator(EngineSettings(strategy="local"))
        >>> result = generator.generate("ሰ#ላ", document_id="page-1")
        >>> [(s.original, s.corrected) for s in result.suggestions]
        [('ሰ#ላ', 'ሰ ላ')]
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        oracle: Oracle | None = None,
        detector: PatternDetector | None = None,
        suggestion_filter: SuggestionFilter | None = None,
        lexicon: Lexicon | None = None,
        allow_local_fallback: bool = True,
    ):
        self.settings = settings or EngineSettings()
        self.lexicon = DEFAULT_LEXICON if lexicon is None else lexicon
        self.detector = detector or PatternDetector()
        self.suggestion_filter = suggestion_filter or SuggestionFilter(
            ScriptClassifier(self.settings.force_target_script), self.lexicon
        )
        self.allow_local_fallback = allow_local_fallback

        if oracle is None and self.settings.oracle_enabled:
            oracle = GeminiOracle(self.settings.api_key)
        self.oracle = oracle

    def generate(
        self,
        text: str,
        document_id: str = "document",
        image_context: ImageContext | bytes | str | None = None,
        max_suggestions: int | None = None,
    ) -> GenerationResult:
        """
        Generate suggestions for one document.

        Oracle failures never escape; they are reported through
        ``GenerationResult.error`` and the fallback source.

        Args:
            text: Document text.
            document_id: Identifier stamped on every suggestion.
            image_context: Optional page image for the oracle.
            max_suggestions: Cap for this call; settings.max_suggestions when None.

        Returns:
            GenerationResult.

        Raises:
            ValueError: If text is None.
            ConfigurationError: If the oracle strategy is requested without a credential.
            ConfigurationError: If max_suggestions is below 1.
        """
        if text is None:
            raise ValueError("Input text cannot be None")
        limit = self.settings.max_suggestions if max_suggestions is None else max_suggestions
        if limit < 1:
            raise ConfigurationError(f"max_suggestions must be >= 1, got {limit}")

        strategy = self.settings.strategy
        if strategy == "oracle" and self.settings.api_key is None:
            raise ConfigurationError("strategy 'oracle' requires an api_key")

        if strategy == "local" or self.oracle is None or self.settings.api_key is None:
            return self._generate_local(text, document_id, limit)
        return self._generate_with_oracle(text, document_id, image_context, limit)

    def _generate_local(
        self,
        text: str,
        document_id: str,
        limit: int,
        attempts: list[str] | None = None,
        error: str | None = None,
    ) -> GenerationResult:
        findings = self.detector.detect(text)
        raw = local_suggestions(text, findings, document_id)
        kept = self.suggestion_filter.apply(raw, text, limit)
        return GenerationResult(
            suggestions=kept,
            source=SuggestionSource.LOCAL,
            attempts=attempts or [],
            error=error,
        )

    def _generate_with_oracle(
        self,
        text: str,
        document_id: str,
        image_context: ImageContext | bytes | str | None,
        limit: int,
    ) -> GenerationResult:
        image = None
        if image_context is not None:
            try:
                image = prepare_image_context(image_context)
            except OracleError as e:
                logger.warning("Ignoring unusable image context for %s: %s", document_id, e)

        hint = self.lexicon.build_hint() if self.settings.enable_lexicon_hints else None
        prompt = build_correction_prompt(text, limit, lexicon_hint=hint, with_image=image is not None)

        attempts: list[str] = []
        last_error = None
        for index, model in enumerate(self.settings.model_chain()):
            attempts.append(model)
            try:
                reply = self.oracle.generate(
                    prompt,
                    image,
                    model=model,
                    max_output_tokens=self.settings.max_output_tokens,
                    timeout=self.settings.oracle_timeout,
                )
                items = parse_suggestion_payload(reply)
            except Exception as e:
                last_error = f"{model}: {e}"
                logger.warning("Oracle attempt with %s failed: %s", model, e)
                continue

            source = SuggestionSource.PRIMARY_MODEL if index == 0 else SuggestionSource.FALLBACK_MODEL
            raw = []
            for item in items:
                position = text.find(item.original)
                if position == -1:
                    logger.debug("Dropping unanchored oracle suggestion %r", item.original)
                    continue
                raw.append(
                    CorrectionSuggestion(
                        document_id=document_id,
                        span=TextSpan(position, position + len(item.original)),
                        original=item.original,
                        corrected=item.suggestion,
                        reason=item.reason,
                        confidence=item.confidence,
                        source=source,
                    )
                )
            kept = self.suggestion_filter.apply(raw, text, limit)
            logger.debug("Model %s produced %d suggestions for %s", model, len(kept), document_id)
            return GenerationResult(suggestions=kept, source=source, attempts=attempts)

        if not self.allow_local_fallback:
            return GenerationResult(
                suggestions=[],
                source=SuggestionSource.UNAVAILABLE,
                attempts=attempts,
                error=last_error,
            )
        logger.info("All oracle models failed for %s; using local rules", document_id)
        return self._generate_local(text, document_id, limit, attempts, last_error)
