"""
Suggestion reconciliation policy.

Rule-based and oracle suggestions pass through the same filter before a
caller ever sees them: fragments are cleaned, no-ops and script-incoherent
replacements are dropped, protected lexicon terms are guarded, and the
survivors are ranked, de-duplicated and capped.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

from fideldoc.config import DEFAULT_MAX_SUGGESTIONS
from fideldoc.exceptions import ConfigurationError, InvalidSpanError
from fideldoc.lexicon import DEFAULT_LEXICON, Lexicon
from fideldoc.models import CorrectionSuggestion
from fideldoc.normalizers.text import clean_fragment, comparison_form
from fideldoc.script import ScriptClassifier

logger = logging.getLogger(__name__)


@dataclass
class FilterStats:
    """Counts of suggestions dropped per reason."""

    received: int = 0
    kept: int = 0
    dropped_noop: int = 0
    dropped_script: int = 0
    dropped_lexicon: int = 0
    dropped_span: int = 0
    dropped_duplicate: int = 0
    dropped_over_limit: int = 0


class SuggestionFilter:
    """
    Single filter applied to every batch of suggestions.

    Attributes:
        classifier: Target-script gate for the document.
        lexicon: Protected terms a suggestion must not alter.

    Example:
        >>> f = SuggestionFilter()
        >>> s = CorrectionSuggestion("doc", "ሰላም", "ABC", "reason", 0.9)
        >>> f.apply([s], "ሰላም ለዓለም")
        []
    """

    def __init__(
        self,
        classifier: ScriptClassifier | None = None,
        lexicon: Lexicon | None = None,
    ):
        self.classifier = classifier or ScriptClassifier()
        self.lexicon = DEFAULT_LEXICON if lexicon is None else lexicon

    def apply(
        self,
        suggestions: list[CorrectionSuggestion],
        document_text: str,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    ) -> list[CorrectionSuggestion]:
        """
        Filter, rank and cap suggestions for one document.

        Args:
            suggestions: Candidates from any source.
            document_text: The document the suggestions refer to.
            max_suggestions: Maximum number of suggestions to keep.

        Returns:
            Kept suggestions, highest confidence first. Each keeps its raw
            original (the anchor) and carries the cleaned corrected text.

        Raises:
            ConfigurationError: If max_suggestions is below 1.
        """
        kept, _ = self.apply_with_stats(suggestions, document_text, max_suggestions)
        return kept

    def apply_with_stats(
        self,
        suggestions: list[CorrectionSuggestion],
        document_text: str,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    ) -> tuple[list[CorrectionSuggestion], FilterStats]:
        """Same as apply(), also returning per-reason drop counts."""
        if max_suggestions < 1:
            raise ConfigurationError(f"max_suggestions must be >= 1, got {max_suggestions}")
        stats = FilterStats(received=len(suggestions))
        target_script = self.classifier.is_target_script(document_text)

        candidates = []
        for suggestion in suggestions:
            compared_original = comparison_form(suggestion.original)
            cleaned_corrected = clean_fragment(suggestion.corrected)

            if not compared_original or compared_original == comparison_form(cleaned_corrected):
                stats.dropped_noop += 1
                continue

            if target_script and self.classifier.is_script_incoherent(cleaned_corrected):
                logger.debug("Dropping script-incoherent suggestion %r", suggestion.corrected)
                stats.dropped_script += 1
                continue

            if self._alters_protected_term(suggestion.original, cleaned_corrected):
                logger.debug("Dropping suggestion altering a protected term: %r", suggestion.original)
                stats.dropped_lexicon += 1
                continue

            if not self._span_is_valid(suggestion, document_text):
                stats.dropped_span += 1
                continue

            candidates.append(dataclasses.replace(suggestion, corrected=cleaned_corrected))

        candidates.sort(key=lambda s: s.confidence, reverse=True)

        kept = []
        seen = set()
        for suggestion in candidates:
            if suggestion.key in seen:
                stats.dropped_duplicate += 1
                continue
            seen.add(suggestion.key)
            kept.append(suggestion)

        stats.dropped_over_limit = max(0, len(kept) - max_suggestions)
        kept = kept[:max_suggestions]
        stats.kept = len(kept)
        logger.debug(
            "Kept %d of %d suggestions (%d no-op, %d script, %d lexicon, %d span)",
            stats.kept,
            stats.received,
            stats.dropped_noop,
            stats.dropped_script,
            stats.dropped_lexicon,
            stats.dropped_span,
        )
        return kept, stats

    def _alters_protected_term(self, original: str, corrected: str) -> bool:
        return any(term not in corrected for term in self.lexicon.protected_terms_in(original))

    def _span_is_valid(self, suggestion: CorrectionSuggestion, document_text: str) -> bool:
        if suggestion.span is None:
            return True
        try:
            covered = suggestion.span.slice(document_text)
        except InvalidSpanError as e:
            logger.warning("Dropping suggestion with invalid span: %s", e)
            return False
        if covered != suggestion.original:
            logger.warning(
                "Dropping suggestion whose span [%d, %d) does not cover %r",
                suggestion.span.start,
                suggestion.span.end,
                suggestion.original,
            )
            return False
        return True
