"""
Idempotent application of correction suggestions.

The caller owns a CorrectionLedger of applied suggestion identities;
applying a suggestion whose identity is already in the ledger leaves the
text unchanged. Two anchoring modes are supported:

- content (default): replace the first literal occurrence of the
  suggestion's original text in the current text.
- offset: replace the suggestion's span, shifted by the length changes of
  edits already made before it. The shifted slice must still equal the
  original text.

Suggestions without a span are always content-anchored and take no part
in overlap checks or offset shifting.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from typing import Literal

from fideldoc.config import DEFAULT_AUTO_APPLY_THRESHOLD, DEFAULT_HIGH_CONFIDENCE_THRESHOLD
from fideldoc.models import CorrectionSuggestion, TextSpan

logger = logging.getLogger(__name__)

Anchoring = Literal["content", "offset"]


# =============================================================================
# LEDGER
# =============================================================================


class CorrectionLedger:
    """
    Caller-held record of applied suggestion identities.

    Membership checks and updates are guarded by a lock so one ledger can
    be shared by worker threads.
    """

    def __init__(self, keys: Iterable[Hashable] = ()):
        self._lock = threading.Lock()
        self._applied: set[Hashable] = set(keys)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._applied

    def __len__(self) -> int:
        with self._lock:
            return len(self._applied)

    def is_applied(self, suggestion: CorrectionSuggestion) -> bool:
        return suggestion.key in self

    def claim(self, key: Hashable) -> bool:
        """Record key; return False if it was already recorded."""
        with self._lock:
            if key in self._applied:
                return False
            self._applied.add(key)
            return True

    def mark(self, key: Hashable) -> None:
        with self._lock:
            self._applied.add(key)

    def unmark(self, key: Hashable) -> None:
        with self._lock:
            self._applied.discard(key)

    def snapshot(self) -> frozenset:
        """Applied identities at this moment."""
        with self._lock:
            return frozenset(self._applied)


# =============================================================================
# RESULTS
# =============================================================================


@dataclass
class ApplyResult:
    """Outcome of applying several suggestions to one text."""

    text: str
    applied: list[CorrectionSuggestion] = field(default_factory=list)
    skipped: list[CorrectionSuggestion] = field(default_factory=list)

    @property
    def change_count(self) -> int:
        return len(self.applied)


@dataclass
class _Edit:
    start: int  # offset in the original text
    end: int
    delta: int  # len(corrected) - len(original)


# =============================================================================
# APPLIER
# =============================================================================


class CorrectionApplier:
    """
    Applies suggestions to text, consulting and updating a ledger.

    Attributes:
        ledger: Applied identities; a fresh ledger when omitted.
        anchoring: "content" or "offset".

    Example:
        >>> applier = CorrectionApplier()
        >>> s = CorrectionSuggestion("doc", "ሰ#ላ", "ሰ ላ", "noise", 0.9, span=TextSpan(0, 3))
        >>> applier.apply("ሰ#ላ", s)
        'ሰ ላ'
        >>> applier.apply("ሰ#ላ", s)  # already in the ledger
        'ሰ#ላ'
    """

    def __init__(self, ledger: CorrectionLedger | None = None, anchoring: Anchoring = "content"):
        if anchoring not in ("content", "offset"):
            raise ValueError(f"anchoring must be 'content' or 'offset', got {anchoring!r}")
        self.ledger = ledger if ledger is not None else CorrectionLedger()
        self.anchoring = anchoring

    def apply(self, text: str, suggestion: CorrectionSuggestion) -> str:
        """
        Apply one suggestion.

        Returns the text unchanged when the suggestion is already in the
        ledger or its anchor cannot be found. Only applied suggestions are
        recorded.
        """
        result = self.apply_many(text, [suggestion])
        return result.text

    def apply_many(
        self,
        text: str,
        suggestions: Iterable[CorrectionSuggestion],
    ) -> ApplyResult:
        """
        Apply suggestions in the given order.

        A suggestion whose span overlaps one already applied in this call
        is skipped, as is one whose identity is already in the ledger.
        """
        result = ApplyResult(text=text)
        edits: list[_Edit] = []
        applied_spans: list[TextSpan] = []

        for suggestion in suggestions:
            if suggestion.span is not None and any(
                suggestion.span.overlaps(span) for span in applied_spans
            ):
                logger.debug("Skipping overlapping suggestion %r", suggestion.original)
                result.skipped.append(suggestion)
                continue

            if not self.ledger.claim(suggestion.key):
                result.skipped.append(suggestion)
                continue

            located = self._locate(result.text, suggestion, edits)
            if located is None:
                self.ledger.unmark(suggestion.key)
                logger.debug("Anchor not found for suggestion %r", suggestion.original)
                result.skipped.append(suggestion)
                continue

            start, end = located
            result.text = result.text[:start] + suggestion.corrected + result.text[end:]
            if suggestion.span is not None:
                delta = len(suggestion.corrected) - (end - start)
                edits.append(_Edit(suggestion.span.start, suggestion.span.end, delta))
                applied_spans.append(suggestion.span)
            result.applied.append(suggestion)

        return result

    def auto_apply(
        self,
        text: str,
        suggestions: Iterable[CorrectionSuggestion],
        threshold: float = DEFAULT_AUTO_APPLY_THRESHOLD,
    ) -> ApplyResult:
        """Apply only suggestions with confidence at or above threshold."""
        eligible = [s for s in suggestions if s.confidence >= threshold]
        return self.apply_many(text, eligible)

    def reject(
        self,
        suggestion: CorrectionSuggestion,
        working_set: Iterable[CorrectionSuggestion],
    ) -> list[CorrectionSuggestion]:
        """
        Remove a suggestion from the working set and clear its ledger mark.

        This is a logical revert only; text already changed is not restored.
        """
        self.ledger.unmark(suggestion.key)
        return [s for s in working_set if s.key != suggestion.key]

    def pending(self, suggestions: Iterable[CorrectionSuggestion]) -> list[CorrectionSuggestion]:
        """Suggestions not yet in the ledger."""
        return [s for s in suggestions if not self.ledger.is_applied(s)]

    def correction_stats(
        self,
        suggestions: Iterable[CorrectionSuggestion],
        high_confidence: float = DEFAULT_HIGH_CONFIDENCE_THRESHOLD,
    ) -> dict[str, int]:
        """Counts of total, high-confidence, applied and pending suggestions."""
        suggestions = list(suggestions)
        applied = sum(1 for s in suggestions if self.ledger.is_applied(s))
        return {
            "total": len(suggestions),
            "high_confidence": sum(1 for s in suggestions if s.confidence >= high_confidence),
            "applied": applied,
            "pending": len(suggestions) - applied,
        }

    def _locate(
        self,
        text: str,
        suggestion: CorrectionSuggestion,
        edits: list[_Edit],
    ) -> tuple[int, int] | None:
        if self.anchoring == "offset" and suggestion.span is not None:
            shift = sum(e.delta for e in edits if e.end <= suggestion.span.start)
            start = suggestion.span.start + shift
            end = suggestion.span.end + shift
            if start < 0 or end > len(text) or text[start:end] != suggestion.original:
                return None
            return start, end

        if not suggestion.original:
            return None
        position = text.find(suggestion.original)
        if position == -1:
            return None
        return position, position + len(suggestion.original)


def sort_for_application(
    suggestions: Iterable[CorrectionSuggestion],
) -> list[CorrectionSuggestion]:
    """
    Order suggestions by span start, last first.

    Applying in this order keeps earlier offsets valid. Suggestions
    without a span keep their relative order at the end.
    """
    suggestions = list(suggestions)
    anchored = [s for s in suggestions if s.span is not None]
    unanchored = [s for s in suggestions if s.span is None]
    anchored.sort(key=lambda s: s.span.start, reverse=True)
    return anchored + unanchored
