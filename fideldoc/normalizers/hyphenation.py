"""
Hyphenation strategies for Amharic text layout.

A hyphenator splits a word into display segments, every segment but the
last ending in "-". Strategies are plain objects passed to whoever needs
them, such as TextNormalizer for markdown previews; there is no
process-wide registry.

Example:
    >>> hyphenate = get_hyphenator("am", default=NoOpHyphenator())
    >>> hyphenate("ኢትዮጵያዊነትን")
    ['ኢትዮጵያዊነ-', 'ትን']
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Protocol

import yaml

from fideldoc.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Words shorter than this are never split
MIN_HYPHENATION_LENGTH = 6

# Longest segment the syllable grouper builds
MAX_SEGMENT_LENGTH = 8

# A trailing hyphen is only added to segments longer than this
MIN_HYPHENATED_SEGMENT = 2

# Split points: before common consonant-row syllables
SYLLABLE_BOUNDARY = re.compile(
    "(?=[ሀሁሂሃሄህሆለሉሊላሌልሎመሙሚማሜምሞሠሡሢሣሤሥሦረሩሪራሬርሮሰሱሲሳሴስሶሸሹሺሻሼሽሾ"
    "በቡቢባቤብቦተቱቲታቴትቶቸቹቺቻቼችቾኘኙኚኛኜኝኞየዩዪያዬይዮዘዙዚዛዜዝዞደዱዲዳዴድዶ])"
)

NUMERIC_TOKEN = re.compile("^[0-9፣፤፥፦፧፨፩-፱]+$")
PUNCTUATION_TOKEN = re.compile("^[፡፣፤፥፦፧፨።]+$")


# =============================================================================
# STRATEGIES
# =============================================================================


class Hyphenator(Protocol):
    """Anything that splits a word into hyphenated segments."""

    def __call__(self, word: str) -> list[str]: ...


class NoOpHyphenator:
    """Never splits."""

    def __call__(self, word: str) -> list[str]:
        return [word]


def _mark_segments(segments: list[str]) -> list[str]:
    marked = []
    for i, segment in enumerate(segments):
        if i < len(segments) - 1 and len(segment) > MIN_HYPHENATED_SEGMENT:
            marked.append(segment + "-")
        else:
            marked.append(segment)
    return marked


class SyllableHyphenator:
    """
    Heuristic Amharic hyphenator.

    Splits before consonant-row syllables, then regroups the pieces into
    segments of at most MAX_SEGMENT_LENGTH characters. Short words,
    numbers and punctuation runs are returned whole.
    """

    def __init__(self, max_segment_length: int = MAX_SEGMENT_LENGTH):
        self.max_segment_length = max_segment_length

    def __call__(self, word: str) -> list[str]:
        if len(word) < MIN_HYPHENATION_LENGTH:
            return [word]
        if NUMERIC_TOKEN.match(word) or PUNCTUATION_TOKEN.match(word):
            return [word]

        pieces = [p for p in SYLLABLE_BOUNDARY.split(word) if p]
        if len(pieces) <= 1:
            return [word]

        grouped: list[str] = []
        current = ""
        for piece in pieces:
            candidate = current + piece
            if current and len(candidate) > self.max_segment_length:
                grouped.append(current)
                current = piece
            else:
                current = candidate
        if current:
            grouped.append(current)

        if len(grouped) <= 1:
            return [word]
        return _mark_segments(grouped)


class ExceptionListHyphenator:
    """
    Hyphenator driven by an explicit exception list.

    Each entry is a word with "-" at the allowed break points, e.g.
    "ኢትዮ-ጵያ". Words not in the list go to the fallback strategy.

    Attributes:
        exceptions: Joined word -> list of parts.
        fallback: Strategy for words without an entry.
    """

    def __init__(self, entries: list[str], fallback: Hyphenator | None = None):
        self.exceptions: dict[str, list[str]] = {}
        for entry in entries:
            parts = [p for p in entry.split("-") if p]
            if parts:
                self.exceptions["".join(parts).lower()] = parts
        self.fallback = fallback or NoOpHyphenator()

    def __call__(self, word: str) -> list[str]:
        if len(word) < MIN_HYPHENATION_LENGTH:
            return [word]
        parts = self.exceptions.get(word.lower())
        if parts is None:
            return self.fallback(word)
        return [p + "-" if i < len(parts) - 1 else p for i, p in enumerate(parts)]

    @classmethod
    def from_file(
        cls, path: str | Path, fallback: Hyphenator | None = None
    ) -> ExceptionListHyphenator:
        """
        Load a pattern dataset from JSON or YAML.

        The file is a mapping with an ``exceptions`` list.

        Raises:
            ConfigurationError: If the file cannot be parsed or has the wrong shape.
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                if path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid hyphenation data in {path}: {e}") from e

        entries = data.get("exceptions") if isinstance(data, dict) else None
        if not isinstance(entries, list) or not all(isinstance(e, str) for e in entries):
            raise ConfigurationError(f"Hyphenation file {path} needs an 'exceptions' list")

        logger.debug("Loaded %d hyphenation exceptions from %s", len(entries), path)
        return cls(entries, fallback=fallback)


def get_hyphenator(
    lang: str | None,
    default: Hyphenator,
    amharic: Hyphenator | None = None,
) -> Hyphenator:
    """
    Pick the hyphenator for a language.

    Args:
        lang: Language code or name; "am"/"amh" prefixes select Amharic.
        default: Strategy for every other language.
        amharic: Amharic strategy; the syllable heuristic when omitted.

    Returns:
        The selected strategy.
    """
    if not lang:
        return default
    if lang.lower().startswith("am"):
        return amharic or SyllableHyphenator()
    return default
