"""
Script-aware text normalization.

TextNormalizer is a pure rewrite pipeline: same input, same output, and
normalizing twice gives the same result as normalizing once. It is used
before suggestions are shown or compared, and for markdown previews.

Steps:
    1. Strip zero-width characters and BOMs
    2. Replace symbol noise between Ethiopic characters with a space
    3. Remove Latin runs wedged between Ethiopic characters
    4. Collapse repeated "!", "?" and spaces
    5. Turn quoted spans into *emphasis*
    6. Markdown re-flow (bullets, quotes, headings, numbered lists)
    7. Tidy blank lines and trim

normalize() runs every step except 6; to_markdown() runs all of them and,
when the normalizer holds a hyphenator, breaks long Ethiopic words with
soft hyphens.
"""

from __future__ import annotations

import logging
import re

from fideldoc.normalizers.hyphenation import Hyphenator
from fideldoc.script import ETHIOPIC_CLASS, NOISE_CLASS, is_target_script

logger = logging.getLogger(__name__)


# =============================================================================
# PATTERNS
# =============================================================================

ETH = f"[{ETHIOPIC_CLASS}]"

ZERO_WIDTH_PATTERN = re.compile("[\u200B-\u200D\uFEFF]")
NOISE_BETWEEN_SCRIPT = re.compile(f"(?<={ETH})[{NOISE_CLASS}]+(?={ETH})")
LATIN_BETWEEN_SCRIPT = re.compile(f"(?<={ETH})[A-Za-z]+(?={ETH})")

REPEATED_BANG = re.compile(r"!{2,}")
REPEATED_QUESTION = re.compile(r"\?{2,}")
REPEATED_SPACES = re.compile(r" {2,}")

QUOTE_MARKS = "“”«»‘’"
QUOTED_SPAN = re.compile(f"(?<!{ETH})[“«‘]([^{QUOTE_MARKS}\\n]{{2,}})[”»’](?!{ETH})")
ANY_QUOTE_MARK = re.compile(f"[{QUOTE_MARKS}]")
FULLY_QUOTED_LINE = re.compile(r"^\s*[“«][^“”«»\n]*[”»]\s*$")

BULLET_PATTERN = re.compile(r"^\s*[•◦]\s*")
HEADING_PATTERN = re.compile(r"^#{1,6}\s")
LIST_LIKE_PATTERN = re.compile(r"^[-*+]\s|^\d+[.)]\s|^>\s")
NUMBERED_PAREN_PATTERN = re.compile(r"^(\s*)(\d+)\)\s+")

WHITESPACE_ONLY_LINE = re.compile(r"^[ \t]+$", re.MULTILINE)
EXCESS_NEWLINES = re.compile(r"\n{3,}")

# Heading length limits for the first two non-empty lines
TITLE_MAX_LENGTH = 42
SUBTITLE_MAX_LENGTH = 60

# Ethiopic punctuation enforcement
ASCII_COLON_IN_SCRIPT = re.compile(f"({ETH})\\s*:\\s*({ETH})")
ASCII_COMMA_IN_SCRIPT = re.compile(f"({ETH})\\s*,\\s*({ETH})")
ASCII_PERIOD_AFTER_SCRIPT = re.compile(f"({ETH})\\s*\\.(?=\\s|$)")
ASCII_QUOTES_AROUND_SCRIPT = re.compile(f'"\\s*({ETH}[^"\\n]{{0,200}}?{ETH})\\s*"')
SPACE_BEFORE_SCRIPT_PUNCTUATION = re.compile(r"[ \t]+([፣፡።፤])")

# Page-number lines: "12", "Page 12", "- 12 -", "12/345"
PAGE_NUMBER_LINE = re.compile(r"^(?:page\s*)?\d{1,4}(?:\s*/\s*\d{1,4})?$", re.IGNORECASE)
DASHED_PAGE_NUMBER_LINE = re.compile(r"^[-–—\s]*\d{1,4}[-–—\s]*$")

FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
LEADING_JSON_TAG = re.compile(r"^json\s*", re.IGNORECASE)

WORD_TOKEN = re.compile(r"\w+")

# Long-word hyphenation in markdown previews; breaks are soft hyphens
SOFT_HYPHEN = "\u00ad"
LONG_WORD_LENGTH = 10
LONG_SCRIPT_RUN = re.compile(f"[{ETHIOPIC_CLASS}{SOFT_HYPHEN}]+")


# =============================================================================
# FRAGMENT HELPERS
# =============================================================================


def strip_zero_width(text: str) -> str:
    return ZERO_WIDTH_PATTERN.sub("", text)


def remove_script_noise(text: str) -> str:
    """
    Replace symbol noise and drop Latin runs between Ethiopic characters.

    Repeats until nothing changes, since removing a Latin run can bring
    a symbol run next to Ethiopic characters on both sides.
    """
    while True:
        updated = NOISE_BETWEEN_SCRIPT.sub(" ", text)
        updated = LATIN_BETWEEN_SCRIPT.sub("", updated)
        if updated == text:
            return updated
        text = updated


def collapse_repeats(text: str) -> str:
    text = REPEATED_BANG.sub("!", text)
    text = REPEATED_QUESTION.sub("?", text)
    return REPEATED_SPACES.sub(" ", text)


def enforce_ethiopic_punctuation(text: str) -> str:
    """
    Convert ASCII punctuation inside Ethiopic text to Ethiopic marks.

    ":" and "," between Ethiopic characters become "፡" and "፣", a "." that
    ends an Ethiopic sentence becomes "።", ASCII double quotes around an
    Ethiopic span become guillemets, and spaces before Ethiopic marks are
    removed.

    Example:
        >>> enforce_ethiopic_punctuation("ሰላም, ዓለም.")
        'ሰላም፣ዓለም።'
    """
    if not text:
        return text
    text = ASCII_COLON_IN_SCRIPT.sub(r"\1፡\2", text)
    text = ASCII_COMMA_IN_SCRIPT.sub(r"\1፣\2", text)
    text = ASCII_PERIOD_AFTER_SCRIPT.sub(r"\1።", text)
    text = ASCII_QUOTES_AROUND_SCRIPT.sub(r"«\1»", text)
    return SPACE_BEFORE_SCRIPT_PUNCTUATION.sub(r"\1", text)


def clean_fragment(text: str) -> str:
    """
    Clean the replacement text of a suggestion.

    Applies the character-level steps of the normalizer, enforces
    Ethiopic punctuation, collapses spaces and trims.
    """
    if not text:
        return ""
    out = strip_zero_width(text)
    out = remove_script_noise(out)
    out = REPEATED_BANG.sub("!", out)
    out = REPEATED_QUESTION.sub("?", out)
    out = enforce_ethiopic_punctuation(out)
    return REPEATED_SPACES.sub(" ", out).strip()


def comparison_form(text: str) -> str:
    """
    Reduce a fragment to the form used for no-op detection.

    Invisible characters, repeated "!"/"?" and whitespace runs are
    normalized; symbol noise and punctuation are left alone so that a
    correction of exactly those characters still counts as a change.

    Example:
        >>> comparison_form("ሰላም  ") == comparison_form("ሰላም")
        True
    """
    if not text:
        return ""
    out = strip_zero_width(text)
    out = REPEATED_BANG.sub("!", out)
    out = REPEATED_QUESTION.sub("?", out)
    return re.sub(r"\s+", " ", out).strip()


def strip_page_numbers(text: str) -> str:
    """Remove lines that are standalone page numbers."""
    kept = []
    for line in re.split(r"\r?\n", text):
        stripped = line.strip()
        if stripped and (
            PAGE_NUMBER_LINE.match(stripped) or DASHED_PAGE_NUMBER_LINE.match(stripped)
        ):
            continue
        kept.append(line)
    return "\n".join(kept)


def strip_fences(text: str) -> str:
    """Return the content of the first markdown fence, or text without fence markers."""
    match = FENCE_PATTERN.search(text)
    if match and match.group(1):
        return match.group(1).strip()
    return LEADING_JSON_TAG.sub("", text.replace("```", "")).strip()


def sanitize_proposal(text: str, lang: str | None = None) -> str:
    """
    Drop pure-Latin words from an Ethiopic proposal.

    Whitespace, numbers and words carrying any Ethiopic character are
    kept. Non-Ethiopic text is returned unchanged.
    """
    if not text:
        return ""
    if lang != "am" and not is_target_script(text):
        return text

    def _drop_latin(match: re.Match) -> str:
        word = match.group(0)
        if word.isascii() and word.isalpha():
            return ""
        return word

    return WORD_TOKEN.sub(_drop_latin, text)


# =============================================================================
# NORMALIZER
# =============================================================================


class TextNormalizer:
    """
    Deterministic, idempotent normalizer for OCR text.

    Attributes:
        hyphenator: Optional strategy for long words in to_markdown().
        long_word_length: Shortest Ethiopic run handed to the hyphenator.

    Example:
        >>> normalizer = TextNormalizer()
        >>> normalizer.normalize("ሰ#ላ")
        'ሰ ላ'
        >>> normalizer.to_markdown("ርዕስ\\n\\n• አንድ")
        '# ርዕስ\\n\\n- አንድ'
    """

    def __init__(
        self,
        hyphenator: Hyphenator | None = None,
        long_word_length: int = LONG_WORD_LENGTH,
    ):
        self.hyphenator = hyphenator
        self.long_word_length = long_word_length

    def __call__(self, text: str) -> str:
        return self.normalize(text)

    def normalize(self, text: str) -> str:
        """Script-aware sanitization (all steps except markdown re-flow)."""
        if text is None:
            raise ValueError("Input text cannot be None")
        out = strip_zero_width(text)
        out = remove_script_noise(out)
        out = collapse_repeats(out)
        out = self._emphasize_quotes(out)
        return self._tidy(out)

    def to_markdown(self, text: str) -> str:
        """Normalize and re-flow text as lightweight markdown."""
        if text is None:
            raise ValueError("Input text cannot be None")
        out = strip_zero_width(text)
        out = remove_script_noise(out)
        out = collapse_repeats(out)
        out = self._emphasize_quotes(out)
        out = self._reflow_markdown(out)
        if self.hyphenator is not None:
            out = LONG_SCRIPT_RUN.sub(self._hyphenate_run, out)
        return self._tidy(out)

    def _hyphenate_run(self, match: re.Match) -> str:
        word = match.group(0).replace(SOFT_HYPHEN, "")
        if len(word) < self.long_word_length:
            return match.group(0)
        return SOFT_HYPHEN.join(segment.rstrip("-") for segment in self.hyphenator(word))

    def _emphasize_quotes(self, text: str) -> str:
        lines = []
        for line in text.split("\n"):
            # Innermost spans first; nested quotes open up one level per pass
            while not FULLY_QUOTED_LINE.match(line):
                updated = QUOTED_SPAN.sub(r"*\1*", line)
                if updated == line:
                    break
                line = updated
            lines.append(line)
        return "\n".join(lines)

    def _reflow_markdown(self, text: str) -> str:
        lines = []
        for line in text.split("\n"):
            line = BULLET_PATTERN.sub("- ", line)
            stripped = line.strip()
            if FULLY_QUOTED_LINE.match(stripped):
                inner = re.sub(r"\s*[”»]$", "", re.sub(r"^[“«]\s*", "", stripped))
                line = f"> *{ANY_QUOTE_MARK.sub('', inner)}*"
            elif stripped.startswith(("“", "«")):
                line = f"> {stripped}"
            lines.append(line)

        self._mark_headings(lines)
        return "\n".join(NUMBERED_PAREN_PATTERN.sub(r"\1\2. ", line) for line in lines)

    def _mark_headings(self, lines: list[str]) -> None:
        non_empty = [i for i, line in enumerate(lines) if line.strip()]
        if not non_empty:
            return

        first_idx = non_empty[0]
        first = lines[first_idx].strip()
        if HEADING_PATTERN.match(first) or len(first) > TITLE_MAX_LENGTH:
            return
        lines[first_idx] = f"# {first}"

        if len(non_empty) < 2:
            return
        next_idx = non_empty[1]
        nxt = lines[next_idx].strip()
        if (
            len(nxt) <= SUBTITLE_MAX_LENGTH
            and not LIST_LIKE_PATTERN.match(nxt)
            and not HEADING_PATTERN.match(nxt)
        ):
            lines[next_idx] = f"## {nxt}"

    def _tidy(self, text: str) -> str:
        out = WHITESPACE_ONLY_LINE.sub("", text)
        out = EXCESS_NEWLINES.sub("\n\n", out)
        return out.strip()


_DEFAULT_NORMALIZER = TextNormalizer()


def normalize_text(text: str) -> str:
    """Normalize text with a shared TextNormalizer."""
    return _DEFAULT_NORMALIZER.normalize(text)


def to_markdown(text: str) -> str:
    """Markdown preview of text with a shared TextNormalizer."""
    return _DEFAULT_NORMALIZER.to_markdown(text)
