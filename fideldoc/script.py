"""
Script classification for Ethiopic text.

Every downstream policy is gated on whether a span is in the target
script (Ethiopic) or a foreign script (Latin/ASCII). Offsets throughout
fideldoc are Python string indices, i.e. Unicode code points.
"""

from __future__ import annotations

import re

# Ethiopic, Ethiopic Supplement, Ethiopic Extended
ETHIOPIC_CLASS = "ሀ-፿ᎀ-᎟ⶀ-⷟"

ETHIOPIC_PATTERN = re.compile(f"[{ETHIOPIC_CLASS}]")
LATIN_PATTERN = re.compile(r"[A-Za-z]")

# ASCII symbols OCR engines scatter through Ethiopic text, escaped for use
# inside a character class
NOISE_CLASS = r"#;:/\\|`~^*_=+"
NOISE_PATTERN = re.compile(f"[{NOISE_CLASS}]")

# Ethiopic punctuation
ETHIOPIC_WORDSPACE = "፡"
ETHIOPIC_FULL_STOP = "።"
ETHIOPIC_COMMA = "፣"
ETHIOPIC_SEMICOLON = "፤"
ETHIOPIC_PUNCTUATION = (
    ETHIOPIC_WORDSPACE + ETHIOPIC_FULL_STOP + ETHIOPIC_COMMA + ETHIOPIC_SEMICOLON
)

# Share of Ethiopic characters for a word to count as Ethiopic
MIN_TARGET_SCRIPT_RATIO = 0.7


def is_target_script(text: str) -> bool:
    """Return True if any code point of text is Ethiopic."""
    return bool(text) and ETHIOPIC_PATTERN.search(text) is not None


def contains_latin(text: str) -> bool:
    """Return True if text contains an ASCII Latin letter."""
    return bool(text) and LATIN_PATTERN.search(text) is not None


def ethiopic_ratio(text: str) -> float:
    """Share of Ethiopic code points in text (0.0 for empty text)."""
    if not text:
        return 0.0
    return len(ETHIOPIC_PATTERN.findall(text)) / len(text)


def is_target_script_word(word: str) -> bool:
    """
    Check whether a word is predominantly Ethiopic.

    Example:
        >>> is_target_script_word("ሰላም")
        True
        >>> is_target_script_word("ሰx#")
        False
    """
    clean = word.strip()
    if not is_target_script(clean):
        return False
    return ethiopic_ratio(clean) >= MIN_TARGET_SCRIPT_RATIO


def is_mixed_script_word(word: str) -> bool:
    """Return True if a single word mixes Ethiopic and Latin letters."""
    return is_target_script(word) and contains_latin(word)


class ScriptClassifier:
    """
    Target-script gate with an optional override.

    Attributes:
        force_target_script: When True, every text is treated as Ethiopic.

    Example:
        >>> ScriptClassifier().is_target_script("Hello")
        False
        >>> ScriptClassifier(force_target_script=True).is_target_script("Hello")
        True
    """

    def __init__(self, force_target_script: bool = False):
        self.force_target_script = force_target_script

    def is_target_script(self, text: str) -> bool:
        """Classify a document or span."""
        if self.force_target_script:
            return True
        return is_target_script(text)

    def is_script_incoherent(self, replacement: str) -> bool:
        """
        Check a replacement destined for a target-script document.

        A replacement is incoherent when it brings Latin letters and no
        Ethiopic characters at all.
        """
        return contains_latin(replacement) and not is_target_script(replacement)
