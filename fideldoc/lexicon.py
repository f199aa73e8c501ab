"""
Protected-term lexicon for Amharic text.

Proper names, places and liturgical terms that a language model tends
to "correct". The lexicon feeds the oracle prompt hint and the filter
guard that rejects suggestions altering a protected term.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

import yaml

from fideldoc.exceptions import ConfigurationError
from fideldoc.script import ETHIOPIC_CLASS

logger = logging.getLogger(__name__)

BASE_LEXICON: tuple[str, ...] = (
    "ኢትዮጵያ",
    "አዲስ አበባ",
    "አምላክ",
    "ቤተ ክርስቲያን",
    "መስቀል",
    "ግዕዝ",
    "ትግርኛ",
    "አማርኛ",
    "ኦርቶዶክስ",
    "ካቶሊክ",
    "ፕሮቴስታንት",
    "ሰሎሞን",
    "ሳባ",
    "ሞሴ",
    "ዳዊት",
    "ኢሳይያስ",
    "ኤርምያስ",
    "ኢየሱስ",
    "ጥቁር ሃይለ",
    "ሃይለ ሥላሴ",
    "ሚኒሊክ",
    "ተወዳጅ",
)

# Number of terms quoted in the prompt hint
HINT_SAMPLE_SIZE = 12

_LATIN_INSIDE_WORD = re.compile(f"^[{ETHIOPIC_CLASS}]+[A-Za-z]+[{ETHIOPIC_CLASS}]+$")
_LATIN_RUN = re.compile(r"[A-Za-z]+")


class Lexicon:
    """
    An ordered set of protected terms.

    Example:
        >>> lexicon = Lexicon()
        >>> lexicon.contains_term("ወደ ኢትዮጵያ ሄደ")
        True
        >>> lexicon.protected_terms_in("ሰላም")
        []
    """

    def __init__(self, terms: Iterable[str] | None = None):
        self._terms: list[str] = []
        for term in BASE_LEXICON if terms is None else terms:
            term = term.strip()
            if term and term not in self._terms:
                self._terms.append(term)

    @property
    def terms(self) -> tuple[str, ...]:
        return tuple(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    def __contains__(self, term: object) -> bool:
        return term in self._terms

    def extended(self, extra_terms: Iterable[str]) -> Lexicon:
        """Return a new lexicon with extra terms appended."""
        return Lexicon([*self._terms, *extra_terms])

    def contains_term(self, text: str) -> bool:
        """True if any protected term longer than one character occurs in text."""
        return any(len(term) > 1 and term in text for term in self._terms)

    def protected_terms_in(self, text: str) -> list[str]:
        """Protected terms (longer than one character) occurring in text."""
        return [term for term in self._terms if len(term) > 1 and term in text]

    def build_hint(self) -> str:
        """Produce the short instruction snippet added to oracle prompts."""
        sample = ", ".join(self._terms[:HINT_SAMPLE_SIZE])
        return (
            "Important: Preserve proper names and terms exactly as-is. "
            f"Do not alter these if present: {sample} …"
        )

    @classmethod
    def from_yaml(cls, path: str | Path, include_base: bool = True) -> Lexicon:
        """
        Load extra terms from a YAML file.

        The file holds either a list of terms or a mapping with a
        ``terms`` list.

        Raises:
            ConfigurationError: If the file is not valid YAML or has the wrong shape.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if isinstance(data, dict):
            data = data.get("terms")
        if data is None:
            data = []
        if not isinstance(data, list) or not all(isinstance(t, str) for t in data):
            raise ConfigurationError(f"Lexicon file {path} must contain a list of strings")

        logger.debug("Loaded %d lexicon terms from %s", len(data), path)
        base = BASE_LEXICON if include_base else ()
        return cls([*base, *data])


DEFAULT_LEXICON = Lexicon()


def get_lexicon() -> tuple[str, ...]:
    """Return the built-in protected terms."""
    return DEFAULT_LEXICON.terms


def contains_lexicon_term(text: str) -> bool:
    """True if text contains a built-in protected term."""
    return DEFAULT_LEXICON.contains_term(text)


def build_lexicon_hint() -> str:
    """Prompt snippet listing the first built-in protected terms."""
    return DEFAULT_LEXICON.build_hint()


def strip_latin_in_script_word(word: str) -> str:
    """
    Remove stray Latin letters inside an Ethiopic word.

    Only words shaped Ethiopic+Latin+Ethiopic are changed.

    Example:
        >>> strip_latin_in_script_word("ሰlላም")
        'ሰላም'
        >>> strip_latin_in_script_word("ABC")
        'ABC'
    """
    if _LATIN_INSIDE_WORD.match(word):
        return _LATIN_RUN.sub("", word)
    return word
