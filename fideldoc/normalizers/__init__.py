"""
Normalizers for transforming raw OCR text.

- TextNormalizer: idempotent script-aware cleanup and markdown preview
- clean_fragment: cleanup applied to suggested replacement text
- comparison_form: whitespace-insensitive form used for no-op detection
- Hyphenator strategies: syllable heuristic and exception-list loader
"""

from fideldoc.normalizers.hyphenation import (
    ExceptionListHyphenator,
    Hyphenator,
    NoOpHyphenator,
    SyllableHyphenator,
    get_hyphenator,
)
from fideldoc.normalizers.text import (
    TextNormalizer,
    clean_fragment,
    comparison_form,
    enforce_ethiopic_punctuation,
    normalize_text,
    sanitize_proposal,
    strip_fences,
    strip_page_numbers,
    to_markdown,
)

__all__ = [
    # Text
    "TextNormalizer",
    "normalize_text",
    "to_markdown",
    "clean_fragment",
    "comparison_form",
    "enforce_ethiopic_punctuation",
    "sanitize_proposal",
    "strip_fences",
    "strip_page_numbers",
    # Hyphenation
    "Hyphenator",
    "NoOpHyphenator",
    "SyllableHyphenator",
    "ExceptionListHyphenator",
    "get_hyphenator",
]
