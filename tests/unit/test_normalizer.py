"""Tests for script-aware text normalization."""

import pytest

from fideldoc.normalizers import (
    SyllableHyphenator,
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

ZWSP = chr(0x200B)
BOM = chr(0xFEFF)
SHY = chr(0xAD)

# =============================================================================
# NORMALIZE
# =============================================================================


class TestNormalize:
    """Tests for TextNormalizer.normalize."""

    @pytest.fixture
    def normalizer(self):
        return TextNormalizer()

    def test_symbol_between_script_becomes_space(self, normalizer):
        """Symbol noise between Ethiopic characters becomes one space."""
        assert normalizer.normalize("ሰ#ላ") == "ሰ ላ"
        assert normalizer.normalize("ሰ#;ላ") == "ሰ ላ"

    def test_latin_between_script_removed(self, normalizer):
        """Latin letters wedged inside an Ethiopic word are dropped."""
        assert normalizer.normalize("ሰላxም") == "ሰላም"

    def test_latin_outside_script_kept(self, normalizer):
        """Standalone Latin words survive."""
        assert normalizer.normalize("Hello ሰላም") == "Hello ሰላም"

    def test_zero_width_removed(self, normalizer):
        """Zero-width characters and BOMs are stripped."""
        assert normalizer.normalize(f"{BOM}ሰ{ZWSP}ላም") == "ሰላም"

    def test_repeats_collapsed(self, normalizer):
        """Repeated bangs, question marks and spaces collapse."""
        assert normalizer.normalize("ሰላም!!!  ምን??") == "ሰላም! ምን?"

    def test_quoted_span_emphasized(self, normalizer):
        """Quoted spans inside a line become emphasis."""
        assert normalizer.normalize("እሱ “ሰላም” አለ") == "እሱ *ሰላም* አለ"
        assert normalizer.normalize("እሱ «ሰላም» አለ") == "እሱ *ሰላም* አለ"

    def test_nested_mixed_quotes_emphasized_innermost_first(self, normalizer):
        """Nested quotes of different styles open up fully in one call."""
        assert normalizer.normalize("x “a«bc»” y") == "x *a*bc** y"

    def test_quote_glued_to_script_left_alone(self, normalizer):
        """Quotes touching Ethiopic letters are not turned into emphasis."""
        assert normalizer.normalize("“ሀ«ለመ»”") == "“ሀ«ለመ»”"

    def test_fully_quoted_line_left_for_markdown(self, normalizer):
        """A line that is one quotation is kept for the markdown step."""
        assert normalizer.normalize("“ሰላም ለዓለም”") == "“ሰላም ለዓለም”"

    def test_blank_lines_tidied(self, normalizer):
        """Whitespace-only lines and blank runs are tidied."""
        assert normalizer.normalize("  \nሰላም\n \n\n\n\nዓለም\n") == "ሰላም\n\nዓለም"

    def test_no_markdown_reflow(self, normalizer):
        """normalize() never rewrites bullets."""
        assert normalizer.normalize("• አንድ") == "• አንድ"

    def test_none_raises(self, normalizer):
        """None is rejected."""
        with pytest.raises(ValueError):
            normalizer.normalize(None)

    def test_empty_text(self, normalizer):
        """Empty text stays empty."""
        assert normalizer.normalize("") == ""

    def test_callable(self, normalizer):
        """Calling the normalizer is the same as normalize_text."""
        assert normalizer("ሰ#ላ") == normalize_text("ሰ#ላ") == "ሰ ላ"

    @pytest.mark.parametrize(
        "text",
        [
            "ሰ#ላም ለዓለም። ኢትዮጵያ ሀገርxችን ናት።",
            "ሰ#x#ላ",
            "እሱ “ሰላም” አለ!!",
            "ሰላም\n\n\n\n“ሙሉ መስመር”\n  ",
            f"{ZWSP}ሰ/ላ  ም??",
            "x “a«bc»” y",
            "“ሀ«ለመ»”",
            "“a «bc» d”",
        ],
    )
    def test_idempotent(self, normalizer, text):
        """Normalizing twice equals normalizing once."""
        once = normalizer.normalize(text)
        assert normalizer.normalize(once) == once


# =============================================================================
# MARKDOWN
# =============================================================================


class TestToMarkdown:
    """Tests for TextNormalizer.to_markdown."""

    def test_title_and_bullet(self):
        """Short first line becomes a title and bullets become dashes."""
        assert to_markdown("ርዕስ\n\n• አንድ") == "# ርዕስ\n\n- አንድ"

    def test_title_and_subtitle(self):
        """The second short line becomes a subtitle."""
        assert to_markdown("ርዕስ\nንዑስ ርዕስ\nጽሁፍ") == "# ርዕስ\n## ንዑስ ርዕስ\nጽሁፍ"

    def test_numbered_paren_list(self):
        """Parenthesized list markers become dotted ones."""
        assert to_markdown("ርዕስ\n\n1) አንድ") == "# ርዕስ\n\n1. አንድ"

    def test_long_first_line_not_heading(self):
        """A first line over the title limit stays plain."""
        line = "ሰ" * 50
        assert to_markdown(line) == line

    def test_quote_opening_line(self):
        """A line opening with a quote becomes a blockquote."""
        result = to_markdown("ርዕስ\n" + "ጽሁፍ " * 20 + "\n«ጥቅስ»ቀጥሎ")
        assert result.splitlines()[-1] == "> «ጥቅስ»ቀጥሎ"

    def test_fully_quoted_line_drops_inner_quote_marks(self):
        """Inner single quotes are removed from an emphasized blockquote."""
        result = to_markdown("ርዕስ\n" + "ጽሁፍ " * 20 + "\n“ሰ ‘ላም’ ነው”")
        assert result.splitlines()[-1] == "> *ሰ ላም ነው*"

    @pytest.mark.parametrize(
        "text",
        [
            "ርዕስ\n\n• አንድ\n• ሁለት",
            "ርዕስ\n" + "ጽሁፍ " * 20 + "\n“ሰ ‘ላም’ ነው”",
            "ርዕስ\n" + "ጽሁፍ " * 20 + "\n“a «bc» d”",
            "x “a«bc»” y",
        ],
    )
    def test_markdown_idempotent(self, text):
        """Re-rendering a markdown preview changes nothing."""
        once = to_markdown(text)
        assert to_markdown(once) == once


class TestMarkdownHyphenation:
    """Tests for long-word breaking in markdown previews."""

    TEXT = "ርዕስ\nጽሁፍ ኢትዮጵያዊነትን ነው"

    @pytest.fixture
    def normalizer(self):
        return TextNormalizer(hyphenator=SyllableHyphenator())

    def test_long_word_gets_soft_hyphen(self, normalizer):
        """Long Ethiopic words are broken with a soft hyphen."""
        result = normalizer.to_markdown(self.TEXT)
        assert f"ኢትዮጵያዊነ{SHY}ትን" in result
        assert result.replace(SHY, "") == to_markdown(self.TEXT)

    def test_short_words_untouched(self, normalizer):
        """Words below the length limit are never broken."""
        assert SHY not in normalizer.to_markdown("ርዕስ\nሰላም ለዓለም")

    def test_hyphenated_markdown_idempotent(self, normalizer):
        """Existing soft hyphens are replaced, not stacked."""
        once = normalizer.to_markdown(self.TEXT)
        assert normalizer.to_markdown(once) == once

    def test_normalize_never_hyphenates(self, normalizer):
        """Hyphenation is a preview concern only."""
        assert SHY not in normalizer.normalize(self.TEXT)

    def test_no_hyphenator_no_breaks(self):
        """The default normalizer leaves long words whole."""
        assert SHY not in TextNormalizer().to_markdown(self.TEXT)


# =============================================================================
# FRAGMENT HELPERS
# =============================================================================


class TestPunctuation:
    """Tests for enforce_ethiopic_punctuation."""

    def test_comma_and_period(self):
        """ASCII comma and period become Ethiopic marks."""
        assert enforce_ethiopic_punctuation("ሰላም, ዓለም.") == "ሰላም፣ዓለም።"

    def test_colon(self):
        """ASCII colon between Ethiopic letters becomes the word separator."""
        assert enforce_ethiopic_punctuation("ሰላም:ዓለም") == "ሰላም፡ዓለም"

    def test_double_quotes_to_guillemets(self):
        """Double quotes around Ethiopic text become guillemets."""
        assert enforce_ethiopic_punctuation('"ሰላም ዓለም"') == "«ሰላም ዓለም»"

    def test_space_before_mark_removed_only(self):
        """Only the space before an Ethiopic mark is removed."""
        assert enforce_ethiopic_punctuation("ሰላም ። ዓለም") == "ሰላም። ዓለም"

    def test_latin_untouched(self):
        """Latin punctuation is left alone."""
        assert enforce_ethiopic_punctuation("Hello, world.") == "Hello, world."


class TestFragments:
    """Tests for clean_fragment, comparison_form and friends."""

    def test_clean_fragment(self):
        """Replacement text is cleaned and trimmed."""
        assert clean_fragment("  ሰ#ላ  ") == "ሰ ላ"
        assert clean_fragment("ሰላም ,ዓለም") == "ሰላም፣ዓለም"
        assert clean_fragment("") == ""

    def test_comparison_form_ignores_whitespace(self):
        """Whitespace differences vanish in the comparison form."""
        assert comparison_form("ሰላም  ") == comparison_form("ሰላም")
        assert comparison_form("ሰላም\n ዓለም") == "ሰላም ዓለም"

    def test_comparison_form_keeps_noise(self):
        """Symbol noise is kept so removing it still counts as a change."""
        assert comparison_form("ሰ#ላ") == "ሰ#ላ"

    def test_strip_page_numbers(self):
        """Standalone page-number lines are removed."""
        text = "ሰላም\n12\nPage 3\n- 4 -\n12/300\nዓለም"
        assert strip_page_numbers(text) == "ሰላም\nዓለም"

    def test_strip_fences(self):
        """Fenced content is unwrapped."""
        assert strip_fences("```json\n[1, 2]\n```") == "[1, 2]"
        assert strip_fences("json [1]") == "[1]"

    def test_sanitize_proposal(self):
        """Pure-Latin words are dropped from Ethiopic proposals."""
        assert sanitize_proposal("ሰላም hello ዓለም") == "ሰላም  ዓለም"
        assert sanitize_proposal("ሰላም 2024") == "ሰላም 2024"
        assert sanitize_proposal("hello world") == "hello world"
        assert sanitize_proposal("hello", lang="am") == ""
