"""Tests for the protected-term lexicon."""

import pytest

from fideldoc.exceptions import ConfigurationError
from fideldoc.lexicon import (
    BASE_LEXICON,
    HINT_SAMPLE_SIZE,
    Lexicon,
    build_lexicon_hint,
    contains_lexicon_term,
    get_lexicon,
    strip_latin_in_script_word,
)


class TestLexicon:
    """Tests for Lexicon."""

    @pytest.fixture
    def lexicon(self):
        return Lexicon()

    def test_base_terms(self, lexicon):
        """The base lexicon holds the known names."""
        assert lexicon.terms == BASE_LEXICON
        assert "ኢትዮጵያ" in lexicon
        assert get_lexicon() == BASE_LEXICON

    def test_terms_deduplicated_and_trimmed(self):
        """Terms are trimmed and listed once."""
        lexicon = Lexicon([" ሰላም ", "ሰላም", "", "ዓለም"])
        assert lexicon.terms == ("ሰላም", "ዓለም")
        assert len(lexicon) == 2

    def test_contains_term(self, lexicon):
        """Membership checks find terms inside text."""
        assert lexicon.contains_term("ወደ ኢትዮጵያ ሄደ")
        assert lexicon.contains_term("ከአዲስ አበባ")
        assert not lexicon.contains_term("ሰላም ለዓለም")
        assert contains_lexicon_term("ኢትዮጵያ")

    def test_single_character_terms_not_protected(self):
        """One-letter terms are not protected."""
        lexicon = Lexicon(["ሰ", "ሰላም"])
        assert lexicon.protected_terms_in("ሰ ላ") == []
        assert lexicon.protected_terms_in("ሰላም") == ["ሰላም"]

    def test_extended_returns_new_lexicon(self, lexicon):
        """Extending leaves the original lexicon alone."""
        bigger = lexicon.extended(["ጎንደር"])
        assert "ጎንደር" in bigger
        assert "ጎንደር" not in lexicon

    def test_hint_lists_first_terms(self, lexicon):
        """The hint names the first terms only."""
        hint = lexicon.build_hint()
        assert hint.startswith("Important: Preserve proper names")
        for term in BASE_LEXICON[:HINT_SAMPLE_SIZE]:
            assert term in hint
        assert BASE_LEXICON[HINT_SAMPLE_SIZE] not in hint
        assert build_lexicon_hint() == hint


class TestLexiconFromYaml:
    """Tests for loading lexicon extensions."""

    def test_list_file(self, tmp_path):
        """A YAML list extends the base lexicon."""
        path = tmp_path / "terms.yaml"
        path.write_text("- ጎንደር\n- ላሊበላ\n", encoding="utf-8")
        lexicon = Lexicon.from_yaml(path)
        assert "ጎንደር" in lexicon
        assert "ኢትዮጵያ" in lexicon

    def test_mapping_file_without_base(self, tmp_path):
        """A mapping can replace the base terms."""
        path = tmp_path / "terms.yaml"
        path.write_text("terms:\n  - ጎንደር\n", encoding="utf-8")
        lexicon = Lexicon.from_yaml(path, include_base=False)
        assert lexicon.terms == ("ጎንደር",)

    def test_wrong_shape_raises(self, tmp_path):
        """Files of the wrong shape raise."""
        path = tmp_path / "terms.yaml"
        path.write_text("terms: 5\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            Lexicon.from_yaml(path)


class TestStripLatinInScriptWord:
    """Tests for strip_latin_in_script_word."""

    def test_strips_latin_between_ethiopic(self):
        """Latin letters between Ethiopic halves are removed."""
        assert strip_latin_in_script_word("ሰlላም") == "ሰላም"

    def test_other_shapes_unchanged(self):
        """Other word shapes are returned unchanged."""
        assert strip_latin_in_script_word("ABC") == "ABC"
        assert strip_latin_in_script_word("ሰላምa") == "ሰላምa"
