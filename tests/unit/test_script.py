"""Tests for script classification."""

import pytest

from fideldoc.script import (
    ScriptClassifier,
    contains_latin,
    ethiopic_ratio,
    is_mixed_script_word,
    is_target_script,
    is_target_script_word,
)


class TestIsTargetScript:
    """Tests for the Ethiopic range check."""

    @pytest.mark.parametrize(
        "text",
        [
            "ሰላም",  # Ethiopic
            "ᎀ",  # Ethiopic Supplement
            "ⶀ",  # Ethiopic Extended
            "Hello ሰ",  # any single code point is enough
        ],
    )
    def test_ethiopic_ranges(self, text):
        """Every Ethiopic block counts as target script."""
        assert is_target_script(text)

    @pytest.mark.parametrize("text", ["", "Hello", "123 #;:", "Привет"])
    def test_foreign_text(self, text):
        """Text without Ethiopic code points is foreign."""
        assert not is_target_script(text)


class TestWordHelpers:
    """Tests for word-level helpers."""

    def test_ethiopic_ratio(self):
        """The ratio counts Ethiopic letters among all letters."""
        assert ethiopic_ratio("") == 0.0
        assert ethiopic_ratio("ሰላም") == 1.0
        assert ethiopic_ratio("ሰa") == 0.5

    def test_target_script_word_needs_majority(self):
        """A word needs at least 70% Ethiopic characters."""
        assert is_target_script_word("ሰላም")
        assert is_target_script_word("ሰላምa")  # 3 of 4
        assert not is_target_script_word("ሰx#")
        assert not is_target_script_word("abc")

    def test_mixed_script_word(self):
        """Words mixing scripts are detected."""
        assert is_mixed_script_word("ሰላm")
        assert not is_mixed_script_word("ሰላም")
        assert not is_mixed_script_word("salam")

    def test_contains_latin(self):
        """Latin letters are detected."""
        assert contains_latin("ሰa")
        assert not contains_latin("ሰ1#")


class TestScriptClassifier:
    """Tests for ScriptClassifier."""

    def test_auto_detection(self):
        """The classifier detects the script by default."""
        classifier = ScriptClassifier()
        assert classifier.is_target_script("ሰላም")
        assert not classifier.is_target_script("Hello")

    def test_force_target_script(self):
        """The override treats every text as Ethiopic."""
        classifier = ScriptClassifier(force_target_script=True)
        assert classifier.is_target_script("Hello")
        assert classifier.is_target_script("")

    @pytest.mark.parametrize(
        "replacement,incoherent",
        [
            ("ABC", True),
            ("hello world", True),
            ("ሰላም", False),
            ("ሰላም abc", False),  # carries Ethiopic characters
            ("123", False),  # no Latin letters
        ],
    )
    def test_script_incoherence(self, replacement, incoherent):
        """Latin-only replacements are incoherent in a target-script document."""
        assert ScriptClassifier().is_script_incoherent(replacement) is incoherent
