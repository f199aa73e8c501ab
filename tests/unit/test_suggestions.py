"""Tests for suggestion generation with local rules and fake oracles."""

import io

import pytest
from PIL import Image

from fideldoc.config import EngineSettings
from fideldoc.exceptions import ConfigurationError, OracleError
from fideldoc.models import SuggestionSource, TextSpan
from fideldoc.ocr.detector import PatternDetector
from fideldoc.ocr.filtering import SuggestionFilter
from fideldoc.ocr.oracle import ImageContext
from fideldoc.ocr.suggestions import (
    LATIN_CONFIDENCE,
    NOISE_CONFIDENCE,
    SuggestionGenerator,
    local_suggestions,
)


class CountingFilter(SuggestionFilter):
    """SuggestionFilter that counts how often it runs."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def apply(self, suggestions, document_text, max_suggestions=20):
        self.calls += 1
        return super().apply(suggestions, document_text, max_suggestions)


# =============================================================================
# LOCAL STRATEGY
# =============================================================================


class TestLocalSuggestions:
    """Tests for rule-based suggestions."""

    def test_symbol_noise(self):
        """Symbol noise yields a replacement suggestion."""
        text = "ሰ#ላ"
        suggestions = local_suggestions(text, PatternDetector().detect(text), "doc")
        assert len(suggestions) == 1
        s = suggestions[0]
        assert (s.original, s.corrected) == ("ሰ#ላ", "ሰ ላ")
        assert s.span == TextSpan(0, 3)
        assert s.confidence == NOISE_CONFIDENCE

    def test_latin_anchor_widened_to_word(self, noisy_text):
        """Latin-in-word suggestions anchor on the whole word."""
        suggestions = local_suggestions(noisy_text, PatternDetector().detect(noisy_text), "doc")
        latin = [s for s in suggestions if s.confidence == LATIN_CONFIDENCE]
        assert len(latin) == 1
        assert latin[0].original == "ሀገርxችን"
        assert latin[0].corrected == "ሀገርችን"
        assert latin[0].span.slice(noisy_text) == "ሀገርxችን"

    def test_other_findings_ignored(self):
        """Findings without a local fix give no suggestions."""
        text = "ሰላም,ዓለም"
        assert local_suggestions(text, PatternDetector().detect(text), "doc") == []

    def test_generator_local(self, local_settings, noisy_text):
        """The local strategy uses rule suggestions."""
        result = SuggestionGenerator(local_settings).generate(noisy_text, "page-1")
        assert result.source is SuggestionSource.LOCAL
        assert result.attempts == []
        assert [s.confidence for s in result.suggestions] == [0.9, 0.8]
        assert all(s.document_id == "page-1" for s in result.suggestions)

    def test_no_credential_uses_local(self, fake_oracle_factory):
        """Without a key the local rules run."""
        oracle = fake_oracle_factory(default="[]")
        result = SuggestionGenerator(EngineSettings(), oracle=oracle).generate("ሰ#ላ")
        assert result.source is SuggestionSource.LOCAL
        assert [(s.original, s.corrected) for s in result.suggestions] == [("ሰ#ላ", "ሰ ላ")]
        assert oracle.calls == []

    def test_explicit_oracle_strategy_needs_credential(self):
        """An explicit oracle strategy needs a key."""
        generator = SuggestionGenerator(EngineSettings(strategy="oracle"))
        with pytest.raises(ConfigurationError):
            generator.generate("ሰላም")

    def test_none_text_raises(self, local_settings):
        """None is rejected."""
        with pytest.raises(ValueError):
            SuggestionGenerator(local_settings).generate(None)


# =============================================================================
# ORACLE STRATEGY
# =============================================================================


class TestOracleStrategy:
    """Tests for the model chain and fallbacks."""

    TEXT = "ሰላm ለዓለም"

    def test_primary_model(self, oracle_settings, fake_oracle_factory, reply_builder):
        """The primary model answers first."""
        oracle = fake_oracle_factory({"primary": reply_builder(("ሰላm", "ሰላም", 0.95))})
        result = SuggestionGenerator(oracle_settings, oracle=oracle).generate(self.TEXT, "doc")

        assert result.source is SuggestionSource.PRIMARY_MODEL
        assert result.attempts == ["primary"]
        assert not result.used_fallback
        s = result.suggestions[0]
        assert (s.original, s.corrected, s.span) == ("ሰላm", "ሰላም", TextSpan(0, 3))
        assert s.source is SuggestionSource.PRIMARY_MODEL

    def test_call_parameters(self, oracle_settings, fake_oracle_factory):
        """The oracle gets model, token limit and timeout."""
        oracle = fake_oracle_factory(default="[]")
        SuggestionGenerator(oracle_settings, oracle=oracle).generate(self.TEXT)
        call = oracle.calls[0]
        assert call["model"] == "primary"
        assert call["max_output_tokens"] == 4096
        assert call["timeout"] == 5.0
        assert call["image_context"] is None
        assert self.TEXT in call["prompt"]

    def test_fallback_model(self, oracle_settings, fake_oracle_factory, reply_builder):
        """A failing primary falls back to the next model."""
        oracle = fake_oracle_factory(
            {
                "primary": OracleError("quota exceeded"),
                "secondary": reply_builder(("ሰላm", "ሰላም", 0.9)),
            }
        )
        result = SuggestionGenerator(oracle_settings, oracle=oracle).generate(self.TEXT)
        assert result.source is SuggestionSource.FALLBACK_MODEL
        assert result.attempts == ["primary", "secondary"]
        assert result.used_fallback
        assert result.suggestions[0].source is SuggestionSource.FALLBACK_MODEL

    def test_parse_failure_moves_to_next_model(
        self, oracle_settings, fake_oracle_factory, reply_builder
    ):
        """An unparseable reply moves to the next model."""
        oracle = fake_oracle_factory(
            {"primary": "Sorry, no JSON here", "secondary": reply_builder(("ሰላm", "ሰላም", 0.9))}
        )
        result = SuggestionGenerator(oracle_settings, oracle=oracle).generate(self.TEXT)
        assert result.source is SuggestionSource.FALLBACK_MODEL
        assert len(result.suggestions) == 1

    def test_all_models_fail_falls_back_to_local(self, oracle_settings, fake_oracle_factory):
        """When every model fails the local rules run."""
        oracle = fake_oracle_factory(default=TimeoutError("timed out"))
        result = SuggestionGenerator(oracle_settings, oracle=oracle).generate("ሰ#ላ")

        assert result.source is SuggestionSource.LOCAL
        assert result.attempts == ["primary", "secondary", "gemini-2.5-flash"]
        assert "timed out" in result.error
        assert [(s.original, s.corrected) for s in result.suggestions] == [("ሰ#ላ", "ሰ ላ")]

    def test_unavailable_without_local_fallback(self, oracle_settings, fake_oracle_factory):
        """Without local fallback a full failure is reported."""
        oracle = fake_oracle_factory(default=OracleError("down"))
        generator = SuggestionGenerator(oracle_settings, oracle=oracle, allow_local_fallback=False)
        result = generator.generate("ሰ#ላ")
        assert result.source is SuggestionSource.UNAVAILABLE
        assert result.suggestions == []
        assert len(oracle.calls) == 3

    def test_empty_array_is_a_successful_answer(self, oracle_settings, fake_oracle_factory):
        """An empty reply stops the model chain."""
        oracle = fake_oracle_factory({"primary": "[]"})
        result = SuggestionGenerator(oracle_settings, oracle=oracle).generate("ሰ#ላ")
        assert result.source is SuggestionSource.PRIMARY_MODEL
        assert result.suggestions == []
        assert len(oracle.calls) == 1

    def test_unanchored_suggestions_dropped(
        self, oracle_settings, fake_oracle_factory, reply_builder
    ):
        """Suggestions not found in the text are dropped."""
        oracle = fake_oracle_factory({"primary": reply_builder(("ጎንደር", "ጎንደር።", 0.9))})
        result = SuggestionGenerator(oracle_settings, oracle=oracle).generate(self.TEXT)
        assert result.suggestions == []

    def test_script_incoherent_dropped(self, oracle_settings, fake_oracle_factory, reply_builder):
        """Latin replacements for Ethiopic text are dropped."""
        oracle = fake_oracle_factory({"primary": reply_builder(("ለዓለም", "world", 0.99))})
        result = SuggestionGenerator(oracle_settings, oracle=oracle).generate(self.TEXT)
        assert result.suggestions == []

    def test_capped_and_ranked(self, oracle_settings, fake_oracle_factory, reply_builder):
        """Results are ranked and capped per call."""
        oracle = fake_oracle_factory(
            {"primary": reply_builder(("ሰላm", "ሰላም", 0.6), ("ለዓለም", "ለአለም", 0.9))}
        )
        generator = SuggestionGenerator(oracle_settings, oracle=oracle)
        result = generator.generate(self.TEXT, max_suggestions=1)
        assert [s.original for s in result.suggestions] == ["ለዓለም"]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_rejected(self, oracle_settings, fake_oracle_factory, limit):
        """A per-call limit below one raises before any oracle call."""
        oracle = fake_oracle_factory(default="[]")
        generator = SuggestionGenerator(oracle_settings, oracle=oracle)
        with pytest.raises(ConfigurationError):
            generator.generate(self.TEXT, max_suggestions=limit)
        assert oracle.calls == []

    def test_lexicon_hint_in_prompt(self, fake_oracle_factory):
        """Lexicon hints reach the prompt when enabled."""
        settings = EngineSettings(api_key="k", enable_lexicon_hints=True)
        oracle = fake_oracle_factory(default="[]")
        SuggestionGenerator(settings, oracle=oracle).generate(self.TEXT)
        assert "Preserve proper names" in oracle.calls[0]["prompt"]

    def test_filter_runs_once(self, oracle_settings, fake_oracle_factory, reply_builder):
        """The filter runs once per generate call."""
        counting = CountingFilter()
        oracle = fake_oracle_factory(
            {"primary": OracleError("x"), "secondary": reply_builder(("ሰላm", "ሰላም", 0.9))}
        )
        SuggestionGenerator(oracle_settings, oracle=oracle, suggestion_filter=counting).generate(
            self.TEXT
        )
        assert counting.calls == 1


class TestImageContext:
    """Tests for image forwarding."""

    def test_image_forwarded(self, oracle_settings, fake_oracle_factory):
        """Image context reaches the oracle."""
        buffer = io.BytesIO()
        Image.new("RGB", (2, 2)).save(buffer, format="PNG")
        oracle = fake_oracle_factory(default="[]")
        generator = SuggestionGenerator(oracle_settings, oracle=oracle)
        generator.generate("ሰላም", image_context=buffer.getvalue())

        image = oracle.calls[0]["image_context"]
        assert isinstance(image, ImageContext)
        assert image.mime_type == "image/png"
        assert "IMAGE REFERENCE" in oracle.calls[0]["prompt"]

    def test_unusable_image_ignored(self, oracle_settings, fake_oracle_factory):
        """Unusable images are dropped and the call proceeds."""
        oracle = fake_oracle_factory(default="[]")
        generator = SuggestionGenerator(oracle_settings, oracle=oracle)
        result = generator.generate("ሰላም", image_context=b"garbage")
        assert result.source is SuggestionSource.PRIMARY_MODEL
        assert oracle.calls[0]["image_context"] is None
