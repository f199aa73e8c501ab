"""
Pytest configuration and fixtures for fideldoc tests.
"""

import json

import pytest

from fideldoc.config import EngineSettings


class FakeOracle:
    """Oracle test double returning canned replies per model."""

    def __init__(self, replies=None, default=None):
        # model id -> reply string, or an exception instance to raise
        self.replies = dict(replies or {})
        self.default = default
        self.calls = []

    def generate(self, prompt, image_context=None, *, model, max_output_tokens=4096, timeout=None):
        self.calls.append(
            {
                "prompt": prompt,
                "image_context": image_context,
                "model": model,
                "max_output_tokens": max_output_tokens,
                "timeout": timeout,
            }
        )
        reply = self.replies.get(model, self.default)
        if isinstance(reply, Exception):
            raise reply
        if reply is None:
            raise RuntimeError(f"no reply configured for {model}")
        return reply


def suggestion_reply(*items):
    """Serialize (original, suggestion, confidence) tuples as an oracle reply."""
    return json.dumps(
        [
            {"original": original, "suggestion": suggestion, "reason": "test", "confidence": conf}
            for original, suggestion, conf in items
        ],
        ensure_ascii=False,
    )


@pytest.fixture
def fake_oracle_factory():
    """Build FakeOracle instances."""
    return FakeOracle


@pytest.fixture
def reply_builder():
    """Build JSON oracle replies."""
    return suggestion_reply


@pytest.fixture
def local_settings() -> EngineSettings:
    """Settings that always use the local rule strategy."""
    return EngineSettings(strategy="local")


@pytest.fixture
def oracle_settings() -> EngineSettings:
    """Settings with a credential and a fixed model chain."""
    return EngineSettings(
        api_key="test-key",
        model="primary",
        fallback_model="secondary",
        oracle_timeout=5.0,
    )


@pytest.fixture
def noisy_text() -> str:
    """Amharic text with symbol noise and a stray Latin letter."""
    return "ሰ#ላም ለዓለም። ኢትዮጵያ ሀገርxችን ናት።"


@pytest.fixture
def clean_text() -> str:
    """Clean Amharic text."""
    return "ሰላም ለዓለም። ኢትዮጵያ ሀገራችን ናት።"
