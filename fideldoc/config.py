"""
Configuration for the fideldoc correction engine.

Settings are supplied by the caller. The engine never reads credentials
from the environment on its own.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Literal

import yaml

from fideldoc.exceptions import ConfigurationError

DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_FALLBACK_MODEL = "gemini-2.5-flash"

# Alternates tried after the configured ones, in order
DEFAULT_ALTERNATE_MODELS = ("gemini-2.5-flash", "gemini-2.0-flash")

# At most two alternates after the preferred model
MAX_ALTERNATE_MODELS = 2

DEFAULT_MAX_SUGGESTIONS = 20
DEFAULT_AUTO_APPLY_THRESHOLD = 0.9
DEFAULT_HIGH_CONFIDENCE_THRESHOLD = 0.8
DEFAULT_MAX_OUTPUT_TOKENS = 4096
DEFAULT_ORACLE_TIMEOUT = 60.0

# camelCase keys accepted from caller-side settings payloads
_KEY_ALIASES = {
    "apiKey": "api_key",
    "fallbackModel": "fallback_model",
    "maxSuggestions": "max_suggestions",
    "forceTargetScript": "force_target_script",
    "enableLexiconHints": "enable_lexicon_hints",
    "autoApplyThreshold": "auto_apply_threshold",
    "highConfidenceThreshold": "high_confidence_threshold",
    "maxOutputTokens": "max_output_tokens",
    "oracleTimeout": "oracle_timeout",
    "maxWorkers": "max_workers",
}

_HTML_ENTITY_REPLACEMENTS = [
    (re.compile(r"&#x2F;", re.IGNORECASE), "/"),
    (re.compile(r"&#47;"), "/"),
    (re.compile(r"&frasl;"), "/"),
    (re.compile(r"&amp;"), "&"),
]


def decode_model_identifier(model: str | None) -> str | None:
    """
    Decode HTML-escaped model identifiers coming from form submissions.

    Args:
        model: Raw identifier, e.g. "models&#x2F;gemini-2.5-pro".

    Returns:
        Decoded, trimmed identifier, or None when empty.
    """
    if not model:
        return None
    decoded = model
    for pattern, replacement in _HTML_ENTITY_REPLACEMENTS:
        decoded = pattern.sub(replacement, decoded)
    decoded = decoded.strip()
    return decoded or None


@dataclass
class EngineSettings:
    """
    Settings for suggestion generation and batch processing.

    An absent api_key disables the oracle; the local rule-based
    strategy is then used.

    Example:
        >>> settings = EngineSettings(api_key="...", max_suggestions=10)
        >>> generator = SuggestionGenerator(settings)
    """

    # Oracle access
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    fallback_model: str | None = DEFAULT_FALLBACK_MODEL
    strategy: Literal["auto", "oracle", "local"] = "auto"
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    oracle_timeout: float | None = DEFAULT_ORACLE_TIMEOUT  # seconds

    # Suggestion policy
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS
    force_target_script: bool = False  # True skips script auto-detection
    enable_lexicon_hints: bool = False

    # Batch policy
    auto_apply_threshold: float = DEFAULT_AUTO_APPLY_THRESHOLD
    high_confidence_threshold: float = DEFAULT_HIGH_CONFIDENCE_THRESHOLD
    max_workers: int = 1

    # Free-form caller extras, ignored by the engine
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate and normalize settings."""
        if self.api_key is not None:
            self.api_key = self.api_key.strip() or None

        model = decode_model_identifier(self.model)
        if model is None:
            raise ConfigurationError("model must be a non-empty identifier")
        self.model = model
        self.fallback_model = decode_model_identifier(self.fallback_model)

        valid_strategies = ("auto", "oracle", "local")
        if self.strategy not in valid_strategies:
            raise ConfigurationError(
                f"strategy must be one of {valid_strategies}, got {self.strategy!r}"
            )
        if self.max_suggestions < 1:
            raise ConfigurationError(
                f"max_suggestions must be >= 1, got {self.max_suggestions}"
            )
        if self.max_output_tokens < 1:
            raise ConfigurationError(
                f"max_output_tokens must be >= 1, got {self.max_output_tokens}"
            )
        if self.oracle_timeout is not None and self.oracle_timeout <= 0:
            raise ConfigurationError(
                f"oracle_timeout must be positive, got {self.oracle_timeout}"
            )
        for name in ("auto_apply_threshold", "high_confidence_threshold"):
            value = getattr(self, name)
            if value < 0.0 or value > 1.0:
                raise ConfigurationError(f"{name} must be between 0.0 and 1.0, got {value}")
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers}")

    @property
    def oracle_enabled(self) -> bool:
        """Whether a credential is configured and the strategy permits the oracle."""
        return self.api_key is not None and self.strategy != "local"

    def model_chain(self) -> list[str]:
        """
        Model identifiers to try, preferred first.

        The preferred model is followed by at most two alternates:
        the configured fallback model, then the library defaults.
        Duplicates are removed.
        """
        chain = [self.model]
        for candidate in (self.fallback_model, *DEFAULT_ALTERNATE_MODELS):
            if len(chain) >= 1 + MAX_ALTERNATE_MODELS:
                break
            if candidate and candidate not in chain:
                chain.append(candidate)
        return chain

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> EngineSettings:
        """
        Build settings from a mapping with snake_case or camelCase keys.

        Unknown keys are kept in ``extra``.
        """
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        return cls(**kwargs, extra=extra)

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineSettings:
        """
        Load settings from a YAML file.

        Raises:
            ConfigurationError: If the file is not valid YAML or not a mapping.
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Settings file {path} must contain a mapping")
        return cls.from_mapping(data)
