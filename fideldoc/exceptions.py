"""
Exception classes for fideldoc.

All fideldoc exceptions inherit from FidelDocError,
making it easy to catch all library errors.

Example:
    >>> try:
    ...     generator.generate(text)
    ... except fideldoc.ConfigurationError as e:
    ...     print(f"Bad settings: {e}")
    ... except fideldoc.FidelDocError as e:
    ...     print(f"fideldoc error: {e}")
"""


class FidelDocError(Exception):
    """
    Base exception for all fideldoc errors.

    Catch this to handle any fideldoc-specific error.
    """

    pass


class ConfigurationError(FidelDocError, ValueError):
    """
    Raised for invalid configuration.

    Also raised when the oracle strategy is requested explicitly but
    no credential is configured, since that changes which strategy runs.

    Example:
        >>> EngineSettings(max_suggestions=0)
        ConfigurationError: max_suggestions must be >= 1, got 0
    """

    pass


class OracleError(FidelDocError):
    """
    Raised when the language-model oracle fails (network, quota, timeout).

    Never escapes SuggestionGenerator.generate(); the generator falls
    through to the next model and finally to local rules.
    """

    pass


class OracleResponseError(OracleError):
    """Raised when an oracle response cannot be parsed as a suggestion array."""

    pass


class InvalidSpanError(FidelDocError, ValueError):
    """
    Raised when a TextSpan violates 0 <= start < end <= len(text).

    This is a programmer error. Batch code drops the offending
    finding or suggestion and keeps going.
    """

    pass


class AnalysisError(FidelDocError):
    """
    Raised when a document cannot be analyzed.

    BatchCoordinator records it as a failure for that document only.
    """

    pass
