"""
Custom Exceptions Module.

Exceptions raised by the pattern extraction engine. Data-quality problems
in a single invoice (a value failing validation, a field nobody matched,
a run with no required field) are reported as statuses on the result
objects and never raised. Exceptions are reserved for broken patterns,
broken configuration and contract violations.

Exception Hierarchy:
    PatternExtractionError (base)
    ├── ConfigurationError
    ├── PatternLibraryError
    │   └── MalformedPatternError
    ├── PatternInvalidError
    └── ExtractionStateError
"""


class PatternExtractionError(Exception):
    """
    Base exception for all pattern extraction errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PatternExtractionError):
    """Raised when a configured value is missing or out of range."""

    def __init__(self, key: str, value=None, reason: str = None):
        message = f"Invalid configuration value for '{key}'"
        details = {"key": key, "value": value, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# PATTERN LIBRARY ERRORS
# =============================================================================

class PatternLibraryError(PatternExtractionError):
    """
    Raised when a pattern library snapshot violates its contract.

    This is fatal for an extraction run: it means the administration
    side delivered broken data, not that one invoice is hard to read.
    """
    pass


class MalformedPatternError(PatternLibraryError):
    """
    Raised when a pattern record is missing required fields or holds
    out-of-range values.

    Example:
        >>> raise MalformedPatternError(7, "confidence_weight must be in (0, 1]")
    """

    def __init__(self, pattern_id, reason: str):
        message = f"Malformed pattern definition: {pattern_id}"
        details = {"pattern_id": pattern_id, "reason": reason}
        super().__init__(message, details)


class PatternInvalidError(PatternExtractionError):
    """
    Raised when one pattern's expression cannot be compiled or evaluated.

    Local to that pattern: the resolver logs it, flags the pattern and
    keeps going with the remaining patterns.
    """

    def __init__(self, pattern_id, expression: str, reason: str = None):
        message = f"Pattern {pattern_id} is invalid"
        details = {"pattern_id": pattern_id, "expression": expression, "reason": reason}
        self.pattern_id = pattern_id
        self.reason = reason
        super().__init__(message, details)


class ExtractionStateError(PatternExtractionError):
    """Raised on an illegal extraction run state transition."""

    def __init__(self, current: str, target: str):
        message = f"Illegal extraction state transition: {current} -> {target}"
        details = {"current": current, "target": target}
        super().__init__(message, details)


__all__ = [
    'PatternExtractionError',
    'ConfigurationError',
    'PatternLibraryError',
    'MalformedPatternError',
    'PatternInvalidError',
    'ExtractionStateError',
]
