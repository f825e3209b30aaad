"""
Custom exception classes for the Voice Profile Engine.

Exceptions follow the fail-fast philosophy: no fallbacks, surface errors
immediately with clear context for debugging.  Nothing in the engine core
retries on its own; retry policy belongs to whoever calls it.

Hierarchy:
    Exception
    +-- VoiceEngineError (base for engine-internal failures)
    |   +-- AggregationFailedError
    |   +-- ComposerInputIncompleteError
    +-- ValidationError (ValueError)
    |   +-- MalformedTimestampsError
    |   +-- TranscriptTooShortError
    |   +-- UnknownReferentError
    |   +-- TooManyReferentsError
    |   +-- CalibrationRoundError
    +-- DatabaseError
    +-- ConfigurationError
    +-- RetryExhaustedError
"""

from typing import List, Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class VoiceEngineError(Exception):
    """Base exception for engine-internal failures."""

    pass


# =============================================================================
# CORE EXCEPTIONS
# =============================================================================


class ValidationError(ValueError):
    """Raised when input validation fails."""

    pass


class DatabaseError(Exception):
    """Raised when storage operations fail."""

    pass


class ConfigurationError(Exception):
    """Raised when engine configuration is invalid."""

    pass


class RetryExhaustedError(Exception):
    """Raised when all retry attempts have been exhausted.

    Attributes:
        operation: Name of the operation that was retried.
        attempts: Total number of attempts made.
        last_error: The last exception raised before giving up.
    """

    def __init__(self, operation: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts. "
            f"Last error: {last_error}"
        )


# =============================================================================
# ENGINE EXCEPTIONS
# =============================================================================


class AggregationFailedError(VoiceEngineError):
    """Raised when a merged profile would violate its invariants.

    Fatal for the request: the caller must not persist anything and must
    not retry automatically.

    Attributes:
        violations: Human-readable list of the invariants that failed.
    """

    def __init__(self, violations: List[str]):
        self.violations = violations
        super().__init__(
            f"Profile aggregation failed invariant checks: {violations}"
        )


class ComposerInputIncompleteError(VoiceEngineError):
    """Raised when a required field is missing while rendering a prompt.

    Attributes:
        field_name: Name of the missing or unusable input.
    """

    def __init__(self, field_name: str, detail: Optional[str] = None):
        self.field_name = field_name
        message = f"Cannot compose prompt: '{field_name}' is missing"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


# =============================================================================
# VALIDATION EXCEPTIONS
# =============================================================================


class MalformedTimestampsError(ValidationError):
    """Raised when word timestamps are inverted, overlapping or out of order.

    Attributes:
        index: Position of the first offending timestamp.
        reason: What was wrong with it.
    """

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Malformed word timestamp at index {index}: {reason}")


class TranscriptTooShortError(ValidationError):
    """Raised when a transcript is empty or below the minimum length."""

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"Transcript too short: {length} characters (minimum {minimum})"
        )


class UnknownReferentError(ValidationError):
    """Raised when a referent id or slug is not in the catalog."""

    def __init__(self, referent_id: str):
        self.referent_id = referent_id
        super().__init__(f"Unknown referent '{referent_id}'")


class TooManyReferentsError(ValidationError):
    """Raised when more referents are selected than the blend allows."""

    def __init__(self, requested: int, maximum: int):
        self.requested = requested
        self.maximum = maximum
        super().__init__(
            f"Too many referents selected: {requested} (maximum {maximum})"
        )


class CalibrationRoundError(ValidationError):
    """Raised when a calibration round is rated or amended illegally."""

    pass


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    # Base
    "VoiceEngineError",
    # Core
    "ValidationError",
    "DatabaseError",
    "ConfigurationError",
    "RetryExhaustedError",
    # Engine
    "AggregationFailedError",
    "ComposerInputIncompleteError",
    # Validation
    "MalformedTimestampsError",
    "TranscriptTooShortError",
    "UnknownReferentError",
    "TooManyReferentsError",
    "CalibrationRoundError",
]
