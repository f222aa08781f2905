"""
Matching Errors - Exception taxonomy for the matching pipeline.

- InputValidationError: bad input, raised before any tier runs
- AIMatchingError (and subclasses): AI tier failures, always recovered by fallback
- FallbackError: unexpected failure inside a rule-based tier
"""


class MatchingError(Exception):
    """Base class for all matching pipeline errors."""


class InputValidationError(MatchingError):
    """Raised when a user or job input cannot enter the pipeline (e.g. missing email)."""


class AIMatchingError(MatchingError):
    """Base class for AI ranking failures."""


class AITimeoutError(AIMatchingError):
    """The ranking backend did not answer within the configured timeout."""


class AIMalformedResponseError(AIMatchingError):
    """The ranking backend answered with something we cannot use."""


class AIQuotaExceededError(AIMatchingError):
    """Rate limit hit or the per-run call budget is spent."""


class AITransportError(AIMatchingError):
    """Connection or API error talking to the ranking backend."""


class FallbackError(MatchingError):
    """A rule-based tier failed on malformed data."""
