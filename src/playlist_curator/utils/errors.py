"""Error taxonomy for classifier and response failures.

None of these reach the caller of a curation run; they are caught at batch
or run level and turned into an empty result or a fallback.
"""


class CuratorError(Exception):
    """Base class for curation engine errors."""
    pass


class CapabilityTimeout(CuratorError):
    """Raised when a classifier call exceeds its time budget."""
    pass


class CapabilityError(CuratorError):
    """Raised for any other classifier failure."""
    pass


class CapabilityUnavailable(CapabilityError):
    """Raised when a capability that is not available is invoked."""
    pass


class ResponseParseError(CuratorError):
    """Raised when a reply is not JSON or violates the expected schema."""

    def __init__(self, message: str, raw_response: str = ""):
        super().__init__(message)
        self.raw_response = raw_response


class ValidationError(CuratorError):
    """Raised when a label falls outside the allowed category set."""
    pass
