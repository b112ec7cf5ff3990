"""Exception hierarchy for the assistant core."""

from enum import StrEnum


class AssistantError(Exception):
    """Base exception for all assistant errors."""
    pass


class ErrorType(StrEnum):
    OAUTH_NOT_CONNECTED = "OAUTH_NOT_CONNECTED"
    OAUTH_EXPIRED = "OAUTH_EXPIRED"
    API_ERROR = "API_ERROR"
    NOT_FOUND = "NOT_FOUND"
    PERMISSION = "PERMISSION"
    RATE_LIMIT = "RATE_LIMIT"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"


class CapabilityError(AssistantError):
    """A capability service (calendar, gmail, ...) failed."""

    def __init__(
        self,
        error_type: ErrorType,
        service: str,
        status_code: int | None = None,
        detail: str = "",
    ):
        self.error_type = error_type
        self.service = service
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{service}: {error_type}" + (f" ({detail})" if detail else ""))

    @property
    def is_oauth_error(self) -> bool:
        return self.error_type in (ErrorType.OAUTH_NOT_CONNECTED, ErrorType.OAUTH_EXPIRED)

    @classmethod
    def from_status(cls, service: str, status_code: int, detail: str = "") -> "CapabilityError":
        """Build an error from an HTTP status code."""
        if status_code in (401, 403):
            error_type = ErrorType.OAUTH_EXPIRED
        elif status_code == 404:
            error_type = ErrorType.NOT_FOUND
        elif status_code == 429:
            error_type = ErrorType.RATE_LIMIT
        else:
            error_type = ErrorType.API_ERROR
        return cls(error_type, service, status_code=status_code, detail=detail)


class ClassifierError(AssistantError):
    """Reasoning backend failed to classify a message."""
    pass


class DisambiguationError(AssistantError):
    """A reply could not be resolved against a disambiguation round."""
    pass


class NoPendingDisambiguationError(DisambiguationError):
    """There is no disambiguation round to resolve against."""
    pass


class StaleDisambiguationError(NoPendingDisambiguationError):
    """The disambiguation round expired before the reply arrived."""
    pass


class AmbiguousChoiceError(DisambiguationError):
    """The reply does not single out candidates from the round."""

    def __init__(self, message: str, candidate_count: int = 0):
        self.candidate_count = candidate_count
        super().__init__(message)
