"""Error types for source adapters."""

from enum import Enum


class SourceErrorClass(str, Enum):
    """Classification of source errors.

    - FETCH: HTTP or network failure
    - PARSE: Response content could not be parsed
    - RATE_LIMITED: The feed asked us to slow down (HTTP 429)
    """

    FETCH = "FETCH"
    PARSE = "PARSE"
    RATE_LIMITED = "RATE_LIMITED"


class SourceError(Exception):
    """Failure of a source adapter.

    Attributes:
        error_class: Classification of the error.
        message: Human-readable message.
        source: Name of the source that failed.
        status_code: HTTP status code when one was received.
    """

    def __init__(
        self,
        error_class: SourceErrorClass,
        message: str,
        source: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_class = error_class
        self.message = message
        self.source = source
        self.status_code = status_code

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert error to dictionary for logging."""
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "source": self.source,
            "status_code": self.status_code,
        }


class RateLimitedError(SourceError):
    """The source rejected the request as rate limited."""

    def __init__(
        self,
        message: str = "Rate limited (429 Too Many Requests)",
        source: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(SourceErrorClass.RATE_LIMITED, message, source, 429)
        self.retry_after = retry_after
