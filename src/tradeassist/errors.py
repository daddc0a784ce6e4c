"""Exception hierarchy for tradeassist."""

from typing import Any


class TradeAssistError(Exception):
    """Base class for errors that map onto a structured API response."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a JSON-serializable body."""
        return {"error": self.message, "code": self.code}


class QuotaExceeded(TradeAssistError):
    """A short- or long-window rate limit was hit."""

    status_code = 429
    code = "quota_exceeded"

    def __init__(self, message: str, retry_after_ms: int, limiter: str) -> None:
        super().__init__(message)
        self.retry_after_ms = retry_after_ms
        self.limiter = limiter

    @property
    def retry_after_seconds(self) -> int:
        """Retry delay rounded up to whole seconds, for the Retry-After header."""
        return max(1, -(-self.retry_after_ms // 1000))

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["retryAfterMs"] = self.retry_after_ms
        body["limiter"] = self.limiter
        return body


class RequestValidationFailed(TradeAssistError):
    """Malformed request payload, rejected before any side effects."""

    status_code = 400
    code = "invalid_request"

    def __init__(self, message: str, details: list[Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or []

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["details"] = self.details
        return body


class NotFoundError(TradeAssistError):
    """A conversation or other record does not exist."""

    status_code = 404
    code = "not_found"


class StorageError(TradeAssistError):
    """Conversation storage could not be read or written."""

    status_code = 503
    code = "storage_unavailable"


class ToolExecutionError(TradeAssistError):
    """A tool could not complete. Folded into a failed FunctionResult."""

    status_code = 500
    code = "tool_failed"


class GenerationStreamError(TradeAssistError):
    """The generation backend failed while streaming."""

    status_code = 502
    code = "generation_failed"
