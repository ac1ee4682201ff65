from typing import Any, Optional


class GmailboxError(Exception):
    """Base class for all gmailbox exceptions."""
    pass


class ValidationError(GmailboxError, ValueError):
    """Raised when an argument or setting is invalid."""
    pass


class ConfigError(ValidationError):
    """Raised when the configuration file or a mailbox entry is unusable."""
    pass


class AuthError(GmailboxError):
    """Raised when an authorization handle could not be obtained."""
    pass


class RemoteError(GmailboxError):
    """Raised when a Gmail API call fails.

    Carries the HTTP status and the provider's reason string.
    """

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.reason = reason

    @classmethod
    def from_http_error(cls, error) -> "RemoteError":
        status = getattr(error, "status_code", None)
        if status is None and getattr(error, "resp", None) is not None:
            status = getattr(error.resp, "status", None)
        reason = getattr(error, "reason", None) or str(error)
        return cls(f"Gmail API error ({status}): {reason}", status=status, reason=reason)


class BatchError(GmailboxError):
    """Raised by run_batch with the first failing unit of work."""

    def __init__(self, item: Any, index: int, cause: BaseException):
        super().__init__(f"Batch item {index} ({item!r}) failed: {cause}")
        self.item = item
        self.index = index
        self.cause = cause


class SendError(GmailboxError):
    """Raised when the outbound SMTP transport fails."""
    pass
