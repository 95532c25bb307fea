"""RelayError — base exception class and the error taxonomy."""

from __future__ import annotations


class RelayError(Exception):
    """Base error for all relay operations.

    Attributes:
        message: Human-readable error description.
        status_code: Suggested HTTP status code.
        code: Machine-readable error code string.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "relay-error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class AuthenticationFailure(RelayError):
    """Notification signature missing, malformed or mismatched."""

    def __init__(self, message: str, *, status_code: int = 403) -> None:
        super().__init__(message, status_code=status_code, code="authentication-failure")


class ValidationFailure(RelayError):
    """Malformed protocol parameters or form input."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message, status_code=status_code, code="validation-failure")


class NotFound(RelayError):
    """Unknown subscription, account or pending form."""

    def __init__(self, message: str, *, status_code: int = 404) -> None:
        super().__init__(message, status_code=status_code, code="not-found")


class UpstreamFailure(RelayError):
    """Non-2xx response or provider-reported errors from the hub or Reddit."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="upstream-failure")


class PersistenceFailure(RelayError):
    """A storage call failed; the operation is considered not applied."""

    def __init__(self, message: str, *, status_code: int = 500) -> None:
        super().__init__(message, status_code=status_code, code="persistence-failure")
