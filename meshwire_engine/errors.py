"""Failure taxonomy for generation requests."""

from __future__ import annotations


_CREDENTIAL_CODES = {401, 403, 404}
_CREDENTIAL_STATUSES = {"NOT_FOUND", "UNAUTHENTICATED", "PERMISSION_DENIED"}
# Legacy text emitted by the hosted API for a missing or revoked key.
_CREDENTIAL_MESSAGE = "requested entity was not found"


class MeshwireError(RuntimeError):
    """Base class for every classified generation failure."""


class NoCandidatesError(MeshwireError):
    pass


class NoImageDataError(MeshwireError):
    pass


class NoUriReturnedError(MeshwireError):
    pass


class DownloadFailedError(MeshwireError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class PollTimeoutError(MeshwireError):
    pass


class OperationCancelledError(MeshwireError):
    pass


class AuthorizationUnavailable(MeshwireError):
    """Host credential capability is missing. Logged and bypassed, never raised to callers."""


class UpstreamError(MeshwireError):
    """Transport or server-side failure from the hosted model."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        code: int | None = None,
        status: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.code = code
        self.status = status

    @property
    def is_credential_error(self) -> bool:
        if self.code in _CREDENTIAL_CODES:
            return True
        if str(self.status or "").upper() in _CREDENTIAL_STATUSES:
            return True
        return _CREDENTIAL_MESSAGE in self.message.lower()

    @classmethod
    def from_exception(cls, exc: BaseException, *, operation: str) -> "UpstreamError":
        if isinstance(exc, UpstreamError):
            return exc
        code = getattr(exc, "code", None)
        status = getattr(exc, "status", None)
        message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        return cls(
            str(message),
            operation=operation,
            code=code if isinstance(code, int) else None,
            status=str(status) if status else None,
        )
