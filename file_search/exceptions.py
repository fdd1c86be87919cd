"""
Exceptions for File Search Store operations.

Every exception carries an ErrorKind from the closed taxonomy in
``file_search.classifier`` together with the fixed user-facing sentence
for that kind.
"""

from __future__ import annotations

from .classifier import ErrorKind, classify_message, classify_status, user_message_for


class FileSearchError(Exception):
    """Base exception for all file search operations."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str = "",
        *,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ):
        self.status_code = status_code
        self.original_error = original_error
        super().__init__(message or self.user_message)

    @property
    def user_message(self) -> str:
        return user_message_for(self.kind)


class NotInitializedError(FileSearchError):
    """No live store: startup failed, no credential, or the session is closed."""

    kind = ErrorKind.NOT_INITIALIZED


class UnauthenticatedError(FileSearchError):
    """Missing or rejected credential."""

    kind = ErrorKind.UNAUTHENTICATED


class NotFoundError(FileSearchError):
    """Store or document does not exist (or no longer exists)."""

    kind = ErrorKind.NOT_FOUND


class FileTooLargeError(FileSearchError):
    kind = ErrorKind.FILE_TOO_LARGE


class QuotaExceededError(FileSearchError):
    kind = ErrorKind.QUOTA_EXCEEDED


class RateLimitedError(FileSearchError):
    kind = ErrorKind.RATE_LIMITED


class NetworkError(FileSearchError):
    """Transport failure that never produced an HTTP response."""

    kind = ErrorKind.NETWORK_ERROR


class InvalidRequestError(FileSearchError):
    """Rejected input, or a remote payload that could not be parsed."""

    kind = ErrorKind.INVALID_REQUEST


class RemoteError(FileSearchError):
    """Catch-all for server-side failures."""

    kind = ErrorKind.REMOTE_ERROR


class NoDocumentsError(FileSearchError):
    """Search attempted while the local mirror is empty."""

    kind = ErrorKind.NO_DOCUMENTS


class UnknownError(FileSearchError):
    kind = ErrorKind.UNKNOWN


_ERRORS_BY_KIND: dict[ErrorKind, type[FileSearchError]] = {
    cls.kind: cls
    for cls in (
        NotInitializedError,
        UnauthenticatedError,
        NotFoundError,
        FileTooLargeError,
        QuotaExceededError,
        RateLimitedError,
        NetworkError,
        InvalidRequestError,
        RemoteError,
        NoDocumentsError,
        UnknownError,
    )
}


def error_for_kind(
    kind: ErrorKind,
    message: str = "",
    *,
    status_code: int | None = None,
    original_error: Exception | None = None,
) -> FileSearchError:
    """Build the exception subclass registered for ``kind``."""
    error_class = _ERRORS_BY_KIND.get(kind, UnknownError)
    return error_class(message, status_code=status_code, original_error=original_error)


def error_from_status(
    status: int, message: str = "", *, original_error: Exception | None = None
) -> FileSearchError:
    return error_for_kind(
        classify_status(status),
        message,
        status_code=status,
        original_error=original_error,
    )


def error_from_message(message: str, *, original_error: Exception | None = None) -> FileSearchError:
    return error_for_kind(classify_message(message), message, original_error=original_error)


def error_from_exception(error: Exception, context: str = "") -> FileSearchError:
    """
    Translate an arbitrary exception into a classified FileSearchError.

    Already-classified errors are returned unchanged. Exceptions exposing an
    integer HTTP status (``code`` or ``status_code``) are classified by status,
    everything else by message text.

    Args:
        error: The exception to translate
        context: Optional prefix describing the failed operation
    """
    if isinstance(error, FileSearchError):
        return error

    detail = getattr(error, "message", None) or str(error) or type(error).__name__
    message = f"{context}: {detail}" if context else detail

    status = getattr(error, "code", None)
    if not isinstance(status, int):
        status = getattr(error, "status_code", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return error_from_status(status, message, original_error=error)

    kind = classify_message(f"{detail} {type(error).__name__}")
    return error_for_kind(kind, message, original_error=error)
