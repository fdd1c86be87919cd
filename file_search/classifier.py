"""
Classification of remote failures into a closed set of error kinds.

Two entry points are provided: classification by HTTP status (authoritative,
used when the failure reached the HTTP layer) and classification by message
text (best effort, used for wrapped transport failures). Classification is
total: every input maps to exactly one kind, and every kind maps to exactly
one user-facing sentence.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Closed taxonomy of corpus and remote store failures."""

    NOT_INITIALIZED = "not_initialized"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    FILE_TOO_LARGE = "file_too_large"
    QUOTA_EXCEEDED = "quota_exceeded"
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    INVALID_REQUEST = "invalid_request"
    REMOTE_ERROR = "remote_error"
    NO_DOCUMENTS = "no_documents"
    UNKNOWN = "unknown"


USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NOT_INITIALIZED: (
        "File Search Store is not initialized. "
        "Please check your Gemini API key configuration and restart the application."
    ),
    ErrorKind.UNAUTHENTICATED: (
        "Authentication failed. Please check your Gemini API key is configured correctly."
    ),
    ErrorKind.NOT_FOUND: (
        "The requested document or File Search Store was not found. It may have been deleted."
    ),
    ErrorKind.FILE_TOO_LARGE: "File size exceeds the 100 MB limit. Please upload a smaller file.",
    ErrorKind.QUOTA_EXCEEDED: (
        "Storage quota exceeded. Please delete some files or upgrade to a higher storage tier."
    ),
    ErrorKind.RATE_LIMITED: "Too many requests. Please wait a moment and try again.",
    ErrorKind.NETWORK_ERROR: (
        "Network error connecting to Gemini API. Please check your internet connection."
    ),
    ErrorKind.INVALID_REQUEST: "Invalid request. Please check your input and try again.",
    ErrorKind.REMOTE_ERROR: "Gemini API server error. Please try again later.",
    ErrorKind.NO_DOCUMENTS: "No files uploaded. Please upload files before searching.",
    ErrorKind.UNKNOWN: "An unexpected error occurred. Please try again.",
}

# Checked in order; the first matching group wins.
_MESSAGE_KEYWORDS: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.UNAUTHENTICATED, ("unauthorized", "unauthenticated", "api key", "permission denied")),
    (ErrorKind.NOT_FOUND, ("not found", "404")),
    (ErrorKind.QUOTA_EXCEEDED, ("resource_exhausted", "quota", "exceeded")),
    (ErrorKind.FILE_TOO_LARGE, ("too large", "size")),
    (ErrorKind.RATE_LIMITED, ("rate limit", "429")),
    (ErrorKind.NETWORK_ERROR, ("network", "connection", "timeout", "timed out")),
    (ErrorKind.INVALID_REQUEST, ("invalid", "malformed")),
    (ErrorKind.REMOTE_ERROR, ("server", "500", "502", "503")),
)


@dataclass(frozen=True)
class Classification:
    """Result of classifying a failure signal."""

    kind: ErrorKind
    user_message: str


def user_message_for(kind: ErrorKind) -> str:
    return USER_MESSAGES[kind]


def classify_status(status: int) -> ErrorKind:
    """Map an HTTP status code to an error kind."""
    if status in (401, 403):
        return ErrorKind.UNAUTHENTICATED
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 413:
        return ErrorKind.FILE_TOO_LARGE
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status == 400:
        return ErrorKind.INVALID_REQUEST
    if 500 <= status <= 599:
        return ErrorKind.REMOTE_ERROR
    return ErrorKind.UNKNOWN


def classify_message(message: str | None) -> ErrorKind:
    """Best-effort keyword match over the lower-cased error text."""
    if not message:
        return ErrorKind.UNKNOWN

    lower = message.lower()
    for kind, keywords in _MESSAGE_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return kind
    return ErrorKind.UNKNOWN


def classify(status: int | None, message: str | None = "") -> Classification:
    """
    Classify a failure signal.

    Args:
        status: HTTP status code, or None when the failure never reached
            the HTTP layer
        message: Error text; only consulted when no status is available

    Returns:
        Classification with the kind and its fixed user-facing sentence
    """
    kind = classify_status(status) if status is not None else classify_message(message)
    return Classification(kind=kind, user_message=USER_MESSAGES[kind])
