"""
File Search Store - client binding for managed document-indexing services.

This module provides an abstraction layer over a remote store of indexed
documents (Gemini File Search in production, an in-memory store for local
development), plus the classification of remote failures into a closed set
of error kinds.

Example usage:
    from file_search import FileSearchRegistry, build_filter_expression

    store = FileSearchRegistry.get()
    store_id = store.create_store('my-session-store').store_id

    doc = store.import_document(store_id, data, 'handbook.pdf', 'application/pdf', {'project': 'alpha'})

    response = store.search(
        store_id,
        'What does the handbook say about retries?',
        'Answer from the uploaded documents.',
        build_filter_expression({'project': 'alpha'}),
    )

    store.delete_store(store_id)
"""

from .base import FileSearchStore
from .classifier import USER_MESSAGES, Classification, ErrorKind, classify, classify_message, classify_status
from .credentials import CredentialProvider, SettingsCredentialProvider, StaticCredentialProvider
from .exceptions import (
    FileSearchError,
    FileTooLargeError,
    InvalidRequestError,
    NetworkError,
    NoDocumentsError,
    NotFoundError,
    NotInitializedError,
    QuotaExceededError,
    RateLimitedError,
    RemoteError,
    UnauthenticatedError,
    UnknownError,
    error_for_kind,
    error_from_exception,
    error_from_message,
    error_from_status,
)
from .filters import build_filter_expression
from .registry import BackendNotFoundError, FileSearchRegistry
from .types import Citation, DocumentInfo, SearchResult, StoreInfo


def _ensure_backends_registered():
    """Lazy import of backends to avoid circular imports during Django setup."""
    from . import backends  # noqa: F401


# Register backends lazily when registry is first accessed
FileSearchRegistry._ensure_backends = _ensure_backends_registered

__all__ = [
    # Core classes
    "FileSearchStore",
    "FileSearchRegistry",
    # Credentials
    "CredentialProvider",
    "SettingsCredentialProvider",
    "StaticCredentialProvider",
    # Types
    "Citation",
    "DocumentInfo",
    "SearchResult",
    "StoreInfo",
    # Classification
    "Classification",
    "ErrorKind",
    "USER_MESSAGES",
    "classify",
    "classify_message",
    "classify_status",
    "build_filter_expression",
    # Exceptions
    "FileSearchError",
    "NotInitializedError",
    "UnauthenticatedError",
    "NotFoundError",
    "FileTooLargeError",
    "QuotaExceededError",
    "RateLimitedError",
    "NetworkError",
    "InvalidRequestError",
    "RemoteError",
    "NoDocumentsError",
    "UnknownError",
    "BackendNotFoundError",
    "error_for_kind",
    "error_from_exception",
    "error_from_message",
    "error_from_status",
]
