"""
Abstract base class for File Search Store implementations.

Defines the common interface that all file search backends must implement,
enabling interchangeable use of the remote Gemini service and the in-memory
development backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .credentials import CredentialProvider, SettingsCredentialProvider
from .filters import build_filter_expression
from .types import DocumentInfo, StoreInfo


class FileSearchStore(ABC):
    """
    Abstract interface for file search backends.

    All methods are blocking and never retry. Failures surface as
    ``FileSearchError`` subclasses carrying a classified ``ErrorKind``.

    Example usage:
        store = FileSearchRegistry.get('gemini')
        store_id = store.create_store('my-store').store_id
        doc = store.import_document(store_id, data, 'handbook.pdf', 'application/pdf')
        response = store.search(store_id, 'query', 'You are a helpful assistant.')
    """

    def __init__(self, credentials: CredentialProvider | None = None):
        self.credentials = credentials or SettingsCredentialProvider()

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """
        Return the backend identifier.

        Returns:
            str: Unique identifier for this backend (e.g., 'gemini', 'memory')
        """
        pass

    def has_credential(self) -> bool:
        return self.credentials.has_credential()

    # -------------------------------------------------------------------------
    # Store Lifecycle
    # -------------------------------------------------------------------------

    @abstractmethod
    def create_store(self, display_name: str) -> StoreInfo:
        """
        Create a new store.

        Raises:
            UnauthenticatedError: If no credential is configured
            FileSearchError: Classified remote failure
        """
        pass

    @abstractmethod
    def delete_store(self, store_id: str) -> None:
        """Delete a store and, by cascade, every document in it."""
        pass

    # -------------------------------------------------------------------------
    # Document Operations
    # -------------------------------------------------------------------------

    @abstractmethod
    def import_document(
        self,
        store_id: str,
        content: bytes,
        filename: str,
        mime_type: str,
        metadata: Mapping[str, str] | None = None,
    ) -> DocumentInfo:
        """
        Import a file into a store.

        The remote side indexes asynchronously; a successful return means the
        document was accepted for indexing.

        Args:
            store_id: Target store identifier
            content: Raw file bytes
            filename: Display name for the document
            mime_type: MIME type supplied by the intake layer
            metadata: Optional string tags usable in filter expressions

        Returns:
            DocumentInfo describing the imported document
        """
        pass

    @abstractmethod
    def list_documents(self, store_id: str) -> list[DocumentInfo]:
        """Return a full snapshot of the store's documents, all pages exhausted."""
        pass

    @abstractmethod
    def delete_document(self, store_id: str, document_id: str) -> None:
        """
        Delete one document.

        Raises:
            NotFoundError: If the document is already gone
        """
        pass

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    @abstractmethod
    def search(
        self,
        store_id: str,
        query: str,
        system_prompt: str,
        filter_expression: str | None = None,
    ) -> Any:
        """
        Issue one grounded-generation request against the store.

        Returns:
            The raw generation response (``google.genai.types.GenerateContentResponse``
            or an object of the same shape); see ``file_search.responses``
        """
        pass

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def build_filter_expression(self, metadata: Mapping[str, str] | None) -> str:
        return build_filter_expression(metadata)

    @staticmethod
    def document_resource_name(store_id: str, document_id: str) -> str:
        """Qualify a bare document id with its store; full resource names pass through."""
        if "/documents/" in document_id:
            return document_id
        return f"{store_id}/documents/{document_id}"
