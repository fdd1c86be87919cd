"""
In-memory File Search backend implementation.

Keeps stores and documents in process memory and answers searches with
simple keyword matching, useful for development and testing without
requiring an API key or network access. Search responses are real
``google.genai`` response objects so they parse exactly like Gemini's.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field

from google.genai import types

from ..base import FileSearchStore
from ..credentials import CredentialProvider, StaticCredentialProvider
from ..exceptions import NotFoundError, UnauthenticatedError
from ..registry import FileSearchRegistry
from ..types import DocumentInfo, StoreInfo

logger = logging.getLogger(__name__)

_CLAUSE = re.compile(r'metadata\.(\w+)="((?:[^"\\]|\\.)*)"')


@dataclass
class _StoredDocument:
    info: DocumentInfo
    text: str
    metadata: dict[str, str] = field(default_factory=dict)


class InMemoryFileSearchStore(FileSearchStore):
    """
    File search backend backed by dictionaries.

    Every public call is recorded in ``calls`` as ``(operation, store_id)``.
    ``fail_next(operation, error)`` makes the next call of that operation
    raise ``error`` instead of running, for exercising failure paths.
    """

    def __init__(self, credentials: CredentialProvider | None = None):
        super().__init__(credentials or StaticCredentialProvider("in-memory"))
        self._stores: dict[str, dict[str, _StoredDocument]] = {}
        self._failures: dict[str, list[Exception]] = {}
        self._lock = threading.Lock()
        self.calls: list[tuple[str, str | None]] = []

    @property
    def backend_name(self) -> str:
        return "memory"

    def fail_next(self, operation: str, error: Exception) -> None:
        self._failures.setdefault(operation, []).append(error)

    def _enter(self, operation: str, store_id: str | None = None) -> None:
        if not self.has_credential():
            raise UnauthenticatedError("No credential configured for the in-memory backend")
        self.calls.append((operation, store_id))
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _documents(self, store_id: str) -> dict[str, _StoredDocument]:
        try:
            return self._stores[store_id]
        except KeyError:
            raise NotFoundError(f"Store not found: {store_id}", status_code=404) from None

    # -------------------------------------------------------------------------
    # Store Lifecycle
    # -------------------------------------------------------------------------

    def create_store(self, display_name: str) -> StoreInfo:
        self._enter("create_store")
        store_id = f"fileSearchStores/{uuid.uuid4().hex[:12]}"
        with self._lock:
            self._stores[store_id] = {}
        logger.info("In-memory store created: %s", store_id)
        return StoreInfo(store_id=store_id, display_name=display_name, backend=self.backend_name)

    def delete_store(self, store_id: str) -> None:
        self._enter("delete_store", store_id)
        with self._lock:
            self._documents(store_id)
            del self._stores[store_id]
        logger.info("In-memory store deleted: %s", store_id)

    def store_exists(self, store_id: str) -> bool:
        return store_id in self._stores

    # -------------------------------------------------------------------------
    # Document Operations
    # -------------------------------------------------------------------------

    def import_document(
        self,
        store_id: str,
        content: bytes,
        filename: str,
        mime_type: str,
        metadata: Mapping[str, str] | None = None,
    ) -> DocumentInfo:
        self._enter("import_document", store_id)
        with self._lock:
            documents = self._documents(store_id)
            name = f"{store_id}/documents/{uuid.uuid4().hex[:12]}"
            info = DocumentInfo(
                resource_name=name,
                display_name=filename,
                mime_type=mime_type,
                size_bytes=len(content),
            )
            documents[name] = _StoredDocument(
                info=info,
                text=content.decode("utf-8", errors="ignore"),
                metadata={key: str(value) for key, value in (metadata or {}).items()},
            )
        return info

    def list_documents(self, store_id: str) -> list[DocumentInfo]:
        self._enter("list_documents", store_id)
        with self._lock:
            return [stored.info for stored in self._documents(store_id).values()]

    def delete_document(self, store_id: str, document_id: str) -> None:
        self._enter("delete_document", store_id)
        name = self.document_resource_name(store_id, document_id)
        with self._lock:
            documents = self._documents(store_id)
            if documents.pop(name, None) is None:
                raise NotFoundError(f"Document not found: {name}", status_code=404)

    def remove_remotely(self, store_id: str, document_id: str) -> None:
        """Drop a document without recording a call, as if deleted by another client."""
        with self._lock:
            self._stores.get(store_id, {}).pop(document_id, None)

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(
        self,
        store_id: str,
        query: str,
        system_prompt: str,
        filter_expression: str | None = None,
    ) -> types.GenerateContentResponse:
        self._enter("search", store_id)
        required = {
            key: re.sub(r"\\(.)", r"\1", value)
            for key, value in _CLAUSE.findall(filter_expression or "")
        }
        terms = [term for term in re.findall(r"\w+", query.lower()) if len(term) > 2]

        with self._lock:
            candidates = [
                stored
                for stored in self._documents(store_id).values()
                if all(stored.metadata.get(key) == value for key, value in required.items())
            ]
        matches = [
            stored for stored in candidates if any(term in stored.text.lower() for term in terms)
        ]

        answer = self._generate_answer(query, matches)
        chunks = [
            types.GroundingChunk(
                retrieved_context=types.GroundingChunkRetrievedContext(
                    uri=stored.info.resource_name,
                    title=stored.info.display_name,
                    text=stored.text[:500],
                )
            )
            for stored in matches
        ]
        return types.GenerateContentResponse(
            candidates=[
                types.Candidate(
                    content=types.Content(role="model", parts=[types.Part(text=answer)]),
                    grounding_metadata=types.GroundingMetadata(grounding_chunks=chunks)
                    if chunks
                    else None,
                )
            ]
        )

    def _generate_answer(self, query: str, matches: list[_StoredDocument]) -> str:
        if not matches:
            return f"No relevant documents found for: {query}"

        excerpts = [f"From '{stored.info.display_name}':\n{stored.text[:200]}" for stored in matches[:3]]
        return "Based on the documents in this store:\n\n" + "\n\n---\n\n".join(excerpts)


# Register the backend (but don't set as default - Gemini is default)
FileSearchRegistry.register("memory", InMemoryFileSearchStore, set_default=False)
