"""
Corpus orchestration for one session's File Search store.

The orchestrator owns the session's store identifier and a local mirror of
uploaded-document metadata, and composes the remote store client, error
classification and storage accounting into upload, delete, list and search
operations.

Lifecycle: ``UNINITIALIZED -> STORE_ACTIVE -> CLOSED``. A failed ``init()``
leaves the orchestrator uninitialized but usable: listing degrades to the
(empty) mirror and every other operation raises ``NotInitializedError``.

Failure policy per operation:
- upload / search: classified errors propagate to the caller
- delete: remote failures are logged and absorbed; the local entry is
  removed regardless
- list: remote failures are logged and absorbed; the last-known mirror is
  returned
- init / close: failures are logged and absorbed
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from django.conf import settings
from django.utils import timezone

from file_search import FileSearchRegistry, FileSearchStore
from file_search.exceptions import (
    FileSearchError,
    InvalidRequestError,
    NoDocumentsError,
    NotInitializedError,
    error_from_exception,
)
from file_search.responses import extract_citations, extract_text, merge_citations
from file_search.types import Citation, SearchResult

from .storage import StorageAccounting, format_bytes

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    STORE_ACTIVE = "store_active"
    CLOSED = "closed"


@dataclass(frozen=True)
class FileInfo:
    """
    Mirror entry for one uploaded document.

    ``local_id`` is generated client-side and never sent to the remote
    store; ``document_id`` is the remote resource name used for deletion.
    """

    local_id: str
    document_id: str
    display_name: str
    mime_type: str
    size_bytes: int

    @property
    def display_size(self) -> str:
        return format_bytes(self.size_bytes)


def _new_local_id() -> str:
    return str(uuid.uuid4())


class CorpusOrchestrator:
    """
    Session-scoped owner of a File Search store and its document mirror.

    One exclusive lock guards the store id, the mirror and the storage
    accounting. Mutating operations hold it for their whole remote call;
    search only holds it to snapshot the store id and mirror.

    Example usage:
        with CorpusOrchestrator() as corpus:
            info = corpus.upload_file(data, 'handbook.pdf', 'application/pdf')
            result = corpus.search('What are the limits?', 'Answer from the documents.')
            corpus.delete_file(info.local_id)
    """

    def __init__(
        self,
        store: FileSearchStore | None = None,
        *,
        accounting: StorageAccounting | None = None,
        store_display_name: str | None = None,
    ):
        self.store = store or FileSearchRegistry.create()
        self.accounting = accounting or StorageAccounting()
        self.store_display_name = store_display_name
        self._lock = threading.RLock()
        self._state = OrchestratorState.UNINITIALIZED
        self._store_id: str | None = None
        self._mirror: list[FileInfo] = []

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def store_id(self) -> str | None:
        return self._store_id

    @property
    def is_active(self) -> bool:
        return self._state == OrchestratorState.STORE_ACTIVE

    def _require_active(self, operation: str) -> str:
        if self._state != OrchestratorState.STORE_ACTIVE or not self._store_id:
            error = NotInitializedError(
                f"Cannot {operation}: File Search store is {self._state.value}"
            )
            logger.error("%s [%s]", error, error.kind.value)
            raise error
        return self._store_id

    @staticmethod
    def _classify(error: Exception, context: str) -> FileSearchError:
        return error_from_exception(error, context)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def init(self) -> bool:
        """
        Create the session's store.

        Returns:
            True if the store is active after the call
        """
        with self._lock:
            if self._state != OrchestratorState.UNINITIALIZED:
                logger.debug("init() ignored in state %s", self._state.value)
                return self.is_active

            if not self.store.has_credential():
                logger.warning("GEMINI_API_KEY not configured. File operations will not work.")
                return False

            prefix = getattr(settings, "FILE_SEARCH_STORE_PREFIX", "ragskin-session")
            display_name = self.store_display_name or f"{prefix}-{uuid.uuid4().hex[:8]}"
            try:
                store_info = self.store.create_store(display_name)
            except Exception as e:
                error = self._classify(e, "Failed to initialize File Search store")
                logger.error("%s [%s]", error, error.kind.value)
                return False

            self._store_id = store_info.store_id
            self._mirror = []
            self.accounting.reset()
            self._state = OrchestratorState.STORE_ACTIVE
            logger.info("Corpus initialized with store %s (%s)", self._store_id, display_name)
            return True

    def close(self) -> None:
        """Delete the session's store. Idempotent; a no-op unless the store is active."""
        with self._lock:
            if self._state != OrchestratorState.STORE_ACTIVE:
                return

            store_id = self._store_id
            try:
                self.store.delete_store(store_id)
            except Exception as e:
                error = self._classify(e, f"Failed to delete File Search store {store_id}")
                logger.warning("%s [%s]", error, error.kind.value)
            else:
                logger.info("Corpus closed; store %s deleted", store_id)

            self._state = OrchestratorState.CLOSED
            self._store_id = None
            self._mirror = []
            self.accounting.reset()

    def __enter__(self) -> CorpusOrchestrator:
        self.init()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def upload_file(
        self,
        content: bytes,
        filename: str,
        mime_type: str,
        metadata: Mapping[str, str] | None = None,
        *,
        size_bytes: int | None = None,
    ) -> FileInfo:
        """
        Import a file into the store and record it in the mirror.

        The session lock is held for the whole remote import, including the
        wait for the import operation (up to ``FILE_SEARCH_IMPORT_TIMEOUT``);
        listing, deletion, search and close on this orchestrator block until
        it returns.

        Args:
            content: Raw file bytes
            filename: Display name
            mime_type: MIME type supplied by the intake layer
            metadata: Optional string tags for filtered search
            size_bytes: Declared size used for accounting; defaults to ``len(content)``

        Raises:
            NotInitializedError: If no store is active
            FileSearchError: Classified remote failure; the mirror is unchanged
        """
        declared_size = len(content) if size_bytes is None else size_bytes

        with self._lock:
            store_id = self._require_active("upload file")
            try:
                document = self.store.import_document(
                    store_id, content, filename, mime_type, dict(metadata) if metadata else None
                )
            except Exception as e:
                error = self._classify(e, f"Failed to upload '{filename}'")
                logger.error("%s [%s]", error, error.kind.value)
                if error is e:
                    raise
                raise error from e

            if self.accounting.would_exceed(declared_size):
                logger.warning(
                    "Upload of '%s' exceeds the %s tier estimate: %s + %s > %s",
                    filename,
                    self.accounting.tier.display_name,
                    format_bytes(self.accounting.usage_bytes),
                    format_bytes(declared_size),
                    format_bytes(self.accounting.capacity_bytes),
                )
            self.accounting.add(declared_size)

            file_info = FileInfo(
                local_id=_new_local_id(),
                document_id=document.resource_name,
                display_name=document.display_name or filename,
                mime_type=document.mime_type or mime_type,
                size_bytes=declared_size,
            )
            self._mirror.append(file_info)

        logger.info("File uploaded successfully: %s (%s)", filename, file_info.local_id)
        return file_info

    def upload_text(self, text: str, metadata: Mapping[str, str] | None = None) -> FileInfo:
        """Upload text as a UTF-8 ``project-summary-<timestamp>.txt`` document."""
        if not text or not text.strip():
            raise InvalidRequestError("Text content cannot be empty")

        filename = f"project-summary-{timezone.now():%Y%m%d-%H%M%S}.txt"
        return self.upload_file(text.encode("utf-8"), filename, "text/plain", metadata)

    def delete_file(self, local_id: str) -> None:
        """
        Remove a document by local id.

        Unknown ids are a no-op. Remote failures (including the document
        already being gone) are logged and absorbed; the mirror entry and its
        accounted bytes are removed regardless.
        """
        with self._lock:
            store_id = self._require_active("delete file")

            entry = next((item for item in self._mirror if item.local_id == local_id), None)
            if entry is None:
                logger.debug("Delete ignored for unknown local id %s", local_id)
                return

            if entry.document_id:
                try:
                    self.store.delete_document(store_id, entry.document_id)
                except Exception as e:
                    error = self._classify(e, f"Failed to delete document {entry.document_id}")
                    logger.warning(
                        "%s [%s]; removing local entry anyway", error, error.kind.value
                    )
            else:
                logger.warning(
                    "No remote document id for '%s'; removing local entry only", entry.display_name
                )

            self._mirror.remove(entry)
            self.accounting.remove(entry.size_bytes)

        logger.info("File deleted: %s (%s)", entry.display_name, local_id)

    def list_files(self) -> list[FileInfo]:
        """
        Refresh the mirror from the remote listing and return it.

        Every refresh assigns new local ids. Never raises: without an active
        store, or when the remote listing fails, the last-known mirror is
        returned.
        """
        with self._lock:
            if self._state != OrchestratorState.STORE_ACTIVE:
                return list(self._mirror)

            try:
                documents = self.store.list_documents(self._store_id)
            except Exception as e:
                error = self._classify(e, f"Failed to list documents in {self._store_id}")
                logger.warning("%s [%s]; returning cached file list", error, error.kind.value)
                return list(self._mirror)

            self._mirror = [
                FileInfo(
                    local_id=_new_local_id(),
                    document_id=document.resource_name,
                    display_name=document.display_name,
                    mime_type=document.mime_type,
                    size_bytes=document.size_bytes,
                )
                for document in documents
            ]
            return list(self._mirror)

    def snapshot(self) -> list[FileInfo]:
        """Current mirror without contacting the remote store."""
        with self._lock:
            return list(self._mirror)

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(
        self,
        query: str,
        system_prompt: str,
        metadata_filter: Mapping[str, str] | None = None,
    ) -> SearchResult:
        """
        Run a grounded search over the session's documents.

        When the response carries no citations, one citation per mirror
        entry is synthesized so the answer is always attributed.

        Raises:
            NotInitializedError: If no store is active
            InvalidRequestError: If the query is blank
            NoDocumentsError: If nothing has been uploaded (no remote call is made)
            FileSearchError: Classified remote failure
        """
        with self._lock:
            store_id = self._require_active("search")
            files = list(self._mirror)

        if not query or not query.strip():
            raise InvalidRequestError("Search query cannot be empty")

        if not files:
            error = NoDocumentsError("No files uploaded. Please upload files before searching.")
            logger.error("%s [%s]", error, error.kind.value)
            raise error

        filter_expression = self.store.build_filter_expression(metadata_filter) or None

        try:
            response = self.store.search(store_id, query, system_prompt, filter_expression)
            text = extract_text(response)
            citations = extract_citations(response, text)
        except Exception as e:
            error = self._classify(e, "Search failed")
            logger.error("%s [%s]", error, error.kind.value)
            if error is e:
                raise
            raise error from e

        if not citations:
            citations = merge_citations(Citation(uri="", title=item.display_name) for item in files)

        logger.info("Search completed for query: %s", query[:50])
        return SearchResult(query=query, response=text, citations=tuple(citations))

    # -------------------------------------------------------------------------
    # Storage accounting
    # -------------------------------------------------------------------------

    def usage_percent(self) -> float:
        with self._lock:
            return self.accounting.usage_percent()

    def remaining_bytes(self) -> int:
        with self._lock:
            return self.accounting.remaining_bytes()

    def status_line(self) -> str:
        with self._lock:
            return self.accounting.status_line()
