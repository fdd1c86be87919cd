"""
Gemini File Search backend implementation.

Integrates with Google Gemini's File Search API for creating searchable
document stores and performing grounded question answering against them.
"""

from __future__ import annotations

import io
import logging
import time
from collections.abc import Mapping

from django.conf import settings
from google import genai
from google.genai import types

from ..base import FileSearchStore
from ..credentials import CredentialProvider
from ..exceptions import FileSearchError, UnauthenticatedError, error_from_exception
from ..registry import FileSearchRegistry
from ..types import DocumentInfo, StoreInfo

logger = logging.getLogger(__name__)

# Fixed generation defaults for grounded search.
GENERATION_TEMPERATURE = 0.7
GENERATION_TOP_K = 40
GENERATION_TOP_P = 0.95
GENERATION_MAX_OUTPUT_TOKENS = 8192


class GeminiFileSearchStore(FileSearchStore):
    """
    File search backend using Google Gemini File Search API.

    Handles:
    - Creating and deleting File Search stores
    - Importing documents with metadata for filtering and citations
    - Listing and deleting individual documents
    - Performing grounded generation restricted to a store
    """

    def __init__(self, credentials: CredentialProvider | None = None):
        super().__init__(credentials)
        self._client = None
        self._client_key = None

    @property
    def backend_name(self) -> str:
        return "gemini"

    @property
    def client(self) -> genai.Client:
        """Gemini client for the current credential, created on first use."""
        api_key = self.credentials.get_credential()
        if not api_key:
            raise UnauthenticatedError(
                "GEMINI_API_KEY not configured. Please set GEMINI_API_KEY in your environment."
            )
        if self._client is None or self._client_key != api_key:
            self._client = genai.Client(api_key=api_key)
            self._client_key = api_key
        return self._client

    def _fail(self, error: Exception, context: str) -> FileSearchError:
        classified = error_from_exception(error, context)
        logger.error("%s [%s]: %s", context, classified.kind.value, error)
        return classified

    # -------------------------------------------------------------------------
    # Store Lifecycle
    # -------------------------------------------------------------------------

    def create_store(self, display_name: str) -> StoreInfo:
        """Create a new Gemini File Search store."""
        client = self.client
        try:
            file_search_store = client.file_search_stores.create(
                config={"display_name": display_name}
            )
        except Exception as e:
            raise self._fail(e, "Failed to create File Search store") from e

        logger.info("File Search store created: %s", file_search_store.name)
        return StoreInfo(
            store_id=file_search_store.name,
            display_name=display_name,
            backend=self.backend_name,
            created_at=getattr(file_search_store, "create_time", None),
        )

    def delete_store(self, store_id: str) -> None:
        """Delete a Gemini File Search store together with its documents."""
        client = self.client
        try:
            client.file_search_stores.delete(name=store_id, config={"force": True})
        except Exception as e:
            raise self._fail(e, f"Failed to delete File Search store {store_id}") from e

        logger.info("File Search store deleted: %s", store_id)

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
        """
        Upload file bytes into a Gemini File Search store.

        The upload returns a long-running operation. When
        ``FILE_SEARCH_WAIT_FOR_IMPORT`` is enabled the operation is polled until
        it reports the document resource name or ``FILE_SEARCH_IMPORT_TIMEOUT``
        elapses; otherwise the document name is left empty and is picked up by
        the next listing.
        """
        client = self.client
        config = {
            "display_name": filename,
            "mime_type": mime_type,
        }
        if metadata:
            config["custom_metadata"] = self._build_custom_metadata(metadata)

        try:
            operation = client.file_search_stores.upload_to_file_search_store(
                file=io.BytesIO(content),
                file_search_store_name=store_id,
                config=config,
            )
            operation = self._wait_for_operation(operation)
        except Exception as e:
            raise self._fail(e, f"Failed to import '{filename}' into {store_id}") from e

        error = getattr(operation, "error", None)
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise self._fail(RuntimeError(message), f"Import of '{filename}' was rejected")

        document_name = ""
        response = getattr(operation, "response", None)
        if response is not None:
            document_name = (
                getattr(response, "document_name", None) or getattr(response, "name", None) or ""
            )

        logger.info("File imported: %s -> %s (%s)", filename, store_id, document_name or "pending")
        return DocumentInfo(
            resource_name=document_name,
            display_name=filename,
            mime_type=mime_type,
            size_bytes=len(content),
        )

    def _wait_for_operation(self, operation):
        if not getattr(settings, "FILE_SEARCH_WAIT_FOR_IMPORT", True):
            return operation

        poll_interval = getattr(settings, "FILE_SEARCH_POLL_INTERVAL", 2)
        deadline = time.monotonic() + getattr(settings, "FILE_SEARCH_IMPORT_TIMEOUT", 300)
        while not operation.done:
            if time.monotonic() >= deadline:
                logger.warning("Import operation %s still running; not waiting further", operation.name)
                break
            time.sleep(poll_interval)
            operation = self.client.operations.get(operation)
        return operation

    def list_documents(self, store_id: str) -> list[DocumentInfo]:
        """List every document in a store; the SDK pager fetches all pages."""
        client = self.client
        try:
            documents = [
                DocumentInfo(
                    resource_name=doc.name or "",
                    display_name=doc.display_name or doc.name or "",
                    mime_type=doc.mime_type or "application/octet-stream",
                    size_bytes=int(doc.size_bytes or 0),
                )
                for doc in client.file_search_stores.documents.list(parent=store_id)
            ]
        except Exception as e:
            raise self._fail(e, f"Failed to list documents in {store_id}") from e

        logger.info("Listed %d documents from store %s", len(documents), store_id)
        return documents

    def delete_document(self, store_id: str, document_id: str) -> None:
        client = self.client
        name = self.document_resource_name(store_id, document_id)
        try:
            client.file_search_stores.documents.delete(name=name, config={"force": True})
        except Exception as e:
            raise self._fail(e, f"Failed to delete document {name}") from e

        logger.info("Document deleted from store: %s", name)

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
        """Run one grounded generation request restricted to the store."""
        client = self.client
        file_search_config = {"file_search_store_names": [store_id]}
        if filter_expression:
            file_search_config["metadata_filter"] = filter_expression

        try:
            return client.models.generate_content(
                model=getattr(settings, "GEMINI_MODEL_ID", "gemini-2.5-flash"),
                contents=query,
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt or None,
                    temperature=GENERATION_TEMPERATURE,
                    top_k=GENERATION_TOP_K,
                    top_p=GENERATION_TOP_P,
                    max_output_tokens=GENERATION_MAX_OUTPUT_TOKENS,
                    tools=[types.Tool(file_search=types.FileSearch(**file_search_config))],
                ),
            )
        except Exception as e:
            raise self._fail(e, f"Search failed for store {store_id}") from e

    # -------------------------------------------------------------------------
    # Gemini-specific helpers
    # -------------------------------------------------------------------------

    def _build_custom_metadata(self, metadata: Mapping[str, str]) -> list[dict]:
        """Convert a metadata dict to Gemini custom_metadata entries."""
        return [
            {"key": key, "string_value": str(value)}
            for key, value in metadata.items()
            if value is not None
        ]


# Register as default backend
FileSearchRegistry.register("gemini", GeminiFileSearchStore, set_default=True)
