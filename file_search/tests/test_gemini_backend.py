"""
Tests for the Gemini File Search backend with a mocked google-genai client.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

import pytest
from django.conf import settings

from file_search.backends.gemini import (
    GENERATION_MAX_OUTPUT_TOKENS,
    GENERATION_TEMPERATURE,
    GENERATION_TOP_K,
    GENERATION_TOP_P,
    GeminiFileSearchStore,
)
from file_search.credentials import StaticCredentialProvider
from file_search.exceptions import (
    NetworkError,
    NotFoundError,
    QuotaExceededError,
    RateLimitedError,
    UnauthenticatedError,
)


class FakeAPIError(Exception):
    def __init__(self, code, message):
        super().__init__(message)
        self.code = code
        self.message = message


@pytest.fixture
def mock_genai_client():
    """Mock genai.Client for testing."""
    with patch("file_search.backends.gemini.genai.Client") as mock_client:
        yield mock_client


@pytest.fixture
def gemini_store(mock_genai_client):
    return GeminiFileSearchStore(StaticCredentialProvider("test-api-key"))


def finished_operation(document_name="fileSearchStores/s1/documents/doc-1"):
    operation = Mock()
    operation.done = True
    operation.error = None
    operation.response = SimpleNamespace(document_name=document_name)
    return operation


class TestClient:
    def test_client_uses_configured_key(self, gemini_store, mock_genai_client):
        assert gemini_store.client is not None
        mock_genai_client.assert_called_once_with(api_key="test-api-key")

    def test_client_is_cached(self, gemini_store, mock_genai_client):
        assert gemini_store.client is gemini_store.client
        assert mock_genai_client.call_count == 1

    def test_missing_key_is_unauthenticated(self, mock_genai_client):
        store = GeminiFileSearchStore(StaticCredentialProvider(None))
        assert not store.has_credential()
        with pytest.raises(UnauthenticatedError):
            store.create_store("session")
        mock_genai_client.assert_not_called()

    def test_default_credentials_read_settings(self, mock_genai_client):
        with patch.object(settings, "GEMINI_API_KEY", "from-settings"):
            store = GeminiFileSearchStore()
            assert store.has_credential()
            store.client
        mock_genai_client.assert_called_once_with(api_key="from-settings")


class TestStores:
    def test_create_store(self, gemini_store):
        created = Mock()
        created.name = "fileSearchStores/s1"
        created.create_time = None
        gemini_store.client.file_search_stores.create.return_value = created

        info = gemini_store.create_store("ragskin-session-1")

        gemini_store.client.file_search_stores.create.assert_called_once_with(
            config={"display_name": "ragskin-session-1"}
        )
        assert info.store_id == "fileSearchStores/s1"
        assert info.display_name == "ragskin-session-1"
        assert info.backend == "gemini"

    def test_create_store_failure_is_classified(self, gemini_store):
        gemini_store.client.file_search_stores.create.side_effect = FakeAPIError(429, "slow down")

        with pytest.raises(RateLimitedError) as exc_info:
            gemini_store.create_store("s")

        assert exc_info.value.status_code == 429
        assert isinstance(exc_info.value.__cause__, FakeAPIError)

    def test_delete_store_forces_cascade(self, gemini_store):
        gemini_store.delete_store("fileSearchStores/s1")

        gemini_store.client.file_search_stores.delete.assert_called_once_with(
            name="fileSearchStores/s1", config={"force": True}
        )


class TestDocuments:
    def test_import_document(self, gemini_store):
        files = gemini_store.client.file_search_stores
        files.upload_to_file_search_store.return_value = finished_operation()

        doc = gemini_store.import_document(
            "fileSearchStores/s1", b"hello", "notes.txt", "text/plain", {"project": "alpha"}
        )

        kwargs = files.upload_to_file_search_store.call_args.kwargs
        assert kwargs["file_search_store_name"] == "fileSearchStores/s1"
        assert kwargs["file"].read() == b"hello"
        assert kwargs["config"] == {
            "display_name": "notes.txt",
            "mime_type": "text/plain",
            "custom_metadata": [{"key": "project", "string_value": "alpha"}],
        }
        assert doc.resource_name == "fileSearchStores/s1/documents/doc-1"
        assert doc.display_name == "notes.txt"
        assert doc.size_bytes == 5

    def test_import_polls_until_done(self, gemini_store):
        pending = Mock()
        pending.done = False
        pending.name = "operations/op-1"
        files = gemini_store.client.file_search_stores
        files.upload_to_file_search_store.return_value = pending
        gemini_store.client.operations.get.return_value = finished_operation()

        with patch("file_search.backends.gemini.time.sleep") as sleep:
            doc = gemini_store.import_document("fileSearchStores/s1", b"x", "a.md", "text/markdown")

        gemini_store.client.operations.get.assert_called_once_with(pending)
        sleep.assert_called_once()
        assert doc.resource_name == "fileSearchStores/s1/documents/doc-1"

    def test_import_without_waiting_leaves_name_empty(self, gemini_store):
        pending = Mock()
        pending.done = False
        pending.error = None
        pending.response = None
        gemini_store.client.file_search_stores.upload_to_file_search_store.return_value = pending

        with patch.object(settings, "FILE_SEARCH_WAIT_FOR_IMPORT", False):
            doc = gemini_store.import_document("fileSearchStores/s1", b"x", "a.md", "text/markdown")

        gemini_store.client.operations.get.assert_not_called()
        assert doc.resource_name == ""

    def test_rejected_import_is_classified(self, gemini_store):
        operation = finished_operation()
        operation.error = {"message": "Storage quota exceeded"}
        gemini_store.client.file_search_stores.upload_to_file_search_store.return_value = operation

        with pytest.raises(QuotaExceededError):
            gemini_store.import_document("fileSearchStores/s1", b"x", "a.txt", "text/plain")

    def test_list_documents(self, gemini_store):
        doc = Mock()
        doc.name = "fileSearchStores/s1/documents/d1"
        doc.display_name = "report.pdf"
        doc.mime_type = "application/pdf"
        doc.size_bytes = 2048
        gemini_store.client.file_search_stores.documents.list.return_value = iter([doc])

        documents = gemini_store.list_documents("fileSearchStores/s1")

        gemini_store.client.file_search_stores.documents.list.assert_called_once_with(
            parent="fileSearchStores/s1"
        )
        assert len(documents) == 1
        assert documents[0].resource_name == "fileSearchStores/s1/documents/d1"
        assert documents[0].size_bytes == 2048

    def test_delete_document_qualifies_bare_id(self, gemini_store):
        gemini_store.delete_document("fileSearchStores/s1", "d1")

        gemini_store.client.file_search_stores.documents.delete.assert_called_once_with(
            name="fileSearchStores/s1/documents/d1", config={"force": True}
        )

    def test_delete_missing_document(self, gemini_store):
        gemini_store.client.file_search_stores.documents.delete.side_effect = FakeAPIError(
            404, "Document not found"
        )

        with pytest.raises(NotFoundError):
            gemini_store.delete_document("fileSearchStores/s1", "fileSearchStores/s1/documents/d1")


class TestSearch:
    def test_search_request_shape(self, gemini_store):
        response = MagicMock()
        gemini_store.client.models.generate_content.return_value = response

        with patch.object(settings, "GEMINI_MODEL_ID", "gemini-test"):
            result = gemini_store.search(
                "fileSearchStores/s1", "What is X?", "Be brief.", 'metadata.project="alpha"'
            )

        assert result is response
        kwargs = gemini_store.client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["contents"] == "What is X?"
        config = kwargs["config"]
        assert "Be brief." in str(config.system_instruction)
        assert config.temperature == GENERATION_TEMPERATURE
        assert config.top_k == GENERATION_TOP_K
        assert config.top_p == GENERATION_TOP_P
        assert config.max_output_tokens == GENERATION_MAX_OUTPUT_TOKENS
        file_search = config.tools[0].file_search
        assert file_search.file_search_store_names == ["fileSearchStores/s1"]
        assert file_search.metadata_filter == 'metadata.project="alpha"'

    def test_search_without_filter(self, gemini_store):
        gemini_store.search("fileSearchStores/s1", "q", "prompt")

        config = gemini_store.client.models.generate_content.call_args.kwargs["config"]
        assert config.tools[0].file_search.metadata_filter is None

    def test_search_network_failure(self, gemini_store):
        gemini_store.client.models.generate_content.side_effect = ConnectionError("refused")

        with pytest.raises(NetworkError):
            gemini_store.search("fileSearchStores/s1", "q", "prompt")
