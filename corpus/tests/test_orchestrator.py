"""
Tests for CorpusOrchestrator against the in-memory backend.
"""

import logging
import threading
from unittest.mock import patch

import pytest
from django.conf import settings

from corpus.orchestrator import CorpusOrchestrator, OrchestratorState
from corpus.storage import StorageAccounting, StorageTier
from file_search.backends.memory import InMemoryFileSearchStore
from file_search.credentials import StaticCredentialProvider
from file_search.exceptions import (
    InvalidRequestError,
    NetworkError,
    NoDocumentsError,
    NotFoundError,
    NotInitializedError,
    QuotaExceededError,
    RemoteError,
)
from file_search.types import DocumentInfo

MIB = 1024 * 1024


@pytest.fixture
def store():
    return InMemoryFileSearchStore()


@pytest.fixture
def orchestrator(store):
    corpus = CorpusOrchestrator(store, accounting=StorageAccounting(StorageTier.FREE))
    assert corpus.init()
    return corpus


class TestLifecycle:
    def test_init_creates_store(self, store):
        corpus = CorpusOrchestrator(store, store_display_name="my-session")

        assert corpus.init() is True

        assert corpus.state == OrchestratorState.STORE_ACTIVE
        assert store.store_exists(corpus.store_id)
        assert store.calls == [("create_store", None)]

    def test_store_name_uses_prefix(self, store):
        with patch.object(settings, "FILE_SEARCH_STORE_PREFIX", "unit"):
            with patch.object(store, "create_store", wraps=store.create_store) as create_store:
                CorpusOrchestrator(store).init()

        assert create_store.call_args.args[0].startswith("unit-")

    def test_init_without_credential_stays_uninitialized(self, caplog):
        store = InMemoryFileSearchStore(StaticCredentialProvider(None))
        corpus = CorpusOrchestrator(store)

        with caplog.at_level(logging.WARNING, logger="corpus.orchestrator"):
            assert corpus.init() is False

        assert corpus.state == OrchestratorState.UNINITIALIZED
        assert store.calls == []
        assert "GEMINI_API_KEY not configured" in caplog.text

    def test_init_failure_is_absorbed_and_logged(self, store, caplog):
        store.fail_next("create_store", RemoteError("backend down", status_code=503))
        corpus = CorpusOrchestrator(store)

        with caplog.at_level(logging.ERROR, logger="corpus.orchestrator"):
            assert corpus.init() is False

        assert corpus.state == OrchestratorState.UNINITIALIZED
        assert "remote_error" in caplog.text
        # A later init can still succeed
        assert corpus.init() is True

    def test_init_twice_is_noop(self, orchestrator, store):
        store_id = orchestrator.store_id
        assert orchestrator.init() is True
        assert orchestrator.store_id == store_id
        assert store.calls.count(("create_store", None)) == 1

    def test_close_deletes_store_once(self, orchestrator, store):
        store_id = orchestrator.store_id

        orchestrator.close()
        orchestrator.close()

        assert orchestrator.state == OrchestratorState.CLOSED
        assert not store.store_exists(store_id)
        assert store.calls.count(("delete_store", store_id)) == 1

    def test_close_from_uninitialized_is_noop(self, store):
        corpus = CorpusOrchestrator(store)
        corpus.close()
        assert corpus.state == OrchestratorState.UNINITIALIZED
        assert store.calls == []

    def test_close_swallows_delete_failure(self, orchestrator, store):
        store.fail_next("delete_store", RemoteError("boom"))
        orchestrator.close()
        assert orchestrator.state == OrchestratorState.CLOSED

    def test_closed_orchestrator_cannot_be_reopened(self, orchestrator):
        orchestrator.close()
        assert orchestrator.init() is False
        with pytest.raises(NotInitializedError):
            orchestrator.upload_file(b"x", "a.txt", "text/plain")

    def test_context_manager(self, store):
        with CorpusOrchestrator(store) as corpus:
            store_id = corpus.store_id
            assert corpus.is_active
        assert corpus.state == OrchestratorState.CLOSED
        assert not store.store_exists(store_id)


class TestUninitialized:
    @pytest.fixture
    def corpus(self):
        return CorpusOrchestrator(InMemoryFileSearchStore(StaticCredentialProvider(None)))

    def test_list_files_returns_empty(self, corpus):
        assert corpus.list_files() == []

    def test_upload_fails_not_initialized(self, corpus):
        with pytest.raises(NotInitializedError):
            corpus.upload_file(b"data", "a.txt", "text/plain")

    def test_delete_fails_not_initialized(self, corpus):
        with pytest.raises(NotInitializedError):
            corpus.delete_file("anything")

    def test_search_fails_not_initialized(self, corpus):
        with pytest.raises(NotInitializedError):
            corpus.search("question", "prompt")


class TestUpload:
    def test_upload_appends_mirror_entry(self, orchestrator, store):
        info = orchestrator.upload_file(b"hello", "hello.txt", "text/plain", {"team": "core"})

        assert info.local_id
        assert info.document_id.startswith(f"{orchestrator.store_id}/documents/")
        assert info.display_name == "hello.txt"
        assert info.size_bytes == 5
        assert orchestrator.snapshot() == [info]
        assert orchestrator.accounting.usage_bytes == 5

    def test_local_ids_are_unique(self, orchestrator):
        first = orchestrator.upload_file(b"a", "a.txt", "text/plain")
        second = orchestrator.upload_file(b"a", "a.txt", "text/plain")
        assert first.local_id != second.local_id

    def test_declared_size_is_trusted(self, orchestrator):
        info = orchestrator.upload_file(b"small", "big.pdf", "application/pdf", size_bytes=10 * MIB)
        assert info.size_bytes == 10 * MIB
        assert info.display_size == "10.0 MB"

    def test_failed_upload_leaves_mirror_untouched(self, orchestrator, store):
        store.fail_next("import_document", QuotaExceededError("quota", status_code=429))

        with pytest.raises(QuotaExceededError) as exc_info:
            orchestrator.upload_file(b"data", "a.txt", "text/plain")

        assert exc_info.value.user_message.startswith("Storage quota exceeded")
        assert orchestrator.snapshot() == []
        assert orchestrator.usage_percent() == 0

    def test_unclassified_failure_is_classified(self, orchestrator, store):
        store.fail_next("import_document", ConnectionError("connection reset"))

        with pytest.raises(NetworkError) as exc_info:
            orchestrator.upload_file(b"data", "a.txt", "text/plain")

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_exceeding_tier_only_warns(self, store, caplog):
        corpus = CorpusOrchestrator(store, accounting=StorageAccounting(StorageTier.FREE))
        corpus.init()
        corpus.accounting.add(StorageTier.FREE.max_bytes)

        with caplog.at_level(logging.WARNING, logger="corpus.orchestrator"):
            info = corpus.upload_file(b"x", "extra.txt", "text/plain", size_bytes=MIB)

        assert info in corpus.snapshot()
        assert "exceeds" in caplog.text
        assert corpus.usage_percent() > 100

    def test_upload_text(self, orchestrator, store):
        info = orchestrator.upload_text("Project summary")

        assert info.display_name.startswith("project-summary-")
        assert info.display_name.endswith(".txt")
        assert info.mime_type == "text/plain"
        assert info.size_bytes == len("Project summary".encode("utf-8"))

    def test_upload_empty_text(self, orchestrator):
        with pytest.raises(InvalidRequestError):
            orchestrator.upload_text("   ")


class TestDelete:
    def test_upload_then_delete_restores_usage(self, orchestrator):
        """Uploading 10 MiB to the free tier uses ~0.98% until it is deleted."""
        info = orchestrator.upload_file(b"%PDF", "handbook.pdf", "application/pdf", size_bytes=10 * MIB)

        assert orchestrator.usage_percent() == pytest.approx(0.9765625)

        orchestrator.delete_file(info.local_id)

        assert orchestrator.usage_percent() == 0
        assert orchestrator.snapshot() == []

    def test_unknown_local_id_is_noop(self, orchestrator, store):
        info = orchestrator.upload_file(b"data", "a.txt", "text/plain")
        calls_before = list(store.calls)

        orchestrator.delete_file("not-a-real-id")

        assert orchestrator.snapshot() == [info]
        assert store.calls == calls_before

    def test_remote_failure_still_removes_entry(self, orchestrator, store, caplog):
        info = orchestrator.upload_file(b"data", "a.txt", "text/plain")
        store.fail_next("delete_document", RemoteError("unavailable", status_code=503))

        with caplog.at_level(logging.WARNING, logger="corpus.orchestrator"):
            orchestrator.delete_file(info.local_id)

        assert orchestrator.snapshot() == []
        assert orchestrator.accounting.usage_bytes == 0
        assert "remote_error" in caplog.text

    def test_document_already_gone_remotely(self, orchestrator, store):
        info = orchestrator.upload_file(b"data", "a.txt", "text/plain")
        store.remove_remotely(orchestrator.store_id, info.document_id)

        orchestrator.delete_file(info.local_id)

        assert orchestrator.snapshot() == []

    def test_missing_document_id_skips_remote_call(self, orchestrator, store):
        pending = DocumentInfo(resource_name="", display_name="a.txt", mime_type="text/plain", size_bytes=4)
        with patch.object(store, "import_document", return_value=pending):
            info = orchestrator.upload_file(b"data", "a.txt", "text/plain")

        assert info.document_id == ""
        orchestrator.delete_file(info.local_id)

        assert ("delete_document", orchestrator.store_id) not in store.calls
        assert orchestrator.snapshot() == []


class TestListFiles:
    def test_refresh_replaces_mirror_with_new_ids(self, orchestrator):
        info = orchestrator.upload_file(b"data", "a.txt", "text/plain")

        files = orchestrator.list_files()

        assert len(files) == 1
        assert files[0].document_id == info.document_id
        assert files[0].local_id != info.local_id

    def test_refresh_reconciles_remote_deletes(self, orchestrator, store):
        keep = orchestrator.upload_file(b"one", "one.txt", "text/plain")
        gone = orchestrator.upload_file(b"two", "two.txt", "text/plain")
        store.remove_remotely(orchestrator.store_id, gone.document_id)

        files = orchestrator.list_files()

        assert [f.document_id for f in files] == [keep.document_id]

    def test_listing_failure_returns_stale_mirror(self, orchestrator, store, caplog):
        info = orchestrator.upload_file(b"data", "a.txt", "text/plain")
        store.fail_next("list_documents", RemoteError("down", status_code=500))

        with caplog.at_level(logging.WARNING, logger="corpus.orchestrator"):
            files = orchestrator.list_files()

        assert files == [info]
        assert "returning cached file list" in caplog.text

    def test_returned_list_is_a_snapshot(self, orchestrator):
        orchestrator.upload_file(b"data", "a.txt", "text/plain")
        files = orchestrator.list_files()
        files.clear()
        assert len(orchestrator.snapshot()) == 1


class TestSearch:
    def test_empty_mirror_fails_before_remote_call(self, orchestrator, store):
        with pytest.raises(NoDocumentsError) as exc_info:
            orchestrator.search("What is this?", "prompt")

        assert exc_info.value.user_message == "No files uploaded. Please upload files before searching."
        assert ("search", orchestrator.store_id) not in store.calls

    def test_blank_query(self, orchestrator):
        orchestrator.upload_file(b"data", "a.txt", "text/plain")
        with pytest.raises(InvalidRequestError):
            orchestrator.search("  ", "prompt")

    def test_search_returns_grounded_result(self, orchestrator):
        orchestrator.upload_file(b"Retries back off exponentially.", "retry.md", "text/markdown")

        result = orchestrator.search("How do retries behave?", "Be brief.")

        assert result.query == "How do retries behave?"
        assert "retry.md" in result.response
        assert result.citation_labels == ["retry.md"]
        assert result.response_html == ""

    def test_no_citations_fall_back_to_mirror(self, orchestrator):
        orchestrator.upload_file(b"alpha", "a.txt", "text/plain")
        orchestrator.upload_file(b"beta", "b.txt", "text/plain")

        result = orchestrator.search("unrelated question", "prompt")

        assert [(c.uri, c.title, c.start_index, c.end_index) for c in result.citations] == [
            ("", "a.txt", -1, -1),
            ("", "b.txt", -1, -1),
        ]

    def test_metadata_filter_is_forwarded(self, orchestrator, store):
        orchestrator.upload_file(b"release notes", "alpha.txt", "text/plain", {"project": "alpha"})
        orchestrator.upload_file(b"release notes", "beta.txt", "text/plain", {"project": "beta"})

        with patch.object(store, "search", wraps=store.search) as search:
            result = orchestrator.search("release notes", "prompt", {"project": "beta"})

        assert search.call_args.args[3] == 'metadata.project="beta"'
        assert result.citation_labels == ["beta.txt"]

    def test_remote_failure_propagates(self, orchestrator, store):
        orchestrator.upload_file(b"data", "a.txt", "text/plain")
        store.fail_next("search", NotFoundError("store gone", status_code=404))

        with pytest.raises(NotFoundError):
            orchestrator.search("data please", "prompt")


class TestAccountingGetters:
    def test_status_line(self, orchestrator):
        orchestrator.upload_file(b"x", "a.txt", "text/plain", size_bytes=512 * MIB)
        assert orchestrator.status_line() == "Free (1 GB): 512.0 MB / 1.0 GB (50.0% full)"
        assert orchestrator.remaining_bytes() == 512 * MIB


def test_concurrent_uploads_are_all_recorded(orchestrator):
    def upload(index):
        orchestrator.upload_file(b"x" * 10, f"file-{index}.txt", "text/plain")

    threads = [threading.Thread(target=upload, args=(i,)) for i in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(orchestrator.snapshot()) == 20
    assert orchestrator.accounting.usage_bytes == 200
    assert len(orchestrator.list_files()) == 20
