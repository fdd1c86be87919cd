"""
Corpus session management.

Manages the lifecycle of corpus sessions including:
- Creating one orchestrator (and one remote store) per session key
- Holding the session's query history and prompt configuration
- Deleting remote stores when sessions close or the process exits

Uses the configured file search backend via FileSearchRegistry.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence

from file_search import FileSearchRegistry
from file_search.types import SearchResult

from .history import QueryHistory
from .intake import guess_mime_type, validate_upload
from .orchestrator import CorpusOrchestrator, FileInfo
from .prompts import PromptConfig
from .rendering import Renderer, render_markdown

logger = logging.getLogger(__name__)


class CorpusSession:
    """
    Everything one client session owns: the orchestrator, its search
    history and its prompt configuration.
    """

    def __init__(
        self,
        key: str,
        orchestrator: CorpusOrchestrator,
        *,
        history: QueryHistory | None = None,
        prompts: PromptConfig | None = None,
    ):
        self.key = key
        self.orchestrator = orchestrator
        self.history = history or QueryHistory()
        self.prompts = prompts or PromptConfig()

    def upload_files(
        self,
        files: Sequence[tuple[str, bytes]],
        metadata: Mapping[str, str] | None = None,
    ) -> list[FileInfo]:
        """
        Validate every ``(filename, content)`` pair, then upload them in order.

        Raises:
            FileValidationError: If any file is rejected; nothing is uploaded
            FileSearchError: On the first failed upload; earlier files stay uploaded
        """
        for filename, content in files:
            validate_upload(filename, len(content))

        return [
            self.orchestrator.upload_file(content, filename, guess_mime_type(filename), metadata)
            for filename, content in files
        ]

    def search(
        self,
        query: str,
        metadata_filter: Mapping[str, str] | None = None,
        *,
        renderer: Renderer | None = None,
    ) -> SearchResult:
        """Search with the active prompt, render the answer and record it in history."""
        result = self.orchestrator.search(
            query, self.prompts.active_system_prompt(), metadata_filter
        )
        result = result.with_html(render_markdown(result.response, renderer))
        self.history.add(result)
        return result

    def close(self) -> None:
        self.orchestrator.close()


class CorpusSessionManager:
    """
    Maps opaque session keys to live corpus sessions.

    Sessions are created lazily; the orchestrator is initialised on first
    use and again on later lookups while it is still uninitialised (e.g.
    the credential was missing at first).
    """

    def __init__(self, backend: str | None = None):
        """
        Initialize the session manager.

        Args:
            backend: Optional backend name. If not provided, uses the default
                     from FILE_SEARCH_BACKEND setting or registry default.
        """
        self.backend = backend
        self._sessions: dict[str, CorpusSession] = {}
        self._lock = threading.Lock()

    def _create_session(self, key: str) -> CorpusSession:
        store = FileSearchRegistry.create(self.backend)
        return CorpusSession(key, CorpusOrchestrator(store))

    def get_or_create(self, key: str) -> CorpusSession:
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = self._create_session(key)
                self._sessions[key] = session
                logger.info("Created corpus session %s", key)

        session.orchestrator.init()
        return session

    def get(self, key: str) -> CorpusSession | None:
        with self._lock:
            return self._sessions.get(key)

    def close_session(self, key: str) -> bool:
        """
        Close a session and delete its store.

        Returns:
            True if a session was found and closed
        """
        with self._lock:
            session = self._sessions.pop(key, None)
        if session is None:
            return False

        session.close()
        logger.info("Closed corpus session %s", key)
        return True

    def close_all(self) -> int:
        """
        Close every live session.

        Returns:
            Number of sessions closed
        """
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        count = 0
        for session in sessions:
            try:
                session.close()
                count += 1
            except Exception as e:
                logger.error("Failed to close corpus session %s: %s", session.key, e)

        if count:
            logger.info("Closed %d corpus session(s)", count)
        return count

    def __len__(self) -> int:
        return len(self._sessions)


session_manager = CorpusSessionManager()


def get_session_manager() -> CorpusSessionManager:
    return session_manager
