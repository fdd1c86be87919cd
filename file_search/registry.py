"""
Registry for File Search Store backend implementations.

Provides a central registry for registering and retrieving file search
backend implementations, with support for a configurable default backend.
"""

from django.conf import settings

from .base import FileSearchStore
from .credentials import CredentialProvider
from .exceptions import InvalidRequestError


class BackendNotFoundError(InvalidRequestError):
    """Requested backend is not registered."""

    pass


class FileSearchRegistry:
    """
    Registry for file search backend implementations.

    Usage:
        # Register a backend
        FileSearchRegistry.register('gemini', GeminiFileSearchStore)

        # Get the default backend (FILE_SEARCH_BACKEND setting or registry default)
        store = FileSearchRegistry.get()

        # Fresh, uncached instance with its own credentials
        store = FileSearchRegistry.create('gemini', credentials=provider)
    """

    _backends: dict[str, type[FileSearchStore]] = {}
    _instances: dict[str, FileSearchStore] = {}
    _default: str | None = None
    _ensure_backends: callable = None  # Set by file_search/__init__.py
    _backends_loaded: bool = False

    @classmethod
    def _load_backends(cls) -> None:
        """Ensure backends are loaded (lazy initialization)."""
        if not cls._backends_loaded and cls._ensure_backends is not None:
            cls._backends_loaded = True
            cls._ensure_backends()

    @classmethod
    def register(
        cls,
        name: str,
        backend_class: type[FileSearchStore],
        *,
        set_default: bool = False,
    ) -> None:
        """
        Register a backend implementation.

        Args:
            name: Unique identifier for the backend
            backend_class: FileSearchStore subclass
            set_default: If True, set this as the default backend
        """
        if not issubclass(backend_class, FileSearchStore):
            raise TypeError(
                f"Backend class must be a subclass of FileSearchStore, got {backend_class.__name__}"
            )

        cls._backends[name] = backend_class

        if set_default or cls._default is None:
            cls._default = name

    @classmethod
    def _resolve_name(cls, name: str | None) -> str:
        cls._load_backends()

        backend_name = name or getattr(settings, "FILE_SEARCH_BACKEND", None) or cls._default
        if backend_name is None:
            raise BackendNotFoundError(
                "No file search backend configured. "
                "Set FILE_SEARCH_BACKEND in settings or register a default backend."
            )

        if backend_name not in cls._backends:
            available = ", ".join(cls._backends.keys()) or "none"
            raise BackendNotFoundError(
                f"Backend '{backend_name}' not found. Available: {available}"
            )
        return backend_name

    @classmethod
    def get(cls, name: str | None = None) -> FileSearchStore:
        """
        Get a shared backend instance by name or the default.

        Raises:
            BackendNotFoundError: If backend not registered or none configured
        """
        backend_name = cls._resolve_name(name)

        if backend_name not in cls._instances:
            cls._instances[backend_name] = cls._backends[backend_name]()

        return cls._instances[backend_name]

    @classmethod
    def create(
        cls,
        name: str | None = None,
        *,
        credentials: CredentialProvider | None = None,
    ) -> FileSearchStore:
        """Create a new, uncached backend instance."""
        backend_name = cls._resolve_name(name)
        return cls._backends[backend_name](credentials=credentials)

    @classmethod
    def list_backends(cls) -> list[str]:
        cls._load_backends()
        return list(cls._backends.keys())

    @classmethod
    def clear_instances(cls) -> None:
        """
        Drop cached backend instances.

        Primarily for testing purposes.
        """
        cls._instances.clear()
