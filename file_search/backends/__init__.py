"""
File Search Store backend implementations.

This package contains concrete implementations of the FileSearchStore
interface.

Available backends:
- gemini: Google Gemini File Search (production)
- memory: in-process keyword store (local development and tests)
"""

from .gemini import GeminiFileSearchStore
from .memory import InMemoryFileSearchStore

__all__ = ["GeminiFileSearchStore", "InMemoryFileSearchStore"]
