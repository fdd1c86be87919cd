"""
Type definitions for File Search Store interface.

These dataclasses provide a standardized representation of store metadata,
imported documents, citations and search results across all backends.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime

NO_OFFSET = -1


@dataclass(frozen=True)
class StoreInfo:
    """
    Metadata about a file search store.

    ``store_id`` is the opaque resource name returned by the backend
    (e.g. ``fileSearchStores/xyz123``).
    """

    store_id: str
    display_name: str
    backend: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class DocumentInfo:
    """
    A document imported into a store.

    ``resource_name`` is the authoritative remote key
    (``<store_id>/documents/<doc_id>``) and may be empty when the backend
    accepted the import but has not reported the document name yet.
    """

    resource_name: str
    display_name: str
    mime_type: str
    size_bytes: int = 0


def _label_from_uri(uri: str | None) -> str:
    """Last path segment of a document URI, e.g. ``stores/x/documents/abc`` -> ``abc``."""
    if not uri:
        return "Unknown"
    tail = uri.rstrip("/").rsplit("/", 1)[-1]
    return tail or uri


@dataclass(frozen=True, eq=False)
class Citation:
    """
    Pointer from a generated answer back to a grounding document.

    Offsets are character positions into the response text; ``-1`` means
    no offset is available. Two citations are equal when their
    ``(uri, title)`` pair is equal, regardless of offsets or excerpt.
    """

    uri: str = ""
    title: str = ""
    start_index: int = NO_OFFSET
    end_index: int = NO_OFFSET
    excerpt: str | None = None

    def __post_init__(self):
        if not self.title:
            object.__setattr__(self, "title", _label_from_uri(self.uri))

    @property
    def key(self) -> tuple[str, str]:
        return (self.uri or "", self.title)

    @property
    def has_excerpt(self) -> bool:
        return bool(self.excerpt)

    @property
    def offset_info(self) -> str:
        if self.start_index < 0 or self.end_index < 0:
            return ""
        return f"(chars {self.start_index}-{self.end_index})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Citation):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        offset = self.offset_info
        return f"{self.title} {offset}" if offset else self.title


@dataclass(frozen=True)
class SearchResult:
    """
    Immutable result of a grounded search.

    ``response_html`` starts empty; the caller fills it through
    ``with_html`` after rendering ``response`` with a markdown renderer.
    """

    query: str
    response: str
    citations: tuple[Citation, ...] = ()
    response_html: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def citation_labels(self) -> list[str]:
        return [citation.title for citation in self.citations]

    @property
    def has_citations(self) -> bool:
        return bool(self.citations)

    @property
    def formatted_timestamp(self) -> str:
        hour = self.timestamp.strftime("%I").lstrip("0") or "12"
        return f"{self.timestamp:%b} {self.timestamp.day}, {self.timestamp:%Y} {hour}:{self.timestamp:%M %p}"

    def with_html(self, response_html: str) -> SearchResult:
        return dataclasses.replace(self, response_html=response_html)
