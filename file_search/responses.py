"""
Parsing of grounded-generation responses into domain objects.

Works on ``google.genai.types.GenerateContentResponse`` and on any object of
the same attribute shape, reading fields defensively with ``getattr`` since
every level of the response is optional.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from .exceptions import InvalidRequestError
from .types import NO_OFFSET, Citation

logger = logging.getLogger(__name__)


def _first_candidate(response: Any):
    candidates = getattr(response, "candidates", None) or []
    return candidates[0] if candidates else None


def _offset(value) -> int:
    return value if isinstance(value, int) and value >= 0 else NO_OFFSET


def extract_text(response: Any) -> str:
    """Return the generated text of the first candidate, or ``""``."""
    if response is None:
        raise InvalidRequestError("Malformed search response: empty payload")

    try:
        text = getattr(response, "text", None)
    except (AttributeError, ValueError):
        text = None
    if isinstance(text, str):
        return text

    candidate = _first_candidate(response)
    content = getattr(candidate, "content", None)
    parts = getattr(content, "parts", None) or []
    return "".join(getattr(part, "text", None) or "" for part in parts)


def _char_offset(encoded: bytes, byte_index: int) -> int:
    """Convert a UTF-8 byte offset into a character offset of the same text."""
    if byte_index == NO_OFFSET:
        return NO_OFFSET
    return len(encoded[:byte_index].decode("utf-8", "ignore"))


def _grounding_chunk_offsets(grounding, text: str) -> dict[int, tuple[int, int]]:
    """
    Map each grounding chunk index to the first response segment it supports.

    Segments are reported in UTF-8 bytes; the returned offsets are character
    positions into ``text``. Zero-valued fields are omitted on the wire, so a
    segment with an end but no start begins at 0.
    """
    encoded = text.encode("utf-8")
    offsets: dict[int, tuple[int, int]] = {}
    for support in getattr(grounding, "grounding_supports", None) or []:
        segment = getattr(support, "segment", None)
        if segment is None:
            continue
        end = _offset(getattr(segment, "end_index", None))
        start = NO_OFFSET
        if end != NO_OFFSET:
            start = _offset(getattr(segment, "start_index", None) or 0)
        start, end = _char_offset(encoded, start), _char_offset(encoded, end)
        for index in getattr(support, "grounding_chunk_indices", None) or []:
            offsets.setdefault(index, (start, end))
    return offsets


def extract_citations(response: Any, text: str | None = None) -> list[Citation]:
    """
    Collect citations from a response, deduplicated by ``(uri, title)``.

    Both explicit citation metadata and file search grounding chunks are
    read; the first occurrence of each ``(uri, title)`` pair wins. Grounding
    offsets index into ``text``, which defaults to the extracted response text.
    """
    candidate = _first_candidate(response)
    if candidate is None:
        return []
    if text is None:
        text = extract_text(response)

    citations: list[Citation] = []

    citation_metadata = getattr(candidate, "citation_metadata", None)
    for source in getattr(citation_metadata, "citations", None) or []:
        citations.append(
            Citation(
                uri=getattr(source, "uri", None) or "",
                title=getattr(source, "title", None) or "",
                start_index=_offset(getattr(source, "start_index", None)),
                end_index=_offset(getattr(source, "end_index", None)),
            )
        )

    grounding = getattr(candidate, "grounding_metadata", None)
    if grounding is not None:
        offsets = _grounding_chunk_offsets(grounding, text)
        for index, chunk in enumerate(getattr(grounding, "grounding_chunks", None) or []):
            context = getattr(chunk, "retrieved_context", None)
            if context is None:
                continue
            start, end = offsets.get(index, (NO_OFFSET, NO_OFFSET))
            citations.append(
                Citation(
                    uri=getattr(context, "uri", None) or "",
                    title=getattr(context, "title", None) or "",
                    start_index=start,
                    end_index=end,
                    excerpt=getattr(context, "text", None),
                )
            )

    merged = merge_citations(citations)
    logger.debug("Extracted %d citations (%d before dedup)", len(merged), len(citations))
    return merged


def merge_citations(citations: Iterable[Citation]) -> list[Citation]:
    """Drop citations whose ``(uri, title)`` pair was already seen, keeping order."""
    seen: set[Citation] = set()
    merged: list[Citation] = []
    for citation in citations:
        if citation in seen:
            continue
        seen.add(citation)
        merged.append(citation)
    return merged
