"""
Pydantic schemas for the corpus API.
"""

from __future__ import annotations

from datetime import datetime

from ninja import Schema


class FileInfoSchema(Schema):
    """One uploaded document."""

    local_id: str
    document_id: str
    display_name: str
    mime_type: str
    size_bytes: int
    display_size: str


class StorageStatusSchema(Schema):
    """Client-side storage estimate for the session."""

    tier: str
    tier_display_name: str
    used_bytes: int
    capacity_bytes: int
    usage_percent: float
    remaining_bytes: int
    remaining_formatted: str
    status_line: str


class FileListResponse(Schema):
    files: list[FileInfoSchema]
    storage: StorageStatusSchema


class UploadResponse(Schema):
    files: list[FileInfoSchema]
    storage: StorageStatusSchema


class UploadTextRequest(Schema):
    """Upload pasted text as a plain-text document."""

    text: str
    metadata: dict[str, str] = {}


class DeleteResponse(Schema):
    success: bool


class SearchRequest(Schema):
    """Request to run a grounded search."""

    query: str
    metadata_filter: dict[str, str] | None = None
    prompt_index: int | None = None  # 0 = base prompt, N = architecture prompt N


class CitationSchema(Schema):
    uri: str
    title: str
    start_index: int
    end_index: int
    excerpt: str | None = None
    offset_info: str


class SearchResultSchema(Schema):
    query: str
    response: str
    response_html: str
    citations: list[CitationSchema]
    timestamp: datetime
    formatted_timestamp: str


class HistoryResponse(Schema):
    results: list[SearchResultSchema]


class PromptsSchema(Schema):
    system_prompt: str
    architecture_prompts: list[str]
    selected_index: int = 0

