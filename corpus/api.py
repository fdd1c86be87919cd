"""
Django Ninja API for corpus endpoints.

Each browser session owns one corpus session (and one remote store), keyed
by an opaque id kept in the Django session.
"""

import json
import logging
import uuid

from asgiref.sync import sync_to_async
from ninja import File, Form, Router, UploadedFile
from ninja.errors import HttpError

from file_search.classifier import ErrorKind
from file_search.exceptions import FileSearchError

from .intake import FileValidationError
from .orchestrator import FileInfo
from .schemas import (
    DeleteResponse,
    FileListResponse,
    HistoryResponse,
    PromptsSchema,
    SearchRequest,
    SearchResultSchema,
    StorageStatusSchema,
    UploadResponse,
    UploadTextRequest,
)
from .sessions import CorpusSession, get_session_manager

router = Router(tags=["corpus"])
logger = logging.getLogger(__name__)

SESSION_KEY = "corpus_session_id"

HTTP_STATUS_BY_KIND = {
    ErrorKind.NOT_INITIALIZED: 503,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FILE_TOO_LARGE: 413,
    ErrorKind.QUOTA_EXCEEDED: 507,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.NETWORK_ERROR: 502,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.REMOTE_ERROR: 502,
    ErrorKind.NO_DOCUMENTS: 409,
    ErrorKind.UNKNOWN: 500,
}


def http_error_for(error: FileSearchError) -> HttpError:
    return HttpError(HTTP_STATUS_BY_KIND.get(error.kind, 500), error.user_message)


def _get_session(request) -> CorpusSession:
    """Corpus session for the request, created on first use."""
    key = request.session.get(SESSION_KEY)
    if not key:
        key = uuid.uuid4().hex
        request.session[SESSION_KEY] = key
    return get_session_manager().get_or_create(key)


def _file_payload(file_info: FileInfo) -> dict:
    return {
        "local_id": file_info.local_id,
        "document_id": file_info.document_id,
        "display_name": file_info.display_name,
        "mime_type": file_info.mime_type,
        "size_bytes": file_info.size_bytes,
        "display_size": file_info.display_size,
    }


def _storage_payload(session: CorpusSession) -> dict:
    orchestrator = session.orchestrator
    accounting = orchestrator.accounting
    return {
        "tier": accounting.tier.identifier,
        "tier_display_name": accounting.tier.display_name,
        "used_bytes": accounting.usage_bytes,
        "capacity_bytes": accounting.capacity_bytes,
        "usage_percent": orchestrator.usage_percent(),
        "remaining_bytes": orchestrator.remaining_bytes(),
        "remaining_formatted": accounting.remaining_formatted(),
        "status_line": orchestrator.status_line(),
    }


def _result_payload(result) -> dict:
    return {
        "query": result.query,
        "response": result.response,
        "response_html": result.response_html,
        "citations": [
            {
                "uri": citation.uri,
                "title": citation.title,
                "start_index": citation.start_index,
                "end_index": citation.end_index,
                "excerpt": citation.excerpt,
                "offset_info": citation.offset_info,
            }
            for citation in result.citations
        ],
        "timestamp": result.timestamp,
        "formatted_timestamp": result.formatted_timestamp,
    }


def _parse_metadata(raw: str | None) -> dict[str, str] | None:
    if not raw:
        return None
    try:
        metadata = json.loads(raw)
    except json.JSONDecodeError:
        raise HttpError(400, "metadata must be a JSON object of string values")
    if not isinstance(metadata, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in metadata.items()
    ):
        raise HttpError(400, "metadata must be a JSON object of string values")
    return metadata


@router.get("/files", response=FileListResponse)
async def list_files(request):
    """
    List the session's documents, refreshed from the remote store.

    Never fails on a remote error; the last-known list is returned instead.
    """

    @sync_to_async
    def _list_files():
        session = _get_session(request)
        files = session.orchestrator.list_files()
        return {
            "files": [_file_payload(item) for item in files],
            "storage": _storage_payload(session),
        }

    return await _list_files()


@router.post("/files", response=UploadResponse)
async def upload_files(
    request,
    files: list[UploadedFile] = File(...),
    metadata: str | None = Form(None),
):
    """
    Upload one or more files into the session's store.

    Args:
        request: Django request object
        files: Files to upload; all are validated before any is sent
        metadata: Optional JSON object of string tags applied to every file

    Returns:
        The uploaded files and the updated storage status
    """
    tags = _parse_metadata(metadata)

    @sync_to_async
    def _upload_files():
        session = _get_session(request)
        try:
            uploaded = session.upload_files(
                [(upload.name, upload.read()) for upload in files], tags
            )
        except FileValidationError as e:
            raise HttpError(400, str(e))
        except FileSearchError as e:
            raise http_error_for(e)
        return {
            "files": [_file_payload(item) for item in uploaded],
            "storage": _storage_payload(session),
        }

    return await _upload_files()


@router.post("/files/text", response=UploadResponse)
async def upload_text(request, payload: UploadTextRequest):
    """Upload pasted text as a ``project-summary-<timestamp>.txt`` document."""

    @sync_to_async
    def _upload_text():
        session = _get_session(request)
        try:
            file_info = session.orchestrator.upload_text(payload.text, payload.metadata or None)
        except FileSearchError as e:
            raise http_error_for(e)
        return {
            "files": [_file_payload(file_info)],
            "storage": _storage_payload(session),
        }

    return await _upload_text()


@router.delete("/files/{local_id}", response=DeleteResponse)
async def delete_file(request, local_id: str):
    """
    Delete a document by its local id.

    Unknown ids and remote failures still report success; the local entry
    is removed either way.
    """

    @sync_to_async
    def _delete_file():
        session = _get_session(request)
        try:
            session.orchestrator.delete_file(local_id)
        except FileSearchError as e:
            raise http_error_for(e)

    await _delete_file()
    return DeleteResponse(success=True)


@router.post("/search", response=SearchResultSchema)
async def search(request, payload: SearchRequest):
    """
    Run a grounded search over the session's documents.

    The answer is rendered to HTML and recorded in the session's history.
    """

    @sync_to_async
    def _search():
        session = _get_session(request)
        if payload.prompt_index is not None:
            try:
                session.prompts.select(payload.prompt_index)
            except ValueError as e:
                raise HttpError(400, str(e))
        try:
            result = session.search(payload.query, payload.metadata_filter)
        except FileSearchError as e:
            raise http_error_for(e)
        return _result_payload(result)

    return await _search()


@router.get("/history", response=HistoryResponse)
async def get_history(request):
    """Search results of this session, most recent first."""

    @sync_to_async
    def _get_history():
        session = _get_session(request)
        return {"results": [_result_payload(result) for result in session.history.results]}

    return await _get_history()


@router.delete("/history", response=DeleteResponse)
async def clear_history(request):
    @sync_to_async
    def _clear_history():
        _get_session(request).history.clear()

    await _clear_history()
    return DeleteResponse(success=True)


@router.get("/storage", response=StorageStatusSchema)
async def get_storage(request):
    @sync_to_async
    def _get_storage():
        return _storage_payload(_get_session(request))

    return await _get_storage()


@router.get("/prompts", response=PromptsSchema)
async def get_prompts(request):
    @sync_to_async
    def _get_prompts():
        prompts = _get_session(request).prompts
        return {
            "system_prompt": prompts.system_prompt,
            "architecture_prompts": list(prompts.architecture_prompts),
            "selected_index": prompts.selected_index,
        }

    return await _get_prompts()


@router.put("/prompts", response=PromptsSchema)
async def update_prompts(request, payload: PromptsSchema):
    """Replace the session's prompts and select one of them."""
    if not payload.system_prompt.strip():
        raise HttpError(400, "System prompt cannot be empty")

    @sync_to_async
    def _update_prompts():
        prompts = _get_session(request).prompts
        prompts.save(payload.system_prompt, payload.architecture_prompts)
        try:
            prompts.select(payload.selected_index)
        except ValueError as e:
            raise HttpError(400, str(e))
        return {
            "system_prompt": prompts.system_prompt,
            "architecture_prompts": list(prompts.architecture_prompts),
            "selected_index": prompts.selected_index,
        }

    return await _update_prompts()


@router.delete("/session", response=DeleteResponse)
async def close_session(request):
    """Close the session's corpus and delete its remote store."""

    @sync_to_async
    def _close_session():
        key = request.session.pop(SESSION_KEY, None)
        if not key:
            return False
        return get_session_manager().close_session(key)

    closed = await _close_session()
    return DeleteResponse(success=closed)
