"""
File intake: MIME type lookup and upload validation.

Sits in front of the orchestrator; the orchestrator itself accepts whatever
MIME type and declared size it is given.
"""

from __future__ import annotations

import logging
from pathlib import PurePath

from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
DEFAULT_MAX_UPLOAD_SIZE = 100 * 1024 * 1024

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".odt": "application/vnd.oasis.opendocument.text",
    ".rtf": "application/rtf",
    ".csv": "text/csv",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".ods": "application/vnd.oasis.opendocument.spreadsheet",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".odp": "application/vnd.oasis.opendocument.presentation",
    ".txt": "text/plain",
    ".log": "text/plain",
    ".md": "text/markdown",
    ".html": "text/html",
    ".htm": "text/html",
    ".xml": "application/xml",
    ".json": "application/json",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".toml": "text/plain",
    ".py": "text/x-python",
    ".js": "text/javascript",
    ".jsx": "text/javascript",
    ".ts": "text/typescript",
    ".tsx": "text/typescript",
    ".java": "text/x-java",
    ".c": "text/x-c",
    ".h": "text/x-c",
    ".cpp": "text/x-c++",
    ".hpp": "text/x-c++",
    ".cs": "text/x-csharp",
    ".go": "text/x-go",
    ".rb": "text/x-ruby",
    ".rs": "text/x-rust",
    ".php": "text/x-php",
    ".swift": "text/x-swift",
    ".kt": "text/x-kotlin",
    ".scala": "text/x-scala",
    ".r": "text/x-r",
    ".m": "text/x-objectivec",
    ".sql": "text/x-sql",
    ".sh": "text/x-sh",
    ".bash": "text/x-sh",
    ".groovy": "text/plain",
    ".gradle": "text/plain",
}

ALLOWED_EXTENSIONS = frozenset(MIME_TYPES)


class FileValidationError(ValueError):
    """Uploaded file rejected before any remote call."""

    pass


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower()


def guess_mime_type(filename: str | None) -> str:
    """MIME type for a filename based on its extension."""
    if not filename:
        return DEFAULT_MIME_TYPE
    return MIME_TYPES.get(file_extension(filename), DEFAULT_MIME_TYPE)


def validate_upload(filename: str | None, size_bytes: int) -> None:
    """
    Check an upload before it is sent to the store.

    Raises:
        FileValidationError: Empty file, missing name, oversize, or
            unsupported extension
    """
    if size_bytes <= 0:
        raise FileValidationError("File is empty or not provided")

    if not filename or not filename.strip():
        raise FileValidationError("File name is required")

    max_size = getattr(settings, "MAX_UPLOAD_SIZE", DEFAULT_MAX_UPLOAD_SIZE)
    if size_bytes > max_size:
        raise FileValidationError(
            f"File size exceeds the maximum limit of {max_size // (1024 * 1024)}MB. "
            f"File size: {size_bytes / (1024 * 1024):.1f} MB"
        )

    extension = file_extension(filename)
    if extension not in ALLOWED_EXTENSIONS:
        raise FileValidationError(
            f"Invalid file type '{extension}'. Allowed types: PDF, Word (doc/docx), "
            "Excel (xlsx/xls), PowerPoint (pptx/ppt), Text (txt/md/html/json/xml), "
            "Code (py/js/java/cpp/cs/go/rb), and others"
        )

    logger.debug("File validated successfully: %s", filename)
