"""
Metadata filter expressions for scoping retrieval to tagged documents.

Expressions use the AIP-160 list filter syntax understood by the Gemini
File Search API, e.g. ``metadata.project="alpha" AND metadata.version="1.0"``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)


def escape_filter_value(value: str | None) -> str:
    """Escape backslashes and double quotes inside a quoted filter value."""
    if value is None:
        return ""
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def build_filter_expression(metadata: Mapping[str, str] | None) -> str:
    """
    Build a conjunction of equality clauses, one per metadata key.

    Keys are emitted in the mapping's iteration order. An empty or missing
    mapping yields ``""``, meaning "no filter".
    """
    if not metadata:
        return ""

    clauses = [f'metadata.{key}="{escape_filter_value(value)}"' for key, value in metadata.items()]
    expression = " AND ".join(clauses)
    logger.debug("Built metadata filter expression: %s", expression)
    return expression
