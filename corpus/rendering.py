"""
Markdown-to-HTML rendering for search responses.

The renderer is any ``str -> str`` callable; ``RAG_MARKDOWN_RENDERER`` may
name a dotted path to replace the default CommonMark renderer. Raw HTML in
the model's answer is escaped, never passed through.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache

from django.conf import settings
from django.utils.module_loading import import_string
from markdown_it import MarkdownIt

Renderer = Callable[[str], str]


@lru_cache(maxsize=1)
def _commonmark() -> MarkdownIt:
    return MarkdownIt("commonmark", {"html": False})


def commonmark_html(markdown: str) -> str:
    if not markdown:
        return ""
    return _commonmark().render(markdown)


def get_renderer() -> Renderer:
    dotted_path = getattr(settings, "RAG_MARKDOWN_RENDERER", None)
    if dotted_path:
        return import_string(dotted_path)
    return commonmark_html


def render_markdown(markdown: str, renderer: Renderer | None = None) -> str:
    return (renderer or get_renderer())(markdown or "")
