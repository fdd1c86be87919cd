"""
System prompt configuration for grounded search.

Holds the base system prompt and the numbered architecture prompts loaded
from settings. Updates are kept in memory for the lifetime of the session.
"""

from __future__ import annotations

import logging
import threading

from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer questions using only the uploaded documents "
    "and say so when the documents do not contain the answer."
)


class PromptConfig:
    """
    Base system prompt plus selectable architecture prompts.

    ``selected_index`` 0 selects the base prompt; N selects architecture
    prompt N (1-based).
    """

    def __init__(
        self,
        system_prompt: str | None = None,
        architecture_prompts: list[str] | None = None,
    ):
        self._lock = threading.Lock()
        self.system_prompt = (
            system_prompt
            if system_prompt is not None
            else getattr(settings, "RAG_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT)
        )
        self.architecture_prompts = list(
            architecture_prompts
            if architecture_prompts is not None
            else getattr(settings, "RAG_ARCHITECTURE_PROMPTS", [])
        )
        self.selected_index = 0

    def active_system_prompt(self) -> str:
        with self._lock:
            if 1 <= self.selected_index <= len(self.architecture_prompts):
                return self.architecture_prompts[self.selected_index - 1]
            return self.system_prompt

    def select(self, index: int) -> None:
        with self._lock:
            if not 0 <= index <= len(self.architecture_prompts):
                raise ValueError(
                    f"Prompt index {index} out of range (0-{len(self.architecture_prompts)})"
                )
            self.selected_index = index

    def save(self, system_prompt: str, architecture_prompts: list[str]) -> None:
        with self._lock:
            self.system_prompt = system_prompt
            self.architecture_prompts = [prompt for prompt in architecture_prompts if prompt]
            if self.selected_index > len(self.architecture_prompts):
                self.selected_index = 0
        logger.info("Prompts updated (%d architecture prompts)", len(self.architecture_prompts))
