# src/prepmate/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task store and the assistant depend on Protocols instead of concrete
implementations, so storage backends and LLM providers stay swappable and
tests can plug in fakes.
"""

from typing import Iterable, Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI/OpenRouter-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class KeyValueStorage(Protocol):
    """
    Durable string-valued key-value slot (the browser localStorage shape).

    set_item must be durable when it returns: a following get_item, from this
    or a fresh instance on the same backing, sees the value.
    """

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...
