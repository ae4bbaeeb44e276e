# src/focusmate/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the LLM provider, the durable medium and the tick source swappable
and makes testing easier.
"""

from collections.abc import Callable, Iterable
from typing import Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.

TickCallback = Callable[[], object]


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI/OpenRouter-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class KeyValueBackend(Protocol):
    """
    Durable key -> string mapping behind the keyed stores.

    write() may raise StorageQuotaExceeded when the value does not fit.
    available() is checked once when a store is created; a False answer puts
    that store into memory-only mode for the process lifetime.
    """

    def read(self, key: str) -> str | None: ...
    def write(self, key: str, value: str) -> None: ...
    def available(self) -> bool: ...


class Ticker(Protocol):
    """
    Periodic tick source owned by the timer engine.

    start() begins calling the callback every interval; stop() must be safe
    to call more than once.
    """

    @property
    def running(self) -> bool: ...

    def start(self, callback: TickCallback) -> None: ...
    def stop(self) -> None: ...


Clock = Callable[[], int]
# Returns "now" as integer epoch milliseconds.
