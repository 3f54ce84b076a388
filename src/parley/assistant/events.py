"""Events delivered by a conversation session."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class DeltaText:
    """A fragment of a streamed reply."""

    content: str


@dataclass(frozen=True)
class FullMessage:
    """A complete reply, sent when the runtime does not stream."""

    content: str


@dataclass(frozen=True)
class Idle:
    """The session finished producing output for the current turn."""


@dataclass(frozen=True)
class Error:
    """The current turn failed."""

    message: str


@dataclass(frozen=True)
class SessionStarted:
    session_id: str
    model: str | None = None


@dataclass(frozen=True)
class ToolUse:
    name: str


SessionEvent = Union[DeltaText, FullMessage, Idle, Error, SessionStarted, ToolUse]


EventHandler = Callable[[SessionEvent], None]


class Subscription:
    """Handle returned by ``EventSource.on``; ``cancel`` is idempotent."""

    def __init__(self, source: EventSource, handler: EventHandler) -> None:
        self._source = source
        self._handler = handler
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._source._remove(self._handler)


class EventSource:
    """Push-based fan-out of session events to registered handlers."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []
        self._lock = threading.Lock()

    def on(self, handler: EventHandler) -> Subscription:
        with self._lock:
            self._handlers.append(handler)
        return Subscription(self, handler)

    def _remove(self, handler: EventHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def _emit(self, event: SessionEvent) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            handler(event)
