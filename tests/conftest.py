"""Shared fakes for session and chat tests."""

from __future__ import annotations

import asyncio
import io
import threading
import time

import pytest
from rich.console import Console

from parley.assistant.events import EventSource, SessionEvent
from parley.assistant.stream import Transcript
from parley.core.catalog import ModelInfo


class FakeSession(EventSource):
    """Session double.

    ``replies`` holds one list of events per expected send; each list is
    delivered from the event loop after ``send`` returns. With ``threaded``
    the events come from a separate thread instead. ``fail_after`` makes
    ``send`` deliver that many events synchronously and then raise.
    """

    def __init__(
        self,
        replies: list[list[SessionEvent]] | None = None,
        *,
        model: str = "opus",
        threaded: bool = False,
        fail_after: int | None = None,
    ) -> None:
        super().__init__()
        self.model = model
        self.session_id = None
        self.replies = list(replies or [])
        self.threaded = threaded
        self.fail_after = fail_after
        self.sent: list[str] = []
        self.cancels = 0
        self.interrupted = False
        self.closed = False

    def _remove(self, handler) -> None:  # type: ignore[no-untyped-def]
        self.cancels += 1
        super()._remove(handler)

    @property
    def subscribers(self) -> int:
        return len(self._handlers)

    def push(self, event: SessionEvent) -> None:
        self._emit(event)

    async def send(self, text: str) -> None:
        self.sent.append(text)
        events = self.replies.pop(0) if self.replies else []

        if self.fail_after is not None:
            for event in events[: self.fail_after]:
                self._emit(event)
            raise ConnectionError("connection lost")

        if self.threaded:
            def _deliver() -> None:
                for event in events:
                    time.sleep(0.001)
                    self._emit(event)

            threading.Thread(target=_deliver, daemon=True).start()
        else:
            loop = asyncio.get_running_loop()
            for event in events:
                loop.call_soon(self._emit, event)

    async def interrupt(self) -> None:
        self.interrupted = True

    async def close(self) -> None:
        self.closed = True


class FakeCatalog:
    def __init__(self, ids: list[str]) -> None:
        self.ids = ids

    def list(self) -> list[ModelInfo]:
        return [ModelInfo(id=i, display_name=i.capitalize()) for i in self.ids]


def make_transcript(label: str = "Claude") -> tuple[Transcript, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None, force_terminal=False)
    return Transcript(console, label=label), buffer


@pytest.fixture
def transcript() -> tuple[Transcript, io.StringIO]:
    return make_transcript()


@pytest.fixture(autouse=True)
def parley_home(tmp_path, monkeypatch):
    home = tmp_path / "parley-home"
    monkeypatch.setenv("PARLEY_HOME", str(home))
    return home
