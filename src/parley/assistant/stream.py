"""Render one request/response cycle of a session to the terminal.

``send_and_await`` subscribes to the session, sends the message, and blocks
until the session reports the turn finished (``Idle``) or failed (``Error``).
Events are pushed by the session from its own delivery task, so everything the
callback touches is either owned by the per-call ``TurnRenderer`` or
thread-safe (``CompletionSignal``).
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.markup import escape

from parley.assistant.events import DeltaText, Error, FullMessage, Idle, SessionEvent
from parley.core.errors import TurnTimeoutError

if TYPE_CHECKING:
    from parley.assistant.session import Session

logger = logging.getLogger(__name__)


def _running_in(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


class CompletionSignal:
    """Single-assignment signal that unblocks one waiting coroutine.

    ``fulfill`` and ``fail`` may be called from any thread; only the first
    call has an effect and they return whether it was theirs.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[None] = self._loop.create_future()
        self._lock = threading.Lock()
        self._settled = False

    @property
    def settled(self) -> bool:
        return self._settled

    def fulfill(self) -> bool:
        return self._settle(None)

    def fail(self, exc: BaseException) -> bool:
        return self._settle(exc)

    def _settle(self, exc: Optional[BaseException]) -> bool:
        with self._lock:
            if self._settled:
                return False
            self._settled = True
        if _running_in(self._loop):
            self._resolve(exc)
        else:
            self._loop.call_soon_threadsafe(self._resolve, exc)
        return True

    def _resolve(self, exc: Optional[BaseException]) -> None:
        # The waiter may already have given up (timeout or cancellation).
        if self._future.done():
            return
        if exc is None:
            self._future.set_result(None)
        else:
            self._future.set_exception(exc)

    async def wait(self, timeout: Optional[float] = None) -> None:
        if timeout is None:
            await self._future
        else:
            await asyncio.wait_for(self._future, timeout)


class Transcript:
    """Ordered, append-only chat output on a Rich console."""

    def __init__(self, console: Console, label: str = "Claude") -> None:
        self.console = console
        self.label = label

    def header(self) -> None:
        self.console.print(f"\n[bold green]{escape(self.label)}:[/bold green] ", end="", soft_wrap=True)

    def write(self, text: str) -> None:
        self.console.out(text, end="", highlight=False)

    def error(self, message: str) -> None:
        self.console.print(f"\n  [red]✗[/red] [bold red]Error:[/bold red] {escape(message)}", soft_wrap=True)

    def end_turn(self) -> None:
        self.console.print()
        self.console.print()


class TurnState(enum.Enum):
    NOT_STARTED = "not_started"
    STREAMING = "streaming"
    MESSAGE = "message"
    DONE = "done"


class TurnRenderer:
    """Event callback for a single turn.

    The first content event picks the render path: ``DeltaText`` switches to
    STREAMING, ``FullMessage`` to MESSAGE. Content of the other kind is ignored
    for the rest of the turn. ``Idle`` and ``Error`` end the turn and fulfill
    the signal; anything after that is dropped.
    """

    def __init__(self, transcript: Transcript, signal: CompletionSignal) -> None:
        self.transcript = transcript
        self.signal = signal
        self.state = TurnState.NOT_STARTED

    def handle(self, event: SessionEvent) -> None:
        try:
            self._dispatch(event)
        except Exception as e:
            logger.debug("Rendering %r failed", event, exc_info=True)
            self.state = TurnState.DONE
            self.signal.fail(e)

    def _dispatch(self, event: SessionEvent) -> None:
        if self.state is TurnState.DONE:
            return

        if isinstance(event, DeltaText):
            if self.state is TurnState.NOT_STARTED:
                self.transcript.header()
                self.state = TurnState.STREAMING
            if self.state is TurnState.STREAMING:
                self.transcript.write(event.content)

        elif isinstance(event, FullMessage):
            if self.state is TurnState.NOT_STARTED:
                self.transcript.header()
                self.transcript.write(event.content)
                self.state = TurnState.MESSAGE
            elif self.state is TurnState.MESSAGE:
                self.transcript.write("\n\n" + event.content)

        elif isinstance(event, Idle):
            self.state = TurnState.DONE
            self.signal.fulfill()

        elif isinstance(event, Error):
            self.transcript.error(event.message)
            self.state = TurnState.DONE
            self.signal.fulfill()


async def send_and_await(
    session: Session,
    text: str,
    *,
    transcript: Transcript,
    timeout: Optional[float] = None,
) -> None:
    """Send ``text`` on ``session`` and render the reply until the turn ends.

    Raises ``TurnTimeoutError`` if ``timeout`` seconds pass without ``Idle`` or
    ``Error``. Errors from the send itself propagate. The subscription is
    cancelled on every path.
    """
    if not text.strip():
        raise ValueError("Cannot send an empty message")

    signal = CompletionSignal()
    renderer = TurnRenderer(transcript, signal)
    subscription = session.on(renderer.handle)
    try:
        await session.send(text)
        try:
            await signal.wait(timeout)
        except asyncio.TimeoutError:
            raise TurnTimeoutError(timeout or 0) from None
        transcript.end_turn()
    finally:
        subscription.cancel()
