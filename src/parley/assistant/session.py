"""Conversation sessions on top of the Claude Agent SDK.

``ClaudeSDKClient`` hands out messages through an async iterator. A
``ClaudeSession`` runs a delivery task that drains that iterator, translates
each message into a ``SessionEvent`` and pushes it to whoever subscribed with
``on``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Optional, Protocol

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKClient,
    ClaudeSDKError,
    ResultMessage,
    SystemMessage,
    TextBlock,
)
from claude_agent_sdk.types import StreamEvent

from parley.assistant.events import (
    DeltaText,
    Error,
    EventHandler,
    EventSource,
    FullMessage,
    Idle,
    SessionEvent,
    SessionStarted,
    Subscription,
    ToolUse,
)
from parley.core.config import GlobalConfig
from parley.core.errors import SessionError
from parley.core.prerequisites import TOKEN_ENV_VARS

logger = logging.getLogger(__name__)


class Session(Protocol):
    session_id: Optional[str]
    model: Optional[str]

    def on(self, handler: EventHandler) -> Subscription: ...

    async def send(self, text: str) -> None: ...

    async def interrupt(self) -> None: ...

    async def close(self) -> None: ...


def _patch_sdk_message_parser() -> None:
    """Let the SDK parser pass through message types it does not know yet.

    Newer CLIs emit message types older SDK releases reject, which would end
    the message iterator. Unknown typed payloads become ``SystemMessage``s and
    are ignored by ``ClaudeSession``.
    """
    try:
        from claude_agent_sdk._errors import MessageParseError
        from claude_agent_sdk._internal import client as internal_client
        from claude_agent_sdk._internal import message_parser as parser_module
    except ImportError:
        logger.debug("SDK internals moved; message parser left unpatched")
        return

    if getattr(parser_module, "_parley_parser_patched", False):
        return

    original_parse_message = parser_module.parse_message

    def _parse_message_with_fallback(data):  # type: ignore[no-untyped-def]
        try:
            return original_parse_message(data)
        except MessageParseError:
            message_type = data.get("type") if isinstance(data, dict) else None
            if isinstance(message_type, str):
                logger.debug("Passing through unknown message type %s", message_type)
                return SystemMessage(subtype=message_type, data=data)
            raise

    parser_module.parse_message = _parse_message_with_fallback
    if hasattr(internal_client, "parse_message"):
        internal_client.parse_message = _parse_message_with_fallback
    parser_module._parley_parser_patched = True


class ClaudeSession(EventSource):
    """A Claude Code conversation exposed as a push-based event stream."""

    def __init__(self, options: ClaudeAgentOptions) -> None:
        super().__init__()
        self.model: Optional[str] = options.model
        self.session_id: Optional[str] = None
        self._client = ClaudeSDKClient(options=options)
        self._delivery: Optional[asyncio.Task[None]] = None
        self._text_blocks = 0
        # Queries whose ResultMessage has not arrived yet, and results of
        # abandoned turns that must be dropped before the current turn's.
        self._pending = 0
        self._stale = 0

    async def connect(self) -> None:
        try:
            await self._client.connect()
        except ClaudeSDKError as e:
            raise SessionError(f"Could not start Claude: {e}") from e
        self._delivery = asyncio.create_task(self._deliver(), name="parley-session-events")

    @property
    def connected(self) -> bool:
        return self._delivery is not None and not self._delivery.done()

    async def send(self, text: str) -> None:
        """Start a turn.

        Output of earlier turns that never finished (timed out or
        interrupted) is still owed by the CLI; it is dropped so this turn
        only ends on its own result.
        """
        if not self.connected:
            raise SessionError("Session is not connected")
        if self._pending:
            logger.debug("Dropping output of %d unfinished turn(s)", self._pending)
            self._stale += self._pending
            self._pending = 0
            self._text_blocks = 0
        self._pending += 1
        try:
            await self._client.query(text)
        except Exception:
            self._pending -= 1
            raise

    async def interrupt(self) -> None:
        await self._client.interrupt()

    async def server_info(self) -> Optional[dict[str, Any]]:
        return await self._client.get_server_info()

    async def close(self) -> None:
        if self._delivery is not None:
            self._delivery.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._delivery
            self._delivery = None
        await self._client.disconnect()

    async def _deliver(self) -> None:
        try:
            async for message in self._client.receive_messages():
                for event in self.translate(message):
                    self._emit(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Claude session stopped delivering events")
            self._emit(Error(str(e) or type(e).__name__))
            return
        self._emit(Error("Claude session ended unexpectedly"))

    def translate(self, message: object) -> list[SessionEvent]:
        """Map one SDK message onto zero or more session events."""
        if self._stale:
            if isinstance(message, ResultMessage):
                self._stale -= 1
                self._text_blocks = 0
                self.session_id = message.session_id or self.session_id
            return []

        if isinstance(message, StreamEvent):
            event = message.event
            event_type = event.get("type")

            if event_type == "content_block_start":
                block = event.get("content_block", {})
                if block.get("type") == "tool_use":
                    return [ToolUse(block.get("name", ""))]
                if block.get("type") == "text":
                    self._text_blocks += 1
                    # Separate text blocks around tool calls.
                    if self._text_blocks > 1:
                        return [DeltaText("\n\n")]

            elif event_type == "content_block_delta":
                delta = event.get("delta", {})
                if delta.get("type") == "text_delta":
                    text = delta.get("text", "")
                    if text:
                        return [DeltaText(text)]
            return []

        if isinstance(message, AssistantMessage):
            text = "".join(block.text for block in message.content if isinstance(block, TextBlock))
            return [FullMessage(text)] if text else []

        if isinstance(message, ResultMessage):
            self._text_blocks = 0
            self._pending = max(self._pending - 1, 0)
            self.session_id = message.session_id or self.session_id
            if message.is_error:
                return [Error(message.result or message.subtype)]
            return [Idle()]

        if isinstance(message, SystemMessage) and message.subtype == "init":
            self.session_id = message.data.get("session_id", self.session_id)
            self.model = message.data.get("model", self.model)
            return [SessionStarted(self.session_id or "", self.model)]

        return []


class AssistantRuntime:
    """Opens Claude sessions configured from ``GlobalConfig``."""

    def __init__(
        self,
        config: GlobalConfig,
        *,
        cwd: Optional[Path] = None,
        streaming: Optional[bool] = None,
    ) -> None:
        self.config = config
        self.cwd = cwd or Path.cwd()
        self.streaming = config.chat.streaming if streaming is None else streaming

    def _on_stderr(self, line: str) -> None:
        stripped = line.rstrip()
        if stripped:
            logger.debug("claude: %s", stripped)

    def build_options(self, model: str) -> ClaudeAgentOptions:
        # CLAUDECODE makes the CLI think it runs nested inside another session.
        os.environ.pop("CLAUDECODE", None)

        sdk_env: dict[str, str] = {}
        path = os.environ.get("PATH")
        if path:
            sdk_env["PATH"] = path
        for key in TOKEN_ENV_VARS:
            val = os.environ.get(key)
            if val:
                sdk_env[key] = val

        system_prompt: Any = self.config.chat.system_prompt or {
            "type": "preset",
            "preset": "claude_code",
        }

        return ClaudeAgentOptions(
            model=model,
            system_prompt=system_prompt,
            include_partial_messages=self.streaming,
            allowed_tools=list(self.config.chat.allowed_tools),
            setting_sources=["user"],
            cwd=str(self.cwd),
            env=sdk_env,
            cli_path=shutil.which(self.config.cli.command),
            stderr=self._on_stderr,
        )

    async def open_session(self, model: str) -> ClaudeSession:
        _patch_sdk_message_parser()
        session = ClaudeSession(self.build_options(model))
        await session.connect()
        logger.debug("Session connected with model %s", model)
        return session

    async def ping(self, session: ClaudeSession) -> dict[str, Any]:
        """Confirm the runtime answered the initialization handshake."""
        info = await session.server_info()
        if info is None:
            raise SessionError("Claude did not answer the initialization handshake")
        return info
