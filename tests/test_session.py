"""Tests for Claude sessions: message translation, options and delivery."""

import asyncio
from pathlib import Path

import pytest
from claude_agent_sdk import AssistantMessage, ClaudeAgentOptions, ResultMessage, SystemMessage, TextBlock, ToolUseBlock
from claude_agent_sdk.types import StreamEvent

from conftest import make_transcript

from parley.assistant.events import DeltaText, Error, FullMessage, Idle, SessionStarted, ToolUse
from parley.assistant.session import AssistantRuntime, ClaudeSession
from parley.assistant.stream import send_and_await
from parley.core.config import GlobalConfig
from parley.core.errors import SessionError, TurnTimeoutError


def _stream(event: dict) -> StreamEvent:
    return StreamEvent(uuid="u1", session_id="s1", event=event)


def _result(is_error: bool = False, result: str | None = None, subtype: str = "success") -> ResultMessage:
    return ResultMessage(
        subtype=subtype,
        duration_ms=10,
        duration_api_ms=8,
        is_error=is_error,
        num_turns=1,
        session_id="s1",
        result=result,
    )


@pytest.fixture
def session() -> ClaudeSession:
    runtime = AssistantRuntime(GlobalConfig(), cwd=Path("."))
    return ClaudeSession(runtime.build_options("sonnet"))


def test_text_delta_becomes_delta_text(session):
    message = _stream({
        "type": "content_block_delta",
        "index": 0,
        "delta": {"type": "text_delta", "text": "Hel"},
    })
    assert session.translate(message) == [DeltaText("Hel")]


def test_tool_input_delta_is_dropped(session):
    message = _stream({
        "type": "content_block_delta",
        "index": 1,
        "delta": {"type": "input_json_delta", "partial_json": '{"file'},
    })
    assert session.translate(message) == []


def test_tool_block_start_becomes_tool_use(session):
    message = _stream({
        "type": "content_block_start",
        "index": 1,
        "content_block": {"type": "tool_use", "name": "Read", "id": "t1", "input": {}},
    })
    assert session.translate(message) == [ToolUse("Read")]


def test_second_text_block_is_separated(session):
    start = _stream({"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}})
    assert session.translate(start) == []
    assert session.translate(start) == [DeltaText("\n\n")]

    session.translate(_result())
    assert session.translate(start) == []


def test_assistant_message_becomes_full_message(session):
    message = AssistantMessage(
        content=[
            TextBlock(text="Hello "),
            ToolUseBlock(id="t1", name="Read", input={"file_path": "a.py"}),
            TextBlock(text="world"),
        ],
        model="claude-sonnet-4-5",
    )
    assert session.translate(message) == [FullMessage("Hello world")]


def test_tool_only_assistant_message_is_dropped(session):
    message = AssistantMessage(
        content=[ToolUseBlock(id="t1", name="Read", input={})],
        model="claude-sonnet-4-5",
    )
    assert session.translate(message) == []


def test_result_becomes_idle(session):
    assert session.translate(_result()) == [Idle()]
    assert session.session_id == "s1"


def test_error_result_becomes_error(session):
    events = session.translate(_result(is_error=True, result="Overloaded", subtype="error_during_execution"))
    assert events == [Error("Overloaded")]

    events = session.translate(_result(is_error=True, subtype="error_max_turns"))
    assert events == [Error("error_max_turns")]


def test_init_message_starts_session(session):
    message = SystemMessage(subtype="init", data={"session_id": "abc", "model": "claude-opus-4-1"})
    assert session.translate(message) == [SessionStarted("abc", "claude-opus-4-1")]
    assert session.session_id == "abc"
    assert session.model == "claude-opus-4-1"


def test_other_system_messages_are_dropped(session):
    assert session.translate(SystemMessage(subtype="compact_boundary", data={})) == []


def test_build_options_carries_config_and_tokens(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.delenv("CLAUDE_CODE_OAUTH_TOKEN", raising=False)
    monkeypatch.setenv("CLAUDECODE", "1")

    cfg = GlobalConfig()
    cfg.chat.system_prompt = "Be brief."
    options = AssistantRuntime(cfg, cwd=Path("/tmp")).build_options("haiku")

    assert options.model == "haiku"
    assert options.system_prompt == "Be brief."
    assert options.include_partial_messages is True
    assert options.env["ANTHROPIC_API_KEY"] == "sk-test"
    assert "CLAUDE_CODE_OAUTH_TOKEN" not in options.env
    assert options.cwd == "/tmp"
    assert options.allowed_tools == ["Read", "Glob", "Grep"]


def test_build_options_without_streaming_uses_preset_prompt():
    runtime = AssistantRuntime(GlobalConfig(), streaming=False)
    options = runtime.build_options("opus")

    assert options.include_partial_messages is False
    assert options.system_prompt == {"type": "preset", "preset": "claude_code"}


@pytest.mark.asyncio
async def test_send_requires_connection(session):
    with pytest.raises(SessionError):
        await session.send("hi")


class QueueClient:
    """Stands in for ClaudeSDKClient; messages flow through an asyncio queue.

    ``replies`` maps a query to the messages it produces. Putting an
    exception on the queue makes ``receive_messages`` raise it, ``None``
    ends the stream.
    """

    def __init__(self, replies=None, on_interrupt=None):
        self.replies = replies or {}
        self.on_interrupt = on_interrupt or []
        self.queue: asyncio.Queue = asyncio.Queue()
        self.queries: list[str] = []
        self.disconnected = False

    async def connect(self):
        pass

    async def query(self, text):
        self.queries.append(text)
        for message in self.replies.get(text, []):
            self.queue.put_nowait(message)

    async def interrupt(self):
        for message in self.on_interrupt:
            self.queue.put_nowait(message)

    async def receive_messages(self):
        while True:
            item = await self.queue.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def disconnect(self):
        self.disconnected = True


def _delta(text: str) -> StreamEvent:
    return _stream({"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}})


async def _connect(client: QueueClient) -> ClaudeSession:
    session = ClaudeSession(ClaudeAgentOptions())
    session._client = client
    await session.connect()
    return session


@pytest.mark.asyncio
async def test_turn_after_timeout_ends_on_its_own_result():
    client = QueueClient(
        replies={
            "first": [_delta("slow...")],
            "second": [_delta("SECOND-ANSWER"), _result()],
        },
        on_interrupt=[_result(is_error=True, subtype="error_during_execution")],
    )
    session = await _connect(client)
    transcript, out = make_transcript()

    with pytest.raises(TurnTimeoutError):
        await send_and_await(session, "first", transcript=transcript, timeout=0.1)
    await session.interrupt()
    await send_and_await(session, "second", transcript=transcript, timeout=1)

    assert "SECOND-ANSWER" in out.getvalue()
    assert "error_during_execution" not in out.getvalue()
    await session.close()
    assert client.disconnected


@pytest.mark.asyncio
async def test_interrupted_result_already_delivered_is_not_dropped_twice():
    client = QueueClient(
        replies={
            "first": [_delta("slow...")],
            "second": [_delta("on time"), _result()],
            "third": [_delta("still in step"), _result()],
        },
        on_interrupt=[_result(is_error=True, subtype="error_during_execution")],
    )
    session = await _connect(client)
    transcript, out = make_transcript()

    with pytest.raises(TurnTimeoutError):
        await send_and_await(session, "first", transcript=transcript, timeout=0.1)
    await session.interrupt()
    await asyncio.sleep(0.05)

    await send_and_await(session, "second", transcript=transcript, timeout=1)
    await send_and_await(session, "third", transcript=transcript, timeout=1)

    assert "on time" in out.getvalue()
    assert "still in step" in out.getvalue()
    await session.close()


@pytest.mark.asyncio
async def test_delivery_failure_reaches_subscribers_and_blocks_sends():
    client = QueueClient()
    session = await _connect(client)
    events = []
    session.on(events.append)

    client.queue.put_nowait(RuntimeError("bad frame"))
    await asyncio.wait_for(session._delivery, 1)

    assert events == [Error("bad frame")]
    assert not session.connected
    with pytest.raises(SessionError):
        await session.send("hi")
    assert client.queries == []
    await session.close()


@pytest.mark.asyncio
async def test_stream_end_reaches_subscribers():
    client = QueueClient()
    session = await _connect(client)
    events = []
    session.on(events.append)

    client.queue.put_nowait(None)
    await asyncio.wait_for(session._delivery, 1)

    assert events == [Error("Claude session ended unexpectedly")]
    with pytest.raises(SessionError):
        await session.send("hi")
    await session.close()
