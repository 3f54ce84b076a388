"""Interactive chat loop against a Claude session."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, NamedTuple, Optional

from rich.markup import escape

from parley.assistant.demos import get_demo_prompt, show_demo_prompts
from parley.assistant.selector import select_model
from parley.assistant.session import AssistantRuntime, Session
from parley.assistant.stream import Transcript, send_and_await
from parley.cli import ui
from parley.core.catalog import ModelCatalog
from parley.core.errors import TurnTimeoutError

logger = logging.getLogger(__name__)


class Command(NamedTuple):
    kind: str
    text: str = ""


def parse_input(line: str) -> Command:
    """Classify one line typed at the prompt.

    Kinds: ``empty``, ``exit``, ``model``, ``clear``, ``help``, ``demo``
    (text is the demo prompt), ``bad_demo`` and ``message``.
    """
    stripped = line.strip()
    lowered = stripped.lower()
    if not stripped:
        return Command("empty")
    if lowered in ("exit", "quit"):
        return Command("exit")
    if lowered in ("model", "clear", "help"):
        return Command(lowered)
    if lowered.startswith("demo "):
        prompt = get_demo_prompt(stripped)
        if prompt is None:
            return Command("bad_demo")
        return Command("demo", prompt)
    return Command("message", stripped)


def show_help() -> None:
    ui.header("Interactive Chat Mode")
    ui.dim("Type your message and press Enter to send.")
    ui.dim("Type 'exit' or 'quit' to end the session.")
    ui.dim("Type 'demo <number>' to run a demo prompt (e.g. 'demo 1').")
    ui.dim("Type 'model' to change the model.")
    ui.dim("Type 'clear' to start a new session.")
    ui.plain()


def _read_line() -> str:
    return ui.prompt("[bold cyan]You:[/bold cyan] ")


class ChatShell:
    """Owns the current session and dispatches what the user types."""

    def __init__(
        self,
        runtime: AssistantRuntime,
        catalog: ModelCatalog,
        transcript: Transcript,
        *,
        timeout: Optional[float] = None,
        read_line: Callable[[], str] = _read_line,
    ) -> None:
        self.runtime = runtime
        self.catalog = catalog
        self.transcript = transcript
        self.timeout = timeout
        self.read_line = read_line
        self.session: Optional[Session] = None
        self.model_id: Optional[str] = None

    async def open(self, model_id: str) -> Session:
        self.session = await self.runtime.open_session(model_id)
        self.model_id = model_id
        return self.session

    async def close(self) -> None:
        if self.session is None:
            return
        session, self.session = self.session, None
        await session.close()

    async def _restart(self, model_id: str) -> None:
        await self.close()
        await self.open(model_id)
        ui.success(f"New session created (model: {model_id})")
        ui.plain()

    async def run(self) -> None:
        while True:
            try:
                line = self.read_line()
            except (EOFError, KeyboardInterrupt):
                ui.plain()
                break

            command = parse_input(line)

            if command.kind == "empty":
                continue

            if command.kind == "exit":
                ui.plain()
                ui.plain("  Goodbye!")
                break

            if command.kind == "help":
                show_help()
                continue

            if command.kind == "model":
                # The catalog shells out to the CLI; keep session delivery running.
                selected = await asyncio.to_thread(select_model, self.catalog)
                if selected is None:
                    ui.error("Could not fetch models. Keeping current model.")
                    ui.plain()
                    continue
                ui.step(f"Recreating session with model: {selected.id}...")
                await self._restart(selected.id)
                continue

            if command.kind == "clear":
                ui.step("Starting new session...")
                await self._restart(self.model_id or "")
                continue

            if command.kind == "bad_demo":
                ui.error("Invalid demo number. Use 'demo 1' through 'demo 6'.")
                ui.plain()
                continue

            if command.kind == "demo":
                ui.dim(f"Running: {escape(command.text)}")

            await self.send(command.text)

    async def send(self, text: str) -> None:
        """Send one message; failures are reported and the loop carries on."""
        if self.session is None:
            ui.error("No active session.")
            return
        try:
            await send_and_await(
                self.session,
                text,
                transcript=self.transcript,
                timeout=self.timeout,
            )
        except TurnTimeoutError as e:
            ui.plain()
            ui.warning(f"{e}. Interrupting the turn.")
            try:
                await self.session.interrupt()
            except Exception as interrupt_error:
                logger.warning("Interrupt failed: %s", interrupt_error)
        except Exception as e:
            logger.debug("Send failed", exc_info=True)
            ui.plain()
            ui.error(f"Error: {escape(str(e))}")
            ui.plain()


async def _run_loop(
    runtime: AssistantRuntime,
    catalog: ModelCatalog,
    model_id: str,
    timeout: Optional[float],
) -> int:
    transcript = Transcript(ui.console, label=runtime.config.chat.assistant_label)
    shell = ChatShell(runtime, catalog, transcript, timeout=timeout)

    ui.step("Starting Claude client...")
    try:
        session = await shell.open(model_id)
        ui.success("Claude client started")

        await runtime.ping(session)
        ui.success("Server connection verified")
        ui.success(f"Session created (model: {model_id})")
        ui.plain()

        show_demo_prompts()
        show_help()
        await shell.run()
    except Exception as e:
        logger.debug("Chat loop failed", exc_info=True)
        ui.error(f"Error: {escape(str(e))}")
        if e.__cause__ is not None:
            ui.dim(f"Inner: {escape(str(e.__cause__))}")
        return 1
    finally:
        await shell.close()
        ui.plain()
        ui.info("Client stopped.")
    return 0


def run_assistant(
    runtime: AssistantRuntime,
    catalog: ModelCatalog,
    model_id: str,
    *,
    timeout: Optional[float] = None,
) -> int:
    """Start the interactive chat loop; returns the process exit code."""
    return asyncio.run(_run_loop(runtime, catalog, model_id, timeout))
