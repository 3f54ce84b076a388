"""parley chat — interactive chat with Claude."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from parley.cli import ui


def chat(
    model: Optional[str] = typer.Option(
        None,
        "--model", "-m",
        help="Model id or alias (skips the model picker).",
    ),
    no_stream: bool = typer.Option(
        False,
        "--no-stream",
        help="Wait for complete replies instead of streaming tokens.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for a reply (0 waits forever). Defaults to chat.turn_timeout.",
    ),
    cwd: Optional[Path] = typer.Option(
        None,
        "--cwd",
        help="Working directory for the assistant (defaults to the current one).",
        exists=True,
        file_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Chat with Claude from the terminal."""
    from parley.cli.check import load_env, report_status
    from parley.cli.models import catalog_from_config
    from parley.core.config import GlobalConfig
    from parley.core.prerequisites import check_status, is_ready

    load_env()
    cfg = GlobalConfig.load()

    ui.banner("Parley · Claude Interactive Chat")
    ui.step("Checking prerequisites...")
    ui.plain()
    status = check_status(cfg.cli.command, cfg.cli.check_timeout)
    report_status(status)
    if not is_ready(status):
        raise typer.Exit(1)

    catalog = catalog_from_config(cfg)
    model_id = model or cfg.model
    if not model_id:
        from parley.assistant.selector import select_model

        selected = select_model(catalog)
        if selected is None:
            raise typer.Exit(1)
        model_id = selected.id
        ui.plain()

    turn_timeout = cfg.chat.turn_timeout if timeout is None else timeout
    if not turn_timeout:
        turn_timeout = None

    from parley.assistant import run_assistant
    from parley.assistant.session import AssistantRuntime

    runtime = AssistantRuntime(cfg, cwd=cwd, streaming=False if no_stream else None)
    code = run_assistant(runtime, catalog, model_id, timeout=turn_timeout)
    if code:
        raise typer.Exit(code)
