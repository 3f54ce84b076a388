"""parley check — verify the Claude CLI is installed and authenticated."""

from __future__ import annotations

from pathlib import Path

import typer
from dotenv import load_dotenv

from parley.cli import ui
from parley.core.config import GlobalConfig
from parley.core.prerequisites import CliStatus, check_status, is_ready

INSTALL_HINTS = [
    "npm:          npm install -g @anthropic-ai/claude-code",
    "Script:       curl -fsSL https://claude.ai/install.sh | bash",
    "macOS/Linux:  brew install --cask claude-code",
]

AUTH_HINTS = [
    "Run: claude auth login",
    "Or set ANTHROPIC_API_KEY (or CLAUDE_CODE_OAUTH_TOKEN) in the environment or a .env file.",
]


def report_status(status: CliStatus) -> None:
    """Print one line per check, with hints for whatever failed."""
    if not status.installed:
        ui.check_line("Checking for Claude CLI", "[red]✗ Not found![/red]")
        ui.plain()
        ui.plain("  Please install the Claude CLI:")
        for hint in INSTALL_HINTS:
            ui.dim(hint)
        ui.plain()
        return

    ui.check_line("Checking for Claude CLI", "[green]✓ Installed[/green]")

    if status.token_set:
        ui.check_line("Checking auth token", "[green]✓ Set[/green]")
    else:
        ui.check_line("Checking auth token", "[dim]○ Not set (will use CLI login)[/dim]")

    if status.authenticated:
        ui.check_line("Checking authentication", "[green]✓ Authenticated[/green]")
    else:
        ui.check_line("Checking authentication", "[red]✗ Not authenticated[/red]")
        if status.error:
            ui.dim(status.error)
        ui.next_steps(AUTH_HINTS)

    ui.plain()


def load_env() -> None:
    """Pick up auth tokens from a .env file in the working directory."""
    load_dotenv(Path.cwd() / ".env")


def check() -> None:
    """Check that the Claude CLI is installed and you are signed in."""
    load_env()
    cfg = GlobalConfig.load()

    ui.header("Checking prerequisites")
    ui.plain()
    status = check_status(cfg.cli.command, cfg.cli.check_timeout)
    report_status(status)

    if not is_ready(status):
        raise typer.Exit(1)
    ui.success("Claude is ready.")
