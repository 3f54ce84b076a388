"""Parley CLI powered by Typer."""

import logging

import typer
from rich.logging import RichHandler

from parley.cli import ui
from parley.cli.chat import chat
from parley.cli.check import check
from parley.cli.config import config
from parley.cli.models import models

app = typer.Typer(
    name="parley",
    help="Interactive terminal chat with Claude.",
    add_completion=False,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=ui.err_console, show_path=False)],
        force=True,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Interactive terminal chat with Claude."""
    _configure_logging(verbose)
    if ctx.invoked_subcommand is not None:
        return
    ctx.invoke(chat, model=None, no_stream=False, timeout=None, cwd=None)


app.command()(chat)
app.command()(check)
app.command()(models)
app.command()(config)
