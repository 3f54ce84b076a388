"""parley models — list the models the Claude CLI accepts."""

from __future__ import annotations

import typer

from parley.cli import ui
from parley.core.catalog import CliModelCatalog
from parley.core.config import GlobalConfig


def catalog_from_config(cfg: GlobalConfig) -> CliModelCatalog:
    return CliModelCatalog(
        command=cfg.cli.command,
        fallback=cfg.models.fallback,
        timeout=cfg.cli.check_timeout,
    )


def models() -> None:
    """List available models."""
    cfg = GlobalConfig.load()
    with ui.spinner("Fetching available models"):
        found = catalog_from_config(cfg).list()

    if not found:
        ui.error("Could not fetch models from the Claude CLI.")
        raise typer.Exit(1)

    ui.header("Available models")
    ui.plain()
    rows = []
    for i, model in enumerate(found, 1):
        default = "✓" if model.id == cfg.model else ""
        rows.append((str(i), model.id, model.display_name, default))
    ui.table(["#", "ID", "Name", "Default"], rows)
    ui.plain()
