"""Interactive model picker."""

from __future__ import annotations

from typing import Optional

from parley.cli import ui
from parley.core.catalog import ModelCatalog, ModelInfo


def parse_choice(raw: str, count: int) -> int:
    """Return the zero-based index for a 1-based menu answer.

    Blank, non-numeric or out-of-range answers select the first entry.
    """
    try:
        index = int(raw.strip())
    except ValueError:
        return 0
    if index < 1 or index > count:
        return 0
    return index - 1


def select_model(catalog: ModelCatalog) -> Optional[ModelInfo]:
    """Ask the user to pick a model; None if the catalog is empty."""
    with ui.spinner("Fetching available models"):
        models = catalog.list()

    if not models:
        ui.error("Could not fetch models from the Claude CLI.")
        ui.dim("Make sure 'claude' is installed and working.")
        return None

    ui.header("Select a model:")
    for i, model in enumerate(models, 1):
        ui.plain(f"    [cyan]{i}.[/cyan] {model.display_name} [dim]({model.id})[/dim]")

    try:
        raw = ui.prompt(f"\n  Enter choice (1-{len(models)}) [default: 1]: ")
    except (EOFError, KeyboardInterrupt):
        ui.plain()
        raw = ""

    selected = models[parse_choice(raw, len(models))]
    ui.success(f"Selected: {selected.display_name}")
    return selected
