"""parley config — view and set global configuration."""

from __future__ import annotations

from typing import Any, Optional

import typer
import yaml
from pydantic import BaseModel, ValidationError

from parley.core.config import GlobalConfig


def config(
    key: Optional[str] = typer.Argument(None, help="Config key (e.g. chat.turn_timeout)"),
    value: Optional[str] = typer.Argument(None, help="Value to set"),
) -> None:
    """View or set global Parley configuration.

    Examples:
      parley config                          # show current config
      parley config model sonnet             # default model, skips the picker
      parley config chat.turn_timeout 300
    """
    cfg = GlobalConfig.load()

    if key is None:
        typer.echo(yaml.dump(cfg.model_dump(), default_flow_style=False, sort_keys=False).rstrip())
        return

    if value is None:
        current = _get_nested(cfg.model_dump(), key)
        if current is None:
            typer.echo(f"Unknown key: {key}", err=True)
            raise typer.Exit(1)
        typer.echo(current)
        return

    try:
        updated = _set_nested(cfg, key, value)
    except ValidationError as e:
        typer.echo(f"Invalid value for {key}: {e.errors()[0]['msg']}", err=True)
        raise typer.Exit(1)
    if updated is None:
        typer.echo(f"Unknown key: {key}", err=True)
        raise typer.Exit(1)

    updated.save()
    typer.echo(f"  {key} = {value}")


def _get_nested(data: dict, dotted_key: str) -> Any:
    """Retrieve a value from a nested dict using a dotted key."""
    current: Any = data
    for part in dotted_key.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _set_nested(cfg: GlobalConfig, dotted_key: str, value: str) -> Optional[GlobalConfig]:
    """Return a copy of ``cfg`` with the dotted key set, validated by pydantic.

    String fields take the raw value. Other fields parse it as YAML, so
    ``300`` becomes a number and ``null`` clears an optional field.
    Returns None for unknown keys.
    """
    parts = dotted_key.split(".")
    data = cfg.model_dump()
    section: Any = data
    model: Any = cfg
    for part in parts[:-1]:
        if not isinstance(model, BaseModel) or part not in type(model).model_fields:
            return None
        model = getattr(model, part)
        section = section[part]
    field = parts[-1]
    if not isinstance(model, BaseModel) or field not in type(model).model_fields:
        return None
    current = section[field]
    section[field] = value if isinstance(current, str) else yaml.safe_load(value)
    return GlobalConfig.model_validate(data)
