"""Global configuration parsed from ~/.parley/config.yaml."""

from __future__ import annotations

from typing import Optional

import yaml
from pydantic import BaseModel

from parley.core.paths import get_config_path


class CliConfig(BaseModel):
    command: str = "claude"
    check_timeout: float = 5.0


class ChatConfig(BaseModel):
    streaming: bool = True
    # Seconds to wait for a turn to finish; None waits forever.
    turn_timeout: Optional[float] = 600.0
    assistant_label: str = "Claude"
    system_prompt: str = ""
    allowed_tools: list[str] = ["Read", "Glob", "Grep"]


class ModelsConfig(BaseModel):
    fallback: list[str] = ["opus", "sonnet", "haiku"]


class GlobalConfig(BaseModel):
    model: str = ""
    cli: CliConfig = CliConfig()
    chat: ChatConfig = ChatConfig()
    models: ModelsConfig = ModelsConfig()

    @classmethod
    def load(cls) -> GlobalConfig:
        path = get_config_path()
        if not path.exists():
            return cls()
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data)

    def save(self) -> None:
        path = get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump()
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
