"""Discover which models the Claude CLI accepts.

The CLI has no structured model listing, so the names are recovered from the
``--model`` entry of ``claude --help``. Callers only see the ``ModelCatalog``
interface; a structured source can replace the scraper without touching them.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Protocol, Sequence

logger = logging.getLogger(__name__)

# The --model option line plus its indented continuation lines.
_MODEL_OPTION_RE = re.compile(
    r"^[ \t]*--model\b[^\n]*(?:\n(?![ \t]*-)[ \t]+[^\n]*)*",
    re.MULTILINE,
)
_QUOTED_NAME_RE = re.compile(r"['\"]([A-Za-z0-9][\w.\-\[\]]*)['\"]")
_DATE_SUFFIX_RE = re.compile(r"-(\d{8})$")


@dataclass(frozen=True)
class ModelInfo:
    id: str
    display_name: str


class ModelCatalog(Protocol):
    def list(self) -> list[ModelInfo]: ...


def display_name(model_id: str) -> str:
    """Turn a model id into a readable label.

    ``sonnet`` -> ``Sonnet (latest)``,
    ``claude-sonnet-4-5-20250929`` -> ``Claude Sonnet 4.5 (20250929)``.
    """
    if "-" not in model_id:
        return f"{model_id.capitalize()} (latest)"

    date = ""
    match = _DATE_SUFFIX_RE.search(model_id)
    base = model_id
    if match:
        date = match.group(1)
        base = model_id[: match.start()]

    words: list[str] = []
    for part in base.split("-"):
        if part.isdigit() and words and words[-1][-1].isdigit():
            words[-1] = f"{words[-1]}.{part}"
        else:
            words.append(part.capitalize() if part.isalpha() else part)
    label = " ".join(words)
    return f"{label} ({date})" if date else label


def parse_help_models(help_text: str) -> list[str]:
    """Extract model names quoted in the ``--model`` description."""
    match = _MODEL_OPTION_RE.search(help_text)
    if not match:
        return []
    names: list[str] = []
    for name in _QUOTED_NAME_RE.findall(match.group(0)):
        if name not in names:
            names.append(name)
    return names


class CliModelCatalog:
    """Model catalog backed by ``claude --help``.

    Names found in the help text come first, followed by any configured
    aliases the help text did not mention.
    """

    def __init__(
        self,
        command: str = "claude",
        fallback: Sequence[str] = ("opus", "sonnet", "haiku"),
        timeout: float = 5.0,
    ) -> None:
        self.command = command
        self.fallback = list(fallback)
        self.timeout = timeout

    def _help_text(self) -> str | None:
        try:
            result = subprocess.run(
                [self.command, "--help"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Could not run %s --help: %s", self.command, e)
            return None
        if result.returncode != 0:
            logger.warning("%s --help exited with %d", self.command, result.returncode)
            return None
        return result.stdout

    def list(self) -> list[ModelInfo]:
        help_text = self._help_text()
        if help_text is None:
            return []

        ids = parse_help_models(help_text)
        logger.debug("Models found in help text: %s", ids)
        for alias in self.fallback:
            if alias not in ids:
                ids.append(alias)
        return [ModelInfo(id=model_id, display_name=display_name(model_id)) for model_id in ids]
