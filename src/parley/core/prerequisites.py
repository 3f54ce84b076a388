"""Check that the Claude CLI is installed and the user is authenticated."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("ANTHROPIC_API_KEY", "CLAUDE_CODE_OAUTH_TOKEN")

_AUTH_ERROR_MARKERS = ("not authenticated", "unauthorized", "login required")


@dataclass(frozen=True)
class CliStatus:
    installed: bool
    token_set: bool
    authenticated: bool
    error: str | None = None


def token_set() -> bool:
    """Return True if an auth token is present in the environment."""
    return any(os.environ.get(key) for key in TOKEN_ENV_VARS)


def is_installed(command: str = "claude", timeout: float = 5.0) -> bool:
    """Return True if ``<command> --version`` runs and exits cleanly."""
    try:
        result = subprocess.run(
            [command, "--version"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("%s --version failed: %s", command, e)
        return False
    return result.returncode == 0


def check_auth(command: str = "claude", timeout: float = 5.0) -> tuple[bool, str | None]:
    """Return ``(authenticated, error)`` for the Claude CLI.

    A token in the environment counts as authenticated. Otherwise
    ``claude auth status`` is asked; its JSON carries ``loggedIn``. Older
    CLIs that do not print JSON are judged by their stderr.
    """
    if token_set():
        return True, None

    try:
        result = subprocess.run(
            [command, "auth", "status"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        return False, f"Failed to check authentication: {e}"

    try:
        payload = json.loads(result.stdout.strip() or "{}")
    except json.JSONDecodeError:
        payload = None

    if isinstance(payload, dict) and "loggedIn" in payload:
        if payload.get("loggedIn"):
            return True, None
        return False, "Not authenticated. Run 'claude auth login' or set ANTHROPIC_API_KEY."

    stderr = result.stderr.lower()
    if any(marker in stderr for marker in _AUTH_ERROR_MARKERS):
        return False, "Not authenticated. Run 'claude auth login' or set ANTHROPIC_API_KEY."

    if result.returncode == 0:
        return True, None
    return False, "Claude CLI returned an error."


def is_authenticated(command: str = "claude", timeout: float = 5.0) -> bool:
    authenticated, _ = check_auth(command, timeout)
    return authenticated


def check_status(command: str = "claude", timeout: float = 5.0) -> CliStatus:
    """Run every check and collect the results."""
    has_token = token_set()
    if not is_installed(command, timeout):
        return CliStatus(
            installed=False,
            token_set=has_token,
            authenticated=False,
            error="Claude CLI is not installed.",
        )

    authenticated, error = check_auth(command, timeout)
    return CliStatus(
        installed=True,
        token_set=has_token,
        authenticated=authenticated,
        error=error,
    )


def is_ready(status: CliStatus) -> bool:
    return status.installed and (status.token_set or status.authenticated)
