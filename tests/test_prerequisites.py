"""Tests for the Claude CLI install and auth checks."""

import json
import subprocess

import pytest

from parley.core import prerequisites
from parley.core.prerequisites import CliStatus, check_auth, check_status, is_installed, is_ready


@pytest.fixture(autouse=True)
def no_tokens(monkeypatch):
    for key in prerequisites.TOKEN_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


def _install_run(monkeypatch, responses):
    """Patch subprocess.run; ``responses`` maps the first argument after the
    command to a CompletedProcess or an exception."""
    calls = []

    def run(cmd, **kwargs):
        calls.append(cmd)
        result = responses[cmd[1]]
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(prerequisites.subprocess, "run", run)
    return calls


def _done(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


def test_installed_when_version_succeeds(monkeypatch):
    _install_run(monkeypatch, {"--version": _done("2.0.1 (Claude Code)")})
    assert is_installed() is True


def test_not_installed_when_binary_missing(monkeypatch):
    _install_run(monkeypatch, {"--version": FileNotFoundError("claude")})
    assert is_installed() is False


def test_not_installed_when_version_fails(monkeypatch):
    _install_run(monkeypatch, {"--version": _done(returncode=1)})
    assert is_installed() is False


def test_token_counts_as_authenticated(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    calls = _install_run(monkeypatch, {})
    assert check_auth() == (True, None)
    assert calls == []


def test_auth_status_logged_in(monkeypatch):
    _install_run(monkeypatch, {"auth": _done(json.dumps({"loggedIn": True}))})
    assert check_auth() == (True, None)


def test_auth_status_logged_out(monkeypatch):
    _install_run(monkeypatch, {"auth": _done(json.dumps({"loggedIn": False}))})
    authenticated, error = check_auth()
    assert authenticated is False
    assert "claude auth login" in error


def test_auth_error_markers_in_stderr(monkeypatch):
    _install_run(monkeypatch, {"auth": _done(stderr="Error: Login required", returncode=1)})
    authenticated, error = check_auth()
    assert authenticated is False
    assert "Not authenticated" in error


def test_auth_non_json_success(monkeypatch):
    _install_run(monkeypatch, {"auth": _done("Logged in as someone")})
    assert check_auth() == (True, None)


def test_check_status_not_installed(monkeypatch):
    _install_run(monkeypatch, {"--version": FileNotFoundError("claude")})
    status = check_status()
    assert status == CliStatus(
        installed=False,
        token_set=False,
        authenticated=False,
        error="Claude CLI is not installed.",
    )
    assert is_ready(status) is False


def test_check_status_ready(monkeypatch):
    _install_run(monkeypatch, {
        "--version": _done("2.0.1"),
        "auth": _done(json.dumps({"loggedIn": True})),
    })
    status = check_status()
    assert status.installed and status.authenticated
    assert is_ready(status) is True


def test_is_ready_with_token_only():
    status = CliStatus(installed=True, token_set=True, authenticated=False)
    assert is_ready(status) is True


def test_is_authenticated_wraps_check_auth(monkeypatch):
    _install_run(monkeypatch, {"auth": _done(json.dumps({"loggedIn": False}))})
    assert prerequisites.is_authenticated() is False
