"""Chat with a Claude session from the terminal."""

from parley.assistant.run import run_assistant

__all__ = ["run_assistant"]
