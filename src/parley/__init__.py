"""Parley — interactive terminal chat with Claude."""

__version__ = "0.1.0"
