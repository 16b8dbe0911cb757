"""Command line interface for ChatFlow."""

from chatflow.cli.main import app, main

__all__ = ["app", "main"]
