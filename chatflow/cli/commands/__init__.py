"""CLI commands module for ChatFlow."""

from chatflow.cli.commands.flows import flows_app
from chatflow.cli.commands.run import run_command

__all__ = [
    "flows_app",
    "run_command",
]
