"""
CLI Context for ChatFlow.

Provides configuration and flow manager access for all CLI commands.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console

from chatflow.cli.renderers import create_console_factory
from chatflow.cli.utils.printer import CliPrinter
from chatflow.manager import ChatFlowConfig, FlowManager


@dataclass
class CLIContext:
    """
    Context object for CLI commands.

    Created once in the app callback and passed to every command through
    ``ctx.obj``.

    Attributes:
        console: Rich console for output
        config: Configuration read from the environment
        verbose: Enable verbose output (ignored when json_mode is True)
        printer: CLI printer for formatted output
        json_mode: When True, suppress all non-JSON output (set by commands)
    """

    console: Console
    config: ChatFlowConfig
    verbose: bool = False
    printer: CliPrinter = field(init=False)
    json_mode: bool = False

    def __post_init__(self):
        self.printer = CliPrinter(console=self.console, verbose=self.verbose)

    def manager(self, flows_dir: Path | None = None) -> FlowManager:
        """Flow manager for the configured sources, optionally with another directory."""
        config = self.config.with_flows_dir(flows_dir)
        return FlowManager(config, components=create_console_factory())

    def print_verbose(self, message: str, **kwargs) -> None:
        if self.verbose and not self.json_mode:
            self.console.print(message, **kwargs)

    def print_error(self, message: str) -> None:
        if self.json_mode:
            self.printer.print_json({"error": message})
        else:
            self.printer.print_error(message)

    def print_json(self, data: Any) -> None:
        self.printer.print_json(data)

    def print(self, message: Any, **kwargs) -> None:
        if not self.json_mode:
            self.console.print(message, **kwargs)
