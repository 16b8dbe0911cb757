"""CLI utilities package.

- CLIContext: context shared by commands
- CliPrinter: formatted output
- handle_cli_errors: error reporting decorator
"""

from chatflow.cli.utils.context import CLIContext
from chatflow.cli.utils.decorators import handle_cli_errors
from chatflow.cli.utils.printer import CliPrinter, event_to_dict, flow_summary

__all__ = [
    "CLIContext",
    "CliPrinter",
    "event_to_dict",
    "flow_summary",
    "handle_cli_errors",
]
