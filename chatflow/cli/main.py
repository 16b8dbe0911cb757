"""ChatFlow CLI - Typer-based command line interface."""

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from chatflow.cli.commands import flows_app, run_command
from chatflow.cli.utils import CLIContext
from chatflow.common.exceptions import ConfigValidationError
from chatflow.manager import ChatFlowConfig
from chatflow.manager.constants import log_level_number

app = typer.Typer(
    name="chatflow",
    help="ChatFlow: conversational flow orchestration and reactive forms",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(level: int) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose output and debug logging")
    ] = False,
):
    """
    ChatFlow CLI callback - sets up logging and the context for all commands.
    """
    try:
        config = ChatFlowConfig.from_env()
    except ConfigValidationError as e:
        err_console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    configure_logging(logging.DEBUG if verbose else log_level_number(config.log_level))
    ctx.obj = CLIContext(console=console, config=config, verbose=verbose)


app.add_typer(flows_app)
app.command(name="run")(run_command)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
