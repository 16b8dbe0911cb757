"""Decorators for CLI error handling and consistent output formatting."""

from collections.abc import Callable
from functools import wraps

import typer

from chatflow.common.exceptions import ChatFlowError


def handle_cli_errors(error_message: str) -> Callable:
    """Decorator to report ChatFlow errors consistently and exit with code 1.

    Args:
        error_message: Prefix for the printed error

    Example:
        @handle_cli_errors("Failed to run flow")
        def run_command(ctx: typer.Context, ...):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            ctx = args[0] if args else kwargs.get("ctx")
            try:
                return func(*args, **kwargs)
            except ChatFlowError as e:
                cli_ctx = getattr(ctx, "obj", None)
                message = f"{error_message}: {e}"
                errors = getattr(e, "errors", [])
                if cli_ctx is None:
                    typer.echo(message, err=True)
                elif cli_ctx.json_mode:
                    cli_ctx.print_json({"error": message, "errors": errors})
                else:
                    cli_ctx.printer.print_error(message)
                    for detail in errors:
                        cli_ctx.console.print(f"  [red]- {detail}[/red]")
                raise typer.Exit(code=1) from e

        return wrapper

    return decorator
