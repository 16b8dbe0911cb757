"""Flow catalog command group: list, show, validate."""

from pathlib import Path
from typing import Annotated

import typer

from chatflow.cli.utils import CLIContext, flow_summary, handle_cli_errors
from chatflow.flow.registry import FlowRegistry
from chatflow.schema.loader import load_flows

flows_app = typer.Typer(
    name="flows",
    help="Inspect and validate flow definitions",
    no_args_is_help=True,
)

FlowsDirOption = Annotated[
    Path | None,
    typer.Option("--dir", "-d", help="Additional directory of flow files"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output in JSON format")]


@flows_app.command("list")
@handle_cli_errors("Failed to list flows")
def list_command(
    ctx: typer.Context,
    flows_dir: FlowsDirOption = None,
    json_output: JsonOption = False,
):
    """List registered flows."""
    cli_ctx: CLIContext = ctx.obj
    cli_ctx.json_mode = json_output
    flows = cli_ctx.manager(flows_dir).list_flows()
    if json_output:
        cli_ctx.print_json([flow_summary(f) for f in flows])
    else:
        cli_ctx.printer.print_flow_table(flows)


@flows_app.command("show")
@handle_cli_errors("Failed to show flow")
def show_command(
    ctx: typer.Context,
    flow_id: Annotated[str, typer.Argument(help="Flow id")],
    flows_dir: FlowsDirOption = None,
    json_output: JsonOption = False,
):
    """Show a flow's steps and transitions."""
    cli_ctx: CLIContext = ctx.obj
    cli_ctx.json_mode = json_output
    flow = cli_ctx.manager(flows_dir).get_flow(flow_id)
    if json_output:
        cli_ctx.print_json(flow.to_dict())
    else:
        cli_ctx.printer.print_flow_details(flow)


@flows_app.command("validate")
@handle_cli_errors("Failed to validate flow file")
def validate_command(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Flow file (YAML or JSON)")],
    json_output: JsonOption = False,
):
    """Load a flow file and check every flow in it. Exits with 1 on errors."""
    cli_ctx: CLIContext = ctx.obj
    cli_ctx.json_mode = json_output
    flows = load_flows(file, cli_ctx.manager().predicates)
    reports = [FlowRegistry.validate_flow(flow) for flow in flows]

    if json_output:
        cli_ctx.print_json(
            {
                "file": str(file),
                "valid": all(r.valid for r in reports),
                "flows": [r.to_dict() for r in reports],
            }
        )
    else:
        for report in reports:
            cli_ctx.printer.print_validation_report(str(file), report)

    if not all(r.valid for r in reports):
        raise typer.Exit(code=1)
