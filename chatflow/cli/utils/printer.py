"""CLI Printer for consistent output formatting."""

from typing import Any

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from chatflow.flow.context import FlowState
from chatflow.flow.definition import FlowDefinition
from chatflow.flow.events import FlowEvent
from chatflow.flow.registry import FlowValidationReport


def event_to_dict(event: FlowEvent) -> dict[str, Any]:
    return {
        "type": str(event.type),
        "flowId": event.flow_id,
        "stepId": event.step_id,
        "payload": event.payload,
        "timestamp": event.timestamp.isoformat(),
    }


def flow_summary(flow: FlowDefinition) -> dict[str, Any]:
    return {
        "id": flow.id,
        "name": flow.name,
        "category": str(flow.category),
        "steps": len(flow.steps),
        "description": flow.description,
    }


class CliPrinter:
    """Centralized printer for CLI output.

    Handles all printing operations for the CLI so commands format flows,
    events, and errors the same way in every mode.
    """

    def __init__(self, console: Console, verbose: bool = False):
        self.console = console
        self.verbose = verbose

    def print(self, message: Any, **kwargs) -> None:
        self.console.print(message, **kwargs)

    def print_json(self, data: Any) -> None:
        self.console.print_json(data=data)

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/red] {message}")

    def show_success(self, message: str) -> None:
        self.console.print(f"[green]OK[/green] {message}")

    def print_flow_table(self, flows: list[FlowDefinition]) -> None:
        table = Table(title="Registered flows")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Category", style="magenta")
        table.add_column("Steps", justify="right")
        for flow in flows:
            table.add_row(flow.id, flow.name, str(flow.category), str(len(flow.steps)))
        self.console.print(table)

    def print_flow_details(self, flow: FlowDefinition) -> None:
        tree = Tree(f"[bold]{flow.name}[/bold] [dim]({flow.id})[/dim]")
        if flow.description:
            tree.add(f"[dim]{flow.description}[/dim]")
        for step in flow.steps:
            node = tree.add(
                f"[cyan]{step.id}[/cyan] [magenta]{step.type}[/magenta] "
                f"{step.title} [dim]<{step.component.kind}>[/dim]"
            )
            for trigger, target in step.transitions.items():
                if isinstance(target, str):
                    node.add(f"{trigger} -> {target}")
                else:
                    node.add(f"{trigger} -> [yellow]conditional ({len(target)})[/yellow]")
        self.console.print(tree)

    def print_validation_report(self, source: str, report: FlowValidationReport) -> None:
        if report.valid:
            self.show_success(f"{source}: flow '{report.flow_id}' is valid")
        else:
            self.console.print(
                f"[red]{source}: flow '{report.flow_id}' has {len(report.errors)} error(s)[/red]"
            )
        for error in report.errors:
            self.console.print(f"  [red]- {error}[/red]")
        for warning in report.warnings:
            self.console.print(f"  [yellow]- {warning}[/yellow]")

    def print_event(self, event: FlowEvent) -> None:
        step = f" [cyan]{event.step_id}[/cyan]" if event.step_id else ""
        details = ""
        if self.verbose and event.payload:
            details = f" [dim]{event.payload}[/dim]"
        self.console.print(f"[bold blue]{event.type}[/bold blue]{step}{details}")

    def print_state(self, state: FlowState) -> None:
        table = Table(title=f"Flow state: {state.flow_id or '-'}", show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        table.add_row("Status", str(state.status))
        table.add_row("Current step", state.current_step or "-")
        table.add_row("Completed", ", ".join(state.completed_steps) or "-")
        for step_id, data in state.step_data.items():
            table.add_row(f"Data [{step_id}]", str(data))
        self.console.print(table)
