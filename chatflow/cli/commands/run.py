"""Run command: walk a flow with a scripted list of actions."""

import json
from pathlib import Path
from typing import Annotated, Any

import typer

from chatflow.cli.utils import CLIContext, event_to_dict, handle_cli_errors
from chatflow.components.factory import ComponentFactory
from chatflow.flow.events import FlowEvent
from chatflow.flow.orchestrator import FlowOrchestrator
from chatflow.forms.form import FormState
from chatflow.models import COMPLETE, FlowEventType, StepType

COMPLETE_PREFIX = f"{COMPLETE}="


def parse_script_item(item: str) -> tuple[str, Any]:
    """
    Split a script item into an operation and its argument.

    ``complete`` and ``complete=<json>`` complete the current step; anything
    else is an action id.

    Raises:
        typer.BadParameter: If the JSON payload cannot be parsed
    """
    if item == COMPLETE:
        return COMPLETE, None
    if item.startswith(COMPLETE_PREFIX):
        raw = item[len(COMPLETE_PREFIX):]
        try:
            return COMPLETE, json.loads(raw)
        except json.JSONDecodeError as e:
            raise typer.BadParameter(f"Invalid JSON in '{item}': {e}") from e
    return "action", item


def submit_step(orchestrator: FlowOrchestrator, data: Any) -> dict[str, str]:
    """
    Complete the current step.

    Form steps go through a FormState so derived fields are filled in and
    only revealed sections are validated. Returns the form errors, if any.
    """
    step = orchestrator.require_current_step()
    if step.type != StepType.FORM or step.component.kind != "form" or not isinstance(data, dict):
        orchestrator.complete_current_step(data)
        return {}

    form = FormState.from_component(step.component, step.validation_rules)
    known = form.values
    extra = {}
    for field_id, value in data.items():
        if field_id in known:
            form.set_value(field_id, value)
        else:
            extra[field_id] = value

    def on_submit(values: dict[str, Any]) -> None:
        orchestrator.complete_current_step({**values, **extra})

    submission = form.submit(on_submit)
    return {e.field_id: e.message for e in submission.errors if e.field_id}


def _render_step(cli_ctx: CLIContext, orchestrator: FlowOrchestrator, factory: ComponentFactory) -> None:
    step = orchestrator.get_current_step()
    if step is None or cli_ctx.json_mode:
        return
    if not factory.has(step.component.kind):
        cli_ctx.print_verbose(f"[dim]No renderer for '{step.component.kind}'[/dim]")
        return
    renderable = factory.create(
        step.component,
        step_id=step.id,
        locked=orchestrator.is_step_locked(step.id),
        context=orchestrator.get_flow_context(),
    )
    cli_ctx.print(renderable)
    actions = [a.id for a in step.actions] + [a.id for a in orchestrator.get_suggested_actions()]
    actions.extend(k for k in step.transitions if k not in actions)
    if actions:
        cli_ctx.print(f"[dim]Triggers: {', '.join(actions)}[/dim]")


@handle_cli_errors("Failed to run flow")
def run_command(
    ctx: typer.Context,
    flow_id: Annotated[str, typer.Argument(help="Flow id to start")],
    script: Annotated[
        list[str] | None,
        typer.Option(
            "--step",
            "-s",
            help="Action id, 'complete', or 'complete=<json>'. Repeatable, applied in order",
        ),
    ] = None,
    flows_dir: Annotated[
        Path | None,
        typer.Option("--dir", "-d", help="Additional directory of flow files"),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output in JSON format")] = False,
):
    """Start a flow and apply a script of actions and completions."""
    cli_ctx: CLIContext = ctx.obj
    cli_ctx.json_mode = json_output
    items = [parse_script_item(item) for item in script or []]

    manager = cli_ctx.manager(flows_dir)
    orchestrator = manager.create_orchestrator()
    events: list[FlowEvent] = []

    def record(event: FlowEvent) -> None:
        events.append(event)
        if not json_output:
            cli_ctx.printer.print_event(event)

    for event_type in FlowEventType:
        orchestrator.on(event_type, record)

    orchestrator.start_flow(flow_id)
    _render_step(cli_ctx, orchestrator, manager.components)

    form_errors: dict[str, dict[str, str]] = {}
    for operation, argument in items:
        if operation == COMPLETE:
            step_id = orchestrator.require_current_step().id
            errors = submit_step(orchestrator, argument)
            if errors:
                form_errors[step_id] = errors
                for field_id, message in errors.items():
                    cli_ctx.print(f"[red]{step_id}.{field_id}: {message}[/red]")
        else:
            orchestrator.handle_action(argument)
        _render_step(cli_ctx, orchestrator, manager.components)

    state = orchestrator.get_flow_state()
    if json_output:
        cli_ctx.print_json(
            {
                "events": [event_to_dict(e) for e in events],
                "state": state.to_dict(),
                "formErrors": form_errors,
            }
        )
    else:
        cli_ctx.printer.print_state(state)
