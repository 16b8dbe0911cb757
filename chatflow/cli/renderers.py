"""Terminal renderers for step components.

Each renderer turns a component's props into a rich renderable. They are
registered on a ComponentFactory by kind; the flow engine never sees them.
"""

from collections.abc import Mapping
from typing import Any

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from chatflow.components.factory import ComponentFactory
from chatflow.flow.context import FlowContext

ALERT_STYLES = {"info": "blue", "success": "green", "warning": "yellow", "error": "red"}


def _title(props: Mapping[str, Any], default: str = "") -> str:
    title = props.get("title") or default
    if props.get("locked"):
        title = f"{title} [dim](locked)[/dim]"
    return title


def render_alert(props: Mapping[str, Any], context: FlowContext | None) -> Panel:
    style = ALERT_STYLES.get(props.get("type", "info"), "blue")
    return Panel(Text(props.get("message", "")), title=_title(props), border_style=style)


def render_steps(props: Mapping[str, Any], context: FlowContext | None) -> Panel:
    table = Table(show_header=False, box=None)
    status = props.get("status") or {}
    for index, step in enumerate(props.get("steps", ()), start=1):
        marker = str(index) if props.get("showIndex") else "-"
        state = status.get(step.get("id"), "") if isinstance(status, Mapping) else ""
        table.add_row(marker, step.get("title", ""), step.get("hint", ""), state)
    return Panel(table, title=_title(props))


def render_choices(props: Mapping[str, Any], context: FlowContext | None) -> Panel:
    table = Table(show_header=True, box=None)
    table.add_column("Action", style="cyan")
    table.add_column("Option")
    table.add_column("Description", style="dim")
    for option in props.get("options", ()):
        table.add_row(option.get("id", ""), option.get("label", ""), option.get("description", ""))
    return Panel(table, title=_title(props))


def render_process(props: Mapping[str, Any], context: FlowContext | None) -> Panel:
    lines = [Text(props.get("message", ""))]
    lines.extend(Text(f"  - {detail}", style="dim") for detail in props.get("details", ()))
    style = "green" if props.get("status") == "success" else "yellow"
    return Panel(Group(*lines), title=_title(props), border_style=style)


def render_filedrop(props: Mapping[str, Any], context: FlowContext | None) -> Panel:
    text = Text(props.get("description", ""))
    if props.get("accept"):
        text.append(f"\nAccepted: {props['accept']}", style="dim")
    return Panel(text, title=_title(props, "Upload"))


class FormRenderer:
    """Lists a form's sections and fields, marking required ones."""

    def render(self, props: Mapping[str, Any], context: FlowContext | None) -> Panel:
        table = Table(show_header=True, box=None)
        table.add_column("Section", style="magenta")
        table.add_column("Field", style="cyan")
        table.add_column("Label")
        table.add_column("Type", style="dim")
        sections = list(props.get("sections", ()))
        if props.get("fields"):
            sections.insert(0, {"id": "default", "fields": props["fields"]})
        for section in sections:
            for fld in section.get("fields", ()):
                label = fld.get("label", "")
                if fld.get("required"):
                    label = f"{label} *"
                table.add_row(section.get("id", ""), fld.get("id", ""), label, fld.get("type", "text"))
        return Panel(table, title=_title(props, "Form"))


class SummaryRenderer:
    """Fills ``{field}`` placeholders from the data collected so far."""

    def render(self, props: Mapping[str, Any], context: FlowContext | None) -> Panel:
        values: dict[str, Any] = {}
        if context is not None:
            for data in context.step_data.values():
                if isinstance(data, Mapping):
                    values.update(data)
        table = Table(show_header=False, box=None)
        for item in props.get("items", ()):
            subtitle = str(item.get("subtitle", ""))
            try:
                subtitle = subtitle.format_map(_Missing(values))
            except (ValueError, IndexError):
                pass
            table.add_row(item.get("title", ""), subtitle, item.get("message", ""))
        return Panel(table, title=_title(props), border_style="green")


class _Missing(dict):
    def __missing__(self, key: str) -> str:
        return "-"


def render_generic(props: Mapping[str, Any], context: FlowContext | None) -> Panel:
    return Panel(Text(str(props.get("description", ""))), title=_title(props, "Step"))


def create_console_factory() -> ComponentFactory:
    """Component factory with a terminal renderer for every bundled component kind."""
    return ComponentFactory(
        {
            "alert": render_alert,
            "steps": render_steps,
            "choices": render_choices,
            "process": render_process,
            "filedrop": render_filedrop,
            "form": FormRenderer(),
            "summary": SummaryRenderer(),
        }
    )
