"""Pytest configuration and shared fixtures for the ChatFlow test suite."""

from typing import Any

import pytest
from ruamel.yaml import YAML

from chatflow.extensions import LockPredicateRegistry
from chatflow.flow import FlowDefinition, FlowEvent, FlowOrchestrator, FlowRegistry
from chatflow.models import FlowEventType
from chatflow.schema import load_builtin_flows


def make_flow_data() -> dict[str, Any]:
    """A small four-step flow exercising actions, validation, and completion."""
    return {
        "id": "demo",
        "name": "Demo Flow",
        "description": "Small flow used across the test suite",
        "category": "general",
        "metadata": {"tags": ["demo", "testing"]},
        "steps": [
            {
                "id": "intro",
                "type": "overview",
                "title": "Intro",
                "component": {"kind": "alert", "props": {"message": "Welcome"}},
                "actions": [{"id": "start", "label": "Start", "type": "primary"}],
                "transitions": {"start": "details"},
            },
            {
                "id": "details",
                "type": "form",
                "title": "Details",
                "component": {
                    "kind": "form",
                    "props": {
                        "fields": [
                            {"id": "name", "label": "Name", "required": True},
                            {"id": "age", "label": "Age", "type": "number"},
                        ]
                    },
                },
                "validation": {
                    "rules": [
                        {"fieldId": "name", "rule": "required", "message": "Name is required"},
                    ]
                },
                "transitions": {"onComplete": "confirm", "skip": "confirm"},
            },
            {
                "id": "confirm",
                "type": "result",
                "title": "Confirm",
                "component": {"kind": "summary", "props": {"items": []}},
                "suggestedActions": [
                    {"id": "edit", "label": "Edit details"},
                    {"id": "done", "label": "Done"},
                ],
                "transitions": {"edit": "details", "done": "complete", "default": "closing"},
            },
            {
                "id": "closing",
                "type": "result",
                "title": "Closing",
                "component": {"kind": "alert", "props": {"message": "Bye"}},
                "transitions": {"onComplete": "complete"},
            },
        ],
    }


class EventRecorder:
    """Subscriber that keeps every event it receives."""

    def __init__(self):
        self.events: list[FlowEvent] = []

    def __call__(self, event: FlowEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [str(e.type) for e in self.events]

    def of_type(self, event_type: FlowEventType) -> list[FlowEvent]:
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def flow_data() -> dict[str, Any]:
    return make_flow_data()


@pytest.fixture
def demo_flow(flow_data) -> FlowDefinition:
    return FlowDefinition.from_dict(flow_data)


@pytest.fixture
def registry(demo_flow) -> FlowRegistry:
    return FlowRegistry([demo_flow])


@pytest.fixture
def orchestrator(registry) -> FlowOrchestrator:
    return FlowOrchestrator(registry=registry)


@pytest.fixture
def recorder(orchestrator) -> EventRecorder:
    """Recorder subscribed to every event type of the orchestrator fixture."""
    recorder = EventRecorder()
    for event_type in FlowEventType:
        orchestrator.on(event_type, recorder)
    return recorder


@pytest.fixture(scope="session")
def builtin_flows() -> dict[str, FlowDefinition]:
    return {flow.id: flow for flow in load_builtin_flows(LockPredicateRegistry())}


@pytest.fixture
def bulk_upload_flow(builtin_flows) -> FlowDefinition:
    return builtin_flows["bulk-client-upload"]


@pytest.fixture
def client_setup_flow(builtin_flows) -> FlowDefinition:
    return builtin_flows["create-new-client"]


@pytest.fixture
def builtin_orchestrator(builtin_flows) -> FlowOrchestrator:
    return FlowOrchestrator(registry=FlowRegistry(builtin_flows.values()))


@pytest.fixture
def write_yaml(tmp_path):
    """Write a mapping to a YAML file under tmp_path and return its path."""

    def _write(data: Any, name: str = "flow.yaml"):
        path = tmp_path / name
        yaml = YAML()
        yaml.default_flow_style = False
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _write
