"""Unit tests for chatflow.flow.definition and chatflow.flow.context."""

import json
from dataclasses import FrozenInstanceError
from datetime import UTC, datetime

import pytest

from chatflow.common.exceptions import DefinitionError
from chatflow.flow import FlowDefinition, StepDefinition
from chatflow.flow.context import FlowContext, FlowState
from chatflow.flow.definition import ActionConfig, ComponentConfig, ConditionalTransition
from chatflow.models import FlowCategory, OrchestratorStatus, StepType


class TestFlowDefinition:
    """Test suite for building flows from the file format."""

    def test_from_dict(self, flow_data):
        """Every documented key is read."""
        # Act
        flow = FlowDefinition.from_dict(flow_data)

        # Assert
        assert flow.id == "demo"
        assert flow.category == FlowCategory.GENERAL
        assert flow.step_ids == ["intro", "details", "confirm", "closing"]
        assert flow.first_step.id == "intro"
        assert flow.metadata.tags == ("demo", "testing")
        intro = flow.get_step("intro")
        assert intro.type == StepType.OVERVIEW
        assert intro.actions == (ActionConfig(id="start", label="Start", type="primary"),)
        details = flow.get_step("details")
        assert [r.field_id for r in details.validation_rules] == ["name"]

    def test_missing_id(self, flow_data):
        """A flow without id is rejected."""
        # Arrange
        del flow_data["id"]

        # Act & Assert
        with pytest.raises(DefinitionError, match="missing an id"):
            FlowDefinition.from_dict(flow_data)

    def test_step_errors_carry_flow_id(self, flow_data):
        """Errors in a step name the flow they came from."""
        # Arrange
        del flow_data["steps"][1]["component"]

        # Act
        with pytest.raises(DefinitionError) as exc_info:
            FlowDefinition.from_dict(flow_data)

        # Assert
        assert exc_info.value.flow_id == "demo"
        assert exc_info.value.step_id == "details"

    def test_unknown_category_and_step_type_are_kept(self, flow_data):
        """Custom categories and step types pass through as strings."""
        # Arrange
        flow_data["category"] = "marketing"
        flow_data["steps"][0]["type"] = "carousel"

        # Act
        flow = FlowDefinition.from_dict(flow_data)

        # Assert
        assert flow.category == "marketing"
        assert flow.first_step.type == "carousel"

    def test_definitions_are_immutable(self, demo_flow):
        """Neither the dataclasses nor their props can be changed."""
        # Arrange
        step = demo_flow.get_step("details")

        # Act & Assert
        with pytest.raises(FrozenInstanceError):
            step.id = "other"
        with pytest.raises(TypeError):
            step.component.props["fields"] = []
        with pytest.raises(TypeError):
            step.transitions["onComplete"] = "intro"

    def test_targets_exclude_completion(self, demo_flow):
        """targets lists real steps only."""
        assert demo_flow.get_step("confirm").targets == {"details", "closing"}

    def test_to_dict_round_trip(self, flow_data):
        """Serializing and rebuilding keeps the same definition."""
        # Arrange
        flow = FlowDefinition.from_dict(flow_data)

        # Act
        rebuilt = FlowDefinition.from_dict(json.loads(json.dumps(flow.to_dict())))

        # Assert
        assert rebuilt == flow


class TestStepDefinition:
    """Test suite for step parsing."""

    def test_conditional_transitions(self):
        """List-valued transitions become conditional entries."""
        # Act
        step = StepDefinition.from_dict(
            {
                "id": "a",
                "type": "choice",
                "component": {"kind": "choices"},
                "transitions": {"onComplete": [{"condition": {"plan": "pro"}, "target": "b"}]},
            }
        )

        # Assert
        entry = step.transitions["onComplete"][0]
        assert isinstance(entry, ConditionalTransition)
        assert entry.target == "b"
        assert entry.condition["plan"] == "pro"
        assert step.targets == {"b"}

    def test_conditional_entry_needs_target(self):
        """Conditional entries without target are malformed."""
        with pytest.raises(DefinitionError, match="needs a target"):
            StepDefinition.from_dict(
                {
                    "id": "a",
                    "type": "choice",
                    "component": {"kind": "choices"},
                    "transitions": {"onComplete": [{"condition": {}}]},
                }
            )

    def test_transition_must_be_string_or_list(self):
        """Other transition values are malformed."""
        with pytest.raises(DefinitionError):
            StepDefinition.from_dict(
                {
                    "id": "a",
                    "type": "choice",
                    "component": {"kind": "choices"},
                    "transitions": {"onComplete": 3},
                }
            )

    def test_component_requires_kind(self):
        """A component without kind is malformed."""
        with pytest.raises(DefinitionError, match="kind"):
            ComponentConfig.from_dict({"props": {}})

    def test_component_derivation(self):
        """Derivation entries are parsed into derive targets."""
        # Act
        component = ComponentConfig.from_dict(
            {
                "kind": "form",
                "derivation": [{"fieldId": "username", "from": ["email"], "strategy": "usernameFromEmail"}],
            }
        )

        # Assert
        target = component.derivation[0]
        assert target.target_field_id == "username"
        assert target.source_field_ids == ("email",)
        assert target.editable is True


class TestFlowContext:
    """Test suite for FlowContext and FlowState."""

    def test_copy_is_deep(self):
        """Nested step data is not shared with the copy."""
        # Arrange
        context = FlowContext(flow_id="f", step_data={"a": {"items": [1]}})

        # Act
        clone = context.copy()
        clone.step_data["a"]["items"].append(2)

        # Assert
        assert context.step_data == {"a": {"items": [1]}}

    def test_is_empty(self):
        """An unset flow id means no flow."""
        assert FlowContext().is_empty
        assert not FlowContext(flow_id="f").is_empty

    def test_flow_state_json_round_trip(self):
        """The dict form survives JSON and rebuilds the same state."""
        # Arrange
        state = FlowState(
            flow_id="f",
            current_step="b",
            completed_steps=["a"],
            step_data={"a": {"x": 1}},
            metadata={"flowName": "F"},
            status=OrchestratorStatus.ACTIVE,
            started_at=datetime(2024, 1, 1, tzinfo=UTC),
            last_updated_at=datetime(2024, 1, 2, tzinfo=UTC),
        )

        # Act
        data = json.loads(json.dumps(state.to_dict()))
        restored = FlowState.from_dict(data)

        # Assert
        assert data["startedAt"] == "2024-01-01T00:00:00+00:00"
        assert data["completedSteps"] == ["a"]
        assert restored == state
