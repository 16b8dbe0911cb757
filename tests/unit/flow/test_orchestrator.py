"""Unit tests for chatflow.flow.orchestrator.

Covers the flow lifecycle (start, transition, complete, action, reset), event
ordering, lock state, suggested actions, and state persistence.
"""

import json
import logging

import pytest

from chatflow.common.exceptions import DefinitionError, FlowStateError
from chatflow.flow import FlowDefinition, FlowOrchestrator, FlowRegistry, FlowState
from chatflow.models import FlowEventType, OrchestratorStatus
from tests.conftest import EventRecorder, make_flow_data


class TestRegistration:
    """Test suite for flow registration."""

    def test_register_flow_makes_it_startable(self, demo_flow):
        """A registered flow can be started by id."""
        # Arrange
        orchestrator = FlowOrchestrator()

        # Act
        orchestrator.register_flow(demo_flow)
        orchestrator.start_flow("demo")

        # Assert
        assert orchestrator.get_current_flow() is demo_flow

    def test_register_duplicate_flow_raises(self, orchestrator, demo_flow):
        """Registering the same id twice is a definition error."""
        with pytest.raises(DefinitionError, match="already registered"):
            orchestrator.register_flow(demo_flow)

    def test_register_flows_registers_each(self):
        """register_flows accepts any iterable of definitions."""
        # Arrange
        first = FlowDefinition.from_dict(make_flow_data())
        second_data = make_flow_data()
        second_data["id"] = "demo-2"
        second = FlowDefinition.from_dict(second_data)
        orchestrator = FlowOrchestrator()

        # Act
        orchestrator.register_flows([first, second])

        # Assert
        assert orchestrator.registry.has("demo")
        assert orchestrator.registry.has("demo-2")


class TestStartFlow:
    """Test suite for start_flow."""

    def test_start_flow_sets_first_step_current(self, orchestrator):
        """After start the first step is current and nothing is completed."""
        # Act
        orchestrator.start_flow("demo")

        # Assert
        assert orchestrator.get_current_step().id == "intro"
        context = orchestrator.get_flow_context()
        assert context.completed_steps == set()
        assert context.flow_id == "demo"
        assert context.metadata["flowName"] == "Demo Flow"
        assert orchestrator.status == OrchestratorStatus.ACTIVE

    def test_start_flow_emits_step_started_then_flow_started(self, orchestrator, recorder):
        """The first step is announced before the flow itself."""
        # Act
        orchestrator.start_flow("demo")

        # Assert
        assert recorder.types == ["step:started", "flow:started"]
        started = recorder.of_type(FlowEventType.FLOW_STARTED)[0]
        assert started.flow_id == "demo"
        assert started.payload == {"flowId": "demo"}

    def test_start_unknown_flow_raises(self, orchestrator):
        """An unregistered flow id is rejected."""
        with pytest.raises(DefinitionError, match="Flow with ID 'missing' not found"):
            orchestrator.start_flow("missing")

    def test_start_unknown_flow_keeps_active_flow(self, orchestrator, recorder):
        """A failed start leaves the running flow untouched."""
        # Arrange
        orchestrator.start_flow("demo")
        recorder.clear()

        # Act
        with pytest.raises(DefinitionError):
            orchestrator.start_flow("missing")

        # Assert
        assert orchestrator.get_current_step().id == "intro"
        assert recorder.events == []

    def test_restart_cancels_active_flow_first(self, orchestrator, recorder):
        """Starting over an active flow reports it as cancelled."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.handle_action("start")
        recorder.clear()

        # Act
        orchestrator.start_flow("demo")

        # Assert
        assert recorder.types == ["flow:cancelled", "step:started", "flow:started"]
        assert orchestrator.get_current_step().id == "intro"
        assert orchestrator.get_flow_context().completed_steps == set()

    def test_start_advances_generation(self, orchestrator):
        """Each start moves the generation counter on."""
        # Arrange
        before = orchestrator.generation

        # Act
        orchestrator.start_flow("demo")

        # Assert
        assert orchestrator.generation == before + 1

    def test_start_flow_without_steps(self):
        """A flow without steps starts with no current step."""
        # Arrange
        flow = FlowDefinition(id="empty", name="Empty")
        orchestrator = FlowOrchestrator(registry=FlowRegistry([flow]))

        # Act
        orchestrator.start_flow("empty")

        # Assert
        assert orchestrator.get_current_step() is None
        assert orchestrator.is_active


class TestTransitionToStep:
    """Test suite for transition_to_step."""

    def test_transition_marks_previous_step_completed(self, orchestrator):
        """The step being left joins the completed set."""
        # Arrange
        orchestrator.start_flow("demo")

        # Act
        orchestrator.transition_to_step("confirm")

        # Assert
        assert orchestrator.get_current_step().id == "confirm"
        assert orchestrator.is_step_completed("intro")
        assert not orchestrator.is_step_completed("details")

    def test_transition_emits_completed_before_started(self, orchestrator, recorder):
        """Outgoing step:completed always precedes incoming step:started."""
        # Arrange
        orchestrator.start_flow("demo")
        recorder.clear()

        # Act
        orchestrator.transition_to_step("details")

        # Assert
        assert [(e.type, e.step_id) for e in recorder.events] == [
            (FlowEventType.STEP_COMPLETED, "intro"),
            (FlowEventType.STEP_STARTED, "details"),
        ]

    def test_transition_to_unknown_step_raises(self, orchestrator):
        """Unknown step ids are definition errors."""
        # Arrange
        orchestrator.start_flow("demo")

        # Act & Assert
        with pytest.raises(DefinitionError) as exc_info:
            orchestrator.transition_to_step("nope")
        assert exc_info.value.step_id == "nope"
        assert exc_info.value.flow_id == "demo"

    def test_transition_without_flow_raises(self, orchestrator):
        """There is nothing to transition when no flow is active."""
        with pytest.raises(FlowStateError):
            orchestrator.transition_to_step("intro")

    def test_revisiting_step_keeps_it_completed(self, orchestrator):
        """Completion is never revoked by going back to a step."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("details")

        # Act
        orchestrator.transition_to_step("intro")

        # Assert
        assert orchestrator.is_current_step("intro")
        assert orchestrator.get_flow_context().completed_steps == {"intro", "details"}


class TestCompleteCurrentStep:
    """Test suite for complete_current_step."""

    def test_missing_required_field_stays_on_step(self, orchestrator, recorder):
        """A required rule violation emits one validation:failed and does not move."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.handle_action("start")
        recorder.clear()

        # Act
        accepted = orchestrator.complete_current_step({"age": 30})

        # Assert
        assert accepted is False
        assert orchestrator.get_current_step().id == "details"
        failed = recorder.of_type(FlowEventType.VALIDATION_FAILED)
        assert len(failed) == 1
        assert recorder.types == ["validation:failed"]
        assert failed[0].step_id == "details"
        assert failed[0].payload["errors"] == [
            {"fieldId": "name", "message": "Name is required"}
        ]
        assert "details" not in orchestrator.get_flow_context().step_data

    def test_valid_data_is_stored_and_advances(self, orchestrator):
        """Accepted data is stored under the step id and onComplete is followed."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.handle_action("start")

        # Act
        accepted = orchestrator.complete_current_step({"name": "Ada"})

        # Assert
        assert accepted is True
        assert orchestrator.get_current_step().id == "confirm"
        assert orchestrator.get_flow_context().step_data["details"] == {"name": "Ada"}

    def test_default_transition_is_used_without_on_complete(self, orchestrator):
        """Completion falls back to the default transition."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")

        # Act
        orchestrator.complete_current_step()

        # Assert
        assert orchestrator.get_current_step().id == "closing"

    def test_none_data_is_not_stored(self, orchestrator):
        """Completing without data leaves step_data untouched."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")

        # Act
        orchestrator.complete_current_step()

        # Assert
        assert orchestrator.get_flow_context().step_data == {}

    def test_step_without_completion_transition_stalls(self, orchestrator, caplog):
        """A step with no onComplete or default stays current."""
        # Arrange
        orchestrator.start_flow("demo")

        # Act
        with caplog.at_level(logging.DEBUG, logger="chatflow"):
            accepted = orchestrator.complete_current_step({"seen": True})

        # Assert
        assert accepted is True
        assert orchestrator.get_current_step().id == "intro"
        assert orchestrator.get_flow_context().step_data["intro"] == {"seen": True}
        assert "no next step" in caplog.text

    def test_complete_sentinel_finishes_flow(self, orchestrator, recorder):
        """onComplete: complete marks the step done, then emits flow:completed."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("closing")
        recorder.clear()

        # Act
        orchestrator.complete_current_step({"rating": 5})

        # Assert
        assert recorder.types == ["step:completed", "flow:completed"]
        finished = recorder.of_type(FlowEventType.FLOW_COMPLETED)[0]
        assert finished.step_id is None
        assert finished.payload["data"] == {"closing": {"rating": 5}}
        assert orchestrator.get_current_step() is None
        assert orchestrator.status == OrchestratorStatus.COMPLETED
        assert orchestrator.is_step_completed("closing")

    def test_complete_without_flow_raises(self, orchestrator):
        """No active step means there is nothing to complete."""
        with pytest.raises(FlowStateError):
            orchestrator.complete_current_step({})


class TestHandleAction:
    """Test suite for handle_action."""

    def test_action_follows_its_transition(self, orchestrator, recorder):
        """An action id that names a transition moves to its target."""
        # Arrange
        orchestrator.start_flow("demo")
        recorder.clear()

        # Act
        orchestrator.handle_action("start")

        # Assert
        assert orchestrator.get_current_step().id == "details"
        assert recorder.types == ["step:completed", "step:started", "action:triggered"]
        triggered = recorder.events[-1]
        assert triggered.payload == {"actionId": "start"}
        assert triggered.step_id == "intro"

    def test_unknown_action_only_emits_event(self, orchestrator, recorder):
        """Actions without a transition are still announced."""
        # Arrange
        orchestrator.start_flow("demo")
        recorder.clear()

        # Act
        orchestrator.handle_action("help")

        # Assert
        assert orchestrator.get_current_step().id == "intro"
        assert recorder.types == ["action:triggered"]

    def test_action_targeting_complete_finishes_flow(self, orchestrator, recorder):
        """An action resolving to the completion sentinel ends the flow."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")
        recorder.clear()

        # Act
        orchestrator.handle_action("done")

        # Assert
        assert recorder.types == ["step:completed", "flow:completed", "action:triggered"]
        assert orchestrator.status == OrchestratorStatus.COMPLETED
        assert orchestrator.get_current_step() is None

    def test_action_on_explicit_step(self, orchestrator):
        """Actions can name the step whose transitions apply."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")

        # Act
        orchestrator.handle_action("skip", step_id="details")

        # Assert
        assert orchestrator.get_current_step().id == "confirm"
        assert orchestrator.is_step_completed("confirm")

    def test_action_on_unknown_step_raises(self, orchestrator):
        """An explicit step id that is not in the flow is rejected."""
        # Arrange
        orchestrator.start_flow("demo")

        # Act & Assert
        with pytest.raises(DefinitionError, match="not found"):
            orchestrator.handle_action("start", step_id="nope")

    def test_action_without_flow_logs_warning(self, orchestrator, recorder, caplog):
        """With no step at all the action is logged and still announced."""
        # Act
        with caplog.at_level(logging.WARNING, logger="chatflow"):
            orchestrator.handle_action("start")

        # Assert
        assert "Step not found for action 'start'" in caplog.text
        assert recorder.types == ["action:triggered"]
        assert recorder.events[0].step_id is None

    def test_action_after_completion_is_announced(self, orchestrator, recorder, caplog):
        """A finished flow ignores the transition but still reports the action."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.handle_action("start")
        orchestrator.complete_current_step({"name": "Ada"})
        orchestrator.handle_action("done")
        recorder.clear()

        # Act
        with caplog.at_level(logging.WARNING, logger="chatflow"):
            orchestrator.handle_action("edit", "confirm")

        # Assert
        assert orchestrator.status == OrchestratorStatus.COMPLETED
        assert orchestrator.get_current_step() is None
        assert recorder.types == ["action:triggered"]
        assert recorder.events[0].payload == {"actionId": "edit"}
        assert recorder.events[0].step_id == "confirm"
        assert "ignored" in caplog.text

    def test_complete_action_finishes_through_its_own_step(self, orchestrator, recorder):
        """A completing action on an explicit step completes that step, not the current one."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("details")
        recorder.clear()

        # Act
        orchestrator.handle_action("done", step_id="confirm")

        # Assert
        assert orchestrator.status == OrchestratorStatus.COMPLETED
        completed = recorder.of_type(FlowEventType.STEP_COMPLETED)
        assert [e.step_id for e in completed] == ["confirm"]
        assert orchestrator.is_step_completed("confirm")
        assert not orchestrator.is_step_completed("details")


class TestResetFlow:
    """Test suite for reset_flow."""

    def test_reset_clears_everything(self, orchestrator, recorder):
        """Reset returns the orchestrator to idle and reports the cancellation."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.handle_action("start")
        recorder.clear()

        # Act
        orchestrator.reset_flow()

        # Assert
        assert orchestrator.get_current_flow() is None
        assert orchestrator.get_current_step() is None
        assert orchestrator.get_flow_context().completed_steps == set()
        assert orchestrator.status == OrchestratorStatus.IDLE
        assert recorder.types == ["flow:cancelled"]

    def test_reset_after_completion_emits_nothing(self, orchestrator, recorder):
        """A finished flow is not active, so nothing is cancelled."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")
        orchestrator.handle_action("done")
        recorder.clear()

        # Act
        orchestrator.reset_flow()

        # Assert
        assert recorder.events == []
        assert orchestrator.get_current_flow() is None

    def test_reset_when_idle_is_harmless(self, orchestrator, recorder):
        """Resetting an idle orchestrator only moves the generation on."""
        # Arrange
        before = orchestrator.generation

        # Act
        orchestrator.reset_flow()

        # Assert
        assert recorder.events == []
        assert orchestrator.generation == before + 1

    def test_deferred_callback_is_dropped_after_reset(self, orchestrator):
        """A continuation captured before reset never runs afterwards."""
        # Arrange
        orchestrator.start_flow("demo")
        calls = []
        continuation = orchestrator.defer(lambda: calls.append("ran"))

        # Act
        orchestrator.reset_flow()
        result = continuation()

        # Assert
        assert result is None
        assert calls == []


class TestHandlerReentrancy:
    """Subscribers that reset or restart the orchestrator mid-transition."""

    def test_reset_from_step_completed_handler(self, orchestrator):
        """The interrupted transition leaves the fresh idle context alone."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.on(FlowEventType.STEP_COMPLETED, lambda event: orchestrator.reset_flow())

        # Act
        orchestrator.handle_action("start")

        # Assert
        assert orchestrator.status == OrchestratorStatus.IDLE
        assert orchestrator.get_current_flow() is None
        context = orchestrator.get_flow_context()
        assert context.current_step is None
        assert context.is_empty

    def test_restart_from_step_completed_handler(self, orchestrator, recorder):
        """A restart wins over the transition that triggered it."""
        # Arrange
        orchestrator.start_flow("demo")
        restarts = []

        def restart_once(event):
            if not restarts:
                restarts.append(event.step_id)
                orchestrator.start_flow("demo")

        orchestrator.on(FlowEventType.STEP_COMPLETED, restart_once)
        recorder.clear()

        # Act
        orchestrator.handle_action("start")

        # Assert
        assert restarts == ["intro"]
        assert orchestrator.get_current_step().id == "intro"
        assert orchestrator.get_flow_context().completed_steps == set()
        assert recorder.of_type(FlowEventType.STEP_STARTED)[-1].step_id == "intro"
        assert recorder.types.count("flow:started") == 1

    def test_reset_while_finishing(self, orchestrator, recorder):
        """Resetting on the final step's completion keeps the flow from completing."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")
        orchestrator.on(FlowEventType.STEP_COMPLETED, lambda event: orchestrator.reset_flow())
        recorder.clear()

        # Act
        orchestrator.handle_action("done")

        # Assert
        assert orchestrator.status == OrchestratorStatus.IDLE
        assert orchestrator.get_current_flow() is None
        assert "flow:completed" not in recorder.types
        assert recorder.types[:2] == ["step:completed", "flow:cancelled"]

    def test_reset_from_step_started_handler_skips_flow_started(self, orchestrator, recorder):
        """A flow reset while starting never announces itself as started."""
        # Arrange
        orchestrator.on(FlowEventType.STEP_STARTED, lambda event: orchestrator.reset_flow())

        # Act
        orchestrator.start_flow("demo")

        # Assert
        assert orchestrator.status == OrchestratorStatus.IDLE
        assert "flow:started" not in recorder.types


class TestLocks:
    """Test suite for is_step_locked and get_suggested_actions."""

    def test_default_lock_is_completed_and_not_current(self, orchestrator):
        """Only completed steps that are not current are locked."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("details")

        # Act & Assert
        assert orchestrator.is_step_locked("intro") is True
        assert orchestrator.is_step_locked("details") is False
        assert orchestrator.is_step_locked("confirm") is False

    def test_unknown_step_is_never_locked(self, orchestrator):
        """Unknown steps, or no flow at all, report unlocked."""
        # Arrange & Act & Assert
        assert orchestrator.is_step_locked("intro") is False
        orchestrator.start_flow("demo")
        assert orchestrator.is_step_locked("nope") is False

    def test_suggested_actions_carry_lock_state(self, orchestrator):
        """Suggested actions of an unlocked step are returned unlocked."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")

        # Act
        actions = orchestrator.get_suggested_actions()

        # Assert
        assert [a.id for a in actions] == ["edit", "done"]
        assert all(a.is_locked is False for a in actions)

    def test_suggested_actions_locked_with_when_completed(self, flow_data):
        """whenCompleted locks the current step once it has been completed before."""
        # Arrange
        flow_data["steps"][2]["locks"] = {"whenCompleted": True}
        flow = FlowDefinition.from_dict(flow_data)
        orchestrator = FlowOrchestrator(registry=FlowRegistry([flow]))
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")
        orchestrator.handle_action("edit")
        orchestrator.complete_current_step({"name": "Ada"})

        # Act
        actions = orchestrator.get_suggested_actions()

        # Assert
        assert orchestrator.is_current_step("confirm")
        assert orchestrator.is_step_locked("confirm") is True
        assert [a.is_locked for a in actions] == [True, True]

    def test_no_suggested_actions_without_step(self, orchestrator):
        """No flow means no suggestions."""
        assert orchestrator.get_suggested_actions() == []


class TestPersistence:
    """Test suite for get_flow_state and restore_flow_state."""

    def test_flow_state_snapshot(self, orchestrator):
        """The snapshot lists completed steps sorted and copies the data."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.handle_action("start")
        orchestrator.complete_current_step({"name": "Ada"})

        # Act
        state = orchestrator.get_flow_state()

        # Assert
        assert state.flow_id == "demo"
        assert state.current_step == "confirm"
        assert state.completed_steps == ["details", "intro"]
        assert state.step_data == {"details": {"name": "Ada"}}
        assert state.status == OrchestratorStatus.ACTIVE
        assert state.started_at <= state.last_updated_at

    def test_restore_reproduces_context_without_events(self, orchestrator, registry):
        """Restoring a snapshot on another orchestrator yields the same context."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.handle_action("start")
        orchestrator.complete_current_step({"name": "Ada"})
        saved = json.loads(json.dumps(orchestrator.get_flow_state().to_dict()))

        other = FlowOrchestrator(registry=registry)
        recorder = EventRecorder()
        for event_type in FlowEventType:
            other.on(event_type, recorder)

        # Act
        other.restore_flow_state(saved)

        # Assert
        assert recorder.events == []
        assert other.get_flow_context() == orchestrator.get_flow_context()
        assert other.get_current_step().id == "confirm"
        assert other.is_active

    def test_restored_flow_can_continue(self, orchestrator, registry):
        """After restore the flow behaves as if it had never stopped."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")
        other = FlowOrchestrator(registry=registry)
        other.restore_flow_state(orchestrator.get_flow_state())

        # Act
        other.handle_action("done")

        # Assert
        assert other.status == OrchestratorStatus.COMPLETED

    def test_restore_completed_state(self, orchestrator, registry):
        """A snapshot taken after completion restores as completed."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("confirm")
        orchestrator.handle_action("done")
        other = FlowOrchestrator(registry=registry)

        # Act
        other.restore_flow_state(orchestrator.get_flow_state())

        # Assert
        assert other.status == OrchestratorStatus.COMPLETED
        assert other.get_current_step() is None

    def test_restore_unknown_flow_raises(self, orchestrator):
        """A snapshot for an unregistered flow is rejected."""
        # Arrange
        state = FlowState(flow_id="missing", current_step=None)

        # Act & Assert
        with pytest.raises(DefinitionError):
            orchestrator.restore_flow_state(state)

    def test_restore_unknown_step_raises(self, orchestrator):
        """A snapshot naming steps outside the flow is rejected."""
        # Arrange
        state = FlowState(flow_id="demo", current_step="nope", completed_steps=["intro"])

        # Act & Assert
        with pytest.raises(DefinitionError, match="nope"):
            orchestrator.restore_flow_state(state)

    def test_restore_advances_generation(self, orchestrator):
        """Pending continuations from before a restore are stale."""
        # Arrange
        orchestrator.start_flow("demo")
        state = orchestrator.get_flow_state()
        before = orchestrator.generation

        # Act
        orchestrator.restore_flow_state(state)

        # Assert
        assert orchestrator.generation == before + 1


class TestEventIsolation:
    """Failing subscribers never break the orchestrator."""

    def test_failing_handler_does_not_stop_flow(self, orchestrator, recorder, caplog):
        """The error is logged and later handlers still run."""
        # Arrange
        def boom(event):
            raise RuntimeError("handler failure")

        orchestrator.on(FlowEventType.STEP_STARTED, boom)

        # Act
        with caplog.at_level(logging.ERROR, logger="chatflow"):
            orchestrator.start_flow("demo")

        # Assert
        assert orchestrator.get_current_step().id == "intro"
        assert "step:started" in recorder.types
        assert "handler failure" in caplog.text

    def test_off_stops_delivery(self, orchestrator):
        """A handler removed with off receives nothing more."""
        # Arrange
        received = []
        orchestrator.on(FlowEventType.STEP_STARTED, received.append)
        orchestrator.start_flow("demo")

        # Act
        removed = orchestrator.off(FlowEventType.STEP_STARTED, received.append)
        orchestrator.handle_action("start")

        # Assert
        assert removed is True
        assert len(received) == 1

    def test_context_copy_is_isolated(self, orchestrator):
        """Mutating a returned context has no effect on the flow."""
        # Arrange
        orchestrator.start_flow("demo")
        orchestrator.transition_to_step("details")
        context = orchestrator.get_flow_context()

        # Act
        context.completed_steps.add("confirm")
        context.step_data["x"] = 1

        # Assert
        fresh = orchestrator.get_flow_context()
        assert fresh.completed_steps == {"intro"}
        assert fresh.step_data == {}
