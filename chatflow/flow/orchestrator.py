"""Flow orchestrator: the state machine that runs one flow at a time."""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from chatflow.common.exceptions import DefinitionError, FlowStateError
from chatflow.forms.validation import validate_payload
from chatflow.models import FlowEventType, FlowStateDict, OrchestratorStatus

from .context import FlowContext, FlowState, utcnow
from .definition import FlowDefinition, StepDefinition, SuggestedAction
from .events import EventBus, EventHandler, FlowEvent, Subscription
from .locks import StepLockPolicy
from .registry import FlowRegistry
from .resolver import TransitionResolver
from .scheduling import GenerationGuard

logger = logging.getLogger(__name__)

_CURRENT = object()


class FlowOrchestrator:
    """
    Runs flow definitions step by step.

    The orchestrator owns exactly one FlowContext. Starting a flow replaces
    any active one (which is reported as cancelled); completing the last
    step leaves a read-only completed snapshot until the next start or reset.

    Ordering guarantees, for every transition:
        step:completed (outgoing) -> step:started (incoming)
    and at the end of a flow:
        step:completed (terminal step) -> flow:completed

    Event handlers run synchronously and are isolated from each other and
    from the orchestrator: a failing handler is logged and skipped.

    Example:
        >>> orchestrator = FlowOrchestrator()
        >>> orchestrator.register_flow(flow)
        >>> orchestrator.start_flow("bulk-client-upload")
        >>> orchestrator.handle_action("start-bulk-upload")
        >>> orchestrator.get_current_step().id
        'prepare'
    """

    def __init__(
        self,
        registry: FlowRegistry | None = None,
        event_bus: EventBus | None = None,
        resolver: TransitionResolver | None = None,
        lock_policy: StepLockPolicy | None = None,
        guard: GenerationGuard | None = None,
    ):
        self._registry = registry if registry is not None else FlowRegistry()
        self._events = event_bus if event_bus is not None else EventBus()
        self._resolver = resolver or TransitionResolver()
        self._locks = lock_policy or StepLockPolicy()
        self._guard = guard or GenerationGuard()

        self._flow: FlowDefinition | None = None
        self._context = FlowContext()
        self._status = OrchestratorStatus.IDLE
        self._started_at: datetime | None = None
        self._last_updated_at: datetime | None = None

    # ------------------------------------------------------------------
    # Collaborators and status
    # ------------------------------------------------------------------

    @property
    def registry(self) -> FlowRegistry:
        return self._registry

    @property
    def event_bus(self) -> EventBus:
        return self._events

    @property
    def status(self) -> OrchestratorStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status == OrchestratorStatus.ACTIVE

    @property
    def generation(self) -> int:
        return self._guard.generation

    def defer(self, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Wrap a continuation so it is dropped once the flow is reset or replaced."""
        return self._guard.guard(callback)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_flow(self, flow: FlowDefinition) -> None:
        """
        Register a flow definition.

        Raises:
            DefinitionError: If the id is already registered
        """
        self._registry.add(flow)

    def register_flows(self, flows: Iterable[FlowDefinition]) -> None:
        for flow in flows:
            self.register_flow(flow)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_flow(self) -> FlowDefinition | None:
        return self._flow

    def get_current_step(self) -> StepDefinition | None:
        if self._flow is None or self._context.current_step is None:
            return None
        return self._flow.get_step(self._context.current_step)

    def require_current_step(self) -> StepDefinition:
        """
        Raises:
            FlowStateError: If no step is active
        """
        step = self.get_current_step()
        if step is None:
            raise FlowStateError(
                "No current step: no flow is active",
                flow_id=self._context.flow_id or None,
            )
        return step

    def get_flow_context(self) -> FlowContext:
        """Copy of the current context; changing it does not affect the flow."""
        return self._context.copy()

    def is_step_completed(self, step_id: str) -> bool:
        return step_id in self._context.completed_steps

    def is_current_step(self, step_id: str) -> bool:
        return self._context.current_step == step_id

    def is_step_locked(self, step_id: str) -> bool:
        """Lock state of a step of the current flow. Unknown steps are never locked."""
        if self._flow is None:
            return False
        step = self._flow.get_step(step_id)
        if step is None:
            return False
        return self._locks.is_locked(step, self._context)

    def get_suggested_actions(self) -> list[SuggestedAction]:
        """The current step's suggested actions annotated with its lock state."""
        step = self.get_current_step()
        if step is None or not step.suggested_actions:
            return []
        locked = self.is_step_locked(step.id)
        return [action.with_lock(locked) for action in step.suggested_actions]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_flow(self, flow_id: str) -> None:
        """
        Start a registered flow from its first step.

        Any active flow is cancelled first.

        Raises:
            DefinitionError: If the flow is not registered
        """
        flow = self._registry.require(flow_id)
        self._cancel_active()
        self._guard.advance()

        self._flow = flow
        self._context = FlowContext(flow_id=flow.id, metadata={"flowName": flow.name})
        self._status = OrchestratorStatus.ACTIVE
        self._started_at = utcnow()
        self._touch()
        logger.info(f"Starting flow '{flow.id}'")

        token = self._guard.capture()
        first = flow.first_step
        if first is not None:
            self.transition_to_step(first.id)
        if not self._guard.is_current(token):
            logger.debug(f"Flow '{flow.id}' was replaced before it finished starting")
            return
        self._emit(FlowEventType.FLOW_STARTED, {"flowId": flow.id})

    def reset_flow(self) -> None:
        """Cancel the active flow, if any, and return to idle."""
        self._cancel_active()
        self._guard.advance()
        self._clear()

    def transition_to_step(self, step_id: str) -> None:
        """
        Move to a step of the active flow.

        The step being left is marked completed and announced before the
        new step is started. If a ``step:completed`` handler resets or
        restarts the orchestrator, the transition stops there.

        Raises:
            FlowStateError: If no flow is active
            DefinitionError: If the step is not part of the active flow
        """
        flow = self._require_active_flow()
        if not flow.has_step(step_id):
            raise DefinitionError(
                f"Step '{step_id}' not found in flow '{flow.id}'",
                flow_id=flow.id,
                step_id=step_id,
            )

        token = self._guard.capture()
        previous = self._context.current_step
        if previous is not None:
            self._context.completed_steps.add(previous)
            self._touch()
            self._emit(FlowEventType.STEP_COMPLETED, {"flowId": flow.id}, step_id=previous)
            if not self._guard.is_current(token):
                logger.debug(f"Flow '{flow.id}': transition to '{step_id}' dropped after reset")
                return

        self._context.current_step = step_id
        self._touch()
        logger.debug(f"Flow '{flow.id}': {previous} -> {step_id}")
        self._emit(FlowEventType.STEP_STARTED, {"flowId": flow.id}, step_id=step_id)

    def complete_current_step(self, data: Any = None) -> bool:
        """
        Submit the current step.

        Runs the step's validation rules against ``data``. On failure emits
        ``validation:failed`` and stays on the step. On success stores the
        data and follows the completion transition; a step without one stays
        current.

        Returns:
            True if the data was accepted, False if validation failed

        Raises:
            FlowStateError: If no step is active
        """
        step = self.require_current_step()
        flow_id = self._context.flow_id

        if step.validation_rules:
            errors = validate_payload(data, step.validation_rules)
            if errors:
                logger.debug(f"Validation failed on '{step.id}': {errors}")
                self._emit(
                    FlowEventType.VALIDATION_FAILED,
                    {"flowId": flow_id, "errors": [e.to_dict() for e in errors]},
                    step_id=step.id,
                )
                return False

        if data is not None:
            self._context.step_data[step.id] = data
            self._touch()

        resolution = self._resolver.resolve_completion(step)
        if resolution.completes_flow:
            self._finish(step)
        elif resolution.found:
            self.transition_to_step(resolution.target)
        else:
            logger.debug(f"Flow '{flow_id}' stays on '{step.id}': no next step")
        return True

    def handle_action(self, action_id: str, step_id: str | None = None) -> None:
        """
        Trigger an action on a step (the current one by default).

        Follows the step's transition for ``action_id`` when there is one,
        then emits ``action:triggered``. A transition to ``complete`` finishes
        the flow through the step the action was resolved on, which may differ
        from the current step when ``step_id`` is given. Once the flow is no
        longer active the transition is skipped with a warning, but the
        action is still announced.

        Raises:
            DefinitionError: If ``step_id`` is given and is not part of the current flow
        """
        if step_id is not None:
            step = self._flow.get_step(step_id) if self._flow else None
            if step is None:
                raise DefinitionError(
                    f"Step '{step_id}' not found for action '{action_id}'",
                    flow_id=self._context.flow_id or None,
                    step_id=step_id,
                )
        else:
            step = self.get_current_step()

        if step is None:
            logger.warning(f"Step not found for action '{action_id}'")
        elif not self.is_active:
            logger.warning(
                f"Action '{action_id}' on step '{step.id}' ignored: "
                f"flow '{self._context.flow_id}' is {self._status}"
            )
        else:
            resolution = self._resolver.resolve_action(step, action_id)
            if resolution.completes_flow:
                self._finish(step)
            elif resolution.found:
                self.transition_to_step(resolution.target)

        self._emit(
            FlowEventType.ACTION_TRIGGERED,
            {"actionId": action_id},
            step_id=step.id if step else None,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def get_flow_state(self) -> FlowState:
        """Serializable snapshot of the current context."""
        now = utcnow()
        context = self._context.copy()
        return FlowState(
            flow_id=context.flow_id,
            current_step=context.current_step,
            completed_steps=sorted(context.completed_steps),
            step_data=context.step_data,
            metadata=context.metadata,
            status=self._status,
            started_at=self._started_at or now,
            last_updated_at=self._last_updated_at or now,
        )

    def restore_flow_state(self, state: FlowState | FlowStateDict) -> None:
        """
        Replace the current context with a saved one. No events are emitted.

        Raises:
            DefinitionError: If the flow is not registered or the state names
                steps that are not part of it
        """
        if not isinstance(state, FlowState):
            state = FlowState.from_dict(state)
        flow = self._registry.require(state.flow_id)
        unknown = [
            s
            for s in [state.current_step, *state.completed_steps]
            if s is not None and not flow.has_step(s)
        ]
        if unknown:
            raise DefinitionError(
                f"Saved state references steps not in flow '{flow.id}': {unknown}",
                flow_id=flow.id,
            )

        self._guard.advance()
        self._flow = flow
        self._context = FlowContext(
            flow_id=flow.id,
            current_step=state.current_step,
            completed_steps=set(state.completed_steps),
            step_data=dict(state.step_data),
            metadata={**state.metadata, "flowName": flow.name},
        )
        if state.status == OrchestratorStatus.COMPLETED and state.current_step is None:
            self._status = OrchestratorStatus.COMPLETED
        else:
            self._status = OrchestratorStatus.ACTIVE
        self._started_at = state.started_at
        self._last_updated_at = state.last_updated_at
        logger.info(f"Restored flow '{flow.id}' at step '{state.current_step}'")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_type: FlowEventType | str, handler: EventHandler) -> Subscription:
        return self._events.on(event_type, handler)

    def off(self, event_type: FlowEventType | str, handler: EventHandler) -> bool:
        return self._events.off(event_type, handler)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_active_flow(self) -> FlowDefinition:
        if self._flow is None or not self.is_active:
            raise FlowStateError(
                "No active flow", flow_id=self._context.flow_id or None
            )
        return self._flow

    def _touch(self) -> None:
        self._last_updated_at = utcnow()

    def _emit(
        self,
        event_type: FlowEventType,
        payload: dict[str, Any] | None = None,
        step_id: Any = _CURRENT,
    ) -> None:
        if step_id is _CURRENT:
            step_id = self._context.current_step
        event = FlowEvent(
            type=event_type,
            flow_id=self._context.flow_id,
            step_id=step_id,
            payload=payload or {},
        )
        self._events.emit(event)

    def _finish(self, step: StepDefinition) -> None:
        flow_id = self._context.flow_id
        token = self._guard.capture()
        self._context.completed_steps.add(step.id)
        self._touch()
        self._emit(FlowEventType.STEP_COMPLETED, {"flowId": flow_id}, step_id=step.id)
        if not self._guard.is_current(token):
            logger.debug(f"Flow '{flow_id}' was reset before it could complete")
            return

        self._context.current_step = None
        self._status = OrchestratorStatus.COMPLETED
        logger.info(f"Flow '{flow_id}' completed")
        self._emit(
            FlowEventType.FLOW_COMPLETED,
            {"flowId": flow_id, "data": self._context.copy().step_data},
            step_id=None,
        )

    def _cancel_active(self) -> None:
        if self.is_active:
            flow_id = self._context.flow_id
            logger.info(f"Cancelling flow '{flow_id}'")
            self._emit(FlowEventType.FLOW_CANCELLED, {"flowId": flow_id})

    def _clear(self) -> None:
        self._flow = None
        self._context = FlowContext()
        self._status = OrchestratorStatus.IDLE
        self._started_at = None
        self._last_updated_at = None
