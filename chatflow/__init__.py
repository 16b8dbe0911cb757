"""
ChatFlow: declarative conversational flows and reactive forms.

ChatFlow drives a user through a guided, multi-step interaction described as
data. A flow definition lists steps, the component each step renders, and the
transitions between steps. The orchestrator tracks where the user is, what has
been completed, and what was entered, and publishes lifecycle events. The form
engine validates fields, derives values from other fields, and reveals
sections progressively.

Core Components:
    - FlowDefinition: Declarative flow of steps and transitions
    - FlowOrchestrator: Runtime state machine for one active flow
    - EventBus: Lifecycle event publication
    - FormState: Validation, derivation, and reveal for one form
    - FlowManager: Loads bundled and on-disk flows into a registry

Example Usage:
    ```python
    from chatflow import FlowManager, FlowEventType

    manager = FlowManager()
    orchestrator = manager.create_orchestrator()
    orchestrator.on(FlowEventType.STEP_STARTED, print)

    orchestrator.start_flow("bulk-client-upload")
    orchestrator.handle_action("start-bulk-upload")
    ```
"""

__version__ = "0.1.0"

from .common.exceptions import (
    ChatFlowError,
    ConfigValidationError,
    DefinitionError,
    FlowStateError,
    FormError,
    HandlerError,
    LoadError,
    UnimplementedFeatureError,
)
from .components import ComponentFactory
from .extensions import LockPredicateRegistry
from .flow import (
    EventBus,
    FlowContext,
    FlowDefinition,
    FlowEvent,
    FlowOrchestrator,
    FlowRegistry,
    FlowState,
    StepDefinition,
    TransitionResolver,
    schedule_auto_advance,
)
from .forms import FormState, ValidationRule, validate_payload
from .manager import ChatFlowConfig, FlowManager
from .models import COMPLETE, FlowEventType, OrchestratorStatus, StepType
from .schema import load_builtin_flows, load_flow, load_flows

__all__ = [
    # Core functionality
    "FlowDefinition",
    "StepDefinition",
    "FlowOrchestrator",
    "FlowRegistry",
    "FlowContext",
    "FlowState",
    "TransitionResolver",
    "EventBus",
    "FlowEvent",
    "schedule_auto_advance",
    # Forms
    "FormState",
    "ValidationRule",
    "validate_payload",
    # Loading and management
    "load_flow",
    "load_flows",
    "load_builtin_flows",
    "FlowManager",
    "ChatFlowConfig",
    "LockPredicateRegistry",
    "ComponentFactory",
    # Enums
    "COMPLETE",
    "FlowEventType",
    "OrchestratorStatus",
    "StepType",
    # Errors
    "ChatFlowError",
    "ConfigValidationError",
    "DefinitionError",
    "FlowStateError",
    "FormError",
    "HandlerError",
    "LoadError",
    "UnimplementedFeatureError",
]
