"""Flow orchestration: definitions, events, transitions, locks, and the orchestrator."""

from .context import FlowContext, FlowState
from .definition import (
    ActionConfig,
    ComponentConfig,
    ConditionalTransition,
    FlowDefinition,
    FlowMetadata,
    LockConfig,
    StepDefinition,
    SuggestedAction,
)
from .events import EventBus, FlowEvent, Subscription
from .locks import StepLockPolicy
from .orchestrator import FlowOrchestrator
from .registry import FlowRegistry, FlowValidationReport
from .resolver import Resolution, TransitionResolver
from .scheduling import GenerationGuard, schedule_auto_advance

__all__ = [
    "ActionConfig",
    "ComponentConfig",
    "ConditionalTransition",
    "EventBus",
    "FlowContext",
    "FlowDefinition",
    "FlowEvent",
    "FlowMetadata",
    "FlowOrchestrator",
    "FlowRegistry",
    "FlowState",
    "FlowValidationReport",
    "GenerationGuard",
    "LockConfig",
    "Resolution",
    "StepDefinition",
    "StepLockPolicy",
    "Subscription",
    "SuggestedAction",
    "TransitionResolver",
    "schedule_auto_advance",
]
