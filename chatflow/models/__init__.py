"""Shared enums and file-format TypedDicts for ChatFlow."""

from .base import (
    ActionConfigDict,
    ComponentConfigDict,
    ConditionalTransitionDict,
    DerivationConfigDict,
    FieldDict,
    FlowDefinitionDict,
    FlowFileDict,
    FlowMetadataDict,
    FlowStateDict,
    LockConfigDict,
    RevealRuleDict,
    SectionDict,
    StepDefinitionDict,
    SuggestedActionDict,
    ValidationErrorDict,
    ValidationRuleDict,
)
from .enums import (
    COMPLETE,
    DeriveStrategyName,
    FieldType,
    FlowCategory,
    FlowEventType,
    OrchestratorStatus,
    RevealKind,
    RuleKind,
    StepType,
    TransitionKey,
)

__all__ = [
    # Enums and constants
    "COMPLETE",
    "DeriveStrategyName",
    "FieldType",
    "FlowCategory",
    "FlowEventType",
    "OrchestratorStatus",
    "RevealKind",
    "RuleKind",
    "StepType",
    "TransitionKey",
    # File format
    "ActionConfigDict",
    "ComponentConfigDict",
    "ConditionalTransitionDict",
    "DerivationConfigDict",
    "FieldDict",
    "FlowDefinitionDict",
    "FlowFileDict",
    "FlowMetadataDict",
    "FlowStateDict",
    "LockConfigDict",
    "RevealRuleDict",
    "SectionDict",
    "StepDefinitionDict",
    "SuggestedActionDict",
    "ValidationErrorDict",
    "ValidationRuleDict",
]
