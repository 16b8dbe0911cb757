"""
Base model definitions for ChatFlow.

This module is the single source of truth for the TypedDict definitions that
describe the on-disk flow format and the serialized flow state. Keys follow the
file format (camelCase); the runtime dataclasses convert them on load.
"""

from typing import Any, Literal, NotRequired, TypedDict

__all__ = [
    # Form types
    "FieldDict",
    "RevealRuleDict",
    "SectionDict",
    "ValidationRuleDict",
    "DerivationConfigDict",
    # Step types
    "ComponentConfigDict",
    "ActionConfigDict",
    "SuggestedActionDict",
    "LockConfigDict",
    "ConditionalTransitionDict",
    "StepDefinitionDict",
    # Flow types
    "FlowMetadataDict",
    "FlowDefinitionDict",
    "FlowFileDict",
    # Runtime types
    "FlowStateDict",
    "ValidationErrorDict",
]


# ============================================================================
# Form Types
# ============================================================================


class FieldDict(TypedDict):
    """A single form field."""

    id: str
    type: NotRequired[str]
    label: NotRequired[str]
    required: NotRequired[bool]
    placeholder: NotRequired[str]
    value: NotRequired[Any]
    defaultValue: NotRequired[Any]
    options: NotRequired[list[dict[str, Any]]]
    min: NotRequired[float]
    max: NotRequired[float]


class RevealRuleDict(TypedDict):
    """Reveal rule: afterValid{fields}, when{equals}, or afterSubmit."""

    kind: Literal["afterValid", "when", "afterSubmit"]
    fields: NotRequired[list[str]]
    equals: NotRequired[dict[str, Any]]


class SectionDict(TypedDict):
    """A group of fields revealed together."""

    id: str
    title: NotRequired[str]
    description: NotRequired[str]
    fields: list[FieldDict]
    reveal: NotRequired[RevealRuleDict]


class ValidationRuleDict(TypedDict):
    """A single validation rule bound to a field."""

    fieldId: NotRequired[str]
    rule: Literal["required", "regex", "min", "max", "email", "custom"]
    message: NotRequired[str]
    pattern: NotRequired[str]
    value: NotRequired[float]


# "from" is a keyword, so this one uses the functional form
DerivationConfigDict = TypedDict(
    "DerivationConfigDict",
    {
        "fieldId": str,
        "from": list[str],
        "strategy": str,
        "editable": NotRequired[bool],
    },
)


# ============================================================================
# Step Types
# ============================================================================


class ComponentConfigDict(TypedDict):
    """What the presentation layer should render for a step."""

    kind: str
    props: NotRequired[dict[str, Any]]
    derivation: NotRequired[list[DerivationConfigDict]]


class ActionConfigDict(TypedDict):
    """An action button declared on a step."""

    id: str
    label: str
    icon: NotRequired[str]
    type: NotRequired[Literal["primary", "secondary", "danger"]]
    triggers: NotRequired[str]


class SuggestedActionDict(TypedDict):
    """A suggested action shown alongside an assistant message."""

    id: str
    label: str
    icon: NotRequired[str]
    triggers: NotRequired[str]
    isLocked: NotRequired[bool]


class LockConfigDict(TypedDict, total=False):
    """Step locking overrides."""

    whenCompleted: bool
    whenNotCurrent: bool
    custom: str  # Name of a registered lock predicate


class ConditionalTransitionDict(TypedDict):
    """Conditional transition entry (recognised, never evaluated)."""

    condition: dict[str, Any]
    target: str


class StepDefinitionDict(TypedDict):
    """A step as written in a flow file."""

    id: str
    type: str
    title: NotRequired[str]
    description: NotRequired[str]
    component: ComponentConfigDict
    actions: NotRequired[list[ActionConfigDict]]
    validation: NotRequired[dict[str, list[ValidationRuleDict]]]
    transitions: dict[str, str | list[ConditionalTransitionDict]]
    locks: NotRequired[LockConfigDict]
    suggestedActions: NotRequired[list[SuggestedActionDict]]


# ============================================================================
# Flow Types
# ============================================================================


class FlowMetadataDict(TypedDict, total=False):
    """Optional descriptive metadata."""

    icon: str
    estimatedTime: str
    permissions: list[str]
    tags: list[str]


class FlowDefinitionDict(TypedDict):
    """A complete flow as written in a flow file."""

    id: str
    name: str
    description: NotRequired[str]
    category: NotRequired[str]
    metadata: NotRequired[FlowMetadataDict]
    steps: list[StepDefinitionDict]


class FlowFileDict(TypedDict):
    """A file holding several flows."""

    flows: list[FlowDefinitionDict]


# ============================================================================
# Runtime Types
# ============================================================================


class FlowStateDict(TypedDict):
    """Serialized FlowContext used for persistence round-trips."""

    flowId: str
    currentStep: str | None
    completedSteps: list[str]
    stepData: dict[str, Any]
    metadata: dict[str, Any]
    status: str
    startedAt: str
    lastUpdatedAt: str


class ValidationErrorDict(TypedDict):
    """One violated field as carried by validation:failed."""

    fieldId: str | None
    message: str
