"""Pydantic models for structural validation of flow files.

These models describe the on-disk format (camelCase keys) and reject
malformed files with precise error locations before any definition object
is built. Cross-references between steps are checked separately by
``FlowRegistry.validate_flow``.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class BaseChatFlowModel(BaseModel):
    """Base model with common configuration for all flow file models."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class DerivationModel(BaseChatFlowModel):
    field_id: str = Field(alias="fieldId", min_length=1)
    sources: list[str] = Field(default_factory=list, alias="from")
    strategy: str = Field(min_length=1)
    editable: bool = True


class ComponentModel(BaseChatFlowModel):
    kind: str = Field(min_length=1, description="Renderer kind looked up in the component factory")
    props: dict[str, Any] = Field(default_factory=dict)
    derivation: list[DerivationModel] = Field(default_factory=list)


class ActionModel(BaseChatFlowModel):
    id: str = Field(min_length=1)
    label: str
    icon: str | None = None
    type: Literal["primary", "secondary", "danger"] | None = None
    triggers: str | None = None


class SuggestedActionModel(BaseChatFlowModel):
    id: str = Field(min_length=1)
    label: str
    icon: str | None = None
    triggers: str | None = None


class LockModel(BaseChatFlowModel):
    when_completed: bool = Field(default=False, alias="whenCompleted")
    when_not_current: bool = Field(default=False, alias="whenNotCurrent")
    custom: str | None = Field(default=None, description="Name of a registered lock predicate")


class ValidationRuleModel(BaseChatFlowModel):
    field_id: str | None = Field(default=None, alias="fieldId")
    rule: Literal["required", "regex", "min", "max", "email", "custom"]
    message: str = ""
    pattern: str | None = None
    value: float | None = None

    @model_validator(mode="after")
    def check_rule_arguments(self) -> "ValidationRuleModel":
        if self.rule == "regex" and not self.pattern:
            raise ValueError("regex rules need a pattern")
        if self.rule in ("min", "max") and self.value is None:
            raise ValueError(f"{self.rule} rules need a value")
        return self


class StepValidationModel(BaseChatFlowModel):
    rules: list[ValidationRuleModel] = Field(default_factory=list)


class ConditionalTransitionModel(BaseChatFlowModel):
    condition: dict[str, Any] = Field(default_factory=dict)
    target: str = Field(min_length=1)


class StepModel(BaseChatFlowModel):
    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    title: str = ""
    description: str = ""
    component: ComponentModel
    actions: list[ActionModel] = Field(default_factory=list)
    validation: StepValidationModel | None = None
    transitions: dict[str, str | list[ConditionalTransitionModel]] = Field(default_factory=dict)
    locks: LockModel | None = None
    suggested_actions: list[SuggestedActionModel] = Field(
        default_factory=list, alias="suggestedActions"
    )


class FlowMetadataModel(BaseChatFlowModel):
    icon: str | None = None
    estimated_time: str | None = Field(default=None, alias="estimatedTime")
    permissions: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class FlowModel(BaseChatFlowModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    category: str = "general"
    metadata: FlowMetadataModel = Field(default_factory=FlowMetadataModel)
    steps: list[StepModel] = Field(default_factory=list)


class FlowFileModel(BaseChatFlowModel):
    flows: list[FlowModel] = Field(min_length=1)


def format_validation_errors(error: ValidationError) -> list[str]:
    """Flatten pydantic errors into ``path: message`` strings."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        messages.append(f"{location}: {item['msg']}")
    return messages
