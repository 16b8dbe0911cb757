"""Immutable flow and step definitions.

Definitions are built from the camelCase file format (see
``chatflow.models.base``) and never change after registration: every
container is a tuple or a read-only mapping.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from chatflow.common.exceptions import DefinitionError
from chatflow.forms.derivation import DeriveTarget
from chatflow.forms.validation import ValidationRule
from chatflow.models import (
    COMPLETE,
    ActionConfigDict,
    ComponentConfigDict,
    FlowCategory,
    FlowDefinitionDict,
    FlowMetadataDict,
    LockConfigDict,
    StepDefinitionDict,
    StepType,
    SuggestedActionDict,
)

if TYPE_CHECKING:
    from chatflow.extensions.registry import LockPredicateRegistry

    from .context import FlowContext

LockPredicate = Callable[["FlowContext"], bool]


def _freeze(value: Any) -> Any:
    """Recursively turn dicts and lists into read-only mappings and tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list | tuple):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Inverse of _freeze, for serialization."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class ComponentConfig:
    """Which widget kind renders a step, with its props."""

    kind: str
    props: Mapping[str, Any] = field(default_factory=_empty_mapping)
    derivation: tuple[DeriveTarget, ...] = ()

    @classmethod
    def from_dict(cls, data: ComponentConfigDict) -> "ComponentConfig":
        if not data.get("kind"):
            raise DefinitionError(f"Component is missing a kind: {data!r}")
        return cls(
            kind=data["kind"],
            props=_freeze(data.get("props", {})),
            derivation=tuple(DeriveTarget.from_dict(d) for d in data.get("derivation", [])),
        )

    def to_dict(self) -> ComponentConfigDict:
        result: ComponentConfigDict = {"kind": self.kind, "props": _thaw(self.props)}
        if self.derivation:
            result["derivation"] = [d.to_dict() for d in self.derivation]
        return result


@dataclass(frozen=True)
class ActionConfig:
    """An action button declared on a step."""

    id: str
    label: str
    icon: str | None = None
    type: str | None = None
    triggers: str | None = None

    @classmethod
    def from_dict(cls, data: ActionConfigDict) -> "ActionConfig":
        return cls(
            id=data["id"],
            label=data.get("label", data["id"]),
            icon=data.get("icon"),
            type=data.get("type"),
            triggers=data.get("triggers"),
        )

    def to_dict(self) -> ActionConfigDict:
        result: ActionConfigDict = {"id": self.id, "label": self.label}
        for key in ("icon", "type", "triggers"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value  # type: ignore[literal-required]
        return result


@dataclass(frozen=True)
class SuggestedAction:
    """A suggested action, annotated with its lock state when returned by the orchestrator."""

    id: str
    label: str
    icon: str | None = None
    triggers: str | None = None
    is_locked: bool = False

    @classmethod
    def from_dict(cls, data: SuggestedActionDict) -> "SuggestedAction":
        return cls(
            id=data["id"],
            label=data.get("label", data["id"]),
            icon=data.get("icon"),
            triggers=data.get("triggers"),
        )

    def with_lock(self, is_locked: bool) -> "SuggestedAction":
        return replace(self, is_locked=is_locked)

    def to_dict(self) -> SuggestedActionDict:
        result: SuggestedActionDict = {"id": self.id, "label": self.label, "isLocked": self.is_locked}
        if self.icon is not None:
            result["icon"] = self.icon
        if self.triggers is not None:
            result["triggers"] = self.triggers
        return result


@dataclass(frozen=True)
class LockConfig:
    """
    Per-step lock overrides.

    A ``custom`` predicate replaces the default policy entirely; otherwise the
    two flags are OR'd on top of it.
    """

    when_completed: bool = False
    when_not_current: bool = False
    custom: LockPredicate | None = None
    custom_name: str | None = None

    @classmethod
    def from_dict(
        cls,
        data: LockConfigDict,
        predicates: "LockPredicateRegistry | None" = None,
    ) -> "LockConfig":
        custom_name = data.get("custom")
        custom = None
        if custom_name:
            if predicates is None:
                raise DefinitionError(
                    f"Lock predicate '{custom_name}' needs a predicate registry"
                )
            custom = predicates.get(custom_name)
        return cls(
            when_completed=bool(data.get("whenCompleted", False)),
            when_not_current=bool(data.get("whenNotCurrent", False)),
            custom=custom,
            custom_name=custom_name,
        )

    def to_dict(self) -> LockConfigDict:
        result: LockConfigDict = {}
        if self.when_completed:
            result["whenCompleted"] = True
        if self.when_not_current:
            result["whenNotCurrent"] = True
        if self.custom_name:
            result["custom"] = self.custom_name
        return result


@dataclass(frozen=True)
class ConditionalTransition:
    """A guarded transition. Recognised by the model, never evaluated."""

    condition: Mapping[str, Any]
    target: str


TransitionTarget = str | tuple[ConditionalTransition, ...]


def _parse_transitions(step_id: str, raw: Mapping[str, Any]) -> Mapping[str, TransitionTarget]:
    transitions: dict[str, TransitionTarget] = {}
    for key, value in raw.items():
        if isinstance(value, str):
            transitions[key] = value
        elif isinstance(value, list | tuple):
            entries = []
            for entry in value:
                if not isinstance(entry, Mapping) or "target" not in entry:
                    raise DefinitionError(
                        f"Conditional transition '{key}' in step '{step_id}' needs a target",
                        step_id=step_id,
                    )
                entries.append(
                    ConditionalTransition(
                        condition=_freeze(entry.get("condition", {})),
                        target=entry["target"],
                    )
                )
            transitions[key] = tuple(entries)
        else:
            raise DefinitionError(
                f"Transition '{key}' in step '{step_id}' must be a step id or a list",
                step_id=step_id,
            )
    return MappingProxyType(transitions)


@dataclass(frozen=True)
class StepDefinition:
    """One unit of a flow."""

    id: str
    type: StepType | str
    component: ComponentConfig
    transitions: Mapping[str, TransitionTarget] = field(default_factory=_empty_mapping)
    title: str = ""
    description: str = ""
    actions: tuple[ActionConfig, ...] = ()
    validation_rules: tuple[ValidationRule, ...] = ()
    lock_config: LockConfig | None = None
    suggested_actions: tuple[SuggestedAction, ...] = ()

    @property
    def targets(self) -> set[str]:
        """Every step id this step can lead to (the completion sentinel excluded)."""
        found = set()
        for value in self.transitions.values():
            if isinstance(value, str):
                found.add(value)
            else:
                found.update(entry.target for entry in value)
        found.discard(COMPLETE)
        return found

    @classmethod
    def from_dict(
        cls,
        data: StepDefinitionDict,
        predicates: "LockPredicateRegistry | None" = None,
    ) -> "StepDefinition":
        step_id = data.get("id")
        if not step_id:
            raise DefinitionError(f"Step definition is missing an id: {data!r}")
        if "component" not in data:
            raise DefinitionError(f"Step '{step_id}' is missing a component", step_id=step_id)
        step_type = data.get("type", StepType.CUSTOM)
        try:
            step_type = StepType(step_type)
        except ValueError:
            # Unknown step types are allowed and treated as custom content
            pass
        locks = data.get("locks")
        validation = data.get("validation") or {}
        return cls(
            id=step_id,
            type=step_type,
            component=ComponentConfig.from_dict(data["component"]),
            transitions=_parse_transitions(step_id, data.get("transitions", {})),
            title=data.get("title", ""),
            description=data.get("description", ""),
            actions=tuple(ActionConfig.from_dict(a) for a in data.get("actions", [])),
            validation_rules=tuple(
                ValidationRule.from_dict(r) for r in validation.get("rules", [])
            ),
            lock_config=LockConfig.from_dict(locks, predicates) if locks else None,
            suggested_actions=tuple(
                SuggestedAction.from_dict(a) for a in data.get("suggestedActions", [])
            ),
        )

    def to_dict(self) -> StepDefinitionDict:
        transitions: dict[str, Any] = {}
        for key, value in self.transitions.items():
            if isinstance(value, str):
                transitions[key] = value
            else:
                transitions[key] = [
                    {"condition": _thaw(e.condition), "target": e.target} for e in value
                ]
        result: StepDefinitionDict = {
            "id": self.id,
            "type": str(self.type),
            "title": self.title,
            "component": self.component.to_dict(),
            "transitions": transitions,
        }
        if self.description:
            result["description"] = self.description
        if self.actions:
            result["actions"] = [a.to_dict() for a in self.actions]
        if self.validation_rules:
            result["validation"] = {"rules": [r.to_dict() for r in self.validation_rules]}
        if self.lock_config:
            result["locks"] = self.lock_config.to_dict()
        if self.suggested_actions:
            result["suggestedActions"] = [
                {k: v for k, v in a.to_dict().items() if k != "isLocked"}  # type: ignore[misc]
                for a in self.suggested_actions
            ]
        return result


@dataclass(frozen=True)
class FlowMetadata:
    """Descriptive flow metadata."""

    icon: str | None = None
    estimated_time: str | None = None
    permissions: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: FlowMetadataDict) -> "FlowMetadata":
        return cls(
            icon=data.get("icon"),
            estimated_time=data.get("estimatedTime"),
            permissions=tuple(data.get("permissions", ())),
            tags=tuple(data.get("tags", ())),
        )

    def to_dict(self) -> FlowMetadataDict:
        result: FlowMetadataDict = {}
        if self.icon:
            result["icon"] = self.icon
        if self.estimated_time:
            result["estimatedTime"] = self.estimated_time
        if self.permissions:
            result["permissions"] = list(self.permissions)
        if self.tags:
            result["tags"] = list(self.tags)
        return result


@dataclass(frozen=True)
class FlowDefinition:
    """A named, ordered collection of steps."""

    id: str
    name: str
    steps: tuple[StepDefinition, ...] = ()
    description: str = ""
    category: FlowCategory | str = FlowCategory.GENERAL
    metadata: FlowMetadata = field(default_factory=FlowMetadata)

    @property
    def step_ids(self) -> list[str]:
        return [s.id for s in self.steps]

    @property
    def first_step(self) -> StepDefinition | None:
        return self.steps[0] if self.steps else None

    def get_step(self, step_id: str) -> StepDefinition | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def has_step(self, step_id: str) -> bool:
        return self.get_step(step_id) is not None

    @classmethod
    def from_dict(
        cls,
        data: FlowDefinitionDict,
        predicates: "LockPredicateRegistry | None" = None,
    ) -> "FlowDefinition":
        """
        Build a definition from the file format.

        Raises:
            DefinitionError: If required keys are missing or nested parts are malformed
        """
        flow_id = data.get("id")
        if not flow_id:
            raise DefinitionError(f"Flow definition is missing an id: {list(data)}")
        if not data.get("name"):
            raise DefinitionError(f"Flow '{flow_id}' is missing a name", flow_id=flow_id)
        category = data.get("category", FlowCategory.GENERAL)
        try:
            category = FlowCategory(category)
        except ValueError:
            pass
        try:
            steps = tuple(StepDefinition.from_dict(s, predicates) for s in data.get("steps", []))
        except DefinitionError as e:
            e.flow_id = flow_id
            raise
        return cls(
            id=flow_id,
            name=data["name"],
            steps=steps,
            description=data.get("description", ""),
            category=category,
            metadata=FlowMetadata.from_dict(data.get("metadata", {})),
        )

    def to_dict(self) -> FlowDefinitionDict:
        result: FlowDefinitionDict = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": str(self.category),
            "steps": [s.to_dict() for s in self.steps],
        }
        metadata = self.metadata.to_dict()
        if metadata:
            result["metadata"] = metadata
        return result
