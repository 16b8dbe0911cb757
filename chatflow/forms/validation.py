"""Field validation rules and the pure rule evaluator.

Rules run strictly in declaration order and evaluation stops at the first
failing rule. Only ``required`` checks presence: ``regex``, ``email``, ``min``
and ``max`` skip falsy values, so a field that needs both presence and format
checks must declare both rules.
"""

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from chatflow.common.exceptions import DefinitionError, UnimplementedFeatureError
from chatflow.models import FieldDict, FieldType, RuleKind, ValidationErrorDict, ValidationRuleDict

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


@dataclass(frozen=True)
class Field:
    """A form field and the value it starts with."""

    id: str
    type: FieldType | str = FieldType.TEXT
    label: str = ""
    required: bool = False
    default: Any = None
    placeholder: str = ""
    options: tuple[Mapping[str, Any], ...] = ()
    min: float | None = None
    max: float | None = None

    @property
    def display_name(self) -> str:
        return self.label or self.id

    @classmethod
    def from_dict(cls, data: FieldDict) -> "Field":
        if not data.get("id"):
            raise DefinitionError(f"Field definition is missing an id: {data!r}")
        field_type = data.get("type", FieldType.TEXT)
        try:
            field_type = FieldType(field_type)
        except ValueError:
            # Custom widget types are passed through to the presentation layer
            pass
        default = data.get("value", data.get("defaultValue"))
        return cls(
            id=data["id"],
            type=field_type,
            label=data.get("label", ""),
            required=bool(data.get("required", False)),
            default=default,
            placeholder=data.get("placeholder", ""),
            options=tuple(data.get("options", ())),
            min=data.get("min"),
            max=data.get("max"),
        )


@dataclass(frozen=True)
class ValidationRule:
    """A single rule bound to a field.

    Attributes:
        field_id: Field the rule applies to (None applies it to the whole payload)
        rule: Rule kind
        message: Message reported when the rule fails
        pattern: Pattern for ``regex`` rules
        value: Bound for ``min``/``max`` rules
    """

    rule: RuleKind
    field_id: str | None = None
    message: str = ""
    pattern: str | None = None
    value: float | None = None
    _compiled: re.Pattern | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            kind = RuleKind(self.rule)
        except ValueError as e:
            raise DefinitionError(f"Unknown validation rule '{self.rule}'") from e
        object.__setattr__(self, "rule", kind)

        pattern = self.pattern
        if kind == RuleKind.EMAIL and not pattern:
            pattern = EMAIL_PATTERN
        if kind in (RuleKind.REGEX, RuleKind.EMAIL):
            if not pattern:
                raise DefinitionError(
                    f"Regex rule for field '{self.field_id}' has no pattern"
                )
            try:
                object.__setattr__(self, "_compiled", re.compile(pattern))
            except re.error as e:
                raise DefinitionError(
                    f"Invalid pattern for field '{self.field_id}': {e}"
                ) from e
        if kind in (RuleKind.MIN, RuleKind.MAX) and self.value is None:
            raise DefinitionError(
                f"{kind.value} rule for field '{self.field_id}' has no value"
            )

    @property
    def compiled(self) -> re.Pattern | None:
        return self._compiled

    @classmethod
    def from_dict(cls, data: ValidationRuleDict) -> "ValidationRule":
        return cls(
            rule=data.get("rule"),  # type: ignore[arg-type]
            field_id=data.get("fieldId"),
            message=data.get("message", ""),
            pattern=data.get("pattern"),
            value=data.get("value"),
        )

    def to_dict(self) -> ValidationRuleDict:
        result: ValidationRuleDict = {"rule": self.rule.value}  # type: ignore[typeddict-item]
        if self.field_id is not None:
            result["fieldId"] = self.field_id
        if self.message:
            result["message"] = self.message
        if self.pattern is not None:
            result["pattern"] = self.pattern
        if self.value is not None:
            result["value"] = self.value
        return result


class ValidationError:
    """Represents a validation failure for a specific field.

    This is a record, not an exception: validation failures are state that the
    presentation layer renders inline next to the field.
    """

    def __init__(self, field_id: str | None, message: str):
        self.field_id = field_id
        self.message = message

    def to_dict(self) -> ValidationErrorDict:
        return {"fieldId": self.field_id, "message": self.message}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return self.field_id == other.field_id and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.field_id, self.message))

    def __str__(self) -> str:
        return f"{self.field_id}: {self.message}"

    def __repr__(self) -> str:
        return f"ValidationError(field_id='{self.field_id}', message='{self.message}')"


def _default_message(rule: ValidationRule, field: Field) -> str:
    name = field.display_name
    if rule.rule == RuleKind.REQUIRED:
        return f"{name} is required"
    if rule.rule == RuleKind.EMAIL:
        return f"{name} must be a valid email address"
    if rule.rule == RuleKind.MIN:
        return f"{name} must be at least {rule.value}"
    if rule.rule == RuleKind.MAX:
        return f"{name} must be at most {rule.value}"
    return f"{name} is invalid"


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _check(rule: ValidationRule, field: Field, value: Any) -> bool:
    """Return True when the rule passes."""
    kind = rule.rule
    if kind == RuleKind.REQUIRED:
        return not field.required or bool(value)

    # Every other rule leaves presence to "required"
    if not value:
        return True

    if kind in (RuleKind.REGEX, RuleKind.EMAIL):
        return rule.compiled.search(str(value)) is not None  # type: ignore[union-attr]

    if kind in (RuleKind.MIN, RuleKind.MAX):
        number = _as_number(value)
        if number is None:
            return False
        if kind == RuleKind.MIN:
            return number >= rule.value  # type: ignore[operator]
        return number <= rule.value  # type: ignore[operator]

    if kind == RuleKind.CUSTOM:
        warning = UnimplementedFeatureError(
            f"Custom validator on field '{field.id}' is not evaluated",
            feature="custom-validator",
        )
        logger.warning(str(warning))
        return True

    return True


def validate(field: Field, value: Any, rules: Iterable[ValidationRule]) -> str | None:
    """
    Validate a value against the rules declared for a field.

    Args:
        field: Field definition (its ``required`` flag gates the required rule)
        value: Current value
        rules: Rules for this field, in declaration order

    Returns:
        The message of the first failing rule, or None when every rule passes
    """
    for rule in rules:
        if not _check(rule, field, value):
            return rule.message or _default_message(rule, field)
    return None


def rules_by_field(rules: Iterable[ValidationRule]) -> dict[str | None, list[ValidationRule]]:
    """Group rules by field id, keeping declaration order inside each group."""
    grouped: dict[str | None, list[ValidationRule]] = {}
    for rule in rules:
        grouped.setdefault(rule.field_id, []).append(rule)
    return grouped


def validate_values(
    fields: Sequence[Field],
    values: Mapping[str, Any],
    rules: Iterable[ValidationRule],
) -> list[ValidationError]:
    """Validate several fields at once, one error at most per field."""
    grouped = rules_by_field(rules)
    errors = []
    for fld in fields:
        message = validate(fld, values.get(fld.id), grouped.get(fld.id, ()))
        if message:
            errors.append(ValidationError(fld.id, message))
    return errors


def validate_payload(
    data: Any, rules: Iterable[ValidationRule]
) -> list[ValidationError]:
    """
    Validate a submitted step payload against step-level rules.

    Step rules are authored without field definitions, so every field they
    name is treated as required: a ``required`` rule fails whenever the
    payload lacks a value for it.

    Args:
        data: Submitted payload (usually a mapping of field id to value)
        rules: Step validation rules

    Returns:
        One ValidationError per violated field, in declaration order
    """
    errors = []
    for field_id, field_rules in rules_by_field(rules).items():
        if field_id is None:
            value = data
        elif isinstance(data, Mapping):
            value = data.get(field_id)
        else:
            value = None
        message = validate(Field(id=field_id or "", required=True), value, field_rules)
        if message:
            errors.append(ValidationError(field_id, message))
    return errors
