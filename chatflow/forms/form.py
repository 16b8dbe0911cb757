"""Reactive form state combining validation, derivation, and progressive reveal."""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from chatflow.common.exceptions import DefinitionError, FormError

from .derivation import DerivationEngine, DeriveTarget, StrategyRegistry
from .reveal import RevealEngine, Section
from .validation import Field, ValidationError, ValidationRule, rules_by_field, validate

if TYPE_CHECKING:
    from chatflow.flow.definition import ComponentConfig

DEFAULT_SECTION_ID = "default"


@dataclass(frozen=True)
class FormChange:
    """What a single edit caused."""

    field_id: str
    error: str | None
    revealed: tuple[str, ...] = ()
    derived: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FormSubmission:
    """Outcome of a submit attempt."""

    ok: bool
    values: dict[str, Any] = field(default_factory=dict)
    dirty_fields: tuple[str, ...] = ()
    errors: tuple[ValidationError, ...] = ()


class FormState:
    """
    One live form instance.

    Holds current values, the per-field dirty flags for hand edits, the set of
    revealed sections, and the latest per-field errors. Every edit goes through
    ``set_value``, which re-validates the field, reveals any sections whose
    rule now holds, and fills eligible derived fields.

    Example:
        >>> form = FormState.from_component(step.component, step.validation_rules)
        >>> form.set_value("email", "jane.doe@x.com")
        >>> form.values["username"]
        'janedoe'
        >>> form.submit(orchestrator.complete_current_step)
    """

    def __init__(
        self,
        sections: Iterable[Section] = (),
        validations: Iterable[ValidationRule] = (),
        derive: Iterable[DeriveTarget] = (),
        strategies: StrategyRegistry | None = None,
        fields: Iterable[Field] = (),
    ):
        sections = list(sections)
        loose_fields = tuple(fields)
        if loose_fields:
            sections.insert(0, Section(id=DEFAULT_SECTION_ID, fields=loose_fields))
        self._sections = sections

        self._fields: dict[str, Field] = {}
        self._section_of: dict[str, str] = {}
        for section in sections:
            for fld in section.fields:
                if fld.id in self._fields:
                    raise DefinitionError(f"Duplicate field id '{fld.id}' in form")
                self._fields[fld.id] = fld
                self._section_of[fld.id] = section.id

        validations = list(validations)
        unknown = sorted({r.field_id or "<none>" for r in validations if r.field_id not in self._fields})
        if unknown:
            raise DefinitionError(f"Validation rules reference unknown fields: {unknown}")
        self._rules = rules_by_field(validations)

        self._reveal = RevealEngine(sections, self._fields, self._rules)
        self._derivation = DerivationEngine(derive, self._fields, self._rules, strategies)

        self._values: dict[str, Any] = {fid: f.default for fid, f in self._fields.items()}
        self._dirty: set[str] = set()
        self._derived: set[str] = set()
        self._errors: dict[str, str] = {}
        self._revealed: set[str] = self._reveal.initial()
        self._settle([])

    @classmethod
    def from_component(
        cls,
        component: "ComponentConfig",
        extra_rules: Iterable[ValidationRule] = (),
        strategies: StrategyRegistry | None = None,
    ) -> "FormState":
        """
        Build a form from a step's component configuration.

        ``extra_rules`` are usually the step's own validation rules; the ones
        naming a field of this form are added after the form's own rules.
        """
        props = component.props
        sections = [Section.from_dict(s) for s in props.get("sections", [])]
        loose = [Field.from_dict(f) for f in props.get("fields", [])]
        known = {f.id for f in loose} | {f.id for s in sections for f in s.fields}
        rules = [ValidationRule.from_dict(v) for v in props.get("validations", [])]
        rules.extend(r for r in extra_rules if r.field_id in known)
        derive = list(component.derivation)
        derive.extend(DeriveTarget.from_dict(d) for d in props.get("derive", []))
        return cls(
            sections=sections,
            validations=rules,
            derive=derive,
            strategies=strategies,
            fields=loose,
        )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def values(self) -> dict[str, Any]:
        return dict(self._values)

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    @property
    def dirty_fields(self) -> frozenset[str]:
        return frozenset(self._dirty)

    @property
    def derived_fields(self) -> frozenset[str]:
        return frozenset(self._derived)

    @property
    def revealed_sections(self) -> frozenset[str]:
        return frozenset(self._revealed)

    @property
    def sections(self) -> list[Section]:
        return list(self._sections)

    def get_field(self, field_id: str) -> Field:
        try:
            return self._fields[field_id]
        except KeyError:
            raise DefinitionError(f"Unknown field '{field_id}'") from None

    def is_revealed(self, section_id: str) -> bool:
        return section_id in self._revealed

    def is_field_visible(self, field_id: str) -> bool:
        self.get_field(field_id)
        return self._section_of[field_id] in self._revealed

    def is_dirty(self, field_id: str) -> bool:
        return field_id in self._dirty

    def is_editable(self, field_id: str) -> bool:
        """False only for a non-editable derived field that already holds its value."""
        self.get_field(field_id)
        target = self._derivation.get_target(field_id)
        if target is None or target.editable:
            return True
        return not (field_id in self._derived and self._values.get(field_id))

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def set_value(self, field_id: str, value: Any) -> FormChange:
        """
        Apply a hand edit.

        Raises:
            DefinitionError: If the field does not exist
            FormError: If the field is a locked derived field
        """
        fld = self.get_field(field_id)
        if not self.is_editable(field_id):
            raise FormError(f"Field '{field_id}' is derived and not editable", field_id=field_id)

        self._values[field_id] = value
        self._dirty.add(field_id)
        self._derived.discard(field_id)
        error = self._validate_field(fld)

        revealed, derived = self._settle([field_id])
        return FormChange(
            field_id=field_id,
            error=error,
            revealed=tuple(revealed),
            derived=derived,
        )

    def clear_value(self, field_id: str) -> FormChange:
        return self.set_value(field_id, None)

    def submit(
        self, on_submit: Callable[[dict[str, Any]], Any] | None = None
    ) -> FormSubmission:
        """
        Validate every field of every revealed section and submit.

        Hidden sections are not validated. On success ``on_submit`` receives
        a copy of all current values; ``FlowOrchestrator.complete_current_step``
        is the usual callback.
        """
        errors = []
        self._errors = {}
        for section in self._sections:
            if section.id not in self._revealed:
                continue
            for fld in section.fields:
                message = self._validate_field(fld)
                if message:
                    errors.append(ValidationError(fld.id, message))

        if errors:
            return FormSubmission(ok=False, errors=tuple(errors))

        values = dict(self._values)
        dirty = tuple(fid for fid in self._fields if fid in self._dirty)
        if on_submit is not None:
            on_submit(values)
        return FormSubmission(ok=True, values=values, dirty_fields=dirty)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_field(self, fld: Field) -> str | None:
        message = validate(fld, self._values.get(fld.id), self._rules.get(fld.id, ()))
        if message:
            self._errors[fld.id] = message
        else:
            self._errors.pop(fld.id, None)
        return message

    def _apply_derived(self, updates: Mapping[str, Any]) -> None:
        for fid, value in updates.items():
            self._values[fid] = value
            self._derived.add(fid)
            self._validate_field(self._fields[fid])

    def _settle(self, changed: list[str]) -> tuple[list[str], dict[str, Any]]:
        """
        Propagate edits until nothing else reveals or derives.

        Each round runs a reveal pass (newly revealed sections get one batched
        derivation), then re-checks targets fed by one changed field. Derived
        values are queued as changes too, so chains of targets fill in.
        Terminates because reveals are monotonic and targets only fill empties.
        """
        pending = list(changed)
        revealed: list[str] = []
        derived: dict[str, Any] = {}
        while True:
            newly = self._reveal.evaluate(self._values, self._revealed)
            if newly:
                revealed.extend(s.id for s in newly)
                in_sections = {fid for s in newly for fid in s.field_ids}
                batch = self._derivation.derive(
                    self._derivation.targets_within(in_sections), self._values, self._dirty
                )
                self._apply_derived(batch)
                derived.update(batch)
                pending.extend(batch)
            if not pending:
                break
            source = pending.pop(0)
            updates = self._derivation.derive(
                self._derivation.targets_depending_on(source), self._values, self._dirty
            )
            self._apply_derived(updates)
            derived.update(updates)
            pending.extend(updates)
        return revealed, derived
