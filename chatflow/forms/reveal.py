"""Progressive reveal of form sections.

Sections without a rule are shown from the start. Revelation is monotonic:
a section that has been revealed stays revealed for the lifetime of the form
instance, whatever its rule evaluates to later.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from chatflow.common.exceptions import DefinitionError
from chatflow.models import RevealKind, RevealRuleDict, SectionDict

from .validation import Field, ValidationRule, validate


@dataclass(frozen=True)
class RevealRule:
    """Condition under which a section is revealed."""

    kind: RevealKind
    fields: tuple[str, ...] = ()
    equals: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def after_valid(cls, *field_ids: str) -> "RevealRule":
        return cls(RevealKind.AFTER_VALID, fields=tuple(field_ids))

    @classmethod
    def when(cls, **equals: Any) -> "RevealRule":
        return cls(RevealKind.WHEN, equals=MappingProxyType(dict(equals)))

    @classmethod
    def after_submit(cls) -> "RevealRule":
        return cls(RevealKind.AFTER_SUBMIT)

    @classmethod
    def from_dict(cls, data: RevealRuleDict) -> "RevealRule":
        try:
            kind = RevealKind(data.get("kind"))
        except ValueError as e:
            raise DefinitionError(f"Unknown reveal rule kind: {data.get('kind')!r}") from e
        return cls(
            kind=kind,
            fields=tuple(data.get("fields", ())),
            equals=MappingProxyType(dict(data.get("equals", {}))),
        )

    def to_dict(self) -> RevealRuleDict:
        result: RevealRuleDict = {"kind": self.kind.value}  # type: ignore[typeddict-item]
        if self.kind == RevealKind.AFTER_VALID:
            result["fields"] = list(self.fields)
        elif self.kind == RevealKind.WHEN:
            result["equals"] = dict(self.equals)
        return result


@dataclass(frozen=True)
class Section:
    """An ordered group of fields with an optional reveal rule."""

    id: str
    fields: tuple[Field, ...] = ()
    title: str = ""
    description: str = ""
    reveal: RevealRule | None = None

    @property
    def field_ids(self) -> tuple[str, ...]:
        return tuple(f.id for f in self.fields)

    @classmethod
    def from_dict(cls, data: SectionDict) -> "Section":
        if not data.get("id"):
            raise DefinitionError(f"Section definition is missing an id: {data!r}")
        reveal = data.get("reveal")
        return cls(
            id=data["id"],
            fields=tuple(Field.from_dict(f) for f in data.get("fields", [])),
            title=data.get("title", ""),
            description=data.get("description", ""),
            reveal=RevealRule.from_dict(reveal) if reveal else None,
        )


def strictly_equal(actual: Any, expected: Any) -> bool:
    """Equality that also requires matching types.

    Ints and floats count as one numeric type; bools do not.
    """
    numeric = (int, float)
    if (
        isinstance(actual, numeric)
        and isinstance(expected, numeric)
        and not isinstance(actual, bool)
        and not isinstance(expected, bool)
    ):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


class RevealEngine:
    """Evaluates reveal rules and tracks which sections are revealed."""

    def __init__(
        self,
        sections: Iterable[Section],
        fields: Mapping[str, Field],
        rules: Mapping[str | None, list[ValidationRule]],
    ):
        self._sections = list(sections)
        self._fields = fields
        self._rules = rules
        for section in self._sections:
            reveal = section.reveal
            if reveal and reveal.kind == RevealKind.AFTER_VALID:
                unknown = [fid for fid in reveal.fields if fid not in fields]
                if unknown:
                    raise DefinitionError(
                        f"Section '{section.id}' reveal rule references unknown fields: {unknown}"
                    )

    def initial(self) -> set[str]:
        """Sections revealed at initialization (those without a rule)."""
        return {s.id for s in self._sections if s.reveal is None}

    def _field_valid(self, field_id: str, values: Mapping[str, Any]) -> bool:
        value = values.get(field_id)
        if not value:
            return False
        return validate(self._fields[field_id], value, self._rules.get(field_id, ())) is None

    def should_reveal(self, section: Section, values: Mapping[str, Any]) -> bool:
        reveal = section.reveal
        if reveal is None:
            return True
        if reveal.kind == RevealKind.AFTER_VALID:
            return all(self._field_valid(fid, values) for fid in reveal.fields)
        if reveal.kind == RevealKind.WHEN:
            return all(
                strictly_equal(values.get(fid), expected)
                for fid, expected in reveal.equals.items()
            )
        # afterSubmit is never reached through this engine
        return False

    def evaluate(self, values: Mapping[str, Any], revealed: set[str]) -> list[Section]:
        """
        Reveal every hidden section whose rule now holds.

        Mutates ``revealed`` in place and never removes from it.

        Returns:
            Sections that went from hidden to revealed in this pass, in order
        """
        newly = []
        for section in self._sections:
            if section.id in revealed:
                continue
            if self.should_reveal(section, values):
                revealed.add(section.id)
                newly.append(section)
        return newly
