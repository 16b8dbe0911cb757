"""Field derivation: fill a field from other fields once they are valid.

Derivation is strictly fill-if-empty. A target is eligible only when every
source field holds a value that passes validation, the target is empty, and
the user has not edited the target by hand.
"""

import logging
import random
import secrets
import string
from collections.abc import Callable, Collection, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from chatflow.common.exceptions import DefinitionError
from chatflow.models import DerivationConfigDict, DeriveStrategyName

from .validation import Field, ValidationRule, validate

logger = logging.getLogger(__name__)

USERNAME_FALLBACK_PREFIX = "client_"
BASE36_ALPHABET = string.digits + string.ascii_lowercase

# Ambiguous glyphs (I, O, l, o, 0, 1) are left out
PASSWORD_UPPER = "ABCDEFGHJKLMNPQRSTUVWXYZ"
PASSWORD_LOWER = "abcdefghijkmnpqrstuvwxyz"
PASSWORD_DIGITS = "23456789"
PASSWORD_SYMBOLS = "!@#$%"
PASSWORD_ALPHABET = PASSWORD_UPPER + PASSWORD_LOWER + PASSWORD_DIGITS + PASSWORD_SYMBOLS
PASSWORD_LENGTH = 12

_system_random = secrets.SystemRandom()


@dataclass(frozen=True)
class DeriveTarget:
    """A field computed from other fields by a named strategy."""

    target_field_id: str
    source_field_ids: tuple[str, ...]
    strategy: str
    editable: bool = True

    @classmethod
    def from_dict(cls, data: DerivationConfigDict) -> "DeriveTarget":
        if not data.get("fieldId"):
            raise DefinitionError(f"Derivation is missing a fieldId: {data!r}")
        if not data.get("strategy"):
            raise DefinitionError(
                f"Derivation for '{data['fieldId']}' is missing a strategy"
            )
        sources = data.get("from") or []
        return cls(
            target_field_id=data["fieldId"],
            # Unique, order-preserving
            source_field_ids=tuple(dict.fromkeys(sources)),
            strategy=data["strategy"],
            editable=bool(data.get("editable", True)),
        )

    def to_dict(self) -> DerivationConfigDict:
        return {
            "fieldId": self.target_field_id,
            "from": list(self.source_field_ids),
            "strategy": self.strategy,
            "editable": self.editable,
        }


Strategy = Callable[[Mapping[str, Any], DeriveTarget], Any]


# ============================================================================
# Built-in strategies
# ============================================================================


def _random_suffix(rng: random.Random, length: int = 6) -> str:
    return "".join(rng.choice(BASE36_ALPHABET) for _ in range(length))


def username_from_email(email: Any, rng: random.Random | None = None) -> str:
    """
    Build a username from the local part of an email address.

    The local part is lowercased and stripped of everything outside
    ``[a-z0-9]``. Missing or malformed addresses, and local parts that end
    up empty, fall back to ``client_`` plus six random base-36 characters.

    Examples:
        >>> username_from_email("jane.doe@x.com")
        'janedoe'
    """
    rng = rng or _system_random
    if not isinstance(email, str) or "@" not in email:
        return USERNAME_FALLBACK_PREFIX + _random_suffix(rng)
    local = email.split("@", 1)[0].lower()
    username = "".join(ch for ch in local if ch in BASE36_ALPHABET)
    return username or USERNAME_FALLBACK_PREFIX + _random_suffix(rng)


def strong_password(length: int = PASSWORD_LENGTH, rng: random.Random | None = None) -> str:
    """
    Generate a password with at least one upper, lower, digit, and symbol.

    The four guaranteed characters are mixed with characters drawn uniformly
    from the combined alphabet, then the whole string is shuffled.
    """
    if length < 4:
        raise ValueError("Password length must be at least 4")
    rng = rng or _system_random
    chars = [
        rng.choice(PASSWORD_UPPER),
        rng.choice(PASSWORD_LOWER),
        rng.choice(PASSWORD_DIGITS),
        rng.choice(PASSWORD_SYMBOLS),
    ]
    chars.extend(rng.choice(PASSWORD_ALPHABET) for _ in range(length - 4))
    rng.shuffle(chars)
    return "".join(chars)


def _username_strategy(values: Mapping[str, Any], target: DeriveTarget) -> str:
    source = target.source_field_ids[0] if target.source_field_ids else "email"
    return username_from_email(values.get(source))


def _password_strategy(values: Mapping[str, Any], target: DeriveTarget) -> str:
    return strong_password()


class StrategyRegistry:
    """
    Registry of derivation strategies keyed by name.

    Comes pre-loaded with the built-in strategies; more can be registered
    per instance.
    """

    def __init__(self, include_builtins: bool = True):
        self._strategies: dict[str, Strategy] = {}
        if include_builtins:
            self.register(DeriveStrategyName.USERNAME_FROM_EMAIL, _username_strategy)
            self.register(DeriveStrategyName.STRONG_PASSWORD, _password_strategy)

    def register(self, name: str, strategy: Strategy, replace: bool = False) -> None:
        """
        Register a strategy.

        Raises:
            ValueError: If the name is taken and replace is False
        """
        if name in self._strategies and not replace:
            raise ValueError(f"Strategy '{name}' is already registered")
        self._strategies[str(name)] = strategy

    def get(self, name: str) -> Strategy:
        try:
            return self._strategies[name]
        except KeyError:
            raise DefinitionError(f"Unknown derivation strategy '{name}'") from None

    def __contains__(self, name: object) -> bool:
        return name in self._strategies

    @property
    def names(self) -> list[str]:
        return sorted(self._strategies)


# ============================================================================
# Engine
# ============================================================================


def find_cycle(targets: Iterable[DeriveTarget]) -> list[str] | None:
    """Return one dependency cycle between derive targets, or None."""
    graph = {t.target_field_id: t.source_field_ids for t in targets}
    visiting: list[str] = []
    done: set[str] = set()

    def visit(node: str) -> list[str] | None:
        if node in done:
            return None
        if node in visiting:
            return visiting[visiting.index(node):] + [node]
        visiting.append(node)
        for source in graph.get(node, ()):
            cycle = visit(source)
            if cycle:
                return cycle
        visiting.pop()
        done.add(node)
        return None

    for node in graph:
        cycle = visit(node)
        if cycle:
            return cycle
    return None


class DerivationEngine:
    """
    Decides which derive targets are eligible and computes their values.

    Mutually dependent targets are rejected when the engine is built, so a
    derivation pass never has to guard against feeding itself.
    """

    def __init__(
        self,
        targets: Iterable[DeriveTarget],
        fields: Mapping[str, Field],
        rules: Mapping[str | None, list[ValidationRule]],
        strategies: StrategyRegistry | None = None,
    ):
        self._targets: dict[str, DeriveTarget] = {}
        for target in targets:
            if target.target_field_id in self._targets:
                raise DefinitionError(
                    f"Field '{target.target_field_id}' has more than one derivation"
                )
            self._targets[target.target_field_id] = target
        self._fields = fields
        self._rules = rules
        self._strategies = strategies or StrategyRegistry()

        for target in self._targets.values():
            self._strategies.get(target.strategy)
            unknown = [
                fid
                for fid in (target.target_field_id, *target.source_field_ids)
                if fid not in fields
            ]
            if unknown:
                raise DefinitionError(
                    f"Derivation for '{target.target_field_id}' references unknown fields: {unknown}"
                )

        cycle = find_cycle(self._targets.values())
        if cycle:
            raise DefinitionError(f"Derivation cycle: {' -> '.join(cycle)}")

    @property
    def targets(self) -> list[DeriveTarget]:
        return list(self._targets.values())

    def get_target(self, field_id: str) -> DeriveTarget | None:
        return self._targets.get(field_id)

    def targets_depending_on(self, field_id: str) -> list[DeriveTarget]:
        return [t for t in self._targets.values() if field_id in t.source_field_ids]

    def targets_within(self, field_ids: Collection[str]) -> list[DeriveTarget]:
        return [t for t in self._targets.values() if t.target_field_id in field_ids]

    def source_is_valid(self, field_id: str, values: Mapping[str, Any]) -> bool:
        value = values.get(field_id)
        if not value:
            return False
        return validate(self._fields[field_id], value, self._rules.get(field_id, ())) is None

    def is_eligible(
        self,
        target: DeriveTarget,
        values: Mapping[str, Any],
        dirty: Collection[str],
    ) -> bool:
        if target.target_field_id in dirty:
            return False
        if values.get(target.target_field_id):
            return False
        return all(self.source_is_valid(fid, values) for fid in target.source_field_ids)

    def derive(
        self,
        targets: Iterable[DeriveTarget],
        values: Mapping[str, Any],
        dirty: Collection[str],
    ) -> dict[str, Any]:
        """
        Run one batched derivation pass.

        Every target sees the same snapshot of values, so the order of targets
        inside a batch does not matter.

        Returns:
            Mapping of target field id to derived value (eligible targets only)
        """
        snapshot = dict(values)
        updates: dict[str, Any] = {}
        for target in targets:
            if not self.is_eligible(target, snapshot, dirty):
                continue
            value = self._strategies.get(target.strategy)(snapshot, target)
            if value:
                updates[target.target_field_id] = value
                logger.debug(
                    f"Derived '{target.target_field_id}' with {target.strategy}"
                )
        return updates
