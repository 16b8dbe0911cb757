"""Registry of named lock predicates for ChatFlow extensions."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from chatflow.common.exceptions import DefinitionError

if TYPE_CHECKING:
    from chatflow.flow.definition import LockPredicate


@dataclass(frozen=True)
class CustomLockPredicate:
    """Named lock predicate wrapper."""

    name: str
    predicate: "LockPredicate"
    description: str = ""


class LockPredicateRegistry:
    """
    Registry of custom lock predicates.

    Flow files cannot carry code, so a step's ``locks.custom`` names a
    predicate registered here. A predicate receives a copy of the flow
    context and returns True when the step should be locked.
    """

    def __init__(self, include_builtins: bool = True):
        """Initialize registry, optionally with the built-in predicates."""
        self._predicates: dict[str, CustomLockPredicate] = {}
        if include_builtins:
            for name, (predicate, description) in BUILTIN_PREDICATES.items():
                self.register(name, predicate, description)

    def register(self, name: str, predicate: "LockPredicate", description: str = "") -> None:
        """
        Register a custom predicate.

        Args:
            name: Unique name referenced by ``locks.custom``
            predicate: Function taking a FlowContext and returning bool
            description: Human-readable description

        Raises:
            ValueError: If the name is already registered
        """
        if name in self._predicates:
            raise ValueError(f"Lock predicate '{name}' is already registered")
        self._predicates[name] = CustomLockPredicate(name, predicate, description)

    def unregister(self, name: str) -> None:
        """
        Remove a predicate.

        Raises:
            KeyError: If the predicate is not registered
        """
        if name not in self._predicates:
            raise KeyError(f"Lock predicate '{name}' is not registered")
        del self._predicates[name]

    def get(self, name: str) -> "LockPredicate":
        """
        Look up a predicate by name.

        Raises:
            DefinitionError: If the predicate is not registered
        """
        if name not in self._predicates:
            raise DefinitionError(f"Lock predicate '{name}' is not registered")
        return self._predicates[name].predicate

    def __contains__(self, name: object) -> bool:
        return name in self._predicates

    def list_predicates(self) -> dict[str, str]:
        """Map of predicate names to descriptions."""
        return {name: p.description for name, p in self._predicates.items()}

    def clear(self) -> None:
        self._predicates.clear()


def _never(context) -> bool:
    return False


def _flow_finished(context) -> bool:
    return context.current_step is None and bool(context.completed_steps)


BUILTIN_PREDICATES = {
    "never": (_never, "Never lock the step"),
    "flowFinished": (_flow_finished, "Lock once the flow has no current step left"),
}
