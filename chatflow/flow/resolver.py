"""Resolve the next step id for a trigger on a step."""

import logging
from dataclasses import dataclass

from chatflow.common.exceptions import UnimplementedFeatureError
from chatflow.models import COMPLETE, TransitionKey

from .definition import StepDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a trigger.

    ``target`` is a step id, the ``complete`` sentinel, or None when nothing
    applies (including unevaluated conditional transitions).
    """

    target: str | None
    trigger: str | None = None
    conditional: bool = False

    @property
    def completes_flow(self) -> bool:
        return self.target == COMPLETE

    @property
    def found(self) -> bool:
        return self.target is not None


def _warn_conditional(step: StepDefinition, trigger: str) -> None:
    error = UnimplementedFeatureError(
        f"Conditional transitions are not evaluated (step '{step.id}', trigger '{trigger}')",
        feature="conditional-transitions",
    )
    logger.warning(error)


class TransitionResolver:
    """
    Maps a trigger on a step to its transition target.

    Completion looks at ``onComplete`` first, then ``default``. Actions look up
    their own id. Conditional transitions are recognised but never evaluated.
    """

    completion_keys: tuple[str, ...] = (TransitionKey.ON_COMPLETE, TransitionKey.DEFAULT)

    def _lookup(self, step: StepDefinition, key: str) -> Resolution:
        value = step.transitions.get(key)
        if value is None:
            return Resolution(None, key)
        if isinstance(value, str):
            return Resolution(value or None, key)
        _warn_conditional(step, key)
        return Resolution(None, key, conditional=True)

    def resolve_completion(self, step: StepDefinition) -> Resolution:
        for key in self.completion_keys:
            resolution = self._lookup(step, key)
            if resolution.found:
                return resolution
        if TransitionKey.CONDITIONAL in step.transitions:
            _warn_conditional(step, TransitionKey.CONDITIONAL)
            return Resolution(None, TransitionKey.CONDITIONAL, conditional=True)
        logger.debug(f"Step '{step.id}' has no completion transition")
        return Resolution(None)

    def resolve_action(self, step: StepDefinition, action_id: str) -> Resolution:
        resolution = self._lookup(step, action_id)
        if not resolution.found and not resolution.conditional:
            logger.debug(f"Action '{action_id}' has no transition on step '{step.id}'")
        return resolution
