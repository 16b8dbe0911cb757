"""Step lock policy.

Locks are plain predicates over the flow context. The presentation layer
decides what a locked step or action looks like.
"""

from .context import FlowContext
from .definition import StepDefinition


class StepLockPolicy:
    """
    Computes whether a step is locked.

    Default: a step is locked when it has been completed and is not the
    current step. A step's custom predicate replaces that rule entirely;
    otherwise ``when_completed`` and ``when_not_current`` add further
    reasons to lock on top of it.
    """

    def is_locked(self, step: StepDefinition, context: FlowContext) -> bool:
        is_completed = step.id in context.completed_steps
        is_current = context.current_step == step.id

        lock = step.lock_config
        if lock is not None:
            if lock.custom is not None:
                return bool(lock.custom(context.copy()))
            if lock.when_completed and is_completed:
                return True
            if lock.when_not_current and not is_current:
                return True

        return is_completed and not is_current
