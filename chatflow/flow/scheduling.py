"""Stale-continuation guard and delayed auto-advance.

Every orchestrator carries a generation counter that moves on whenever the
active flow is started, reset, or restored. Delayed work captures the
generation when it is scheduled and becomes a no-op if the counter has
moved by the time it fires. This cancels the effect of the callback only,
never any external operation it stands in for.
"""

import asyncio
import functools
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

if TYPE_CHECKING:
    from .orchestrator import FlowOrchestrator

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class GenerationGuard:
    """Monotonic generation counter."""

    def __init__(self):
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def advance(self) -> int:
        self._generation += 1
        return self._generation

    def capture(self) -> int:
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def guard(self, callback: Callable[P, R]) -> Callable[P, R | None]:
        """Wrap ``callback`` so it only runs while the current generation lasts."""
        token = self.capture()

        @functools.wraps(callback)
        def guarded(*args: P.args, **kwargs: P.kwargs) -> R | None:
            if not self.is_current(token):
                logger.debug(
                    f"Discarding stale callback {getattr(callback, '__name__', callback)!r} "
                    f"(generation {token} != {self._generation})"
                )
                return None
            return callback(*args, **kwargs)

        return guarded


def schedule_auto_advance(
    orchestrator: "FlowOrchestrator",
    delay: float,
    data: Any = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> asyncio.TimerHandle:
    """
    Complete the current step after ``delay`` seconds.

    The call is dropped if the flow was reset, restarted, or restored in the
    meantime, or if the step that was current at schedule time is no longer
    current.

    Raises:
        FlowStateError: If no step is active when scheduling
    """
    step = orchestrator.require_current_step()
    loop = loop or asyncio.get_running_loop()

    def advance() -> None:
        current = orchestrator.get_current_step()
        if current is None or current.id != step.id:
            logger.debug(f"Auto-advance for '{step.id}' dropped: step no longer current")
            return
        orchestrator.complete_current_step(data)

    return loop.call_later(delay, orchestrator.defer(advance))
