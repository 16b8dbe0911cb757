"""String-keyed dispatch from component kinds to renderers.

The factory knows nothing about concrete widgets. The presentation layer
registers a renderer per ``component.kind`` and the factory hands it the
step's props, merged with the lock state computed by the orchestrator.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from chatflow.common.exceptions import DefinitionError
from chatflow.flow.context import FlowContext
from chatflow.flow.definition import ComponentConfig


@runtime_checkable
class Renderable(Protocol):
    """Anything that can turn a component's props into a presentation object."""

    def render(self, props: Mapping[str, Any], context: FlowContext | None) -> Any: ...


RenderFunction = Callable[[Mapping[str, Any], FlowContext | None], Any]
Renderer = Renderable | RenderFunction


class ComponentFactory:
    """
    Registry of renderers keyed by component kind.

    Example:
        >>> factory = ComponentFactory()
        >>> factory.register("alert", lambda props, ctx: props["message"])
        >>> factory.create(step.component, step_id=step.id)
    """

    def __init__(self, renderers: Mapping[str, Renderer] | None = None):
        self._renderers: dict[str, Renderer] = {}
        for kind, renderer in (renderers or {}).items():
            self.register(kind, renderer)

    def register(self, kind: str, renderer: Renderer) -> None:
        """Register or replace the renderer for a kind."""
        if not isinstance(renderer, Renderable) and not callable(renderer):
            raise TypeError(f"Renderer for '{kind}' must be callable or define render()")
        self._renderers[kind] = renderer

    def has(self, kind: str) -> bool:
        return kind in self._renderers

    @property
    def kinds(self) -> list[str]:
        return sorted(self._renderers)

    def props_for(
        self,
        config: ComponentConfig,
        *,
        step_id: str | None = None,
        locked: bool = False,
    ) -> dict[str, Any]:
        """The props a renderer receives: the step's props plus step id and lock state."""
        props = dict(config.props)
        if step_id is not None:
            props["stepId"] = step_id
        props["locked"] = locked
        return props

    def create(
        self,
        config: ComponentConfig,
        *,
        step_id: str | None = None,
        locked: bool = False,
        context: FlowContext | None = None,
    ) -> Any:
        """
        Render a component through its registered renderer.

        The return value is whatever the renderer produces; the factory never
        inspects it.

        Raises:
            DefinitionError: If no renderer is registered for the kind
        """
        renderer = self._renderers.get(config.kind)
        if renderer is None:
            raise DefinitionError(
                f"Component kind '{config.kind}' is not registered", step_id=step_id
            )
        props = self.props_for(config, step_id=step_id, locked=locked)
        if isinstance(renderer, Renderable):
            return renderer.render(props, context)
        return renderer(props, context)
