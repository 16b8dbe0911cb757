"""Component factory: maps component kinds to renderers."""

from .factory import ComponentFactory, Renderable, Renderer

__all__ = ["ComponentFactory", "Renderable", "Renderer"]
