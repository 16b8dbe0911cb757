"""Common exceptions shared across the ChatFlow framework."""

from .exceptions import (
    ChatFlowError,
    ConfigValidationError,
    DefinitionError,
    FlowStateError,
    FormError,
    HandlerError,
    LoadError,
    UnimplementedFeatureError,
)

__all__ = [
    "ChatFlowError",
    "ConfigValidationError",
    "DefinitionError",
    "FlowStateError",
    "FormError",
    "HandlerError",
    "LoadError",
    "UnimplementedFeatureError",
]
