"""Common exceptions for the ChatFlow framework.

Structural problems (unknown flows or steps, malformed definitions) are raised
synchronously as DefinitionError. Data problems are never raised: validation
failures travel as events, and subscriber failures are wrapped in HandlerError
and logged at the emission boundary.
"""

from typing import Any


class ChatFlowError(Exception):
    """Base exception for all ChatFlow-related errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        """Initialize exception with message and optional context."""
        super().__init__(message)
        self.context = context or {}


class DefinitionError(ChatFlowError):
    """Raised when flow content references something that does not exist or is malformed."""

    def __init__(
        self,
        message: str,
        flow_id: str | None = None,
        step_id: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize definition error with details."""
        super().__init__(message, context)
        self.flow_id = flow_id
        self.step_id = step_id


class FlowStateError(ChatFlowError):
    """Raised when an operation needs an active flow or step and there is none."""

    def __init__(
        self,
        message: str,
        flow_id: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize flow state error with details."""
        super().__init__(message, context)
        self.flow_id = flow_id


class HandlerError(ChatFlowError):
    """Wraps an exception raised inside an event subscriber.

    Instances are created and logged at the emission boundary; they are
    returned to the emitter for inspection but never raised.
    """

    def __init__(
        self,
        message: str,
        event_type: str,
        handler: Any = None,
        original: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize handler error with the failing handler and cause."""
        super().__init__(message, context)
        self.event_type = event_type
        self.handler = handler
        self.original = original


class UnimplementedFeatureError(ChatFlowError):
    """A declared feature that is recognised but not evaluated.

    Logged as a warning and treated as a no-op.
    """

    def __init__(
        self,
        message: str,
        feature: str,
        context: dict[str, Any] | None = None,
    ):
        """Initialize with the name of the unimplemented feature."""
        super().__init__(message, context)
        self.feature = feature


class FormError(ChatFlowError):
    """Raised when a form instance is used in a way its definition forbids."""

    def __init__(
        self,
        message: str,
        field_id: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize form error with details."""
        super().__init__(message, context)
        self.field_id = field_id


class LoadError(ChatFlowError):
    """Raised when a flow file cannot be read, parsed, or validated."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        errors: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize load error with details."""
        super().__init__(message, context)
        self.file_path = file_path
        self.errors = errors or []


class ConfigValidationError(ChatFlowError):
    """Raised when configuration validation fails."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize configuration error with details."""
        super().__init__(message, context)
        self.config_key = config_key


__all__ = [
    "ChatFlowError",
    "DefinitionError",
    "FlowStateError",
    "HandlerError",
    "UnimplementedFeatureError",
    "FormError",
    "LoadError",
    "ConfigValidationError",
]
