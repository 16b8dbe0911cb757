"""
Enums and constants for ChatFlow definitions and runtime state.

This module defines all enums and constant classes to avoid magic strings
throughout the codebase.

Usage:
    from chatflow.models.enums import (
        FlowEventType,
        TransitionKey,
        COMPLETE,
    )
"""

from enum import StrEnum
from typing import Final

# ============================================================================
# Transition Constants
# ============================================================================

# Sentinel transition target that finishes the flow
COMPLETE: Final[str] = "complete"


class TransitionKey(StrEnum):
    """Reserved transition keys. Every other key is a free-form action id."""

    ON_COMPLETE = "onComplete"
    DEFAULT = "default"
    ON_CANCEL = "onCancel"
    CONDITIONAL = "conditional"  # Recognised, never evaluated


# ============================================================================
# Flow and Step Enums
# ============================================================================


class FlowCategory(StrEnum):
    """Flow categorization for organization."""

    CLIENTS = "clients"
    LEADS = "leads"
    FINANCIAL = "financial"
    SYSTEM = "system"
    GENERAL = "general"


class StepType(StrEnum):
    """Kinds of step a flow can contain."""

    OVERVIEW = "overview"
    FORM = "form"
    CHOICE = "choice"
    PROCESS = "process"
    RESULT = "result"
    UPLOAD = "upload"
    CUSTOM = "custom"


class OrchestratorStatus(StrEnum):
    """Lifecycle state of an orchestrator.

    Cancellation is not a resting state: a cancelled flow is reported through
    its event and the orchestrator goes straight back to IDLE.
    """

    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"


# ============================================================================
# Event Enums
# ============================================================================


class FlowEventType(StrEnum):
    """Lifecycle notifications emitted by the orchestrator."""

    FLOW_STARTED = "flow:started"
    FLOW_COMPLETED = "flow:completed"
    FLOW_CANCELLED = "flow:cancelled"
    STEP_STARTED = "step:started"
    STEP_COMPLETED = "step:completed"
    STEP_FAILED = "step:failed"
    ACTION_TRIGGERED = "action:triggered"
    VALIDATION_FAILED = "validation:failed"


# ============================================================================
# Form Enums
# ============================================================================


class RuleKind(StrEnum):
    """Validation rule kinds."""

    REQUIRED = "required"
    REGEX = "regex"
    MIN = "min"
    MAX = "max"
    EMAIL = "email"
    CUSTOM = "custom"  # Declared only, evaluated as passing


class RevealKind(StrEnum):
    """Progressive reveal rule kinds."""

    AFTER_VALID = "afterValid"
    WHEN = "when"
    AFTER_SUBMIT = "afterSubmit"


class FieldType(StrEnum):
    """Form field input types."""

    TEXT = "text"
    EMAIL = "email"
    PASSWORD = "password"
    NUMBER = "number"
    TEL = "tel"
    URL = "url"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"
    FILE = "file"


class DeriveStrategyName(StrEnum):
    """Names of the built-in derivation strategies."""

    USERNAME_FROM_EMAIL = "usernameFromEmail"
    STRONG_PASSWORD = "strongPassword"
