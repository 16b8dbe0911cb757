"""Form engine: validation, derivation, and progressive reveal."""

from .derivation import (
    DerivationEngine,
    DeriveTarget,
    StrategyRegistry,
    find_cycle,
    strong_password,
    username_from_email,
)
from .form import FormChange, FormState, FormSubmission
from .reveal import RevealEngine, RevealRule, Section, strictly_equal
from .validation import (
    Field,
    ValidationError,
    ValidationRule,
    rules_by_field,
    validate,
    validate_payload,
    validate_values,
)

__all__ = [
    "DerivationEngine",
    "DeriveTarget",
    "Field",
    "FormChange",
    "FormState",
    "FormSubmission",
    "RevealEngine",
    "RevealRule",
    "Section",
    "StrategyRegistry",
    "ValidationError",
    "ValidationRule",
    "find_cycle",
    "rules_by_field",
    "strictly_equal",
    "strong_password",
    "username_from_email",
    "validate",
    "validate_payload",
    "validate_values",
]
