"""Constants and default values for ChatFlow configuration.

This module centralizes all configuration constants and environment variable
settings used by the flow manager and the CLI.
"""

import logging
import os
from typing import Final

# =============================================================================
# Environment Variable Names
# =============================================================================

ENV_VAR_PREFIX: Final[str] = "CHATFLOW_"

ENV_FLOWS_DIR: Final[str] = f"{ENV_VAR_PREFIX}FLOWS_DIR"
ENV_INCLUDE_BUILTIN: Final[str] = f"{ENV_VAR_PREFIX}INCLUDE_BUILTIN"
ENV_STRICT_VALIDATION: Final[str] = f"{ENV_VAR_PREFIX}STRICT_VALIDATION"
ENV_LOG_LEVEL: Final[str] = f"{ENV_VAR_PREFIX}LOG_LEVEL"


# =============================================================================
# Default Configuration Values
# =============================================================================

DEFAULT_FLOWS_DIR: Final[str | None] = None
DEFAULT_INCLUDE_BUILTIN: Final[bool] = True
DEFAULT_STRICT_VALIDATION: Final[bool] = True
DEFAULT_LOG_LEVEL: Final[str] = "WARNING"

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# =============================================================================
# Boolean String Parsing
# =============================================================================

TRUTHY_VALUES: Final[tuple[str, ...]] = ("true", "1", "yes", "on")
FALSY_VALUES: Final[tuple[str, ...]] = ("false", "0", "no", "off")


# =============================================================================
# Helper Functions
# =============================================================================


def get_env_bool(env_var: str, default: bool) -> bool:
    """
    Get boolean value from environment variable.

    Args:
        env_var: Environment variable name
        default: Default value if not set

    Returns:
        Boolean value from environment or default
    """
    value = os.getenv(env_var, str(default)).lower()
    return value in TRUTHY_VALUES


def get_env_str(env_var: str, default: str | None) -> str | None:
    """Get string value from environment variable, or the default."""
    return os.getenv(env_var, default)


# =============================================================================
# Configuration Value Getters (reads from environment)
# =============================================================================


def get_flows_dir() -> str | None:
    return get_env_str(ENV_FLOWS_DIR, DEFAULT_FLOWS_DIR) or None


def get_include_builtin() -> bool:
    return get_env_bool(ENV_INCLUDE_BUILTIN, DEFAULT_INCLUDE_BUILTIN)


def get_strict_validation() -> bool:
    return get_env_bool(ENV_STRICT_VALIDATION, DEFAULT_STRICT_VALIDATION)


def get_log_level() -> str:
    return (get_env_str(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()


def log_level_number(name: str) -> int:
    return logging.getLevelNamesMapping()[name.upper()]


# =============================================================================
# Documentation
# =============================================================================

ENVIRONMENT_VARIABLE_DOCS = """
Environment Variables Reference:

  CHATFLOW_FLOWS_DIR            - Extra directory of flow files (yaml|yml|json)
                                  Default: unset
  CHATFLOW_INCLUDE_BUILTIN      - Register the bundled flows: true|false
                                  Default: true
  CHATFLOW_STRICT_VALIDATION    - Reject flows failing consistency checks: true|false
                                  Default: true
  CHATFLOW_LOG_LEVEL            - DEBUG|INFO|WARNING|ERROR|CRITICAL
                                  Default: WARNING

Examples:
  export CHATFLOW_FLOWS_DIR="./flows"
  export CHATFLOW_STRICT_VALIDATION="false"
"""
