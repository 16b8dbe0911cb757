# chatflow/manager/config.py
from dataclasses import dataclass
from pathlib import Path
from typing import TypedDict

from chatflow.common.exceptions import ConfigValidationError
from chatflow.manager.constants import (
    DEFAULT_INCLUDE_BUILTIN,
    DEFAULT_LOG_LEVEL,
    DEFAULT_STRICT_VALIDATION,
    LOG_LEVELS,
    get_flows_dir,
    get_include_builtin,
    get_log_level,
    get_strict_validation,
)


class ChatFlowConfigDict(TypedDict, total=False):
    """TypedDict for configuration dictionary"""
    flows_dir: str | None
    include_builtin: bool
    strict_validation: bool
    log_level: str


@dataclass(frozen=True)
class ChatFlowConfig:
    """Configuration for the flow manager and CLI"""

    flows_dir: Path | None = None
    include_builtin: bool = DEFAULT_INCLUDE_BUILTIN
    strict_validation: bool = DEFAULT_STRICT_VALIDATION
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self):
        """Validate configuration after initialization"""
        self._validate_config()

    @classmethod
    def from_env(cls) -> "ChatFlowConfig":
        """Create configuration from environment variables using constants module"""
        flows_dir_str = get_flows_dir()
        flows_dir = Path(flows_dir_str).expanduser().resolve() if flows_dir_str else None
        return cls(
            flows_dir=flows_dir,
            include_builtin=get_include_builtin(),
            strict_validation=get_strict_validation(),
            log_level=get_log_level(),
        )

    @classmethod
    def from_dict(cls, config_dict: ChatFlowConfigDict) -> "ChatFlowConfig":
        """Create configuration from typed dictionary"""
        flows_dir_val = config_dict.get("flows_dir")
        flows_dir = Path(flows_dir_val).expanduser().resolve() if flows_dir_val else None
        return cls(
            flows_dir=flows_dir,
            include_builtin=config_dict.get("include_builtin", DEFAULT_INCLUDE_BUILTIN),
            strict_validation=config_dict.get("strict_validation", DEFAULT_STRICT_VALIDATION),
            log_level=str(config_dict.get("log_level", DEFAULT_LOG_LEVEL)).upper(),
        )

    def with_flows_dir(self, flows_dir: str | Path | None) -> "ChatFlowConfig":
        """Copy with a different flows directory (None keeps the current one)."""
        if flows_dir is None:
            return self
        return ChatFlowConfig(
            flows_dir=Path(flows_dir).expanduser().resolve(),
            include_builtin=self.include_builtin,
            strict_validation=self.strict_validation,
            log_level=self.log_level,
        )

    def _validate_config(self) -> None:
        """Validate configuration values"""
        if self.log_level not in LOG_LEVELS:
            raise ConfigValidationError(
                f"Invalid log_level: {self.log_level}. Must be one of: {', '.join(LOG_LEVELS)}",
                config_key="log_level",
            )
        if self.flows_dir is not None and self.flows_dir.exists() and not self.flows_dir.is_dir():
            raise ConfigValidationError(
                f"flows_dir is not a directory: {self.flows_dir}", config_key="flows_dir"
            )
        if not self.include_builtin and self.flows_dir is None:
            raise ConfigValidationError(
                "No flow source: set flows_dir or enable include_builtin",
                config_key="flows_dir",
            )

    def to_dict(self) -> ChatFlowConfigDict:
        """Convert configuration to typed dictionary"""
        return ChatFlowConfigDict(
            flows_dir=str(self.flows_dir) if self.flows_dir else None,
            include_builtin=self.include_builtin,
            strict_validation=self.strict_validation,
            log_level=self.log_level,
        )

    def __str__(self) -> str:
        return f"ChatFlowConfig(flows_dir='{self.flows_dir}', include_builtin={self.include_builtin})"
