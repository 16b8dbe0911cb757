"""Configuration and flow source management."""

from .config import ChatFlowConfig, ChatFlowConfigDict
from .manager import FlowManager

__all__ = ["ChatFlowConfig", "ChatFlowConfigDict", "FlowManager"]
