"""Flow file loading and structural validation."""

from .loader import (
    FileReader,
    load_builtin_flows,
    load_directory,
    load_flow,
    load_flows,
    parse_flows,
)
from .models import FlowFileModel, FlowModel, StepModel, format_validation_errors

__all__ = [
    "FileReader",
    "FlowFileModel",
    "FlowModel",
    "StepModel",
    "format_validation_errors",
    "load_builtin_flows",
    "load_directory",
    "load_flow",
    "load_flows",
    "parse_flows",
]
