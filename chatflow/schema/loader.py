"""File loader for ChatFlow that builds flow definitions.

A flow file is YAML or JSON and holds either one flow at the root or a
``flows`` list. Files are structurally validated with the pydantic models
in ``chatflow.schema.models`` before definitions are built.
"""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML

from chatflow.common.exceptions import DefinitionError, LoadError
from chatflow.extensions.registry import LockPredicateRegistry
from chatflow.flow.definition import FlowDefinition

from .models import FlowFileModel, FlowModel, format_validation_errors

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".yaml", ".yml", ".json")
BUILTIN_PACKAGE = "chatflow.definitions"


class FileReader:
    """Simple file reading abstraction with format detection."""

    @staticmethod
    def read_file(file_path: str | Path) -> Any:
        """
        Read and parse file content based on extension.

        Returns:
            Parsed file content

        Raises:
            LoadError: For I/O or parsing errors
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise LoadError(f"File not found: {file_path}", file_path=str(file_path))

        suffix = file_path.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise LoadError(
                f"Unsupported file format: {file_path.suffix}", file_path=str(file_path)
            )

        try:
            with open(file_path, encoding="utf-8") as f:
                return FileReader.parse(f, suffix, str(file_path))
        except PermissionError as e:
            raise LoadError(
                f"Permission denied reading {file_path}", file_path=str(file_path)
            ) from e
        except UnicodeDecodeError as e:
            raise LoadError(
                f"Encoding error reading {file_path}: {e}", file_path=str(file_path)
            ) from e

    @staticmethod
    def parse(stream: Any, suffix: str, source: str = "<stream>") -> Any:
        if suffix == ".json":
            try:
                return json.load(stream)
            except json.JSONDecodeError as e:
                raise LoadError(f"Error parsing JSON in {source}: {e}", file_path=source) from e
        try:
            return YAML(typ="safe", pure=True).load(stream)
        except Exception as e:
            raise LoadError(f"Error parsing YAML in {source}: {e}", file_path=source) from e


def parse_flows(
    data: Any,
    source: str = "<data>",
    predicates: LockPredicateRegistry | None = None,
) -> list[FlowDefinition]:
    """
    Validate raw flow data and build definitions.

    Args:
        data: Parsed file content (one flow, or a mapping with ``flows``)
        source: Where the data came from, for error messages
        predicates: Registry used to resolve ``locks.custom`` names

    Raises:
        LoadError: If the data does not match the flow file format
    """
    if not isinstance(data, dict):
        raise LoadError(f"{source}: file must contain a mapping", file_path=source)

    try:
        if "flows" in data:
            FlowFileModel.model_validate(data)
            raw_flows = data["flows"]
        else:
            FlowModel.model_validate(data)
            raw_flows = [data]
    except ValidationError as e:
        errors = format_validation_errors(e)
        raise LoadError(
            f"{source}: {len(errors)} schema error(s)", file_path=source, errors=errors
        ) from e

    predicates = predicates or LockPredicateRegistry()
    flows = []
    for raw in raw_flows:
        try:
            flows.append(FlowDefinition.from_dict(raw, predicates))
        except DefinitionError as e:
            raise LoadError(f"{source}: {e}", file_path=source, errors=[str(e)]) from e
    return flows


def load_flows(
    file_path: str | Path, predicates: LockPredicateRegistry | None = None
) -> list[FlowDefinition]:
    """Load every flow defined in a file."""
    data = FileReader.read_file(file_path)
    flows = parse_flows(data, str(file_path), predicates)
    logger.debug(f"Loaded {len(flows)} flow(s) from {file_path}")
    return flows


def load_flow(
    file_path: str | Path, predicates: LockPredicateRegistry | None = None
) -> FlowDefinition:
    """
    Load a file that defines exactly one flow.

    Raises:
        LoadError: If the file cannot be loaded or holds more than one flow
    """
    flows = load_flows(file_path, predicates)
    if len(flows) != 1:
        raise LoadError(
            f"{file_path}: expected one flow, found {len(flows)}", file_path=str(file_path)
        )
    return flows[0]


def load_directory(
    directory: str | Path, predicates: LockPredicateRegistry | None = None
) -> list[FlowDefinition]:
    """
    Load every flow file in a directory, in file name order.

    Raises:
        LoadError: If the directory does not exist or any file fails to load
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise LoadError(f"Flows directory not found: {directory}", file_path=str(directory))
    flows = []
    for file_path in sorted(directory.iterdir()):
        if file_path.is_file() and file_path.suffix.lower() in SUPPORTED_SUFFIXES:
            flows.extend(load_flows(file_path, predicates))
    return flows


def load_builtin_flows(predicates: LockPredicateRegistry | None = None) -> list[FlowDefinition]:
    """Load the flow files shipped with the package."""
    flows = []
    package = resources.files(BUILTIN_PACKAGE)
    for entry in sorted(package.iterdir(), key=lambda e: e.name):
        suffix = Path(entry.name).suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            continue
        source = f"{BUILTIN_PACKAGE}/{entry.name}"
        with entry.open(encoding="utf-8") as f:
            data = FileReader.parse(f, suffix, source)
        flows.extend(parse_flows(data, source, predicates))
    return flows
