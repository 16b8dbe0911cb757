"""
Flow Registry Module

Catalog of flow definitions keyed by id, with lookup, category listing,
search, statistics, and a structural consistency check.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from chatflow.common.exceptions import DefinitionError
from chatflow.models import StepType, TransitionKey

from .definition import FlowDefinition

logger = logging.getLogger(__name__)


@dataclass
class FlowValidationReport:
    """Result of ``FlowRegistry.validate_flow``."""

    flow_id: str
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "flowId": self.flow_id,
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class FlowRegistry:
    """
    Registry of flow definitions.

    Registration only enforces id uniqueness; run ``validate_flow`` to check
    a definition's internal consistency.
    """

    def __init__(self, flows: Iterable[FlowDefinition] = ()):
        self._flows: dict[str, FlowDefinition] = {}
        for flow in flows:
            self.add(flow)

    def add(self, flow: FlowDefinition) -> None:
        """
        Register a flow.

        Raises:
            DefinitionError: If a flow with the same id is already registered
        """
        if flow.id in self._flows:
            raise DefinitionError(f"Flow '{flow.id}' is already registered", flow_id=flow.id)
        self._flows[flow.id] = flow
        logger.debug(f"Registered flow: {flow.id} ({flow.name})")

    def get(self, flow_id: str) -> FlowDefinition | None:
        return self._flows.get(flow_id)

    def require(self, flow_id: str) -> FlowDefinition:
        """
        Look up a flow that must exist.

        Raises:
            DefinitionError: If the flow is not registered
        """
        flow = self._flows.get(flow_id)
        if flow is None:
            raise DefinitionError(f"Flow with ID '{flow_id}' not found", flow_id=flow_id)
        return flow

    def has(self, flow_id: str) -> bool:
        return flow_id in self._flows

    def __contains__(self, flow_id: object) -> bool:
        return flow_id in self._flows

    def __len__(self) -> int:
        return len(self._flows)

    def all(self) -> list[FlowDefinition]:
        return list(self._flows.values())

    def by_category(self, category: str) -> list[FlowDefinition]:
        return [f for f in self._flows.values() if f.category == category]

    def categories(self) -> list[str]:
        """Distinct categories in registration order."""
        return list(dict.fromkeys(str(f.category) for f in self._flows.values()))

    def search(self, query: str) -> list[FlowDefinition]:
        """Case-insensitive match on name, description, or tags."""
        needle = query.lower()
        return [
            flow
            for flow in self._flows.values()
            if needle in flow.name.lower()
            or needle in flow.description.lower()
            or any(needle in tag.lower() for tag in flow.metadata.tags)
        ]

    def statistics(self) -> dict[str, Any]:
        flows = self.all()
        total_steps = sum(len(f.steps) for f in flows)
        return {
            "totalFlows": len(flows),
            "categories": [
                {"category": category, "count": len(self.by_category(category))}
                for category in self.categories()
            ],
            "averageStepsPerFlow": total_steps / len(flows) if flows else 0.0,
        }

    def clear(self) -> None:
        self._flows.clear()

    @staticmethod
    def validate_flow(flow: FlowDefinition) -> FlowValidationReport:
        """
        Check a definition for structural problems.

        Errors: missing id or name, no steps, duplicate step ids, steps
        without a type or component kind, and transitions pointing at steps
        that do not exist. Warnings: a first step that is not an overview,
        and conditional transitions, which are never evaluated.
        """
        report = FlowValidationReport(flow_id=flow.id)
        if not flow.id:
            report.errors.append("Flow ID is required")
        if not flow.name:
            report.errors.append("Flow name is required")
        if not flow.steps:
            report.errors.append("Flow must have at least one step")
            return report

        step_ids: set[str] = set()
        for index, step in enumerate(flow.steps):
            if not step.id:
                report.errors.append(f"Step {index} missing ID")
            elif step.id in step_ids:
                report.errors.append(f"Duplicate step ID: {step.id}")
            else:
                step_ids.add(step.id)
            if not step.type:
                report.errors.append(f"Step {step.id} missing type")
            if not step.component.kind:
                report.errors.append(f"Step {step.id} missing component")

        for step in flow.steps:
            for target in sorted(step.targets):
                if target not in step_ids:
                    report.errors.append(f"Step {step.id} references invalid step: {target}")
            for key, value in step.transitions.items():
                if key == TransitionKey.CONDITIONAL or not isinstance(value, str):
                    report.warnings.append(
                        f"Step {step.id} declares conditional transition '{key}', "
                        "which is not evaluated"
                    )

        if flow.steps[0].type != StepType.OVERVIEW:
            report.warnings.append(f"Flow {flow.id}: first step should be 'overview' type")

        for warning in report.warnings:
            logger.warning(warning)
        return report
