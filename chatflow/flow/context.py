"""Runtime flow context and its serializable snapshot."""

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from chatflow.models import FlowStateDict, OrchestratorStatus


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class FlowContext:
    """
    Mutable record of one in-progress flow execution.

    Owned by exactly one orchestrator. Consumers only ever see copies
    (see ``FlowOrchestrator.get_flow_context``).
    """

    flow_id: str = ""
    current_step: str | None = None
    completed_steps: set[str] = field(default_factory=set)
    step_data: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.flow_id

    def copy(self) -> "FlowContext":
        """Deep copy, so callers cannot mutate the orchestrator's state."""
        return FlowContext(
            flow_id=self.flow_id,
            current_step=self.current_step,
            completed_steps=set(self.completed_steps),
            step_data=copy.deepcopy(self.step_data),
            metadata=copy.deepcopy(self.metadata),
        )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return utcnow()


@dataclass
class FlowState:
    """Serializable snapshot of a FlowContext."""

    flow_id: str
    current_step: str | None
    completed_steps: list[str] = field(default_factory=list)
    step_data: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    status: OrchestratorStatus = OrchestratorStatus.ACTIVE
    started_at: datetime = field(default_factory=utcnow)
    last_updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> FlowStateDict:
        """Plain, JSON-compatible form with ISO-8601 timestamps."""
        return {
            "flowId": self.flow_id,
            "currentStep": self.current_step,
            "completedSteps": list(self.completed_steps),
            "stepData": copy.deepcopy(self.step_data),
            "metadata": copy.deepcopy(self.metadata),
            "status": str(self.status),
            "startedAt": self.started_at.isoformat(),
            "lastUpdatedAt": self.last_updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: FlowStateDict) -> "FlowState":
        return cls(
            flow_id=data["flowId"],
            current_step=data.get("currentStep"),
            completed_steps=list(data.get("completedSteps", [])),
            step_data=dict(data.get("stepData", {})),
            metadata=dict(data.get("metadata", {})),
            status=OrchestratorStatus(data.get("status", OrchestratorStatus.ACTIVE)),
            started_at=_parse_timestamp(data.get("startedAt")),
            last_updated_at=_parse_timestamp(data.get("lastUpdatedAt")),
        )
