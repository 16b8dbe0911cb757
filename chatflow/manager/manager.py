"""
FlowManager Module

Assembles a ready-to-use orchestrator from configuration: loads the bundled
and directory flow files, checks them, and registers them.
"""

import logging

from chatflow.common.exceptions import DefinitionError
from chatflow.components.factory import ComponentFactory
from chatflow.extensions.registry import LockPredicateRegistry
from chatflow.flow.definition import FlowDefinition
from chatflow.flow.orchestrator import FlowOrchestrator
from chatflow.flow.registry import FlowRegistry, FlowValidationReport
from chatflow.schema.loader import load_builtin_flows, load_directory

from .config import ChatFlowConfig

logger = logging.getLogger(__name__)


class FlowManager:
    """
    Coordinator for flow sources and the orchestrator built from them.

    Flows are loaded once on first access. With strict validation a flow
    whose consistency report has errors is rejected; otherwise the errors
    are logged and the flow is registered anyway.
    """

    def __init__(
        self,
        config: ChatFlowConfig | None = None,
        predicates: LockPredicateRegistry | None = None,
        components: ComponentFactory | None = None,
    ):
        """
        Initialize the FlowManager.

        Args:
            config: Optional configuration. Defaults to environment-based configuration.
            predicates: Registry used to resolve ``locks.custom`` names
            components: Factory used to render step components
        """
        self._config = config if config is not None else ChatFlowConfig.from_env()
        self._predicates = predicates or LockPredicateRegistry()
        self._components = components or ComponentFactory()
        self._registry: FlowRegistry | None = None
        self._reports: dict[str, FlowValidationReport] = {}

    @property
    def config(self) -> ChatFlowConfig:
        return self._config

    @property
    def predicates(self) -> LockPredicateRegistry:
        return self._predicates

    @property
    def components(self) -> ComponentFactory:
        return self._components

    @property
    def registry(self) -> FlowRegistry:
        """The loaded flow catalog."""
        if self._registry is None:
            self._registry = self._load()
        return self._registry

    @property
    def reports(self) -> dict[str, FlowValidationReport]:
        """Consistency reports of every loaded flow, keyed by flow id."""
        if self._registry is None:
            self._registry = self._load()
        return dict(self._reports)

    def list_flows(self) -> list[FlowDefinition]:
        return self.registry.all()

    def get_flow(self, flow_id: str) -> FlowDefinition:
        """
        Raises:
            DefinitionError: If the flow is not registered
        """
        return self.registry.require(flow_id)

    def create_orchestrator(self) -> FlowOrchestrator:
        """A fresh orchestrator over the loaded flows.

        Orchestrators share the read-only catalog but never a flow context.
        """
        return FlowOrchestrator(registry=self.registry)

    def reload(self) -> FlowRegistry:
        self._registry = None
        self._reports = {}
        return self.registry

    def _load(self) -> FlowRegistry:
        flows: list[FlowDefinition] = []
        if self._config.include_builtin:
            flows.extend(load_builtin_flows(self._predicates))
        if self._config.flows_dir is not None:
            flows.extend(load_directory(self._config.flows_dir, self._predicates))

        registry = FlowRegistry()
        for flow in flows:
            report = FlowRegistry.validate_flow(flow)
            self._reports[flow.id] = report
            if not report.valid:
                message = f"Flow '{flow.id}' failed validation: {'; '.join(report.errors)}"
                if self._config.strict_validation:
                    raise DefinitionError(message, flow_id=flow.id)
                logger.error(message)
            registry.add(flow)

        logger.info(f"Loaded {len(registry)} flow(s): {[f.id for f in registry.all()]}")
        return registry
