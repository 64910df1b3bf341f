"""
Formation Engine - Runs cluster formation end-to-end and reports the result
"""
import time
import uuid
import logging
from typing import Callable, List, Optional
from ..interfaces import IFormationEngine, INodeControlClient
from ..models import FormationConfig, FormationResult, StepResult, ClusterReport
from ..errors import ClusterSetupError
from ..node_client import NodeControlClient
from ..cluster_orchestrator import ClusterFormation, ParallelExecutor
from .formation_logger import FormationLogger
from .error_handler import ErrorHandler, get_error_handler

logger = logging.getLogger(__name__)

ClientFactory = Callable[[FormationConfig], INodeControlClient]


def default_client_factory(config: FormationConfig) -> INodeControlClient:
    return NodeControlClient(scheme=config.scheme, timeout=config.request_timeout)


class FormationEngine(IFormationEngine):
    """
    Main runner for cluster formation.
    Wires the node client, the formation state machine, step logging and
    error handling together for one run at a time.
    """

    def __init__(self, client_factory: Optional[ClientFactory] = None,
                 formation_logger: Optional[FormationLogger] = None,
                 error_handler: Optional[ErrorHandler] = None):
        self.client_factory = client_factory or default_client_factory
        self.formation_logger = formation_logger
        self.last_run_logger: Optional[FormationLogger] = None
        self.error_handler = error_handler or get_error_handler()

    def _build_formation(self, client: INodeControlClient, config: FormationConfig,
                         on_step=None) -> ClusterFormation:
        return ClusterFormation(
            client,
            config.topology,
            config.credentials,
            bind_address=config.bind_address,
            executor=ParallelExecutor(config.max_workers),
            on_step=on_step
        )

    def form_cluster(self, config: FormationConfig) -> FormationResult:
        """
        Form a cluster from every node in the topology.

        Phases run strictly in order: pre-flight, enable, coordinate, verify.
        The first fatal error aborts the run and is reported in the result.
        """
        run_id = f"formation-{uuid.uuid4().hex[:8]}"
        run_logger = self.formation_logger or FormationLogger(config.log_dir)
        self.last_run_logger = run_logger
        steps: List[StepResult] = []

        def record_step(step: StepResult) -> None:
            steps.append(step)
            run_logger.log_step(step)

        start_time = time.time()
        run_logger.log_run_start(run_id, config)

        success = False
        error_message = None
        error_category = None

        client = self.client_factory(config)
        try:
            self._build_formation(client, config, on_step=record_step).run()
            success = True
        except ClusterSetupError as e:
            context = self.error_handler.context_from_exception(e)
            self.error_handler.handle_error(context)
            error_message = str(e)
            error_category = context.category.value
        except Exception as e:
            logger.error(f"Formation run {run_id} failed unexpectedly: {e}")
            context = self.error_handler.context_from_exception(e)
            self.error_handler.handle_error(context)
            error_message = f"Unexpected error: {e}"
            error_category = context.category.value
        finally:
            client.close()

        result = FormationResult(
            run_id=run_id,
            success=success,
            start_time=start_time,
            end_time=time.time(),
            coordinator=config.topology.coordinator.address,
            node_count=len(config.topology),
            steps=steps,
            error_message=error_message,
            error_category=error_category
        )

        run_logger.log_run_completion(result)
        return result

    def generate_report(self, results: List[FormationResult]) -> str:
        """Render formation results through the logger of the most recent run"""
        run_logger = self.formation_logger or self.last_run_logger
        if run_logger is None:
            raise RuntimeError("No formation run has been logged yet")
        return run_logger.generate_report(results)

    def inspect_cluster(self, config: FormationConfig) -> ClusterReport:
        """Read the cluster state of every node without changing anything"""
        logger.info(f"Inspecting {len(config.topology)} nodes")

        client = self.client_factory(config)
        try:
            return self._build_formation(client, config).inspect()
        finally:
            client.close()
