"""
Base classes for Cluster Orchestrator components
"""
import time
from abc import ABC
from typing import Callable, Optional, TypeVar
from ..interfaces import INodeControlClient
from ..models import Node, Topology, Credentials, FormationPhase, StepResult
from ..errors import NetworkError, ProtocolRejectionError
from .parallel_executor import ParallelExecutor

T = TypeVar('T')

StepCallback = Callable[[StepResult], None]


class BaseFormationPhase(ABC):
    """Common wiring shared by every formation phase"""

    def __init__(self, client: INodeControlClient, topology: Topology, credentials: Credentials,
                 executor: Optional[ParallelExecutor] = None, on_step: Optional[StepCallback] = None):
        self.client = client
        self.topology = topology
        self.credentials = credentials
        self.executor = executor or ParallelExecutor()
        self.on_step = on_step

    @property
    def node_count(self) -> int:
        return len(self.topology)

    def _record(self, phase: FormationPhase, node: Node, success: bool,
                status: Optional[int] = None, reason: Optional[str] = None) -> None:
        """Report one node/phase outcome to the step callback"""
        if self.on_step is None:
            return
        self.on_step(StepResult(
            phase=phase,
            node=node.address,
            success=success,
            status=status,
            reason=reason,
            timestamp=time.time()
        ))

    def _call(self, phase: FormationPhase, node: Node, call: Callable[[], T]) -> T:
        """Run a client call, recording a failed step if the transport or node rejects it"""
        try:
            return call()
        except (NetworkError, ProtocolRejectionError) as e:
            self._record(phase, node, False, getattr(e, 'status', None), str(e))
            raise
