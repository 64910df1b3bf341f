"""
Base interfaces and abstract classes for all major components
"""
from abc import ABC, abstractmethod
from typing import List
from .models import (
    Node, Credentials, Outcome, SetupStatus, Membership, FormationConfig,
    FormationResult, ClusterReport, StepResult
)


class INodeControlClient(ABC):
    """Interface for the control-plane calls made against one node"""

    @abstractmethod
    def query_cluster_setup(self, node: Node, credentials: Credentials) -> SetupStatus:
        """Query the node's cluster setup state"""
        pass

    @abstractmethod
    def enable_cluster(self, node: Node, credentials: Credentials, node_count: int,
                       bind_address: str = "0.0.0.0") -> Outcome:
        """Ask the node to enter cluster_enabled state"""
        pass

    @abstractmethod
    def enable_cluster_for_remote(self, coordinator: Node, credentials: Credentials,
                                  remote_node: Node, node_count: int,
                                  bind_address: str = "0.0.0.0") -> Outcome:
        """Tell the coordinator to prepare to add remote_node"""
        pass

    @abstractmethod
    def add_node(self, coordinator: Node, credentials: Credentials, remote_node: Node) -> Outcome:
        """Register remote_node as a cluster member through the coordinator"""
        pass

    @abstractmethod
    def finish_cluster(self, coordinator: Node, credentials: Credentials) -> Outcome:
        """Finalize cluster formation on the coordinator"""
        pass

    @abstractmethod
    def query_membership(self, node: Node, credentials: Credentials) -> Membership:
        """Get the node's view of cluster membership"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release HTTP resources"""
        pass


class IClusterFormation(ABC):
    """Interface for the cluster formation state machine"""

    @abstractmethod
    def run(self) -> None:
        """Run every formation phase, raising on the first fatal error"""
        pass

    @abstractmethod
    def inspect(self) -> ClusterReport:
        """Read every node's state without mutating anything"""
        pass


class IFormationEngine(ABC):
    """Interface for the end-to-end formation runner"""

    @abstractmethod
    def form_cluster(self, config: FormationConfig) -> FormationResult:
        """Form a cluster and report the result"""
        pass

    @abstractmethod
    def inspect_cluster(self, config: FormationConfig) -> ClusterReport:
        """Report the current cluster state of every node"""
        pass


class ILogger(ABC):
    """Interface for run logging and reporting"""

    @abstractmethod
    def log_run_start(self, run_id: str, config: FormationConfig) -> None:
        """Log formation run start"""
        pass

    @abstractmethod
    def log_step(self, step: StepResult) -> None:
        """Log one node/phase call"""
        pass

    @abstractmethod
    def log_run_completion(self, result: FormationResult) -> None:
        """Log formation run completion"""
        pass

    @abstractmethod
    def generate_report(self, results: List[FormationResult]) -> str:
        """Generate summary report"""
        pass
