import logging
from typing import List, Optional
from ..interfaces import INodeControlClient, IClusterFormation
from ..models import (
    Node, Topology, Credentials, ClusterState, FormationPhase, Outcome, SetupStatus,
    Membership, NodeReport, ClusterReport
)
from ..errors import (
    NetworkError, ProtocolRejectionError, AlreadyClusteredError, StateMismatchError,
    EnableClusterError, AddNodeError, FinishClusterError, VerificationError
)
from .base import BaseFormationPhase, StepCallback
from .parallel_executor import ParallelExecutor

logging.basicConfig(format='%(levelname)-5s | %(filename)s:%(lineno)-3d | %(message)s', level=logging.INFO, force=True)
logger = logging.getLogger(__name__)

ALREADY_ENABLED_REASON = "already enabled"


def _reason(outcome: Outcome) -> Optional[str]:
    return outcome.reason or outcome.error


def is_already_enabled(outcome: Outcome) -> bool:
    """True when a node rejected enable_cluster only because it is already enabled"""
    return (
        outcome.status == 400 and
        bool(outcome.reason) and
        ALREADY_ENABLED_REASON in outcome.reason.lower()
    )


class PreflightChecker(BaseFormationPhase):
    """Confirms every node is outside any cluster before anything is mutated"""

    def check_node(self, node: Node) -> SetupStatus:
        status = self._call(
            FormationPhase.PREFLIGHT, node,
            lambda: self.client.query_cluster_setup(node, self.credentials)
        )

        if status.state in (ClusterState.CLUSTER_ENABLED, ClusterState.CLUSTER_FINISHED):
            self._record(FormationPhase.PREFLIGHT, node, False, reason=f"already {status.raw_state}")
            raise AlreadyClusteredError(node.address, status.raw_state)

        if status.state != ClusterState.NOT_ENABLED:
            self._record(FormationPhase.PREFLIGHT, node, False, reason=f"unexpected state {status.raw_state}")
            raise StateMismatchError(node.address, ClusterState.NOT_ENABLED.value, status.raw_state)

        logger.info(f"{node.address} is not part of a cluster (state={status.raw_state})")
        self._record(FormationPhase.PREFLIGHT, node, True)
        return status

    def check(self) -> List[SetupStatus]:
        logger.info(f"Pre-flight: checking {self.node_count} nodes are ready to form a cluster")
        return self.executor.run_for_nodes(self.topology.nodes, self.check_node)


class ClusterEnabler(BaseFormationPhase):
    """Puts every node into cluster-enabled mode"""

    def __init__(self, client: INodeControlClient, topology: Topology, credentials: Credentials,
                 bind_address: str = "0.0.0.0", executor: Optional[ParallelExecutor] = None,
                 on_step: Optional[StepCallback] = None):
        super().__init__(client, topology, credentials, executor, on_step)
        self.bind_address = bind_address

    def enable_node(self, node: Node) -> Outcome:
        outcome = self._call(
            FormationPhase.ENABLE, node,
            lambda: self.client.enable_cluster(node, self.credentials, self.node_count, self.bind_address)
        )

        if 200 <= outcome.status < 300:
            logger.info(f"Cluster mode enabled on {node.address}")
        elif is_already_enabled(outcome):
            logger.info(f"Cluster mode was already enabled on {node.address}")
        else:
            self._record(FormationPhase.ENABLE, node, False, outcome.status, _reason(outcome))
            raise EnableClusterError(node.address, outcome.status, _reason(outcome))

        self._record(FormationPhase.ENABLE, node, True, outcome.status, outcome.reason)
        return outcome

    def verify_node(self, node: Node) -> SetupStatus:
        status = self._call(
            FormationPhase.ENABLE, node,
            lambda: self.client.query_cluster_setup(node, self.credentials)
        )

        if status.state != ClusterState.CLUSTER_ENABLED:
            self._record(FormationPhase.ENABLE, node, False, reason=f"state is {status.raw_state}")
            raise StateMismatchError(node.address, ClusterState.CLUSTER_ENABLED.value, status.raw_state)

        logger.info(f"{node.address} is in cluster_enabled state")
        self._record(FormationPhase.ENABLE, node, True, reason="state is cluster_enabled")
        return status

    def enable_all(self) -> List[Outcome]:
        logger.info(f"Enabling cluster mode on {self.node_count} nodes")
        outcomes = self.executor.run_for_nodes(self.topology.nodes, self.enable_node)
        self.executor.run_for_nodes(self.topology.nodes, self.verify_node)
        return outcomes


class CoordinatorOrchestrator(BaseFormationPhase):
    """Registers every peer through the coordinator, then finalizes the cluster"""

    def __init__(self, client: INodeControlClient, topology: Topology, credentials: Credentials,
                 bind_address: str = "0.0.0.0", on_step: Optional[StepCallback] = None):
        # peers are always registered one at a time, so no executor
        super().__init__(client, topology, credentials, None, on_step)
        self.bind_address = bind_address

    @property
    def coordinator(self) -> Node:
        return self.topology.coordinator

    def enable_remote(self, peer: Node) -> Outcome:
        outcome = self._call(
            FormationPhase.ENABLE_REMOTE, peer,
            lambda: self.client.enable_cluster_for_remote(
                self.coordinator, self.credentials, peer, self.node_count, self.bind_address
            )
        )

        if outcome.status != 201 or not outcome.ok or outcome.reason:
            self._record(FormationPhase.ENABLE_REMOTE, peer, False, outcome.status, _reason(outcome))
            raise AddNodeError(peer.address, FormationPhase.ENABLE_REMOTE.value, outcome.status, _reason(outcome))

        self._record(FormationPhase.ENABLE_REMOTE, peer, True, outcome.status)
        return outcome

    def add_node(self, peer: Node) -> Outcome:
        outcome = self._call(
            FormationPhase.ADD_NODE, peer,
            lambda: self.client.add_node(self.coordinator, self.credentials, peer)
        )

        # 409 is left fatal: whether the peer is really a member cannot be told from here
        if outcome.status != 201 or not outcome.ok:
            self._record(FormationPhase.ADD_NODE, peer, False, outcome.status, _reason(outcome))
            raise AddNodeError(peer.address, FormationPhase.ADD_NODE.value, outcome.status, _reason(outcome))

        self._record(FormationPhase.ADD_NODE, peer, True, outcome.status)
        return outcome

    def register_peer(self, peer: Node) -> None:
        logger.info(f"Adding {peer.address} as {peer.cluster_host}:{peer.cluster_port} via coordinator {self.coordinator.address}")
        self.enable_remote(peer)
        self.add_node(peer)
        logger.info(f"{peer.address} added")

    def finish(self) -> Outcome:
        outcome = self._call(
            FormationPhase.FINISH, self.coordinator,
            lambda: self.client.finish_cluster(self.coordinator, self.credentials)
        )

        if outcome.status != 201 or not outcome.ok or outcome.reason:
            self._record(FormationPhase.FINISH, self.coordinator, False, outcome.status, _reason(outcome))
            raise FinishClusterError(outcome.status, _reason(outcome), node=self.coordinator.address)

        self._record(FormationPhase.FINISH, self.coordinator, True, outcome.status)
        logger.info(f"Cluster finished on coordinator {self.coordinator.address}")
        return outcome

    def assemble(self) -> None:
        peers = self.topology.peers
        logger.info(f"Using {self.coordinator.address} as coordinator to add {len(peers)} peers")

        for peer in peers:
            self.register_peer(peer)

        self.finish()


class FormationVerifier(BaseFormationPhase):
    """Confirms every node finished and sees the whole topology as members"""

    def verify_node_state(self, node: Node) -> SetupStatus:
        status = self._call(
            FormationPhase.VERIFY, node,
            lambda: self.client.query_cluster_setup(node, self.credentials)
        )

        if status.state != ClusterState.CLUSTER_FINISHED:
            self._record(FormationPhase.VERIFY, node, False, reason=f"state is {status.raw_state}")
            raise VerificationError(
                "cluster_state", ClusterState.CLUSTER_FINISHED.value, status.raw_state, node=node.address
            )

        self._record(FormationPhase.VERIFY, node, True, reason="state is cluster_finished")
        return status

    def verify_node_membership(self, node: Node) -> Membership:
        membership = self._call(
            FormationPhase.VERIFY, node,
            lambda: self.client.query_membership(node, self.credentials)
        )

        all_count = len(membership.all_nodes)
        cluster_count = len(membership.cluster_nodes)

        if all_count != self.node_count or cluster_count != self.node_count:
            actual = {'all_nodes': all_count, 'cluster_nodes': cluster_count}
            self._record(FormationPhase.VERIFY, node, False, reason=f"membership {actual}")
            raise VerificationError("membership_count", self.node_count, actual, node=node.address)

        logger.info(f"{node.address} sees {cluster_count}/{self.node_count} cluster nodes")
        self._record(FormationPhase.VERIFY, node, True)
        return membership

    def verify(self) -> List[Membership]:
        logger.info(f"Verifying all {self.node_count} nodes formed the cluster")
        self.executor.run_for_nodes(self.topology.nodes, self.verify_node_state)
        return self.executor.run_for_nodes(self.topology.nodes, self.verify_node_membership)


class ClusterFormation(IClusterFormation):
    """Runs pre-flight, enable, coordinate and verify in order, stopping at the first fatal error"""

    def __init__(self, client: INodeControlClient, topology: Topology, credentials: Credentials,
                 bind_address: str = "0.0.0.0", executor: Optional[ParallelExecutor] = None,
                 on_step: Optional[StepCallback] = None):
        self.client = client
        self.topology = topology
        self.credentials = credentials
        self.executor = executor or ParallelExecutor()

        self.preflight = PreflightChecker(client, topology, credentials, self.executor, on_step)
        self.enabler = ClusterEnabler(client, topology, credentials, bind_address, self.executor, on_step)
        self.coordinator = CoordinatorOrchestrator(client, topology, credentials, bind_address, on_step)
        self.verifier = FormationVerifier(client, topology, credentials, self.executor, on_step)

    def run(self) -> None:
        logger.info(f"FORMING CLUSTER of {len(self.topology)} nodes")

        self.preflight.check()
        self.enabler.enable_all()
        self.coordinator.assemble()
        self.verifier.verify()

        logger.info(f"Cluster of {len(self.topology)} nodes formed and verified")

    def _inspect_node(self, node: Node) -> NodeReport:
        try:
            status = self.client.query_cluster_setup(node, self.credentials)
        except (NetworkError, ProtocolRejectionError) as e:
            logger.warning(f"Could not read cluster state of {node.address}: {e}")
            return NodeReport(node=node.address, state=ClusterState.UNKNOWN, error=str(e))

        logger.info(f"{node.address}: state={status.raw_state}")
        return NodeReport(node=node.address, state=status.state, raw_state=status.raw_state)

    def inspect(self) -> ClusterReport:
        """Read every node's cluster state and the coordinator's membership"""
        reports = self.executor.run_for_nodes(self.topology.nodes, self._inspect_node)
        report = ClusterReport(node_count=len(self.topology), nodes=reports)

        coordinator = self.topology.coordinator
        try:
            report.membership = self.client.query_membership(coordinator, self.credentials)
        except (NetworkError, ProtocolRejectionError) as e:
            logger.warning(f"Could not read membership from {coordinator.address}: {e}")
            report.membership_error = str(e)

        if report.formed:
            logger.info(f"Cluster already formed with {report.node_count} nodes")
        return report
