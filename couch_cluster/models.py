"""
Core data models for the CouchDB cluster setup tool
"""
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Tuple, Iterator
from enum import Enum

DEFAULT_PORT = 5984


class ClusterState(Enum):
    """Cluster setup state as reported by a node's /_cluster_setup endpoint"""
    NOT_ENABLED = "not_enabled"
    CLUSTER_ENABLED = "cluster_enabled"
    CLUSTER_FINISHED = "cluster_finished"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "ClusterState":
        """Map a raw state string onto a ClusterState"""
        if value in _NOT_ENABLED_ALIASES:
            return cls.NOT_ENABLED
        for state in cls:
            if state.value == value and state is not cls.UNKNOWN:
                return state
        return cls.UNKNOWN


# States CouchDB reports for a node that has never joined a cluster
_NOT_ENABLED_ALIASES = ("not_enabled", "cluster_disabled", "single_node_disabled")


class FormationPhase(Enum):
    """Phases of cluster formation, in execution order"""
    PREFLIGHT = "preflight"
    ENABLE = "enable"
    ENABLE_REMOTE = "enable_remote"
    ADD_NODE = "add_node"
    FINISH = "finish"
    VERIFY = "verify"


@dataclass(frozen=True)
class Node:
    """One target cluster member"""
    host: str
    port: int = DEFAULT_PORT
    internal_host: Optional[str] = None
    internal_port: Optional[int] = None

    def __post_init__(self):
        if not self.host:
            raise ValueError("Node host must be non-empty")
        if self.port <= 0:
            raise ValueError(f"Node port must be positive, got {self.port}")
        if self.internal_port is not None and self.internal_port <= 0:
            raise ValueError(f"Node internal port must be positive, got {self.internal_port}")

    @property
    def cluster_host(self) -> str:
        """Host the coordinator uses to reach this node inside the cluster network"""
        return self.internal_host or self.host

    @property
    def cluster_port(self) -> int:
        return self.internal_port or self.port

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class Topology:
    """Ordered list of nodes; the first node is the coordinator"""
    nodes: Tuple[Node, ...]

    def __post_init__(self):
        if not self.nodes:
            raise ValueError("Topology must contain at least one node")
        object.__setattr__(self, 'nodes', tuple(self.nodes))

    @property
    def coordinator(self) -> Node:
        return self.nodes[0]

    @property
    def peers(self) -> Tuple[Node, ...]:
        return self.nodes[1:]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)


@dataclass(frozen=True)
class Credentials:
    """Admin username/password shared by every node"""
    username: str
    password: str = field(repr=False)

    def __post_init__(self):
        if not self.username or not self.password:
            raise ValueError("Credentials require a non-empty username and password")


@dataclass
class Outcome:
    """Normalized response of a control-plane POST"""
    status: int
    ok: bool
    reason: Optional[str] = None
    error: Optional[str] = None
    body: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, status: int, body: Dict[str, Any]) -> "Outcome":
        return cls(
            status=status,
            ok=bool(body.get('ok')),
            reason=body.get('reason'),
            error=body.get('error'),
            body=body
        )


@dataclass
class SetupStatus:
    """Result of querying /_cluster_setup"""
    state: ClusterState
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def raw_state(self) -> Optional[str]:
        return self.raw.get('state')


@dataclass
class Membership:
    """A node's view of cluster membership from /_membership"""
    all_nodes: List[str]
    cluster_nodes: List[str]


@dataclass
class FormationConfig:
    """Everything a formation run needs, built once before any network call"""
    topology: Topology
    credentials: Credentials
    bind_address: str = "0.0.0.0"
    scheme: str = "http"
    request_timeout: float = 30.0
    max_workers: int = 1
    log_dir: str = "/tmp/couch-cluster/logs"


@dataclass
class StepResult:
    """Outcome of one node/phase call during a run"""
    phase: FormationPhase
    node: str
    success: bool
    status: Optional[int] = None
    reason: Optional[str] = None
    timestamp: float = 0.0


@dataclass
class FormationResult:
    """Complete result of a formation run"""
    run_id: str
    success: bool
    start_time: float
    end_time: float
    coordinator: str
    node_count: int
    steps: List[StepResult] = field(default_factory=list)
    error_message: Optional[str] = None
    error_category: Optional[str] = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def steps_for(self, phase: FormationPhase) -> List[StepResult]:
        return [step for step in self.steps if step.phase == phase]


@dataclass
class NodeReport:
    """Read-only view of one node for the status command"""
    node: str
    state: ClusterState
    raw_state: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ClusterReport:
    """Read-only view of the whole topology"""
    node_count: int
    nodes: List[NodeReport]
    membership: Optional[Membership] = None
    membership_error: Optional[str] = None

    @property
    def formed(self) -> bool:
        """True when every node is finished and membership matches the topology"""
        if self.membership is None:
            return False
        if any(report.state != ClusterState.CLUSTER_FINISHED for report in self.nodes):
            return False
        return (
            len(self.membership.all_nodes) == self.node_count and
            len(self.membership.cluster_nodes) == self.node_count
        )
