"""
Exception hierarchy for cluster formation failures.

Every exception here is fatal to a formation run. The one tolerated
rejection, a node answering that its cluster is already enabled, never
becomes an exception.
"""
from typing import Optional, Any


class ClusterSetupError(Exception):
    """Base class for all cluster setup failures"""


class ConfigError(ClusterSetupError):
    """Missing or invalid topology or credentials"""


class NetworkError(ClusterSetupError):
    """Node unreachable, timed out, or answered with a malformed response"""

    def __init__(self, node: str, message: str):
        self.node = node
        self.message = message
        super().__init__(f"{node}: {message}")


class ProtocolRejectionError(ClusterSetupError):
    """A node answered a control-plane call with a non-success status or reason"""

    def __init__(self, node: str, action: str, status: Optional[int], reason: Optional[str] = None):
        self.node = node
        self.action = action
        self.status = status
        self.reason = reason
        super().__init__(self._describe())

    def _describe(self) -> str:
        message = f"{self.action} rejected by {self.node} (status={self.status})"
        if self.reason:
            message += f", reason={self.reason}"
        return message


class EnableClusterError(ProtocolRejectionError):
    """enable_cluster failed on a node"""

    def __init__(self, node: str, status: Optional[int], reason: Optional[str] = None):
        super().__init__(node, "enable_cluster", status, reason)


class AddNodeError(ProtocolRejectionError):
    """Registering a peer through the coordinator failed"""

    def __init__(self, peer: str, phase: str, status: Optional[int], reason: Optional[str] = None):
        self.peer = peer
        self.phase = phase
        super().__init__(peer, phase, status, reason)

    def _describe(self) -> str:
        message = f"{self.phase} failed for peer {self.peer} (status={self.status})"
        if self.reason:
            message += f", reason={self.reason}"
        if self.phase == "add_node" and self.status == 409:
            message += "; peer may already be a cluster member"
        return message


class FinishClusterError(ProtocolRejectionError):
    """finish_cluster was rejected by the coordinator"""

    def __init__(self, status: Optional[int], reason: Optional[str] = None, node: str = "coordinator"):
        super().__init__(node, "finish_cluster", status, reason)


class StateMismatchError(ClusterSetupError):
    """A node reports a cluster state other than the one expected"""

    def __init__(self, node: str, expected: Any, actual: Any):
        self.node = node
        self.expected = expected
        self.actual = actual
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f"{self.node}: expected state {self.expected}, got {self.actual}"


class AlreadyClusteredError(StateMismatchError):
    """Pre-flight found a node that is already part of a cluster"""

    def __init__(self, node: str, actual: Any):
        super().__init__(node, "not_enabled", actual)

    def _describe(self) -> str:
        return f"{self.node} is already clustered (state={self.actual}), refusing to form a cluster on top of it"


class VerificationError(ClusterSetupError):
    """The formed cluster does not match the intended topology"""

    def __init__(self, kind: str, expected: Any, actual: Any, node: Optional[str] = None):
        self.kind = kind
        self.expected = expected
        self.actual = actual
        self.node = node
        where = f"{node}: " if node else ""
        super().__init__(f"{where}{kind} verification failed, expected {expected}, got {actual}")
