"""
Base classes for Node Control Client components
"""
from abc import ABC
from ..interfaces import INodeControlClient
from ..models import Node

CLUSTER_SETUP_PATH = "/_cluster_setup"
MEMBERSHIP_PATH = "/_membership"


class BaseNodeControlClient(INodeControlClient, ABC):
    """Base implementation for node control clients with common functionality"""

    def __init__(self, scheme: str = "http", timeout: float = 30.0):
        if scheme not in ("http", "https"):
            raise ValueError(f"Unsupported scheme: {scheme}")
        self.scheme = scheme
        self.timeout = timeout

    def _node_url(self, node: Node, path: str) -> str:
        """Build the admin URL for a node"""
        return f"{self.scheme}://{node.host}:{node.port}{path}"
