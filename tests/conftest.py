"""
Shared fixtures: an in-memory CouchDB cluster served through httpx.MockTransport
"""
import json
import base64
import pytest
import httpx
from typing import Dict, List, Optional, Tuple, Any
from couch_cluster.models import Node, Topology, Credentials
from couch_cluster.node_client import NodeControlClient


class FakeCouchNode:
    """Cluster-setup state of one fake CouchDB node"""

    def __init__(self, host: str, port: int, state: str = "cluster_disabled"):
        self.host = host
        self.port = port
        self.state = state
        self.name = f"couchdb@{host}"
        self.all_nodes = [self.name]
        self.cluster_nodes = [self.name]
        self.pending_remotes: List[Tuple[str, int]] = []
        self.added: List[Tuple[str, int]] = []


class FakeCouchCluster:
    """
    Simulates the /_cluster_setup and /_membership endpoints of several nodes.
    Every request is recorded in `calls` as (address, method, path, action).
    """

    def __init__(self, addresses: List[str], username: str = "admin", password: str = "secret"):
        self.username = username
        self.password = password
        self.nodes: Dict[str, FakeCouchNode] = {}
        for address in addresses:
            host, port = address.split(':')
            self.nodes[address] = FakeCouchNode(host, int(port))
        self.calls: List[Tuple[str, str, str, Optional[str]]] = []
        self.payloads: List[Dict[str, Any]] = []
        self.overrides: Dict[Tuple[str, str], Tuple[int, Dict[str, Any]]] = {}
        self.errors: Dict[Tuple[str, str], Exception] = {}

    def respond(self, address: str, action: str, status: int, body: Any = None, text: str = None):
        """Force a response for (address, action); action is the POST action, 'enable_remote' or 'GET <path>'"""
        if text is not None:
            self.overrides[(address, action)] = (status, {'text': text})
        else:
            self.overrides[(address, action)] = (status, {'json': body if body is not None else {}})

    def raise_error(self, address: str, action: str, error: Exception):
        self.errors[(address, action)] = error

    def set_state(self, address: str, state: str):
        self.nodes[address].state = state

    def actions(self, method: str = None) -> List[Tuple[str, Optional[str]]]:
        return [(address, action) for address, m, _, action in self.calls if method is None or m == method]

    def post_calls(self) -> List[Tuple[str, Optional[str]]]:
        return self.actions('POST')

    def handler(self, request: httpx.Request) -> httpx.Response:
        address = f"{request.url.host}:{request.url.port}"
        path = request.url.path
        payload = json.loads(request.content) if request.content else {}
        if request.method != 'POST':
            action = f"GET {path}"
        elif 'remote_node' in payload:
            action = 'enable_remote'
        else:
            action = payload.get('action')

        self.calls.append((address, request.method, path, action))
        self.payloads.append(payload)

        key = (address, action)
        if key in self.errors:
            raise self.errors[key]
        if key in self.overrides:
            status, content = self.overrides[key]
            return httpx.Response(status, **content)

        token = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        if request.headers.get('Authorization') != f"Basic {token}":
            return httpx.Response(401, json={'error': 'unauthorized', 'reason': 'Name or password is incorrect.'})

        node = self.nodes.get(address)
        if node is None:
            raise httpx.ConnectError("Connection refused", request=request)

        if request.method == 'GET' and path == '/_cluster_setup':
            return httpx.Response(200, json={'state': node.state})
        if request.method == 'GET' and path == '/_membership':
            return httpx.Response(200, json={'all_nodes': node.all_nodes, 'cluster_nodes': node.cluster_nodes})
        if request.method == 'POST' and path == '/_cluster_setup':
            return self._handle_action(node, payload)
        return httpx.Response(404, json={'error': 'not_found', 'reason': 'missing'})

    def _handle_action(self, node: FakeCouchNode, payload: Dict[str, Any]) -> httpx.Response:
        action = payload.get('action')

        if action == 'enable_cluster' and 'remote_node' in payload:
            node.pending_remotes.append((payload['remote_node'], int(payload['port'])))
            return httpx.Response(201, json={'ok': True})

        if action == 'enable_cluster':
            if node.state in ('cluster_enabled', 'cluster_finished'):
                return httpx.Response(400, json={'error': 'bad_request', 'reason': 'Cluster is already enabled'})
            node.state = 'cluster_enabled'
            return httpx.Response(201, json={'ok': True})

        if action == 'add_node':
            remote = (payload['host'], int(payload['port']))
            if remote in node.added:
                return httpx.Response(409, json={'error': 'conflict', 'reason': 'Node already added'})
            node.added.append(remote)
            return httpx.Response(201, json={'ok': True})

        if action == 'finish_cluster':
            members = [node] + [
                self.nodes[f"{host}:{port}"] for host, port in node.added if f"{host}:{port}" in self.nodes
            ]
            names = [member.name for member in members]
            for member in members:
                member.state = 'cluster_finished'
                member.all_nodes = list(names)
                member.cluster_nodes = list(names)
            return httpx.Response(201, json={'ok': True})

        return httpx.Response(400, json={'error': 'bad_request', 'reason': f'Invalid action {action}'})


@pytest.fixture
def credentials():
    return Credentials(username="admin", password="secret")


@pytest.fixture
def topology():
    return Topology(nodes=(Node("a", 5984), Node("b", 5984), Node("c", 5984)))


@pytest.fixture
def fake_cluster():
    return FakeCouchCluster(["a:5984", "b:5984", "c:5984"])


@pytest.fixture
def client(fake_cluster):
    node_client = NodeControlClient(transport=httpx.MockTransport(fake_cluster.handler))
    yield node_client
    node_client.close()
