"""
HTTP client for the CouchDB cluster setup control plane
"""
import logging
from typing import Dict, Any, Optional, Tuple
import httpx
from ..models import Node, Credentials, Outcome, SetupStatus, Membership, ClusterState
from ..errors import NetworkError, ProtocolRejectionError
from .base import BaseNodeControlClient, CLUSTER_SETUP_PATH, MEMBERSHIP_PATH

logger = logging.getLogger(__name__)


class NodeControlClient(BaseNodeControlClient):
    """Issues control-plane calls against a node's admin endpoint using httpx"""

    def __init__(self, scheme: str = "http", timeout: float = 30.0,
                 transport: Optional[httpx.BaseTransport] = None):
        super().__init__(scheme, timeout)
        self.http = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={'Accept': 'application/json'}
        )

    def _request(self, node: Node, credentials: Credentials, method: str, path: str,
                 payload: Optional[Dict[str, Any]] = None) -> Tuple[int, Dict[str, Any]]:
        """Send one request and return (status, decoded JSON body)"""
        url = self._node_url(node, path)
        logger.debug(f"{method} {url}")

        try:
            response = self.http.request(
                method,
                url,
                json=payload,
                auth=(credentials.username, credentials.password)
            )
        except httpx.TimeoutException as e:
            raise NetworkError(node.address, f"{method} {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkError(node.address, f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise NetworkError(
                node.address,
                f"{method} {path} returned a non-JSON response (status={response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise NetworkError(node.address, f"{method} {path} returned a malformed response: {body!r}")

        logger.debug(f"Response status={response.status_code} body={body}")
        return response.status_code, body

    def _post_action(self, node: Node, credentials: Credentials, payload: Dict[str, Any]) -> Outcome:
        status, body = self._request(node, credentials, 'POST', CLUSTER_SETUP_PATH, payload)
        return Outcome.from_response(status, body)

    def query_cluster_setup(self, node: Node, credentials: Credentials) -> SetupStatus:
        status, body = self._request(node, credentials, 'GET', CLUSTER_SETUP_PATH)
        if not 200 <= status < 300:
            raise ProtocolRejectionError(node.address, "query_cluster_setup", status, body.get('reason'))
        return SetupStatus(state=ClusterState.from_value(body.get('state')), raw=body)

    def enable_cluster(self, node: Node, credentials: Credentials, node_count: int,
                       bind_address: str = "0.0.0.0") -> Outcome:
        return self._post_action(node, credentials, {
            'action': 'enable_cluster',
            'bind_address': bind_address,
            'username': credentials.username,
            'password': credentials.password,
            'node_count': str(node_count)
        })

    def enable_cluster_for_remote(self, coordinator: Node, credentials: Credentials,
                                  remote_node: Node, node_count: int,
                                  bind_address: str = "0.0.0.0") -> Outcome:
        return self._post_action(coordinator, credentials, {
            'action': 'enable_cluster',
            'bind_address': bind_address,
            'username': credentials.username,
            'password': credentials.password,
            'port': remote_node.cluster_port,
            'node_count': str(node_count),
            'remote_node': remote_node.cluster_host,
            'remote_current_user': credentials.username,
            'remote_current_password': credentials.password
        })

    def add_node(self, coordinator: Node, credentials: Credentials, remote_node: Node) -> Outcome:
        return self._post_action(coordinator, credentials, {
            'action': 'add_node',
            'host': remote_node.cluster_host,
            'port': remote_node.cluster_port,
            'username': credentials.username,
            'password': credentials.password
        })

    def finish_cluster(self, coordinator: Node, credentials: Credentials) -> Outcome:
        return self._post_action(coordinator, credentials, {'action': 'finish_cluster'})

    def query_membership(self, node: Node, credentials: Credentials) -> Membership:
        status, body = self._request(node, credentials, 'GET', MEMBERSHIP_PATH)
        if not 200 <= status < 300:
            raise ProtocolRejectionError(node.address, "query_membership", status, body.get('reason'))

        all_nodes = body.get('all_nodes')
        cluster_nodes = body.get('cluster_nodes')
        if not isinstance(all_nodes, list) or not isinstance(cluster_nodes, list):
            raise NetworkError(node.address, f"malformed /_membership response: {body}")

        return Membership(all_nodes=all_nodes, cluster_nodes=cluster_nodes)

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
