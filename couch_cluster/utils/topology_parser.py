"""
Topology string parsing utilities.

Parses comma-separated node specs of the form
host[:port[:internal_host[:internal_port]]] into a Topology.
"""
import logging
from typing import List, Optional, Sequence, Union
from ..models import Node, Topology, DEFAULT_PORT
from ..errors import ConfigError

logger = logging.getLogger(__name__)

# Characters that would change the meaning of an admin URL built from the host
_INVALID_HOST_CHARS = set("/?#@")


def _parse_port(value: str, spec: str) -> Optional[int]:
    if value == '':
        return None
    try:
        port = int(value)
    except ValueError:
        raise ConfigError(f"Invalid port '{value}' in node spec '{spec}'")
    if port <= 0:
        raise ConfigError(f"Port must be positive in node spec '{spec}'")
    return port


def _check_host(value: str, spec: str) -> None:
    if any(char in _INVALID_HOST_CHARS or char.isspace() for char in value):
        raise ConfigError(f"Invalid host '{value}' in node spec '{spec}'")


def parse_node_spec(spec: str) -> Node:
    parts = spec.strip().split(':')
    if len(parts) > 4:
        raise ConfigError(f"Too many fields in node spec '{spec}'")

    host = parts[0].strip()
    if not host:
        raise ConfigError(f"Missing host in node spec '{spec}'")
    _check_host(host, spec)

    port = _parse_port(parts[1].strip(), spec) if len(parts) > 1 else None
    internal_host = (parts[2].strip() or None) if len(parts) > 2 else None
    if internal_host:
        _check_host(internal_host, spec)
    internal_port = _parse_port(parts[3].strip(), spec) if len(parts) > 3 else None

    return Node(
        host=host,
        port=port or DEFAULT_PORT,
        internal_host=internal_host,
        internal_port=internal_port
    )


def parse_topology(nodes: Union[str, Sequence[str]]) -> Topology:
    """Parse a comma-separated string (or list of specs) into a Topology"""
    if nodes is None:
        raise ConfigError("Missing list of nodes")

    if isinstance(nodes, str):
        specs = nodes.split(',')
    elif isinstance(nodes, (list, tuple)) and all(isinstance(spec, str) for spec in nodes):
        specs = list(nodes)
    else:
        raise ConfigError(f"Nodes must be a comma-separated string or a list of strings, got {nodes!r}")

    parsed: List[Node] = []
    for spec in specs:
        if not spec.strip():
            continue
        parsed.append(parse_node_spec(spec))

    if not parsed:
        raise ConfigError("Missing list of nodes")

    if len(parsed) == 1:
        logger.warning(f"Topology has a single node ({parsed[0].address}), forming a one-node cluster")

    return Topology(nodes=tuple(parsed))


def format_topology(topology: Topology) -> str:
    """Render a topology back into its comma-separated spec form"""
    specs = []
    for node in topology:
        spec = f"{node.host}:{node.port}"
        if node.internal_host or node.internal_port:
            spec += f":{node.internal_host or ''}"
            if node.internal_port:
                spec += f":{node.internal_port}"
        specs.append(spec)
    return ','.join(specs)
