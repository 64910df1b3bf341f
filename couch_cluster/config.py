"""
Configuration loading for cluster formation.

Settings come from, highest precedence first: explicit arguments (the CLI
flags), a YAML or JSON config file, and the COUCHDB_* environment variables.
All of it is resolved into one FormationConfig before any network call.
"""
import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Mapping
import yaml
from .models import FormationConfig, Credentials
from .errors import ConfigError
from .utils.topology_parser import parse_topology

logger = logging.getLogger(__name__)

ENV_NODES = "COUCHDB_CLUSTER_NODES"
ENV_USER = "COUCHDB_USER"
ENV_PASSWORD = "COUCHDB_PASSWORD"

CONFIG_KEYS = ('nodes', 'username', 'password', 'bind_address', 'timeout', 'workers', 'scheme', 'log_dir')


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML or JSON file"""
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                raise ConfigError(f"Unsupported config format: {path.suffix}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {config_path}")

    unknown = set(data) - set(CONFIG_KEYS)
    if unknown:
        logger.warning(f"Ignoring unknown configuration keys: {', '.join(sorted(unknown))}")

    return data


def _first(*values):
    for value in values:
        if value is not None and value != '':
            return value
    return None


def build_formation_config(
    nodes: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    config_file: Optional[str] = None,
    bind_address: Optional[str] = None,
    timeout: Optional[float] = None,
    workers: Optional[int] = None,
    scheme: Optional[str] = None,
    log_dir: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None
) -> FormationConfig:
    """Resolve topology, credentials and run options into a FormationConfig"""
    if env is None:
        env = os.environ

    file_config = load_config_file(config_file) if config_file else {}

    nodes_value = _first(nodes, file_config.get('nodes'), env.get(ENV_NODES))
    if nodes_value is None:
        raise ConfigError(f"Missing list of nodes (use --nodes, the config file, or {ENV_NODES})")

    username_value = _first(username, file_config.get('username'), env.get(ENV_USER))
    if username_value is None:
        raise ConfigError(f"Missing admin username (use --user, the config file, or {ENV_USER})")

    password_value = _first(password, file_config.get('password'), env.get(ENV_PASSWORD))
    if password_value is None:
        raise ConfigError(f"Missing admin password (use --password, the config file, or {ENV_PASSWORD})")

    topology = parse_topology(nodes_value)
    credentials = Credentials(username=str(username_value), password=str(password_value))

    defaults = FormationConfig(topology=topology, credentials=credentials)

    try:
        request_timeout = float(_first(timeout, file_config.get('timeout'), defaults.request_timeout))
        max_workers = int(_first(workers, file_config.get('workers'), defaults.max_workers))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric setting: {e}") from e

    if request_timeout <= 0:
        raise ConfigError(f"Request timeout must be positive, got {request_timeout}")
    if max_workers < 1:
        raise ConfigError(f"Worker count must be at least 1, got {max_workers}")

    scheme_value = _first(scheme, file_config.get('scheme'), defaults.scheme)
    if scheme_value not in ('http', 'https'):
        raise ConfigError(f"Unsupported scheme: {scheme_value}")

    return FormationConfig(
        topology=topology,
        credentials=credentials,
        bind_address=_first(bind_address, file_config.get('bind_address'), defaults.bind_address),
        scheme=scheme_value,
        request_timeout=request_timeout,
        max_workers=max_workers,
        log_dir=_first(log_dir, file_config.get('log_dir'), defaults.log_dir)
    )
