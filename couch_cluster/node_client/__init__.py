"""
Node Control Client - HTTP calls against a node's cluster setup endpoint
"""
from .client import NodeControlClient

__all__ = ['NodeControlClient']
