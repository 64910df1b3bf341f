"""
Cluster Orchestrator - Drives the cluster formation protocol across all nodes

Components:
- PreflightChecker: every node must be outside any cluster
- ClusterEnabler: enables cluster mode on every node
- CoordinatorOrchestrator: registers peers through the coordinator and finishes the cluster
- FormationVerifier: checks finished state and membership on every node
- ClusterFormation: runs the phases above in order
"""
from .parallel_executor import ParallelExecutor
from .orchestrator import (
    PreflightChecker,
    ClusterEnabler,
    CoordinatorOrchestrator,
    FormationVerifier,
    ClusterFormation
)

__all__ = [
    'ParallelExecutor',
    'PreflightChecker',
    'ClusterEnabler',
    'CoordinatorOrchestrator',
    'FormationVerifier',
    'ClusterFormation'
]
