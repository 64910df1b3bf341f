"""
Main entry point for the CouchDB cluster setup tool
"""
from .models import FormationConfig
from .formation_engine import FormationEngine


class CouchClusterSetup:
    """Main orchestrator for the CouchDB cluster setup system"""

    def __init__(self, engine: FormationEngine = None):
        """
        Initialize with the formation engine
        """
        self.formation_engine = engine or FormationEngine()
        self.last_result = None

    def form_cluster(self, config: FormationConfig):
        """
        Form a cluster from the configured topology.
        """
        self.last_result = self.formation_engine.form_cluster(config)
        return self.last_result

    def formation_report(self) -> str:
        """
        Text report of the last formation run.
        """
        return self.formation_engine.generate_report([self.last_result])

    def cluster_status(self, config: FormationConfig):
        """
        Report the current cluster state without changing it.
        """
        return self.formation_engine.inspect_cluster(config)
