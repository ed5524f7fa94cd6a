"""Application layer package."""

from clusterjob.application.orchestrator import ClusterJobOrchestrator, output_prefix
from clusterjob.application.workflows import KMEANS_DEMO

__all__ = ["ClusterJobOrchestrator", "output_prefix", "KMEANS_DEMO"]
