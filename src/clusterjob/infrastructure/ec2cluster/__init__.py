"""ec2cluster REST service package."""

from clusterjob.infrastructure.ec2cluster.client import Ec2ClusterClient

__all__ = ["Ec2ClusterClient"]
