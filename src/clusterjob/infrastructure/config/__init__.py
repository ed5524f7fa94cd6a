"""Configuration package."""

from clusterjob.infrastructure.config.loader import ConfigLoader, ClusterConfig

__all__ = ["ConfigLoader", "ClusterConfig"]
