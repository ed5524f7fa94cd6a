"""Shared utilities package."""

from clusterjob.shared.logging import setup_logger, get_logger
from clusterjob.shared.metrics import MetricsCollector

__all__ = [
    "setup_logger",
    "get_logger",
    "MetricsCollector",
]
