"""Domain layer package."""

from clusterjob.domain.models import (
    JobState,
    BucketResult,
    StoredObject,
    JobDescription,
    JobStatus,
    Workflow,
    RunResult,
)
from clusterjob.domain.exceptions import (
    ClusterJobError,
    ConfigurationError,
    StorageError,
    JobApiError,
    RestTimeoutError,
    JobWaitTimeoutError,
)
from clusterjob.domain.protocols import (
    IStorageClient,
    IJobClient,
    IMetricsCollector,
)

__all__ = [
    # Models
    "JobState",
    "BucketResult",
    "StoredObject",
    "JobDescription",
    "JobStatus",
    "Workflow",
    "RunResult",
    # Exceptions
    "ClusterJobError",
    "ConfigurationError",
    "StorageError",
    "JobApiError",
    "RestTimeoutError",
    "JobWaitTimeoutError",
    # Protocols
    "IStorageClient",
    "IJobClient",
    "IMetricsCollector",
]
