"""Domain exceptions for the cluster job workflow."""


class ClusterJobError(Exception):
    """Base exception for all domain errors."""
    pass


class ConfigurationError(ClusterJobError):
    """Raised when configuration is missing or invalid."""
    pass


class StorageError(ClusterJobError):
    """Raised when an object store operation fails."""
    pass


class JobApiError(ClusterJobError):
    """Raised when the job REST service fails or returns garbage."""
    pass


class RestTimeoutError(JobApiError):
    """Raised when a call to the job REST service times out."""
    pass


class JobWaitTimeoutError(ClusterJobError, TimeoutError):
    """Raised when a job does not complete before the wait deadline."""

    def __init__(self, job_id: str, timeout: float, last_state: str = None):
        self.job_id = job_id
        self.timeout = timeout
        self.last_state = last_state
        super().__init__(
            f"Job #{job_id} did not complete within {timeout}s "
            f"(last state: {last_state or 'unknown'})"
        )
