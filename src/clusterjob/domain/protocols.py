"""Protocol definitions for dependency inversion."""

from typing import Protocol, Optional, Union, ContextManager
from pathlib import Path

from clusterjob.domain.models import (
    BucketResult,
    StoredObject,
    JobDescription,
    JobStatus,
)


class IStorageClient(Protocol):
    """Interface for the object store."""

    def ensure_bucket(self, name: str) -> BucketResult:
        """Create bucket unless it already exists."""
        ...

    def upload(self, bucket: str, key: str, local_path: Union[str, Path]) -> StoredObject:
        """Upload a local file to bucket/key."""
        ...

    def download(self, bucket: str, key: str, local_path: Union[str, Path]) -> Path:
        """Download bucket/key into a local file."""
        ...


class IJobClient(Protocol):
    """Interface for the job REST service."""

    def submit(self, job: JobDescription) -> JobStatus:
        """
        Submit a job description.

        Args:
            job: Job to create

        Returns:
            Initial status with the new job id
        """
        ...

    def fetch(self, job_id: str) -> JobStatus:
        """Get current status of a job."""
        ...

    def cancel(self, job_id: str) -> None:
        """Ask the service to cancel a job."""
        ...

    def wait_for_completion(
        self,
        job_id: str,
        poll_interval: float = 5,
        timeout: Optional[float] = None,
        initial: Optional[JobStatus] = None
    ) -> JobStatus:
        """
        Wait for a job to reach the complete state.

        Args:
            job_id: Job ID
            poll_interval: Seconds between status checks
            timeout: Overall deadline in seconds (None waits forever)
            initial: Status already known from submission

        Returns:
            Completed job status

        Raises:
            JobWaitTimeoutError: If timeout reached
        """
        ...


class IMetricsCollector(Protocol):
    """Interface for collecting metrics."""

    def start_timer(self, name: str) -> None:
        ...

    def stop_timer(self, name: str) -> float:
        ...

    def timer(self, name: str) -> ContextManager[None]:
        """Time a block, stopping the timer even if it raises."""
        ...

    def get_duration(self, name: str) -> float:
        ...

    def increment_counter(self, name: str, amount: int = 1) -> None:
        ...

    def get_summary(self) -> dict:
        ...
