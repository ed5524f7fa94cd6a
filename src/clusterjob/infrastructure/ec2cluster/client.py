"""
ec2cluster REST API client implementation.

Infrastructure layer for job submission and status polling.
"""

import time
from typing import Dict, Any, Optional
import logging

import requests
from requests.exceptions import RequestException, Timeout

from clusterjob.domain.models import JobDescription, JobStatus
from clusterjob.domain.exceptions import JobApiError, RestTimeoutError, JobWaitTimeoutError
from clusterjob.infrastructure.config.loader import ClusterConfig


class Ec2ClusterClient:
    """
    ec2cluster API client implementation.

    Jobs are JSON resources under ``{rest_url}/jobs``; the service
    authenticates with HTTP basic auth.
    """

    def __init__(
        self,
        config: ClusterConfig,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize ec2cluster client.

        Args:
            config: Cluster configuration with REST endpoint and admin credentials
            session: Optional pre-built requests session
            logger: Logger instance
        """
        self.api_base = config.rest_url.rstrip('/')
        self.timeout = config.request_timeout
        self.logger = logger or logging.getLogger(__name__)

        self.session = session or requests.Session()
        self.session.auth = (config.admin_user, config.admin_password)
        self.session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        })

    def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Optional[Any]:
        """
        Make API request.

        Args:
            method: HTTP method
            endpoint: API endpoint
            **kwargs: Additional request arguments

        Returns:
            Response JSON, or None for an empty body

        Raises:
            RestTimeoutError: If the call times out
            JobApiError: On any other API error
        """
        url = f"{self.api_base}/{endpoint.lstrip('/')}"
        kwargs.setdefault('timeout', self.timeout)

        try:
            response = self.session.request(method, url, **kwargs)
            response.raise_for_status()
        except Timeout as e:
            raise RestTimeoutError(f"{method} {url} timed out after {self.timeout}s") from e
        except RequestException as e:
            error_msg = f"ec2cluster API request failed: {e}"
            self.logger.error(error_msg)
            raise JobApiError(error_msg) from e

        if not response.content or not response.content.strip():
            return None

        try:
            return response.json()
        except ValueError as e:
            error_msg = f"Invalid JSON from {method} {url}: {e}"
            self.logger.error(error_msg)
            raise JobApiError(error_msg) from e

    def submit(self, job: JobDescription) -> JobStatus:
        """Submit a job description and return its initial status."""
        payload = job.to_payload()
        self.logger.info(f"Submitting job '{job.name}' ({job.number_of_instances} x {job.instance_type})")
        self.logger.debug(f"Job payload: {payload}")

        response = self._request('POST', 'jobs.json', json={'job': payload})
        status = JobStatus.from_response(response)

        self.logger.info(f"Job ID: {status.id}")
        self.logger.info(f"State: {status.state}")
        if status.progress is not None:
            self.logger.info(f"Progress: {status.progress}")
        return status

    def fetch(self, job_id: str) -> JobStatus:
        """Get current status of a job."""
        response = self._request('GET', f'jobs/{job_id}.json')
        return JobStatus.from_response(response)

    def cancel(self, job_id: str) -> None:
        """Send the cancel directive for a job."""
        self.logger.info(f"Cancelling job #{job_id}")
        self._request('PUT', f'jobs/{job_id}/cancel.json')
        self.logger.info(f"Cancel requested for job #{job_id}")

    def wait_for_completion(
        self,
        job_id: str,
        poll_interval: float = 5,
        timeout: Optional[float] = None,
        initial: Optional[JobStatus] = None
    ) -> JobStatus:
        """
        Poll a job until its state is complete.

        A timed-out status call is logged and the loop carries on. Any other
        error propagates.

        Raises:
            JobWaitTimeoutError: If ``timeout`` seconds pass first
        """
        self.logger.info(f"Waiting for job #{job_id} to complete...")

        status = initial
        if status is not None and status.is_complete:
            return status

        start_time = time.monotonic()

        while True:
            elapsed = time.monotonic() - start_time

            if timeout is not None and elapsed > timeout:
                raise JobWaitTimeoutError(
                    job_id, timeout, last_state=status.state if status else None
                )

            try:
                status = self.fetch(job_id)
            except RestTimeoutError as e:
                self.logger.warning(f"TimeoutError calling REST server... ({e})")
            else:
                self.logger.info(f"Job #{job_id} {status} (elapsed: {elapsed:.0f}s)")
                if status.is_complete:
                    return status

            time.sleep(poll_interval)
