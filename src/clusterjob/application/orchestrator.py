"""Main orchestrator for the upload/submit/wait/download workflow."""

from pathlib import Path
from typing import Optional, List
from datetime import datetime
import logging

from clusterjob.domain.models import (
    BucketResult,
    JobDescription,
    Workflow,
    RunResult,
)
from clusterjob.domain.protocols import IStorageClient, IJobClient, IMetricsCollector
from clusterjob.domain.exceptions import JobWaitTimeoutError
from clusterjob.infrastructure.config.loader import ClusterConfig
from clusterjob.shared.metrics import MetricsCollector

OUTPUT_TIMESTAMP_FORMAT = '%m%d%y%H%M'


def output_prefix(timestamp: datetime) -> str:
    """Remote and local output directory for a run, e.g. ``output/1019261400/``."""
    return f"output/{timestamp.strftime(OUTPUT_TIMESTAMP_FORMAT)}/"


class ClusterJobOrchestrator:
    """Coordinates object store and job service for one workflow run."""

    def __init__(
        self,
        config: ClusterConfig,
        storage: IStorageClient,
        jobs: IJobClient,
        metrics: Optional[IMetricsCollector] = None,
        logger: Optional[logging.Logger] = None
    ):
        self._config = config
        self._storage = storage
        self._jobs = jobs
        self._metrics = metrics or MetricsCollector()
        self._logger = logger or logging.getLogger(__name__)

    def run(self, workflow: Workflow, timestamp: Optional[datetime] = None) -> RunResult:
        """
        Execute a workflow end to end.

        Steps are unconditional: a failure part way through leaves earlier
        uploads and any submitted job in place. Stage timers are stopped
        either way.
        """
        out_path = output_prefix(timestamp or datetime.now())
        self._logger.info(f"Starting workflow '{workflow.name}' (output: {out_path})")

        with self._metrics.timer('total'):
            # 1. Buckets
            self._logger.info("Creating S3 buckets...")
            for bucket in (self._config.inputbucket, self._config.outputbucket):
                if self._storage.ensure_bucket(bucket) is BucketResult.CREATED:
                    self._metrics.increment_counter('buckets_created')

            # 2. Upload inputs
            with self._metrics.timer('upload'):
                input_locations = self.upload_inputs(workflow.input_files)

            # 3. Submit
            job = self.build_job(workflow, input_locations, out_path)
            self._logger.info("Running job command...")
            with self._metrics.timer('submit'):
                submitted = self._jobs.submit(job)

            # 4. Wait
            try:
                with self._metrics.timer('wait'):
                    status = self._jobs.wait_for_completion(
                        submitted.id,
                        poll_interval=self._config.poll_interval,
                        timeout=self._config.job_timeout,
                        initial=submitted,
                    )
            except JobWaitTimeoutError as e:
                self._logger.error(str(e))
                if self._config.cancel_on_timeout:
                    self._jobs.cancel(submitted.id)
                raise

            # 5. Download outputs
            self._logger.info("Job complete, downloading results from S3")
            with self._metrics.timer('download'):
                downloaded = self.download_outputs(workflow.expected_outputs, out_path)

        total = self._metrics.get_duration('total')
        self._logger.info(f"Workflow '{workflow.name}' finished in {total:.1f}s")

        return RunResult(
            job_id=submitted.id,
            status=status,
            input_locations=input_locations,
            output_path=out_path,
            downloaded=downloaded,
            metrics=self._metrics.get_summary(),
        )

    def upload_inputs(self, input_files: List[str]) -> List[str]:
        """Upload each input under its own relative path; return ``bucket/key`` locations in order."""
        self._logger.info("Uploading files to S3")
        bucket = self._config.inputbucket
        locations = []
        for infile in input_files:
            stored = self._storage.upload(bucket, infile, Path(infile))
            self._metrics.increment_counter('files_uploaded')
            locations.append(stored.location)
        return locations

    def build_job(
        self,
        workflow: Workflow,
        input_locations: List[str],
        out_path: str
    ) -> JobDescription:
        options = dict(workflow.options)
        if self._config.keypair and 'keypair' not in options:
            options['keypair'] = self._config.keypair

        return JobDescription(
            name=workflow.name,
            description=workflow.description,
            input_files=list(input_locations),
            commands=workflow.commands,
            output_files=list(workflow.expected_outputs),
            output_path=f"{self._config.outputbucket}/{out_path}",
            number_of_instances=workflow.number_of_instances,
            instance_type=workflow.instance_type,
            **options,
        )

    def download_outputs(self, expected_outputs: List[str], out_path: str) -> List[Path]:
        local_dir = Path(self._config.output_root) / out_path
        downloaded = []
        for outfile in expected_outputs:
            self._logger.info(f"fetching: {outfile}")
            local_path = self._storage.download(
                self._config.outputbucket,
                out_path + outfile,
                local_dir / outfile,
            )
            self._metrics.increment_counter('files_downloaded')
            downloaded.append(local_path)
        return downloaded
