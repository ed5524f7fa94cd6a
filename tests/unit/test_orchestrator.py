"""
Unit and end-to-end tests for the workflow orchestrator.
"""

import io
import json
from datetime import datetime
from pathlib import Path

import pytest
import requests
from unittest.mock import MagicMock, patch
from botocore.exceptions import ClientError
from botocore.response import StreamingBody

from clusterjob.application.orchestrator import ClusterJobOrchestrator, output_prefix
from clusterjob.application.workflows import KMEANS_DEMO
from clusterjob.domain.models import BucketResult, StoredObject, JobStatus, Workflow
from clusterjob.domain.exceptions import JobWaitTimeoutError, StorageError
from clusterjob.infrastructure.config import ClusterConfig
from clusterjob.infrastructure.storage.s3_client import S3StorageClient
from clusterjob.infrastructure.ec2cluster.client import Ec2ClusterClient
from clusterjob.shared.metrics import MetricsCollector

RUN_TIME = datetime(2026, 10, 19, 14, 0)
OUT_PATH = "output/1019261400/"


def make_config(**kwargs):
    values = dict(
        aws_access_key_id="k",
        aws_secret_access_key="s",
        inputbucket="in-1",
        outputbucket="out-1",
        rest_url="https://ec2cluster.example.com",
        admin_user="admin",
        admin_password="pw",
    )
    values.update(kwargs)
    return ClusterConfig(**values)


class FakeStorage:
    """In-memory object store."""

    def __init__(self, existing_buckets=()):
        self.buckets = set(existing_buckets)
        self.objects = {}

    def ensure_bucket(self, name):
        if name in self.buckets:
            return BucketResult.ALREADY_PRESENT
        self.buckets.add(name)
        return BucketResult.CREATED

    def upload(self, bucket, key, local_path):
        data = Path(local_path).read_bytes()
        self.objects[(bucket, key)] = data
        return StoredObject(bucket=bucket, key=key, size=len(data))

    def download(self, bucket, key, local_path):
        local_path = Path(local_path)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(self.objects[(bucket, key)])
        return local_path


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Working directory holding input/ and code/."""
    monkeypatch.chdir(tmp_path)
    for name in KMEANS_DEMO.input_files:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(f"contents of {name}".encode())
    return tmp_path


def test_output_prefix_format():
    assert output_prefix(RUN_TIME) == OUT_PATH
    assert output_prefix(datetime(2009, 1, 2, 3, 4)) == "output/0102090304/"


class TestClusterJobOrchestrator:
    """Orchestrator against fake collaborators."""

    def test_run_sequences_steps(self, workspace):
        storage = FakeStorage(existing_buckets={"in-1"})
        for name in KMEANS_DEMO.expected_outputs:
            storage.objects[("out-1", OUT_PATH + name)] = f"result {name}".encode()
        jobs = MagicMock()
        jobs.submit.return_value = JobStatus(id="42", state="pending")
        jobs.wait_for_completion.return_value = JobStatus(id="42", state="complete")
        metrics = MetricsCollector()

        orch = ClusterJobOrchestrator(make_config(poll_interval=1), storage, jobs, metrics=metrics)
        result = orch.run(KMEANS_DEMO, timestamp=RUN_TIME)

        assert result.success
        assert result.job_id == "42"
        assert result.output_path == OUT_PATH
        assert storage.buckets == {"in-1", "out-1"}
        assert metrics.get_counter('buckets_created') == 1
        assert metrics.get_counter('files_uploaded') == 3
        assert metrics.get_counter('files_downloaded') == 2

        jobs.wait_for_completion.assert_called_once_with(
            "42", poll_interval=1, timeout=None, initial=JobStatus(id="42", state="pending")
        )
        for name, path in zip(KMEANS_DEMO.expected_outputs, result.downloaded):
            assert path == Path(".") / OUT_PATH / name
            assert (workspace / OUT_PATH / name).read_bytes() == f"result {name}".encode()

    def test_input_locations_preserve_order(self, workspace):
        jobs = MagicMock()
        jobs.submit.return_value = JobStatus(id="1", state="complete")
        jobs.wait_for_completion.return_value = JobStatus(id="1", state="complete")
        workflow = Workflow(
            name="w", description="d",
            input_files=["code/run_kmeans.sh", "input/color100.txt", "code/Simple_Kmeans.zip"],
            commands="bash run_kmeans.sh", expected_outputs=[],
        )

        result = ClusterJobOrchestrator(make_config(), FakeStorage(), jobs).run(workflow, timestamp=RUN_TIME)

        assert result.input_locations == [
            "in-1/code/run_kmeans.sh",
            "in-1/input/color100.txt",
            "in-1/code/Simple_Kmeans.zip",
        ]
        submitted = jobs.submit.call_args[0][0]
        assert submitted.input_files == result.input_locations
        assert submitted.to_payload()['output_files'] == ""

    def test_build_job(self):
        orch = ClusterJobOrchestrator(make_config(keypair="my-key"), FakeStorage(), MagicMock())

        job = orch.build_job(KMEANS_DEMO, ["in-1/input/color100.txt"], OUT_PATH)

        assert job.name == "Kmeans demo"
        assert job.output_path == "out-1/output/1019261400/"
        assert job.output_files == ["color100.txt.membership", "color100.txt.cluster_centres"]
        assert job.number_of_instances == 3
        assert job.instance_type == "m1.small"
        assert job.keypair == "my-key"

    def test_upload_failure_halts_run(self, workspace):
        storage = FakeStorage()
        storage.upload = MagicMock(side_effect=[
            StoredObject(bucket="in-1", key="input/color100.txt"),
            StorageError("Upload failed"),
        ])
        jobs = MagicMock()

        with pytest.raises(StorageError):
            ClusterJobOrchestrator(make_config(), storage, jobs).run(KMEANS_DEMO, timestamp=RUN_TIME)

        jobs.submit.assert_not_called()

    def test_wait_timeout_cancels_when_configured(self, workspace):
        jobs = MagicMock()
        jobs.submit.return_value = JobStatus(id="42", state="pending")
        jobs.wait_for_completion.side_effect = JobWaitTimeoutError("42", 60, "running")

        orch = ClusterJobOrchestrator(
            make_config(job_timeout=60, cancel_on_timeout=True), FakeStorage(), jobs
        )
        with pytest.raises(JobWaitTimeoutError):
            orch.run(KMEANS_DEMO, timestamp=RUN_TIME)

        jobs.cancel.assert_called_once_with("42")
        assert jobs.wait_for_completion.call_args.kwargs['timeout'] == 60

    def test_wait_timeout_stops_stage_timers(self, workspace):
        jobs = MagicMock()
        jobs.submit.return_value = JobStatus(id="42", state="pending")
        jobs.wait_for_completion.side_effect = JobWaitTimeoutError("42", 60, "running")
        metrics = MetricsCollector()

        orch = ClusterJobOrchestrator(make_config(job_timeout=60), FakeStorage(), jobs, metrics=metrics)
        with pytest.raises(JobWaitTimeoutError):
            orch.run(KMEANS_DEMO, timestamp=RUN_TIME)

        assert metrics.running_timers == []
        durations = metrics.get_summary()['durations']
        assert {'total', 'upload', 'submit', 'wait'} <= set(durations)
        assert 'download' not in durations

    def test_wait_timeout_leaves_job_by_default(self, workspace):
        jobs = MagicMock()
        jobs.submit.return_value = JobStatus(id="42", state="pending")
        jobs.wait_for_completion.side_effect = JobWaitTimeoutError("42", 60)

        orch = ClusterJobOrchestrator(make_config(job_timeout=60), FakeStorage(), jobs)
        with pytest.raises(JobWaitTimeoutError):
            orch.run(KMEANS_DEMO, timestamp=RUN_TIME)

        jobs.cancel.assert_not_called()


def _job_body(job_id, state, progress=None):
    response = MagicMock()
    data = {'job': {'id': job_id, 'state': state, 'progress': progress}}
    response.content = json.dumps(data).encode()
    response.json.return_value = data
    return response


@patch('clusterjob.infrastructure.ec2cluster.client.time')
@patch('clusterjob.infrastructure.storage.s3_client.boto3')
def test_end_to_end_with_real_clients(mock_boto3, mock_time, workspace):
    """Buckets in-1/out-1, three inputs, job 42 pending then complete, two outputs."""
    mock_time.monotonic.return_value = 0
    store = {}
    outputs = {
        "a.out": b"\x00\x01membership\n",
        "b.out": b"centres \xff\xfe\n" * 50,
    }
    for name, data in outputs.items():
        store[("out-1", OUT_PATH + name)] = data

    s3 = mock_boto3.client.return_value
    s3.meta.region_name = 'us-east-1'
    s3.create_bucket.side_effect = [
        None,
        ClientError({'Error': {'Code': 'BucketAlreadyOwnedByYou'}}, 'CreateBucket'),
    ]

    def upload_file(filename, bucket, key, Config=None):
        store[(bucket, key)] = Path(filename).read_bytes()

    def get_object(Bucket, Key):
        data = store[(Bucket, Key)]
        return {'Body': StreamingBody(io.BytesIO(data), len(data))}

    s3.upload_file.side_effect = upload_file
    s3.get_object.side_effect = get_object

    session = MagicMock()
    session.request.side_effect = [
        _job_body(42, 'pending'),
        requests.exceptions.ReadTimeout("read timed out"),
        _job_body(42, 'running', 'waiting for nodes'),
        _job_body(42, 'complete'),
    ]

    config = make_config()
    workflow = Workflow(
        name="Kmeans demo",
        description="Simple Kmeans C MPI example",
        input_files=list(KMEANS_DEMO.input_files),
        commands="bash run_kmeans.sh",
        expected_outputs=["a.out", "b.out"],
        number_of_instances=3,
        instance_type="m1.small",
    )
    orch = ClusterJobOrchestrator(
        config,
        S3StorageClient(config),
        Ec2ClusterClient(config, session=session),
    )

    result = orch.run(workflow, timestamp=RUN_TIME)

    assert result.job_id == "42"
    assert result.status.is_complete
    for name in KMEANS_DEMO.input_files:
        assert store[("in-1", name)] == f"contents of {name}".encode()

    post = session.request.call_args_list[0]
    assert post.args == ('POST', 'https://ec2cluster.example.com/jobs.json')
    payload = post.kwargs['json']['job']
    assert payload['input_files'] == (
        "in-1/input/color100.txt in-1/code/Simple_Kmeans.zip in-1/code/run_kmeans.sh"
    )
    assert payload['output_files'] == "a.out b.out"
    assert payload['output_path'] == "out-1/output/1019261400/"

    assert [p.name for p in result.downloaded] == ["a.out", "b.out"]
    for name, data in outputs.items():
        assert (workspace / OUT_PATH / name).read_bytes() == data
