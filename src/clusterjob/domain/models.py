"""
Domain models for cluster jobs and object storage.

Plain dataclasses; the wire format lives in ``to_payload``/``from_response``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List, Tuple

from clusterjob.domain.exceptions import JobApiError

logger = logging.getLogger(__name__)


class JobState:
    """Job states reported by the ec2cluster service."""
    PENDING = 'pending'
    RUNNING = 'running'
    COMPLETE = 'complete'


class BucketResult(Enum):
    """Outcome of an idempotent bucket create."""
    CREATED = 'created'
    ALREADY_PRESENT = 'already_present'


@dataclass
class StoredObject:
    """Object written to (or read from) the store."""
    bucket: str
    key: str
    size: int = 0

    @property
    def location(self) -> str:
        """Fully-qualified ``bucket/key`` path used in job descriptions."""
        return f"{self.bucket}/{self.key}"

    def __str__(self) -> str:
        return f"{self.location} ({self.size} bytes)"


# Optional job description fields, sent only when set.
OPTIONAL_JOB_FIELDS: Tuple[str, ...] = (
    'master_ami',
    'worker_ami',
    'user_packages',
    'availability_zone',
    'keypair',
    'mpi_version',
    'shutdown_after_complete',
)


@dataclass
class JobDescription:
    """Job request submitted to the REST service."""
    name: str
    description: str
    input_files: List[str]
    commands: str
    output_files: List[str]
    output_path: str
    number_of_instances: int
    instance_type: str

    master_ami: Optional[str] = None
    worker_ami: Optional[str] = None
    user_packages: Optional[str] = None
    availability_zone: Optional[str] = None
    keypair: Optional[str] = None
    mpi_version: Optional[str] = None
    shutdown_after_complete: Optional[bool] = None

    def __post_init__(self):
        if self.number_of_instances < 1:
            raise ValueError("number_of_instances must be at least 1")
        if not self.instance_type:
            raise ValueError("instance_type is required")

    def to_payload(self) -> Dict[str, Any]:
        """Convert to API request dict."""
        payload = {
            'name': self.name,
            'description': self.description,
            'input_files': ' '.join(self.input_files),
            'commands': self.commands,
            'output_files': ' '.join(self.output_files),
            'output_path': self.output_path,
            'number_of_instances': str(self.number_of_instances),
            'instance_type': self.instance_type,
        }

        for name in OPTIONAL_JOB_FIELDS:
            value = getattr(self, name)
            if value is not None:
                payload[name] = value

        return payload


# Fields the service echoes back on a job resource. Anything outside
# STATUS_FIELDS and ECHOED_JOB_FIELDS is flagged as unexpected.
STATUS_FIELDS: Tuple[str, ...] = ('id', 'state', 'progress')
ECHOED_JOB_FIELDS: Tuple[str, ...] = (
    'name',
    'description',
    'input_files',
    'commands',
    'output_files',
    'output_path',
    'number_of_instances',
    'instance_type',
    'created_at',
    'updated_at',
) + OPTIONAL_JOB_FIELDS


@dataclass(frozen=True)
class JobStatus:
    """Snapshot of a job's remote state."""
    id: str
    state: str
    progress: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.state == JobState.COMPLETE

    @classmethod
    def from_response(cls, data: Any) -> 'JobStatus':
        """
        Build a status from a job resource body.

        Accepts both ``{"job": {...}}`` and flat bodies.

        Raises:
            JobApiError: If the body is not a job resource
        """
        if isinstance(data, dict) and set(data) == {'job'}:
            data = data['job']

        if not isinstance(data, dict):
            raise JobApiError(f"Invalid job response: {data!r}")

        missing = [name for name in ('id', 'state') if data.get(name) in (None, '')]
        if missing:
            raise JobApiError(f"Job response missing fields: {', '.join(missing)}")

        unexpected = sorted(
            k for k in data if k not in STATUS_FIELDS and k not in ECHOED_JOB_FIELDS
        )
        if unexpected:
            logger.warning(f"Ignoring unexpected job fields: {', '.join(unexpected)}")

        progress = data.get('progress')
        return cls(
            id=str(data['id']),
            state=str(data['state']),
            progress=str(progress) if progress is not None else None,
        )

    def __str__(self) -> str:
        if self.progress:
            return f"[State]: {self.state} [Progress]: {self.progress}"
        return f"[State]: {self.state}"


@dataclass
class Workflow:
    """What to run: local inputs, remote commands and expected outputs."""
    name: str
    description: str
    input_files: List[str]
    commands: str
    expected_outputs: List[str]
    number_of_instances: int = 1
    instance_type: str = 'm1.small'
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        unknown = set(self.options) - set(OPTIONAL_JOB_FIELDS)
        if unknown:
            raise ValueError(f"Unknown job options: {', '.join(sorted(unknown))}")


@dataclass
class RunResult:
    """Result of a full upload/submit/wait/download run."""
    job_id: str
    status: JobStatus
    input_locations: List[str] = field(default_factory=list)
    output_path: str = ""
    downloaded: List[Path] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status.is_complete
