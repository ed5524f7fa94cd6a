"""Configuration loading and validation."""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, fields

from clusterjob.domain.exceptions import ConfigurationError
from clusterjob.shared.logging import get_logger

logger = get_logger(__name__)

REQUIRED_KEYS = (
    'aws_access_key_id',
    'aws_secret_access_key',
    'inputbucket',
    'outputbucket',
    'rest_url',
    'admin_user',
    'admin_password',
)


@dataclass(frozen=True)
class ClusterConfig:
    """Credentials and endpoints for one workflow run."""

    # Object store
    aws_access_key_id: str
    aws_secret_access_key: str
    inputbucket: str
    outputbucket: str

    # Job REST service
    rest_url: str
    admin_user: str
    admin_password: str

    keypair: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_region: Optional[str] = None

    # Polling
    request_timeout: float = 5.0
    poll_interval: float = 5.0
    job_timeout: Optional[float] = None  # None waits forever
    cancel_on_timeout: bool = False

    output_root: Path = Path(".")

    def __post_init__(self):
        self._validate()

    def _validate(self):
        for key in REQUIRED_KEYS:
            if not getattr(self, key):
                raise ConfigurationError(f"{key} must not be empty")

        if self.inputbucket == self.outputbucket:
            logger.debug("Input and output buckets are the same")

        if self.request_timeout <= 0:
            raise ConfigurationError(f"request_timeout must be positive, got: {self.request_timeout}")

        if self.poll_interval <= 0:
            raise ConfigurationError(f"poll_interval must be positive, got: {self.poll_interval}")

        if self.job_timeout is not None and self.job_timeout <= 0:
            raise ConfigurationError(f"job_timeout must be positive, got: {self.job_timeout}")

    def __repr__(self) -> str:
        return (
            f"ClusterConfig(rest_url={self.rest_url!r}, inputbucket={self.inputbucket!r}, "
            f"outputbucket={self.outputbucket!r}, admin_user={self.admin_user!r})"
        )


# Environment variable -> config key
ENV_KEYS = {
    'AWS_ACCESS_KEY_ID': 'aws_access_key_id',
    'AWS_SECRET_ACCESS_KEY': 'aws_secret_access_key',
    'CLUSTERJOB_INPUT_BUCKET': 'inputbucket',
    'CLUSTERJOB_OUTPUT_BUCKET': 'outputbucket',
    'CLUSTERJOB_REST_URL': 'rest_url',
    'CLUSTERJOB_ADMIN_USER': 'admin_user',
    'CLUSTERJOB_ADMIN_PASSWORD': 'admin_password',
    'CLUSTERJOB_KEYPAIR': 'keypair',
    'CLUSTERJOB_S3_ENDPOINT': 's3_endpoint_url',
    'CLUSTERJOB_S3_REGION': 's3_region',
    'CLUSTERJOB_POLL_INTERVAL': 'poll_interval',
    'CLUSTERJOB_JOB_TIMEOUT': 'job_timeout',
}

_FLOAT_KEYS = ('request_timeout', 'poll_interval', 'job_timeout')


class ConfigLoader:
    """Loads configuration from a YAML file and environment variables."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_path: Path to YAML config file (default: config.yml)
        """
        self.config_path = Path(config_path) if config_path else Path("config.yml")
        self._logger = get_logger(__name__)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> ClusterConfig:
        """
        Load configuration from file and environment.

        Environment variables take precedence over the file, and
        overrides take precedence over both.

        Raises:
            ConfigurationError: If the file is missing or malformed, or a
                required key is absent
        """
        config_dict = self._read_file()
        config_dict.update(self._load_from_env())

        if overrides:
            for k, v in overrides.items():
                if v is None:
                    continue
                config_dict[k] = v

        missing = [k for k in REQUIRED_KEYS if config_dict.get(k) in (None, '')]
        if missing:
            raise ConfigurationError(
                f"Missing required config keys in {self.config_path}: {', '.join(missing)}"
            )

        valid_fields = {f.name for f in fields(ClusterConfig)}
        unknown = sorted(k for k in config_dict if k not in valid_fields)
        if unknown:
            self._logger.debug(f"Ignoring unknown config keys: {', '.join(unknown)}")

        filtered = {k: v for k, v in config_dict.items() if k in valid_fields}

        try:
            return ClusterConfig(**self._coerce(filtered))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _read_file(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        self._logger.info(f"Loading config from {self.config_path}")
        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed config file {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {self.config_path} must contain a mapping, got {type(data).__name__}"
            )
        return data

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config = {}
        for env_name, key in ENV_KEYS.items():
            if value := os.getenv(env_name):
                env_config[key] = value

        if cancel := os.getenv("CLUSTERJOB_CANCEL_ON_TIMEOUT"):
            env_config["cancel_on_timeout"] = cancel.lower() in ("true", "1", "yes")

        return env_config

    @staticmethod
    def _coerce(config: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize YAML/env scalars to the field types."""
        result = dict(config)

        for key in REQUIRED_KEYS + ('keypair', 's3_endpoint_url', 's3_region'):
            if result.get(key) is not None:
                result[key] = str(result[key])

        for key in _FLOAT_KEYS:
            if result.get(key) is not None:
                result[key] = float(result[key])

        if 'cancel_on_timeout' in result:
            value = result['cancel_on_timeout']
            if isinstance(value, str):
                value = value.lower() in ("true", "1", "yes")
            result['cancel_on_timeout'] = bool(value)

        if result.get('output_root') is not None:
            result['output_root'] = Path(result['output_root'])

        return result
