"""Object storage package."""

from clusterjob.infrastructure.storage.s3_client import S3StorageClient

__all__ = ["S3StorageClient"]
