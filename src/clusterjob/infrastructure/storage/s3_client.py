"""
S3 storage client implementation.

Infrastructure layer for the object store, using boto3 (S3 API).
"""

from pathlib import Path
from typing import Optional, Union
import logging

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.client import Config
from botocore.exceptions import ClientError, BotoCoreError

from clusterjob.domain.models import BucketResult, StoredObject
from clusterjob.domain.exceptions import StorageError
from clusterjob.infrastructure.config.loader import ClusterConfig

# create_bucket error codes for an existing bucket: ours, or another account's
BUCKET_OWNED_CODE = 'BucketAlreadyOwnedByYou'
BUCKET_TAKEN_CODE = 'BucketAlreadyExists'

DOWNLOAD_CHUNK_SIZE = 1024 * 1024


class S3StorageClient:
    """
    Object store client implementation using boto3.
    Implements IStorageClient protocol.
    """

    def __init__(
        self,
        config: ClusterConfig,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize S3 client.

        Args:
            config: Cluster configuration with AWS credentials
            logger: Logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        kwargs = {
            'aws_access_key_id': config.aws_access_key_id,
            'aws_secret_access_key': config.aws_secret_access_key,
            'config': Config(signature_version='s3v4'),
        }
        if config.s3_endpoint_url:
            kwargs['endpoint_url'] = config.s3_endpoint_url
        if config.s3_region:
            kwargs['region_name'] = config.s3_region

        self.s3 = boto3.client('s3', **kwargs)

        # Managed transfers may use threads internally
        self._transfer_config = TransferConfig(
            multipart_threshold=50 * 1024 * 1024,
            multipart_chunksize=50 * 1024 * 1024,
            max_concurrency=4,
            use_threads=True
        )

    def ensure_bucket(self, name: str) -> BucketResult:
        """
        Create bucket, or report that we already own it.

        A bucket name taken by another account raises StorageError.
        """
        kwargs = {'Bucket': name}
        # Region the client resolved: config, AWS_DEFAULT_REGION or profile
        region = self.s3.meta.region_name
        if region and region != 'us-east-1':
            kwargs['CreateBucketConfiguration'] = {'LocationConstraint': region}

        try:
            self.s3.create_bucket(**kwargs)
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code')
            if code == BUCKET_OWNED_CODE:
                self.logger.info(f"{name} bucket already exists...")
                return BucketResult.ALREADY_PRESENT
            if code == BUCKET_TAKEN_CODE:
                error_msg = f"Bucket {name} already exists and is owned by another account"
            else:
                error_msg = f"Failed to create bucket {name}: {e}"
            self.logger.error(error_msg)
            raise StorageError(error_msg) from e
        except BotoCoreError as e:
            error_msg = f"Failed to create bucket {name}: {e}"
            self.logger.error(error_msg)
            raise StorageError(error_msg) from e

        self.logger.info(f"Created bucket {name} ({region or 'default region'})")
        return BucketResult.CREATED

    def upload(self, bucket: str, key: str, local_path: Union[str, Path]) -> StoredObject:
        """Stream a local file to bucket/key."""
        local_path = Path(local_path)
        if not local_path.is_file():
            raise FileNotFoundError(f"File not found: {local_path}")

        file_size = local_path.stat().st_size
        self.logger.info(f"Uploading {local_path} -> s3://{bucket}/{key} ({file_size} bytes)")

        try:
            self.s3.upload_file(
                str(local_path),
                bucket,
                key,
                Config=self._transfer_config
            )
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            error_msg = f"Upload failed: {e}"
            self.logger.error(error_msg)
            raise StorageError(error_msg) from e

        self.logger.debug(f"Upload completed: {key}")
        return StoredObject(bucket=bucket, key=key, size=file_size)

    def download(self, bucket: str, key: str, local_path: Union[str, Path]) -> Path:
        """
        Download bucket/key into local_path.

        The file is created or truncated, and each body chunk is written as
        it arrives.
        """
        local_path = Path(local_path)
        self.logger.info(f"Downloading s3://{bucket}/{key} -> {local_path}")

        try:
            response = self.s3.get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            error_msg = f"Download failed: {e}"
            self.logger.error(error_msg)
            raise StorageError(error_msg) from e

        local_path.parent.mkdir(parents=True, exist_ok=True)

        body = response['Body']
        written = 0
        try:
            with open(local_path, 'wb') as f:
                for chunk in body.iter_chunks(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    f.write(chunk)
                    written += len(chunk)
        except BotoCoreError as e:
            error_msg = f"Download interrupted after {written} bytes: {e}"
            self.logger.error(error_msg)
            raise StorageError(error_msg) from e
        finally:
            body.close()

        self.logger.debug(f"Download completed: {local_path} ({written} bytes)")
        return local_path
