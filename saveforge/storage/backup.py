"""Backup targets for original save bytes.

A backup is taken before any migration runs, byte for byte, so the user
can always go back to the exact file they had.
"""

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from boto3.session import Session
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from saveforge.core.exceptions import BackupFailedError
from saveforge.core.settings import SaveForgeSettings

logger = logging.getLogger(__name__)


@runtime_checkable
class BackupTarget(Protocol):
    """Protocol for backup targets."""

    def backup(self, original: bytes, name: str) -> str:
        """Store the original bytes.

        Args:
            original: The exact bytes that were loaded
            name: File name for the backup

        Returns:
            Location of the backup (path, URL...)

        Raises:
            BackupFailedError: If the backup could not be written
        """
        ...


class FileBackup:
    """Write backups to a local directory.

    Existing files are never overwritten: a numeric suffix is added
    instead.
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _free_path(self, name: str) -> Path:
        path = self.directory / name
        counter = 1
        while path.exists():
            path = self.directory / f"{name}.{counter}"
            counter += 1
        return path

    def backup(self, original: bytes, name: str) -> str:
        path = self.directory / name
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self._free_path(name)
            # "xb" refuses to clobber a file created since _free_path looked
            with open(path, "xb") as f:
                f.write(original)
        except OSError as e:
            raise BackupFailedError(path=str(path), original_error=e)

        logger.info(f"Backed up original save ({len(original)} bytes) to {path}")
        return str(path)


class S3Backup:
    """Write backups to an S3 bucket through a boto3 client.

    Example:
        client = boto3.client("s3")
        target = S3Backup(client, "my-bucket", prefix="save-backups/")
    """

    def __init__(self, s3_client: BaseClient, bucket_name: str, prefix: str = "backups/"):
        """Initialize the S3 backup target.

        Args:
            s3_client: A boto3 S3 client
            bucket_name: The S3 bucket name
            prefix: Key prefix for backups
        """
        self.s3_client = s3_client
        self.bucket_name = bucket_name
        self.prefix = prefix

    def backup(self, original: bytes, name: str) -> str:
        key = f"{self.prefix}{name}"
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=original,
                ContentType="application/octet-stream",
            )
        except (ClientError, BotoCoreError) as e:
            raise BackupFailedError(path=f"s3://{self.bucket_name}/{key}", original_error=e)

        logger.info(f"Backed up original save to s3://{self.bucket_name}/{key}")
        return f"s3://{self.bucket_name}/{key}"


def create_s3_client(settings: SaveForgeSettings) -> BaseClient:
    """Create a boto3 S3 client from settings.

    Credentials come from the usual boto3 chain (environment, profile,
    instance role).
    """
    config = Config(
        s3={"addressing_style": "path"},
        retries={"max_attempts": settings.aws_retry_attempts, "mode": "standard"},
    )
    return Session().client(
        "s3",
        region_name=settings.aws_default_region,
        endpoint_url=settings.aws_url,
        config=config,
    )


def create_backup_target(
    settings: SaveForgeSettings,
    s3_client: BaseClient | None = None,
) -> BackupTarget:
    """Pick the backup target configured in settings.

    Args:
        settings: SaveForge settings
        s3_client: Client to use instead of creating one

    Returns:
        S3Backup when `backup_bucket` is set, FileBackup otherwise
    """
    if settings.backup_bucket:
        return S3Backup(
            s3_client or create_s3_client(settings),
            settings.backup_bucket,
            prefix=settings.backup_prefix,
        )
    return FileBackup(settings.backup_dir)
