"""Storage utilities for SaveForge.

This module provides backup targets that keep a byte-for-byte copy of a
save file before it is migrated.
"""

from saveforge.storage.backup import (
    BackupTarget,
    FileBackup,
    S3Backup,
    create_backup_target,
    create_s3_client,
)

__all__ = [
    "BackupTarget",
    "FileBackup",
    "S3Backup",
    "create_backup_target",
    "create_s3_client",
]
