"""Settings for SaveForge.

Values are read from the environment (prefix ``SAVEFORGE_``) or a ``.env``
file, e.g. ``SAVEFORGE_BACKUP_REQUIRED=true``.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from saveforge.core.exceptions import UnsupportedVersionError
from saveforge.core.version import SaveVersion

DEFAULT_ENGINE_VERSION = "2.0.0"


class SaveForgeSettings(BaseSettings):
    """Load and migration policy."""

    engine_version: str = Field(
        DEFAULT_ENGINE_VERSION,
        description="Schema version this engine reads and writes",
    )

    backup_enabled: bool = Field(
        True, description="Back up the original bytes before migrating"
    )
    backup_required: bool = Field(
        False, description="Abort the load when the backup cannot be written"
    )
    backup_dir: Path = Field(
        Path("backups"), description="Directory used by the file backup target"
    )
    backup_bucket: str | None = Field(
        None, description="S3 bucket for backups; local files are used when unset"
    )
    backup_prefix: str = Field("backups/", description="Key prefix for S3 backups")
    aws_default_region: str = Field("us-east-1", description="AWS region")
    aws_url: str | None = Field(None, description="Custom S3 endpoint URL")
    aws_retry_attempts: int = Field(3, ge=0, description="S3 client retry attempts")

    allow_branching: bool = Field(
        False, description="Allow more than one migration out of a version"
    )
    stamp_last_modified_on_migrate: bool = Field(
        True, description="Set 'last_modified' when a save is migrated"
    )
    json_indent: int | None = Field(2, description="Indentation used by save()")

    model_config = SettingsConfigDict(
        env_prefix="SAVEFORGE_", env_file=".env", extra="ignore"
    )

    @field_validator("engine_version")
    @classmethod
    def _check_engine_version(cls, value: str) -> str:
        try:
            SaveVersion.parse(value)
        except UnsupportedVersionError as e:
            raise ValueError(e.message)
        return value

    @property
    def version(self) -> SaveVersion:
        return SaveVersion.parse(self.engine_version)

