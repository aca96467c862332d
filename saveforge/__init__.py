"""SaveForge: versioned save files with validated schema migrations."""

__version__ = "1.0.0"

# Core components
from saveforge.core.codecs import DecodeError, DomainCodec, PydanticCodec
from saveforge.core.document import Document, dump_document, parse_document
from saveforge.core.exceptions import (
    BackupFailedError,
    DocumentShapeError,
    LoadError,
    MigrationError,
    MigrationFailedError,
    NoPathFoundError,
    ParseError,
    PostMigrationDecodeError,
    RegistrationError,
    SaveForgeError,
    SaveTooNewError,
    UnsupportedVersionError,
    ValidationFailedError,
)
from saveforge.core.loader import LoadResult, LoadState, SaveFileSummary, SaveLoader
from saveforge.core.settings import SaveForgeSettings
from saveforge.core.state import StateHolder
from saveforge.core.version import SaveVersion

# Migration components
from saveforge.migrations import (
    LATEST_SCHEMA_VERSION,
    MigrationCheck,
    MigrationOperation,
    MigrationRegistry,
    MigrationReport,
    MigrationStep,
    MigrationUnit,
    build_default_registry,
)

# Storage components
from saveforge.storage import BackupTarget, FileBackup, S3Backup

__all__ = [
    # Version
    "__version__",
    # Core
    "SaveVersion",
    "Document",
    "parse_document",
    "dump_document",
    "SaveForgeSettings",
    "SaveLoader",
    "LoadResult",
    "LoadState",
    "SaveFileSummary",
    "StateHolder",
    "DomainCodec",
    "PydanticCodec",
    "DecodeError",
    # Errors
    "SaveForgeError",
    "RegistrationError",
    "DocumentShapeError",
    "LoadError",
    "ParseError",
    "UnsupportedVersionError",
    "SaveTooNewError",
    "NoPathFoundError",
    "MigrationError",
    "MigrationFailedError",
    "ValidationFailedError",
    "PostMigrationDecodeError",
    "BackupFailedError",
    # Migrations
    "MigrationUnit",
    "MigrationOperation",
    "MigrationCheck",
    "MigrationRegistry",
    "MigrationReport",
    "MigrationStep",
    "LATEST_SCHEMA_VERSION",
    "build_default_registry",
    # Storage
    "BackupTarget",
    "FileBackup",
    "S3Backup",
]
