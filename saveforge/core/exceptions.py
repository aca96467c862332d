"""Custom exceptions for SaveForge.

This module provides a hierarchy of exceptions with helpful error messages
so that a failed load can be logged and shown to the user without
re-deriving any context.
"""

from typing import Any


class SaveForgeError(Exception):
    """Base exception for all SaveForge errors.

    All SaveForge exceptions inherit from this class, making it easy
    to catch all framework-specific errors.
    """

    error_code = "saveforge_error"

    def __init__(self, message: str, hint: str | None = None):
        """Initialize the exception.

        Args:
            message: The error message
            hint: Optional hint for resolving the error
        """
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\nHint: {self.hint}"
        return self.message

    def context(self) -> dict[str, Any]:
        """Structured fields specific to this error."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.hint:
            data["hint"] = self.hint
        for key, value in self.context().items():
            if value is None or isinstance(value, (str, int, float, bool)):
                data[key] = value
            else:
                data[key] = str(value)
        return data


class RegistrationError(SaveForgeError):
    """Raised when a migration cannot be registered.

    This is a developer error detected at process start, never at load time.
    """

    error_code = "registration_error"


class DocumentShapeError(SaveForgeError):
    """Raised when a document node does not have the expected shape."""

    error_code = "document_shape_error"

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message, f"Offending node: '{path}'" if path else None)

    def context(self) -> dict[str, Any]:
        return {"path": self.path}


class LoadError(SaveForgeError):
    """Base class for everything `SaveLoader.load` can raise.

    A load error always means "load failed, nothing changed": the original
    input and any live state are left untouched.
    """

    error_code = "load_error"
    # Set by SaveLoader: terminal state (REJECTED or FAILED) and the last
    # state reached before it
    state = None
    failed_after = None


class ParseError(LoadError):
    """Raised when the raw input is not a JSON object."""

    error_code = "parse_error"

    def __init__(self, message: str, original_error: Exception | None = None):
        self.original_error = original_error
        super().__init__(
            message,
            "The save file is corrupted or is not a save file. Keep the original file as-is.",
        )


class UnsupportedVersionError(LoadError):
    """Raised when a version string is missing or cannot be parsed."""

    error_code = "unsupported_version"

    def __init__(self, version: Any = None, message: str | None = None):
        self.version = version
        if message is None:
            if version is None:
                message = "Save file has no 'version' field"
            else:
                message = (
                    f"Invalid version format: '{version}'. "
                    "Expected format: MAJOR.MINOR.PATCH (e.g., '0.1.0')"
                )
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        return {"version": self.version}


class SaveTooNewError(LoadError):
    """Raised when the save was written by a newer engine."""

    error_code = "save_too_new"

    def __init__(self, file_version, engine_version):
        self.file_version = file_version
        self.engine_version = engine_version
        super().__init__(
            f"Save file is too new: file version {file_version}, "
            f"engine version {engine_version}",
            "Update the application to load this save file. The file was not modified.",
        )

    def context(self) -> dict[str, Any]:
        return {
            "file_version": self.file_version,
            "engine_version": self.engine_version,
        }


class NoPathFoundError(LoadError):
    """Raised when no registered migrations connect two versions."""

    error_code = "no_path_found"

    def __init__(self, from_version, to_version):
        self.from_version = from_version
        self.to_version = to_version
        super().__init__(
            f"No migration path from {from_version} to {to_version}",
            "A migration is missing from the registry. This is a bug, not a problem with the save file.",
        )

    def context(self) -> dict[str, Any]:
        return {"from_version": self.from_version, "to_version": self.to_version}


class MigrationError(LoadError):
    """Base class for errors raised while running a migration step."""

    error_code = "migration_error"

    def __init__(
        self,
        message: str,
        step: str | None = None,
        entity: str | None = None,
        hint: str | None = None,
    ):
        """Initialize the migration error.

        Args:
            message: The error message
            step: Description of the migration step that failed
            entity: Identifier of the offending entity (factory, raw input...)
            hint: Optional hint for resolving the error
        """
        self.step = step
        self.entity = entity
        super().__init__(message, hint)

    def with_step(self, step: str) -> "MigrationError":
        """Attach the failing step description if not set yet."""
        if self.step is None:
            self.step = step
        return self

    def __str__(self) -> str:
        parts = [self.message]
        if self.step:
            parts.append(f"Step: {self.step}")
        if self.entity:
            parts.append(f"Entity: {self.entity}")
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        return "\n".join(parts)

    def context(self) -> dict[str, Any]:
        return {"step": self.step, "entity": self.entity}


class MigrationFailedError(MigrationError):
    """Raised when a transform could not be applied."""

    error_code = "migration_failed"

    def __init__(
        self,
        message: str,
        step: str | None = None,
        entity: str | None = None,
        original_error: Exception | None = None,
    ):
        self.original_error = original_error
        super().__init__(
            message,
            step=step,
            entity=entity,
            hint="Restore from the backup if one was taken; the original file is unchanged.",
        )


class ValidationFailedError(MigrationError):
    """Raised when a transform ran but produced an unexpected shape."""

    error_code = "validation_failed"

    def __init__(self, message: str, step: str | None = None, entity: str | None = None):
        super().__init__(
            message,
            step=step,
            entity=entity,
            hint="The migration produced an unexpected document. This is a migration bug.",
        )


class PostMigrationDecodeError(LoadError):
    """Raised when the domain model rejects a (migrated) document."""

    error_code = "post_migration_decode_error"

    def __init__(self, version, original_error: Exception | None = None, migrated: bool = True):
        self.version = version
        self.original_error = original_error
        self.migrated = migrated
        if migrated:
            message = f"Migrated document (version {version}) could not be decoded: {original_error}"
            hint = "The migration chain produced a document the current model rejects. This is a migration bug."
        else:
            message = f"Save file (version {version}) could not be decoded: {original_error}"
            hint = "The save file content does not match its declared version."
        super().__init__(message, hint)

    def context(self) -> dict[str, Any]:
        return {"version": self.version, "migrated": self.migrated}


class BackupFailedError(LoadError):
    """Raised when a required backup could not be written."""

    error_code = "backup_failed"

    def __init__(self, path: str | None = None, original_error: Exception | None = None):
        self.path = path
        self.original_error = original_error
        super().__init__(
            f"Could not back up the original save file: {original_error}",
            "Check the backup location, or disable 'backup_required' to continue without a backup.",
        )

    def context(self) -> dict[str, Any]:
        return {"path": self.path}
