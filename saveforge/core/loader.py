"""Load orchestration: raw bytes in, typed state and a report out."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from saveforge.core.codecs import DecodeError, DomainCodec
from saveforge.core.document import (
    CREATED_AT_KEY,
    LAST_MODIFIED_KEY,
    VERSION_KEY,
    dump_document,
    parse_document,
    read_version,
)
from saveforge.core.exceptions import (
    BackupFailedError,
    LoadError,
    PostMigrationDecodeError,
    SaveTooNewError,
    UnsupportedVersionError,
)
from saveforge.core.settings import SaveForgeSettings
from saveforge.core.version import SaveVersion
from saveforge.migrations.history import build_default_registry
from saveforge.migrations.registry import MigrationRegistry
from saveforge.migrations.report import MigrationReport, ReportBuilder
from saveforge.storage.backup import create_backup_target

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LoadState(str, Enum):
    """States of a load, in the order they are reached."""

    IDLE = "idle"
    PARSED = "parsed"
    VERSION_CHECKED = "version_checked"
    PASS_THROUGH = "pass_through"
    MIGRATED = "migrated"
    REJECTED = "rejected"
    DECODED = "decoded"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadResult(Generic[T]):
    """Successful load.

    Attributes:
        state: The decoded domain state
        report: What happened during the load
        document: The (migrated) document the state was decoded from
        path: PASS_THROUGH or MIGRATED
    """

    state: T
    report: MigrationReport
    document: dict
    path: LoadState


@dataclass(frozen=True)
class SaveFileSummary:
    """Quick look at a save file without decoding it."""

    version: str | None
    created_at: str | None
    last_modified: str | None
    factory_count: int
    logistics_count: int
    needs_migration: bool
    loadable: bool
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "created_at": self.created_at,
            "last_modified": self.last_modified,
            "factory_count": self.factory_count,
            "logistics_count": self.logistics_count,
            "needs_migration": self.needs_migration,
            "loadable": self.loadable,
            "reason": self.reason,
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


class SaveLoader(Generic[T]):
    """Loads save files written by any released schema version.

    The loader parses the input, checks its version, runs the registry when
    the save is older than the engine, and decodes the result with the
    domain codec. It holds no per-load state, so one loader can serve
    concurrent loads.

    Example:
        loader = SaveLoader(build_default_registry(), PydanticCodec(SaveFile))
        result = loader.load(Path("factory.json").read_bytes())
        print(result.report.descriptions)
    """

    def __init__(
        self,
        registry: MigrationRegistry,
        codec: DomainCodec[T],
        settings: SaveForgeSettings | None = None,
        backup=None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the loader.

        Args:
            registry: Registry of migration units
            codec: Domain codec used at both ends of the pipeline
            settings: Load policy (defaults are read from the environment)
            backup: Optional BackupTarget for original bytes
            clock: Source of "now" for timestamps
        """
        self.registry = registry
        self.codec = codec
        self.settings = settings or SaveForgeSettings()
        self.backup = backup
        self.clock = clock or utc_now

    @classmethod
    def from_settings(
        cls,
        codec: DomainCodec[T],
        settings: SaveForgeSettings | None = None,
        registry: MigrationRegistry | None = None,
        backup=None,
    ) -> "SaveLoader[T]":
        """Build a loader with the registry and backup target from settings.

        Args:
            codec: Domain codec
            settings: Settings to use (read from the environment if omitted)
            registry: Registry to use instead of the released history
            backup: Backup target to use instead of the configured one
        """
        settings = settings or SaveForgeSettings()
        if registry is None:
            registry = build_default_registry(allow_branching=settings.allow_branching)
        if backup is None and settings.backup_enabled:
            backup = create_backup_target(settings)
        return cls(registry, codec, settings=settings, backup=backup)

    @property
    def engine_version(self) -> SaveVersion:
        return self.settings.version

    def _read_file_version(self, document: dict) -> SaveVersion:
        raw = read_version(document)
        if raw is None:
            raise UnsupportedVersionError(None)
        return SaveVersion.parse(raw)

    def _migration_target(self) -> SaveVersion:
        """Registry version to migrate to for the engine version.

        Patch releases never change the document shape, so an engine at
        2.0.1 migrates to the newest registered 2.0.x.
        """
        engine = self.engine_version
        candidates = [
            v
            for v in self.registry.versions()
            if v <= engine and not v.needs_migration(engine)
        ]
        if engine in candidates or not candidates:
            return engine
        return max(candidates)

    def _backup_name(self, version: SaveVersion, source_name: str | None) -> str:
        stem = source_name or "save"
        stamp = self.clock().strftime("%Y%m%dT%H%M%S%fZ")
        return f"{stem}.v{version}.{stamp}.bak"

    def _take_backup(
        self,
        raw: bytes,
        version: SaveVersion,
        source_name: str | None,
        report: ReportBuilder,
    ) -> None:
        if not self.settings.backup_enabled or self.backup is None:
            return
        name = self._backup_name(version, source_name)
        try:
            report.backup_location = self.backup.backup(raw, name)
        except BackupFailedError as e:
            error = e
        except Exception as e:
            error = BackupFailedError(path=name, original_error=e)
        else:
            return

        if self.settings.backup_required:
            raise error
        message = f"Backup failed, continuing without one: {error.message}"
        logger.warning(message)
        report.warn(message)

    def load(self, raw: bytes | str, source_name: str | None = None) -> LoadResult[T]:
        """Load a save file.

        Args:
            raw: The save file bytes
            source_name: Name of the file, used for backup names

        Returns:
            LoadResult with the decoded state and a migration report

        Raises:
            ParseError: If the input is not a JSON object
            UnsupportedVersionError: If the version is missing or invalid
            SaveTooNewError: If the save was written by a newer engine
            NoPathFoundError: If no migrations lead to the engine version
            MigrationFailedError: If a migration step raised
            ValidationFailedError: If a migration step produced a bad shape
            BackupFailedError: If a required backup failed
            PostMigrationDecodeError: If the domain codec rejected the result
        """
        stage = LoadState.IDLE
        raw_bytes = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
        try:
            document = parse_document(raw_bytes)
            stage = LoadState.PARSED

            file_version = self._read_file_version(document)
            stage = LoadState.VERSION_CHECKED

            engine = self.engine_version
            if file_version > engine:
                stage = LoadState.REJECTED
                raise SaveTooNewError(file_version, engine)

            report = ReportBuilder(from_version=file_version, to_version=engine)

            if not file_version.needs_migration(engine):
                path = LoadState.PASS_THROUGH
                if file_version != engine:
                    document[VERSION_KEY] = str(engine)
            else:
                # Resolve before backing up so a missing migration fails fast
                target = self._migration_target()
                self.registry.find_migration_path(file_version, target)
                self._take_backup(raw_bytes, file_version, source_name, report)
                document, _ = self.registry.migrate(
                    file_version, target, document, report
                )
                if target != engine:
                    document[VERSION_KEY] = str(engine)
                if self.settings.stamp_last_modified_on_migrate:
                    document[LAST_MODIFIED_KEY] = _timestamp(self.clock())
                path = LoadState.MIGRATED
            stage = path

            state = self._decode(document, engine, migrated=path is LoadState.MIGRATED)
            stage = LoadState.DECODED
        except LoadError as e:
            e.failed_after = stage
            e.state = stage if stage is LoadState.REJECTED else LoadState.FAILED
            logger.warning(f"Load failed after state '{stage.value}': {e.message}")
            raise

        final = report.build()
        logger.info(
            f"Loaded save {final.from_version} -> {final.to_version} "
            f"({len(final.steps)} migration(s), {final.duration:.3f}s)"
        )
        for warning in final.warnings:
            logger.warning(warning)
        return LoadResult(state=state, report=final, document=document, path=path)

    def _decode(self, document: dict, version: SaveVersion, migrated: bool) -> T:
        try:
            return self.codec.decode(document)
        except (DecodeError, ValueError, TypeError, KeyError, RecursionError) as e:
            raise PostMigrationDecodeError(version, original_error=e, migrated=migrated)

    def save(self, state: T, created_at: datetime | None = None) -> bytes:
        """Encode domain state as a save file at the engine version.

        The version and timestamps are written first. `created_at` is kept
        from the encoded state when present.

        Args:
            state: The domain state to save
            created_at: Creation time for saves that never had one

        Returns:
            UTF-8 JSON bytes that load() accepts as-is
        """
        body = self.codec.encode(state)
        if not isinstance(body, dict):
            raise TypeError(
                f"Codec must encode to a JSON object, got {type(body).__name__}"
            )

        now = self.clock()
        created = body.get(CREATED_AT_KEY) or _timestamp(created_at or now)
        document: dict[str, Any] = {
            VERSION_KEY: str(self.engine_version),
            CREATED_AT_KEY: created,
            LAST_MODIFIED_KEY: _timestamp(now),
        }
        for key, value in body.items():
            if key not in document:
                document[key] = value
        return dump_document(document, indent=self.settings.json_indent)

    def inspect(self, raw: bytes | str) -> SaveFileSummary:
        """Summarize a save file and report whether it can be loaded.

        Raises:
            ParseError: If the input is not a JSON object
        """
        document = parse_document(raw)
        engine = document.get("engine")
        engine = engine if isinstance(engine, dict) else {}

        def _count(name: str) -> int:
            value = engine.get(name)
            return len(value) if isinstance(value, dict) else 0

        raw_version = read_version(document)
        needs_migration = False
        loadable = True
        reason = None
        try:
            version = self._read_file_version(document)
            if version > self.engine_version:
                loadable = False
                reason = SaveTooNewError(version, self.engine_version).message
            else:
                needs_migration = version.needs_migration(self.engine_version)
                if needs_migration and not self.registry.can_migrate(
                    version, self._migration_target()
                ):
                    loadable = False
                    reason = f"No migration path from {version}"
        except UnsupportedVersionError as e:
            loadable = False
            reason = e.message

        return SaveFileSummary(
            version=raw_version if isinstance(raw_version, str) else None,
            created_at=_as_str(document.get(CREATED_AT_KEY)),
            last_modified=_as_str(document.get(LAST_MODIFIED_KEY)),
            factory_count=_count("factories"),
            logistics_count=_count("logistics_lines"),
            needs_migration=needs_migration,
            loadable=loadable,
            reason=reason,
        )


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None
