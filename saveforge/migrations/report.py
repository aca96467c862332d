"""Migration reports returned alongside a loaded state."""

import time
from dataclasses import dataclass, field
from typing import List

from saveforge.core.version import SaveVersion


@dataclass(frozen=True)
class MigrationStep:
    """Record of one migration unit that ran during a load."""

    from_version: SaveVersion
    to_version: SaveVersion
    description: str
    duration: float = 0.0

    def to_dict(self) -> dict:
        return {
            "from_version": str(self.from_version),
            "to_version": str(self.to_version),
            "description": self.description,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class MigrationReport:
    """What happened during a load.

    Attributes:
        from_version: Version found in the save file
        to_version: Version the document was brought to
        steps: Units that ran, in order
        warnings: Non-fatal problems (e.g. a failed optional backup)
        duration: Wall time of the whole load in seconds
        backup_location: Where the original bytes were backed up, if anywhere
    """

    from_version: SaveVersion
    to_version: SaveVersion
    steps: tuple[MigrationStep, ...] = ()
    warnings: tuple[str, ...] = ()
    duration: float = 0.0
    backup_location: str | None = None

    @property
    def migrated(self) -> bool:
        return len(self.steps) > 0

    @property
    def descriptions(self) -> list[str]:
        return [step.description for step in self.steps]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "from_version": str(self.from_version),
            "to_version": str(self.to_version),
            "migrated": self.migrated,
            "steps": [step.to_dict() for step in self.steps],
            "warnings": list(self.warnings),
            "duration": self.duration,
            "backup_location": self.backup_location,
        }


@dataclass
class ReportBuilder:
    """Collects steps and warnings while a load runs.

    The builder is local to one load call; `build()` freezes it into a
    MigrationReport.
    """

    from_version: SaveVersion
    to_version: SaveVersion
    steps: List[MigrationStep] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    backup_location: str | None = None
    started: float = field(default_factory=time.perf_counter)

    def record_step(self, unit, duration: float) -> None:
        self.steps.append(
            MigrationStep(
                from_version=unit.from_version,
                to_version=unit.to_version,
                description=unit.description,
                duration=duration,
            )
        )

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def build(self) -> MigrationReport:
        return MigrationReport(
            from_version=self.from_version,
            to_version=self.to_version,
            steps=tuple(self.steps),
            warnings=tuple(self.warnings),
            duration=time.perf_counter() - self.started,
            backup_location=self.backup_location,
        )
