"""Migration registry for SaveForge."""

import logging
import time
from collections import deque
from typing import Iterable, List

from saveforge.core.document import copy_document, type_name
from saveforge.core.exceptions import (
    DocumentShapeError,
    MigrationError,
    MigrationFailedError,
    NoPathFoundError,
    RegistrationError,
    UnsupportedVersionError,
    ValidationFailedError,
)
from saveforge.core.version import SaveVersion
from saveforge.migrations.base import MigrationUnit
from saveforge.migrations.report import MigrationReport, ReportBuilder

logger = logging.getLogger(__name__)


class MigrationRegistry:
    """Holds migration units and resolves migration paths.

    The registry is a directed graph over versions with one edge per
    unit. Every edge must go from an older to a newer version, so the
    graph can never contain a cycle. By default each version has at most
    one outgoing edge (a simple chain); pass ``allow_branching=True`` to
    register hotfix edges that skip intermediate versions.

    A registry is built once at process start. After that it is only
    read, so it can be shared by concurrent loads without locking.

    Example:
        registry = MigrationRegistry()
        registry.register(unit_010_020)
        registry.register(unit_020_030)
        document, report = registry.migrate("0.1.0", "0.3.0", document)
    """

    def __init__(
        self,
        units: Iterable[MigrationUnit] | None = None,
        allow_branching: bool = False,
    ):
        """Initialize the registry.

        Args:
            units: Units to register immediately
            allow_branching: Allow several outgoing edges per version
        """
        self.allow_branching = allow_branching
        self._units: List[MigrationUnit] = []
        self._outgoing: dict[SaveVersion, List[MigrationUnit]] = {}
        for unit in units or []:
            self.register(unit)

    def register(self, unit: MigrationUnit) -> None:
        """Register a migration unit.

        Args:
            unit: The unit to register

        Raises:
            RegistrationError: If the edge does not move to a newer version,
                duplicates an existing edge, or branches while branching is
                not allowed
        """
        if unit.to_version <= unit.from_version:
            raise RegistrationError(
                f"Migration '{unit.label()}' must move to a newer version",
                "Migrations only upgrade; register a unit whose target is newer than its source.",
            )

        existing = self._outgoing.get(unit.from_version, [])
        for other in existing:
            if other.to_version == unit.to_version:
                raise RegistrationError(
                    f"Duplicate migration {unit.from_version} -> {unit.to_version}: "
                    f"'{other.description}' is already registered"
                )
        if existing and not self.allow_branching:
            raise RegistrationError(
                f"Version {unit.from_version} already migrates to "
                f"{existing[0].to_version}; cannot also migrate to {unit.to_version}",
                "Create the registry with allow_branching=True to register hotfix edges.",
            )

        self._outgoing.setdefault(unit.from_version, []).append(unit)
        self._units.append(unit)
        logger.debug(f"Registered migration {unit.label()}")

    def units(self) -> List[MigrationUnit]:
        """All registered units, ordered by source then target version."""
        return sorted(self._units, key=lambda u: (u.from_version, u.to_version))

    def outgoing(self, version: SaveVersion | str) -> List[MigrationUnit]:
        return list(self._outgoing.get(SaveVersion.coerce(version), []))

    def versions(self) -> List[SaveVersion]:
        """Every version that appears in the graph, ascending."""
        found = set()
        for unit in self._units:
            found.update(unit.edge)
        return sorted(found)

    def latest_version(self) -> SaveVersion | None:
        versions = self.versions()
        return versions[-1] if versions else None

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, item) -> bool:
        if isinstance(item, MigrationUnit):
            return item in self._units
        try:
            version = SaveVersion.coerce(item)
        except UnsupportedVersionError:
            return False
        return version in self.versions()

    def find_migration_path(
        self,
        from_version: SaveVersion | str,
        to_version: SaveVersion | str,
    ) -> List[MigrationUnit]:
        """Find the shortest sequence of units between two versions.

        Breadth-first search from `from_version`, so a hotfix edge that
        skips versions is preferred over the long way round. Among paths
        of equal length, edges registered first win.

        Args:
            from_version: Version of the document
            to_version: Version to reach

        Returns:
            The units to apply, in order. Empty when the versions are equal.

        Raises:
            NoPathFoundError: If no sequence of edges connects the versions
        """
        start = SaveVersion.coerce(from_version)
        goal = SaveVersion.coerce(to_version)

        if start == goal:
            return []

        queue: deque[SaveVersion] = deque([start])
        came_from: dict[SaveVersion, MigrationUnit] = {}
        visited = {start}

        while queue:
            current = queue.popleft()
            for unit in self._outgoing.get(current, []):
                nxt = unit.to_version
                if nxt in visited:
                    continue
                visited.add(nxt)
                came_from[nxt] = unit
                if nxt == goal:
                    path = self._unwind(came_from, start, goal)
                    logger.debug(
                        f"Resolved migration path {start} -> {goal}: "
                        f"{' -> '.join(str(u.to_version) for u in path)}"
                    )
                    return path
                # Edges only go upward: nothing past the goal can reach it
                if nxt < goal:
                    queue.append(nxt)

        raise NoPathFoundError(start, goal)

    @staticmethod
    def _unwind(
        came_from: dict[SaveVersion, MigrationUnit],
        start: SaveVersion,
        goal: SaveVersion,
    ) -> List[MigrationUnit]:
        path = []
        node = goal
        while node != start:
            unit = came_from[node]
            path.append(unit)
            node = unit.from_version
        path.reverse()
        return path

    def can_migrate(
        self,
        from_version: SaveVersion | str,
        to_version: SaveVersion | str,
    ) -> bool:
        """Check whether a path exists, without raising."""
        try:
            self.find_migration_path(from_version, to_version)
        except NoPathFoundError:
            return False
        return True

    def migrate(
        self,
        from_version: SaveVersion | str,
        to_version: SaveVersion | str,
        document: dict,
        report: ReportBuilder | None = None,
    ) -> tuple[dict, MigrationReport]:
        """Bring a document from one version to another.

        Each unit's transform runs on the output of the previous one and
        is immediately followed by that unit's validator. The first
        failure aborts the whole migration; no later unit runs. The input
        document is never modified.

        Args:
            from_version: Version of the document
            to_version: Version to reach
            document: The document to migrate
            report: Builder to record steps into (one is created if omitted)

        Returns:
            The migrated document and the report of what ran

        Raises:
            NoPathFoundError: If the versions are not connected
            MigrationFailedError: If a transform raised
            ValidationFailedError: If a transform produced an unexpected shape
        """
        start = SaveVersion.coerce(from_version)
        goal = SaveVersion.coerce(to_version)
        if report is None:
            report = ReportBuilder(from_version=start, to_version=goal)

        path = self.find_migration_path(start, goal)
        try:
            current = copy_document(document)
        except DocumentShapeError as e:
            raise MigrationFailedError(e.message, entity=e.path, original_error=e)

        for unit in path:
            started = time.perf_counter()
            current = self._apply(unit, current)
            elapsed = time.perf_counter() - started
            report.record_step(unit, elapsed)
            logger.debug(f"Applied migration {unit.label()} in {elapsed:.4f}s")

        return current, report.build()

    @staticmethod
    def _apply(unit: MigrationUnit, document: dict) -> dict:
        """Run one unit's transform then its validator."""
        step = unit.label()

        try:
            result = unit.transform(document)
        except MigrationError as e:
            raise e.with_step(step)
        except DocumentShapeError as e:
            raise MigrationFailedError(
                e.message, step=step, entity=e.path, original_error=e
            )
        except Exception as e:
            raise MigrationFailedError(
                f"Transform raised {type(e).__name__}: {e}",
                step=step,
                original_error=e,
            )

        if not isinstance(result, dict):
            raise MigrationFailedError(
                f"Transform returned {type_name(result)} instead of an object",
                step=step,
            )

        try:
            unit.validate(result)
        except MigrationError as e:
            raise e.with_step(step)
        except DocumentShapeError as e:
            raise ValidationFailedError(e.message, step=step, entity=e.path)
        except Exception as e:
            raise ValidationFailedError(
                f"Validator raised {type(e).__name__}: {e}", step=step
            )

        return result
