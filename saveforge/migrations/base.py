"""Base classes for SaveForge migrations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List

from saveforge.core.document import VERSION_KEY, copy_document
from saveforge.core.exceptions import ValidationFailedError
from saveforge.core.version import SaveVersion

TransformFn = Callable[[dict], dict]
ValidateFn = Callable[[dict], None]


class MigrationOperation(ABC):
    """Base class for migration operations.

    An operation is a pure rewrite of a document: it never mutates its
    input and never consults external state.
    """

    @abstractmethod
    def forward(self, data: dict) -> dict:
        """Apply the transformation.

        Args:
            data: The document (or entry) to transform

        Returns:
            Transformed copy of the data

        Raises:
            DocumentShapeError: If the data does not have the expected shape
            MigrationFailedError: If the data cannot be transformed
        """


class MigrationCheck(ABC):
    """Base class for post-condition checks run after a transform.

    Checks must accept a document already in the target shape, so that a
    unit applied twice still validates.
    """

    @abstractmethod
    def check(self, data: dict) -> None:
        """Validate the document.

        Raises:
            ValidationFailedError: Naming the offending entity
        """


@dataclass(frozen=True)
class VersionIs(MigrationCheck):
    """Check the version stamp equals the expected version."""

    version: SaveVersion

    def check(self, data: dict) -> None:
        found = data.get(VERSION_KEY)
        if found != str(self.version):
            raise ValidationFailedError(
                f"Expected version '{self.version}', found {found!r}",
                entity=VERSION_KEY,
            )


@dataclass(frozen=True)
class StampVersion(MigrationOperation):
    """Rewrite the top-level version stamp."""

    version: SaveVersion

    def forward(self, data: dict) -> dict:
        result = dict(data)
        result[VERSION_KEY] = str(self.version)
        return result


@dataclass(frozen=True, eq=False)
class MigrationUnit:
    """A single validated transform between two schema versions.

    Units are built once at process start, registered into a
    MigrationRegistry and never changed afterwards.

    Attributes:
        from_version: Version of the documents this unit accepts
        to_version: Version of the documents this unit produces
        transform: Pure function rewriting a document
        validate: Post-condition run on the transformed document
        description: Human-readable description of the unit
    """

    from_version: SaveVersion
    to_version: SaveVersion
    transform: TransformFn
    validate: ValidateFn
    description: str

    def __post_init__(self):
        object.__setattr__(self, "from_version", SaveVersion.coerce(self.from_version))
        object.__setattr__(self, "to_version", SaveVersion.coerce(self.to_version))

    @classmethod
    def from_operations(
        cls,
        from_version: SaveVersion | str,
        to_version: SaveVersion | str,
        description: str,
        operations: List[MigrationOperation] | None = None,
        checks: List[MigrationCheck] | None = None,
    ) -> "MigrationUnit":
        """Build a unit from operations and checks.

        The transform applies the operations in order and then stamps the
        target version; the validator checks the stamp and then runs the
        given checks.

        Example:
            MigrationUnit.from_operations(
                "0.2.0", "0.3.0", "Rename quantity_per_min",
                operations=[ForEachEntry(RAW_INPUTS, RenameField("quantity_per_min", "rate_per_minute"))],
                checks=[FieldAbsent(RAW_INPUTS, "quantity_per_min")],
            )
        """
        to_version = SaveVersion.coerce(to_version)
        pipeline = OperationPipeline(
            list(operations or []) + [StampVersion(to_version)]
        )
        validator = CheckPipeline([VersionIs(to_version)] + list(checks or []))
        return cls(
            from_version=from_version,
            to_version=to_version,
            transform=pipeline,
            validate=validator,
            description=description,
        )

    @property
    def edge(self) -> tuple[SaveVersion, SaveVersion]:
        return (self.from_version, self.to_version)

    def label(self) -> str:
        """Short label used in logs and reports."""
        return f"{self.from_version} -> {self.to_version}: {self.description}"

    def __repr__(self) -> str:
        return f"MigrationUnit({self.label()!r})"


@dataclass(frozen=True)
class OperationPipeline:
    """Callable applying operations in order on a private copy."""

    operations: List[MigrationOperation] = field(default_factory=list)

    def __call__(self, data: dict) -> dict:
        result = copy_document(data)
        for op in self.operations:
            result = op.forward(result)
        return result


@dataclass(frozen=True)
class CheckPipeline:
    """Callable running checks in order, stopping at the first failure."""

    checks: List[MigrationCheck] = field(default_factory=list)

    def __call__(self, data: dict) -> None:
        for check in self.checks:
            check.check(data)
