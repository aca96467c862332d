"""Migration system for SaveForge.

Save files are plain JSON documents. Each schema change is a registered
MigrationUnit that rewrites a document from one version to the next; the
MigrationRegistry finds the shortest chain of units between two versions.
"""

from saveforge.migrations.base import (
    MigrationCheck,
    MigrationOperation,
    MigrationUnit,
)
from saveforge.migrations.history import (
    LATEST_SCHEMA_VERSION,
    build_default_registry,
)
from saveforge.migrations.operations import (
    AddField,
    AtPath,
    FieldAbsent,
    FieldPresent,
    ForEachEntry,
    FunctionCheck,
    FunctionOperation,
    KeysAreUuids,
    ReferencesExist,
    RekeyCollection,
    RemapReferences,
    RemoveField,
    RenameField,
    RootFieldPresent,
    SelfIdMatchesKey,
    TransformField,
)
from saveforge.migrations.registry import MigrationRegistry
from saveforge.migrations.report import MigrationReport, MigrationStep, ReportBuilder

__all__ = [
    "MigrationCheck",
    "MigrationOperation",
    "MigrationUnit",
    "MigrationRegistry",
    "MigrationReport",
    "MigrationStep",
    "ReportBuilder",
    "LATEST_SCHEMA_VERSION",
    "build_default_registry",
    "AddField",
    "AtPath",
    "FieldAbsent",
    "FieldPresent",
    "ForEachEntry",
    "FunctionCheck",
    "FunctionOperation",
    "KeysAreUuids",
    "ReferencesExist",
    "RekeyCollection",
    "RemapReferences",
    "RemoveField",
    "RenameField",
    "RootFieldPresent",
    "SelfIdMatchesKey",
    "TransformField",
]
