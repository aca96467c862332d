"""Registered schema history of the save file format.

Every schema change gets one unit here. Never edit a released unit:
add a new one and bump LATEST_SCHEMA_VERSION.

Save layout (current)::

    {
      "version": "2.0.0",
      "created_at": "...", "last_modified": "...", "game_version": null,
      "engine": {
        "factories": {"<uuid>": {"id": "<uuid>", "name": ..., "description": ...,
                                 "raw_inputs": {...}, "production_lines": {...},
                                 "power_generators": {...}}},
        "logistics_lines": {"<uuid>": {"id": ..., "from_factory": ..., "to_factory": ...}}
      }
    }

Older saves may also carry a top-level ``raw_inputs`` collection; it is
migrated like a factory's.
"""

import uuid

from saveforge.migrations.base import MigrationUnit
from saveforge.migrations.operations import (
    AddField,
    AtPath,
    FieldAbsent,
    FieldPresent,
    ForEachEntry,
    KeysAreUuids,
    RekeyCollection,
    RemapReferences,
    ReferencesExist,
    RenameField,
    RootFieldPresent,
    SelfIdMatchesKey,
)
from saveforge.migrations.registry import MigrationRegistry

LATEST_SCHEMA_VERSION = "2.0.0"

# Fixed namespace for deterministic id derivation. Never change it.
SAVE_NAMESPACE = uuid.UUID("6f1c2a4e-8b3d-5e7f-9a0b-1c2d3e4f5a6b")

FACTORIES = "engine.factories"
LOGISTICS = "engine.logistics_lines"
FACTORY_RAW_INPUTS = "engine.factories.*.raw_inputs"
TOP_RAW_INPUTS = "raw_inputs"
FACTORY_COLLECTIONS = ("raw_inputs", "production_lines", "power_generators")


def derive_id(kind: str, old_id: str, *scope: str) -> str:
    """Derive a stable UUID for a legacy integer id.

    Args:
        kind: Entity kind, e.g. "factory" or "raw_input"
        old_id: The legacy id
        *scope: Legacy ids of owning entities, for ids unique per owner

    Returns:
        Canonical UUID string, identical for identical inputs
    """
    name = ":".join((kind, *scope, str(old_id)))
    return str(uuid.uuid5(SAVE_NAMESPACE, name))


def _factory_key(old: str, captured: tuple[str, ...]) -> str:
    return derive_id("factory", old)


def _scoped(kind: str):
    def derive(old: str, captured: tuple[str, ...]) -> str:
        return derive_id(kind, old, *captured)

    return derive


def add_game_version_and_generators() -> MigrationUnit:
    """0.1.0 -> 0.2.0: additive, defaults only."""
    return MigrationUnit.from_operations(
        "0.1.0",
        "0.2.0",
        "Add game_version and per-factory power_generators",
        operations=[
            AddField("game_version"),
            ForEachEntry(FACTORIES, AddField("power_generators", default_factory=dict)),
        ],
        checks=[
            RootFieldPresent("", "game_version"),
            FieldPresent(FACTORIES, "power_generators"),
        ],
    )


def rename_raw_input_rate() -> MigrationUnit:
    """0.2.0 -> 0.3.0: raw input quantity_per_min becomes rate_per_minute."""
    rename = RenameField("quantity_per_min", "rate_per_minute")
    return MigrationUnit.from_operations(
        "0.2.0",
        "0.3.0",
        "Rename raw input quantity_per_min to rate_per_minute",
        operations=[
            ForEachEntry(TOP_RAW_INPUTS, rename),
            ForEachEntry(FACTORY_RAW_INPUTS, rename),
        ],
        checks=[
            FieldAbsent(TOP_RAW_INPUTS, "quantity_per_min"),
            FieldAbsent(FACTORY_RAW_INPUTS, "quantity_per_min"),
            FieldPresent(TOP_RAW_INPUTS, "rate_per_minute"),
            FieldPresent(FACTORY_RAW_INPUTS, "rate_per_minute"),
        ],
    )


def add_factory_description() -> MigrationUnit:
    """0.3.0 -> 1.0.0: additive, factories gain an optional description."""
    return MigrationUnit.from_operations(
        "0.3.0",
        "1.0.0",
        "Add optional factory description",
        operations=[ForEachEntry(FACTORIES, AddField("description"))],
        checks=[FieldPresent(FACTORIES, "description")],
    )


def rekey_to_uuids() -> MigrationUnit:
    """1.0.0 -> 2.0.0: integer ids become deterministic UUIDs.

    Nested collections are rekeyed first, while the owning factory is
    still addressed by its legacy id.
    """
    operations = [
        RekeyCollection(TOP_RAW_INPUTS, _scoped("raw_input")),
    ]
    for name in FACTORY_COLLECTIONS:
        operations.append(
            RekeyCollection(f"{FACTORIES}.*.{name}", _scoped(name.rstrip("s")))
        )
    operations += [
        RekeyCollection(FACTORIES, _factory_key),
        RekeyCollection(LOGISTICS, _scoped("logistics_line")),
        RemapReferences(LOGISTICS, ("from_factory", "to_factory"), _factory_key),
    ]

    checks = []
    for path in (TOP_RAW_INPUTS, FACTORIES, LOGISTICS) + tuple(
        f"{FACTORIES}.*.{name}" for name in FACTORY_COLLECTIONS
    ):
        checks += [KeysAreUuids(path), SelfIdMatchesKey(path)]
    checks.append(ReferencesExist(LOGISTICS, ("from_factory", "to_factory"), FACTORIES))

    return MigrationUnit.from_operations(
        "1.0.0",
        "2.0.0",
        "Replace integer ids with UUIDs",
        operations=operations,
        checks=checks,
    )


def hotfix_rename_and_describe() -> MigrationUnit:
    """0.2.0 -> 1.0.0 in one step.

    Not registered by default: only valid in a registry created with
    ``allow_branching=True``.
    """
    rename = RenameField("quantity_per_min", "rate_per_minute")
    return MigrationUnit.from_operations(
        "0.2.0",
        "1.0.0",
        "Hotfix: rename raw input rate and add factory description",
        operations=[
            ForEachEntry(TOP_RAW_INPUTS, rename),
            ForEachEntry(FACTORY_RAW_INPUTS, rename),
            AtPath(f"{FACTORIES}.*", AddField("description")),
        ],
        checks=[
            FieldAbsent(TOP_RAW_INPUTS, "quantity_per_min"),
            FieldAbsent(FACTORY_RAW_INPUTS, "quantity_per_min"),
            FieldPresent(FACTORIES, "description"),
        ],
    )


def default_units() -> list[MigrationUnit]:
    return [
        add_game_version_and_generators(),
        rename_raw_input_rate(),
        add_factory_description(),
        rekey_to_uuids(),
    ]


def build_default_registry(allow_branching: bool = False) -> MigrationRegistry:
    """Create a registry holding the full released schema history."""
    return MigrationRegistry(default_units(), allow_branching=allow_branching)
