"""Tests for migration units, operations and checks."""

import uuid

import pytest

from saveforge.core.exceptions import (
    DocumentShapeError,
    MigrationFailedError,
    ValidationFailedError,
)
from saveforge.core.version import SaveVersion
from saveforge.migrations.base import MigrationUnit, StampVersion, VersionIs
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
    is_uuid,
)


def _derive(old, captured):
    return str(uuid.uuid5(uuid.NAMESPACE_OID, ":".join((*captured, old))))


class TestMigrationOperations:
    """Tests for migration operations."""

    def test_add_field(self):
        """Test AddField operation."""
        op = AddField(field_name="new_field", default="default")

        data = {"name": "test"}
        result = op.forward(data)

        assert result["new_field"] == "default"
        assert result["name"] == "test"
        assert "new_field" not in data

    def test_add_field_existing_field(self):
        """Test AddField doesn't overwrite existing field."""
        op = AddField(field_name="existing", default="default")

        result = op.forward({"existing": "original"})

        assert result["existing"] == "original"

    def test_add_field_default_factory(self):
        """Test each entry gets its own default value."""
        op = AddField("power_generators", default_factory=dict)

        first = op.forward({})
        second = op.forward({})
        first["power_generators"]["x"] = 1

        assert second["power_generators"] == {}

    def test_add_field_on_non_object(self):
        """Test AddField rejects a non-object."""
        with pytest.raises(DocumentShapeError):
            AddField("x").forward([1, 2])

    def test_remove_field(self):
        """Test RemoveField operation."""
        op = RemoveField(field_name="old_field")

        result = op.forward({"name": "test", "old_field": "value"})

        assert result == {"name": "test"}

    def test_remove_field_not_present(self):
        """Test RemoveField when field doesn't exist."""
        assert RemoveField("nonexistent").forward({"name": "test"}) == {"name": "test"}

    def test_rename_field(self):
        """Test RenameField keeps key position."""
        op = RenameField(old_name="old_name", new_name="new_name")

        result = op.forward({"id": "1", "old_name": "value", "other": "data"})

        assert list(result) == ["id", "new_name", "other"]
        assert result["new_name"] == "value"

    def test_rename_field_already_renamed(self):
        """Test RenameField leaves already migrated entries alone."""
        op = RenameField("old_name", "new_name")

        assert op.forward({"new_name": 1}) == {"new_name": 1}

    def test_rename_field_both_present(self):
        """Test RenameField refuses to overwrite."""
        op = RenameField("old_name", "new_name")

        with pytest.raises(MigrationFailedError):
            op.forward({"old_name": 1, "new_name": 2})

    def test_transform_field(self):
        """Test TransformField operation."""
        op = TransformField(field_name="status", func=lambda x: x.upper())

        assert op.forward({"status": "active"})["status"] == "ACTIVE"

    def test_transform_field_missing_field(self):
        """Test TransformField when field is missing."""
        op = TransformField(field_name="missing", func=lambda x: x.upper())

        assert "missing" not in op.forward({"other": "value"})

    def test_transform_field_bad_value(self):
        """Test TransformField wraps conversion errors."""
        op = TransformField("rate", func=float)

        with pytest.raises(MigrationFailedError) as exc_info:
            op.forward({"rate": "fast"})

        assert isinstance(exc_info.value.original_error, ValueError)

    def test_function_operation_works_on_copy(self):
        """Test FunctionOperation never mutates its input."""
        def mutate(doc):
            doc["touched"] = True
            return doc

        data = {"a": 1}
        result = FunctionOperation(mutate).forward(data)

        assert result == {"a": 1, "touched": True}
        assert data == {"a": 1}

    def test_for_each_entry(self):
        """Test ForEachEntry reaches nested collections."""
        op = ForEachEntry(
            "engine.factories.*.raw_inputs",
            RenameField("quantity_per_min", "rate_per_minute"),
        )
        data = {
            "engine": {
                "factories": {
                    "1": {"raw_inputs": {"42": {"id": "42", "quantity_per_min": 1.5}}},
                    "2": {"raw_inputs": {}},
                }
            }
        }

        result = op.forward(data)

        assert result["engine"]["factories"]["1"]["raw_inputs"]["42"] == {
            "id": "42",
            "rate_per_minute": 1.5,
        }
        assert "quantity_per_min" in data["engine"]["factories"]["1"]["raw_inputs"]["42"]

    def test_for_each_entry_missing_collection(self):
        """Test ForEachEntry skips absent collections."""
        op = ForEachEntry("raw_inputs", AddField("x"))

        assert op.forward({"version": "0.1.0"}) == {"version": "0.1.0"}

    def test_for_each_entry_names_entity(self):
        """Test failures name the offending entry."""
        op = ForEachEntry("raw_inputs", RenameField("a", "b"))

        with pytest.raises(MigrationFailedError) as exc_info:
            op.forward({"raw_inputs": {"7": {"a": 1, "b": 2}}})

        assert exc_info.value.entity == "raw_inputs.7"

    def test_for_each_entry_non_object_entry(self):
        """Test a scalar entry fails with its path."""
        op = ForEachEntry("raw_inputs", AddField("x"))

        with pytest.raises(MigrationFailedError) as exc_info:
            op.forward({"raw_inputs": {"7": 3}})

        assert exc_info.value.entity == "raw_inputs.7"

    def test_at_path_root(self):
        """Test AtPath with the root path."""
        result = AtPath("", AddField("game_version")).forward({"version": "0.1.0"})

        assert result == {"version": "0.1.0", "game_version": None}


class TestRekeying:
    """Tests for key-space rewrites."""

    def test_rekey_collection(self):
        """Test keys are derived and self ids updated."""
        op = RekeyCollection("items", _derive)

        result = op.forward({"items": {"1": {"id": "1", "v": "a"}, "2": {"id": 2, "v": "b"}}})

        assert set(result["items"]) == {_derive("1", ()), _derive("2", ())}
        for key, entry in result["items"].items():
            assert entry["id"] == key
            assert is_uuid(key)

    def test_rekey_is_deterministic(self):
        """Test the same input always gives the same keys."""
        op = RekeyCollection("items", _derive)
        data = {"items": {"1": {"id": "1"}}}

        assert op.forward(data) == op.forward(data)

    def test_rekey_uses_captured_scope(self):
        """Test wildcard keys feed the derivation."""
        op = RekeyCollection("groups.*.items", _derive)

        result = op.forward({"groups": {"a": {"items": {"1": {}}}, "b": {"items": {"1": {}}}}})

        key_a = next(iter(result["groups"]["a"]["items"]))
        key_b = next(iter(result["groups"]["b"]["items"]))
        assert key_a != key_b
        assert key_a == _derive("1", ("a",))

    def test_rekey_keeps_existing_uuids(self):
        """Test already rekeyed collections are unchanged."""
        op = RekeyCollection("items", _derive)
        once = op.forward({"items": {"1": {"id": "1"}}})

        assert op.forward(once) == once

    def test_key_map(self):
        """Test the old to new key map is computed without rekeying."""
        op = RekeyCollection("items", _derive)
        data = {"items": {"1": {"id": "1"}, "2": {}}}

        mapping = op.key_map(data)

        assert mapping == {"items": {"1": _derive("1", ()), "2": _derive("2", ())}}
        assert data == {"items": {"1": {"id": "1"}, "2": {}}}
        assert set(op.forward(data)["items"]) == set(mapping["items"].values())

    def test_key_map_per_collection(self):
        """Test wildcard paths give one map per concrete collection."""
        op = RekeyCollection("groups.*.items", _derive)

        mapping = op.key_map({"groups": {"a": {"items": {"1": {}}}, "b": {"items": {"1": {}}}}})

        assert mapping == {
            "groups.a.items": {"1": _derive("1", ("a",))},
            "groups.b.items": {"1": _derive("1", ("b",))},
        }

    def test_rekey_collision(self):
        """Test colliding derived keys fail the migration."""
        op = RekeyCollection("items", lambda old, captured: "same", is_new_key=lambda k: False)

        with pytest.raises(MigrationFailedError) as exc_info:
            op.forward({"items": {"1": {}, "2": {}}})

        assert exc_info.value.entity == "items.2"

    def test_rekey_non_object_entry(self):
        """Test scalar entries fail the migration."""
        with pytest.raises(MigrationFailedError):
            RekeyCollection("items", _derive).forward({"items": {"1": "x"}})

    def test_remap_references(self):
        """Test references follow the same derivation."""
        op = RemapReferences("links", ("src", "dst"), _derive)

        result = op.forward({"links": {"l": {"src": 1, "dst": "2", "note": None}}})

        assert result["links"]["l"]["src"] == _derive("1", ())
        assert result["links"]["l"]["dst"] == _derive("2", ())

    def test_remap_references_bad_type(self):
        """Test a non-id reference fails the migration."""
        with pytest.raises(MigrationFailedError):
            RemapReferences("links", ("src",), _derive).forward({"links": {"l": {"src": [1]}}})


class TestMigrationChecks:
    """Tests for post-condition checks."""

    def test_version_is(self):
        """Test the version stamp check."""
        check = VersionIs(SaveVersion(0, 2, 0))

        check.check({"version": "0.2.0"})
        with pytest.raises(ValidationFailedError):
            check.check({"version": "0.1.0"})

    def test_field_absent_names_entity(self):
        """Test FieldAbsent reports the failing entry."""
        check = FieldAbsent("engine.factories.*.raw_inputs", "quantity_per_min")
        data = {"engine": {"factories": {"3": {"raw_inputs": {"42": {"quantity_per_min": 1}}}}}}

        with pytest.raises(ValidationFailedError) as exc_info:
            check.check(data)

        assert exc_info.value.entity == "engine.factories.3.raw_inputs.42"

    def test_field_present(self):
        """Test FieldPresent reports the failing entry."""
        check = FieldPresent("raw_inputs", "rate_per_minute")

        check.check({"raw_inputs": {"1": {"rate_per_minute": 1}}})
        with pytest.raises(ValidationFailedError) as exc_info:
            check.check({"raw_inputs": {"1": {"rate_per_minute": 1}, "2": {}}})

        assert exc_info.value.entity == "raw_inputs.2"

    def test_root_field_present(self):
        """Test RootFieldPresent on the document root."""
        RootFieldPresent("", "game_version").check({"game_version": None})
        with pytest.raises(ValidationFailedError):
            RootFieldPresent("", "game_version").check({})

    def test_keys_are_uuids(self):
        """Test KeysAreUuids rejects legacy keys."""
        good = str(uuid.uuid4())

        KeysAreUuids("items").check({"items": {good: {}}})
        with pytest.raises(ValidationFailedError) as exc_info:
            KeysAreUuids("items").check({"items": {good: {}, "42": {}}})

        assert exc_info.value.entity == "items.42"

    def test_self_id_matches_key(self):
        """Test SelfIdMatchesKey compares embedded ids."""
        key = str(uuid.uuid4())

        SelfIdMatchesKey("items").check({"items": {key: {"id": key}}})
        with pytest.raises(ValidationFailedError):
            SelfIdMatchesKey("items").check({"items": {key: {"id": "42"}}})

    def test_references_exist(self):
        """Test dangling references are reported."""
        check = ReferencesExist("links", ("src",), "nodes")

        check.check({"nodes": {"a": {}}, "links": {"l": {"src": "a"}}})
        with pytest.raises(ValidationFailedError) as exc_info:
            check.check({"nodes": {"a": {}}, "links": {"l": {"src": "b"}}})

        assert exc_info.value.entity == "links.l"

    def test_function_check(self):
        """Test FunctionCheck turns a message into a failure."""
        FunctionCheck(lambda doc: None).check({})
        FunctionCheck(lambda doc: True).check({})
        with pytest.raises(ValidationFailedError) as exc_info:
            FunctionCheck(lambda doc: "bad shape", entity="root").check({})

        assert exc_info.value.message == "bad shape"
        assert exc_info.value.entity == "root"


class TestMigrationUnit:
    """Tests for MigrationUnit."""

    def test_unit_creation(self):
        """Test creating a unit from version strings."""
        unit = MigrationUnit(
            from_version="0.1.0",
            to_version="0.2.0",
            transform=lambda doc: doc,
            validate=lambda doc: None,
            description="Test migration",
        )

        assert unit.from_version == SaveVersion(0, 1, 0)
        assert unit.to_version == SaveVersion(0, 2, 0)
        assert unit.edge == (SaveVersion(0, 1, 0), SaveVersion(0, 2, 0))
        assert "0.1.0 -> 0.2.0" in unit.label()

    def test_unit_is_immutable(self):
        """Test units cannot be changed after construction."""
        unit = MigrationUnit.from_operations("0.1.0", "0.2.0", "Noop")

        with pytest.raises(AttributeError):
            unit.description = "changed"

    def test_from_operations_stamps_version(self):
        """Test the additive shape: only the stamp changes."""
        unit = MigrationUnit.from_operations("0.1.0", "0.2.0", "Bump")

        result = unit.transform({"version": "0.1.0", "data": 1})

        assert result == {"version": "0.2.0", "data": 1}
        unit.validate(result)

    def test_from_operations_validate_rejects_wrong_stamp(self):
        """Test the version check runs first."""
        unit = MigrationUnit.from_operations("0.1.0", "0.2.0", "Bump")

        with pytest.raises(ValidationFailedError):
            unit.validate({"version": "0.1.0"})

    def test_from_operations_pipeline(self):
        """Test operations run in order before the stamp."""
        unit = MigrationUnit.from_operations(
            "0.1.0",
            "0.2.0",
            "Multiple changes",
            operations=[
                AddField("new_field", default="default"),
                RenameField("old_name", "new_name"),
                RemoveField("deprecated"),
            ],
            checks=[RootFieldPresent("", "new_name")],
        )
        data = {"version": "0.1.0", "old_name": "value", "deprecated": "old"}

        result = unit.transform(data)

        assert result == {"version": "0.2.0", "new_field": "default", "new_name": "value"}
        assert data["old_name"] == "value"
        unit.validate(result)

    def test_stamp_version(self):
        """Test StampVersion rewrites the stamp only."""
        assert StampVersion(SaveVersion(1, 0, 0)).forward({"version": "0.3.0", "a": 1}) == {
            "version": "1.0.0",
            "a": 1,
        }
