"""Built-in migration operations and checks for SaveForge.

Operations rewrite a document, checks validate the result. Paths are
dotted and may use ``*`` to match every key of an object, e.g.
``"engine.factories.*.raw_inputs"``.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from saveforge.core.document import (
    copy_document,
    expect_object,
    match_path,
    type_name,
)
from saveforge.core.exceptions import (
    DocumentShapeError,
    MigrationFailedError,
    ValidationFailedError,
)
from saveforge.migrations.base import MigrationCheck, MigrationOperation

KeyDeriver = Callable[[str, tuple[str, ...]], str]


def is_uuid(value: Any) -> bool:
    """Check a value is a canonical UUID string."""
    if not isinstance(value, str):
        return False
    try:
        return str(uuid.UUID(value)) == value
    except ValueError:
        return False


def _set_at(document: Any, concrete_path: str, value: Any) -> Any:
    """Return `document` with the node at `concrete_path` replaced."""
    if not concrete_path:
        return value
    node = document
    keys = concrete_path.split(".")
    for key in keys[:-1]:
        node = node[key]
    node[keys[-1]] = value
    return document


@dataclass
class AddField(MigrationOperation):
    """Add a new field with a default value.

    Existing values are kept, so applying the operation twice is harmless.

    Example:
        AddField("power_generators", default_factory=dict)
    """

    field_name: str
    default: Any = None
    default_factory: Callable[[], Any] | None = None

    def forward(self, data: dict) -> dict:
        result = copy_document(expect_object(data, "<entry>"))
        if self.field_name not in result:
            if self.default_factory:
                result[self.field_name] = self.default_factory()
            else:
                result[self.field_name] = copy_document(self.default)
        return result


@dataclass
class RemoveField(MigrationOperation):
    """Remove a field.

    Example:
        RemoveField("deprecated_field")
    """

    field_name: str

    def forward(self, data: dict) -> dict:
        result = copy_document(expect_object(data, "<entry>"))
        result.pop(self.field_name, None)
        return result


@dataclass
class RenameField(MigrationOperation):
    """Rename a field.

    An entry that already uses the new name is left untouched. An entry
    carrying both names is ambiguous and fails the migration.

    Example:
        RenameField("quantity_per_min", "rate_per_minute")
    """

    old_name: str
    new_name: str

    def forward(self, data: dict) -> dict:
        result = copy_document(expect_object(data, "<entry>"))
        if self.old_name in result:
            if self.new_name in result:
                raise MigrationFailedError(
                    f"Cannot rename '{self.old_name}' to '{self.new_name}': "
                    "both fields are present"
                )
            # Keep key order: the renamed key stays where the old one was
            result = {
                (self.new_name if key == self.old_name else key): value
                for key, value in result.items()
            }
        return result


@dataclass
class TransformField(MigrationOperation):
    """Transform a field value using a custom function.

    Example:
        TransformField("rate", func=float)
    """

    field_name: str
    func: Callable[[Any], Any]

    def forward(self, data: dict) -> dict:
        result = copy_document(expect_object(data, "<entry>"))
        if self.field_name in result:
            try:
                result[self.field_name] = self.func(result[self.field_name])
            except (TypeError, ValueError) as e:
                raise MigrationFailedError(
                    f"Cannot transform field '{self.field_name}': {e}",
                    original_error=e,
                )
        return result


@dataclass
class FunctionOperation(MigrationOperation):
    """Wrap a plain function as an operation."""

    func: Callable[[dict], dict]

    def forward(self, data: dict) -> dict:
        return self.func(copy_document(data))


@dataclass
class AtPath(MigrationOperation):
    """Apply an operation to every node matching a path.

    Example:
        AtPath("engine.factories.*", AddField("description"))
    """

    path: str
    operation: MigrationOperation

    def forward(self, data: dict) -> dict:
        result = copy_document(data)
        for concrete, _, node in list(match_path(result, self.path)):
            try:
                updated = self.operation.forward(node)
            except MigrationFailedError as e:
                if e.entity is None:
                    e.entity = concrete
                raise
            except DocumentShapeError as e:
                raise MigrationFailedError(
                    e.message, entity=concrete, original_error=e
                )
            result = _set_at(result, concrete, updated)
        return result


@dataclass
class ForEachEntry(MigrationOperation):
    """Apply an operation to every entry of keyed collections.

    Each collection found at `path` must be an object whose values are
    objects. Paths that match nothing are skipped.

    Example:
        ForEachEntry(
            "engine.factories.*.raw_inputs",
            RenameField("quantity_per_min", "rate_per_minute"),
        )
    """

    path: str
    operation: MigrationOperation

    def forward(self, data: dict) -> dict:
        entries = self.path + ".*" if self.path else "*"
        return AtPath(entries, self.operation).forward(data)


@dataclass
class RekeyCollection(MigrationOperation):
    """Rebuild keyed collections with newly derived keys.

    The derivation must be deterministic so that migrating the same save
    twice produces the same keys. Keys that already satisfy
    `is_new_key` are kept. The embedded self id field of each entry is
    updated to match its new key.

    Args:
        path: Path of the collections to rekey (may contain ``*``)
        derive: Function of (old key, keys captured by wildcards) -> new key
        id_field: Name of the embedded self id field
        is_new_key: Predicate recognizing keys already in the new key space
    """

    path: str
    derive: KeyDeriver
    id_field: str = "id"
    is_new_key: Callable[[str], bool] = is_uuid

    def _rekey(self, concrete: str, captured: tuple[str, ...], node: Any) -> dict[str, str]:
        """Old key -> new key for one collection, in entry order."""
        mapping: dict[str, str] = {}
        taken = set()
        for old_key, entry in expect_object(node, concrete).items():
            entity = f"{concrete}.{old_key}"
            if not isinstance(entry, dict):
                raise MigrationFailedError(
                    f"Expected object entry, got {type_name(entry)}",
                    entity=entity,
                )
            if self.is_new_key(old_key):
                new_key = old_key
            else:
                new_key = self.derive(old_key, captured)
            if new_key in taken:
                raise MigrationFailedError(
                    f"Derived key '{new_key}' collides with another entry",
                    entity=entity,
                )
            taken.add(new_key)
            mapping[old_key] = new_key
        return mapping

    def key_map(self, data: dict) -> dict[str, dict[str, str]]:
        """Compute the rekeying without applying it.

        Returns:
            Concrete collection path -> {old key: new key}
        """
        return {
            concrete: self._rekey(concrete, captured, node)
            for concrete, captured, node in match_path(data, self.path)
        }

    def forward(self, data: dict) -> dict:
        result = copy_document(data)
        for concrete, captured, node in list(match_path(result, self.path)):
            rebuilt: dict = {}
            for old_key, new_key in self._rekey(concrete, captured, node).items():
                updated = dict(node[old_key])
                updated[self.id_field] = new_key
                rebuilt[new_key] = updated
            result = _set_at(result, concrete, rebuilt)
        return result


@dataclass
class RemapReferences(MigrationOperation):
    """Rewrite reference fields with the same derivation used for rekeying.

    Args:
        path: Path of the collections holding the references
        fields: Names of the reference fields in each entry
        derive: Same function given to the matching RekeyCollection
        is_new_key: Predicate recognizing references already rewritten
    """

    path: str
    fields: Sequence[str]
    derive: KeyDeriver
    is_new_key: Callable[[str], bool] = is_uuid

    def forward(self, data: dict) -> dict:
        result = copy_document(data)
        for concrete, _, node in list(match_path(result, self.path)):
            for key, entry in expect_object(node, concrete).items():
                entity = f"{concrete}.{key}"
                if not isinstance(entry, dict):
                    raise MigrationFailedError(
                        f"Expected object entry, got {type_name(entry)}",
                        entity=entity,
                    )
                for name in self.fields:
                    if name not in entry or entry[name] is None:
                        continue
                    value = entry[name]
                    if isinstance(value, bool) or not isinstance(value, (str, int)):
                        raise MigrationFailedError(
                            f"Reference '{name}' must be an id, got {type_name(value)}",
                            entity=entity,
                        )
                    value = str(value)
                    if not self.is_new_key(value):
                        value = self.derive(value, ())
                    entry[name] = value
        return result


def _entries(data: dict, path: str):
    """Yield (entity path, entry) for every entry of collections at `path`."""
    for concrete, _, node in match_path(data, path):
        if not isinstance(node, dict):
            raise ValidationFailedError(
                f"Expected object at '{concrete}', got {type_name(node)}",
                entity=concrete,
            )
        for key, entry in node.items():
            yield f"{concrete}.{key}", key, entry


@dataclass(frozen=True)
class FieldAbsent(MigrationCheck):
    """Check no entry of the collections at `path` has `field_name`."""

    path: str
    field_name: str

    def check(self, data: dict) -> None:
        for entity, _, entry in _entries(data, self.path):
            if isinstance(entry, dict) and self.field_name in entry:
                raise ValidationFailedError(
                    f"Field '{self.field_name}' should have been removed",
                    entity=entity,
                )


@dataclass(frozen=True)
class FieldPresent(MigrationCheck):
    """Check every entry of the collections at `path` has `field_name`."""

    path: str
    field_name: str

    def check(self, data: dict) -> None:
        for entity, _, entry in _entries(data, self.path):
            if not isinstance(entry, dict) or self.field_name not in entry:
                raise ValidationFailedError(
                    f"Field '{self.field_name}' is missing", entity=entity
                )


@dataclass(frozen=True)
class RootFieldPresent(MigrationCheck):
    """Check a field exists on the object found at `path`."""

    path: str
    field_name: str

    def check(self, data: dict) -> None:
        for concrete, _, node in match_path(data, self.path):
            if not isinstance(node, dict) or self.field_name not in node:
                raise ValidationFailedError(
                    f"Field '{self.field_name}' is missing",
                    entity=concrete or "<root>",
                )


@dataclass(frozen=True)
class KeysAreUuids(MigrationCheck):
    """Check every key of the collections at `path` is a UUID string."""

    path: str

    def check(self, data: dict) -> None:
        for entity, key, _ in _entries(data, self.path):
            if not is_uuid(key):
                raise ValidationFailedError(
                    f"Key '{key}' is not a UUID", entity=entity
                )


@dataclass(frozen=True)
class SelfIdMatchesKey(MigrationCheck):
    """Check each entry's embedded id equals its key."""

    path: str
    id_field: str = "id"

    def check(self, data: dict) -> None:
        for entity, key, entry in _entries(data, self.path):
            found = entry.get(self.id_field) if isinstance(entry, dict) else None
            if found != key:
                raise ValidationFailedError(
                    f"Embedded '{self.id_field}' {found!r} does not match key '{key}'",
                    entity=entity,
                )


@dataclass(frozen=True)
class ReferencesExist(MigrationCheck):
    """Check reference fields point at keys of a target collection."""

    path: str
    fields: tuple[str, ...]
    target_path: str

    def check(self, data: dict) -> None:
        targets = set()
        for _, _, node in match_path(data, self.target_path):
            if isinstance(node, dict):
                targets.update(node.keys())
        for entity, _, entry in _entries(data, self.path):
            if not isinstance(entry, dict):
                continue
            for name in self.fields:
                value = entry.get(name)
                if value is not None and value not in targets:
                    raise ValidationFailedError(
                        f"Reference '{name}' points at unknown id {value!r}",
                        entity=entity,
                    )


@dataclass(frozen=True)
class FunctionCheck(MigrationCheck):
    """Wrap a plain function as a check.

    The function returns None (or True) on success, or a message string
    describing the failure.
    """

    func: Callable[[dict], Any]
    entity: str | None = field(default=None)

    def check(self, data: dict) -> None:
        outcome = self.func(data)
        if outcome is None or outcome is True:
            return
        message = outcome if isinstance(outcome, str) else "Check failed"
        raise ValidationFailedError(message, entity=self.entity)
