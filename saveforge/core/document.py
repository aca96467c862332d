"""Generic JSON document helpers.

Migrations never see domain types. They operate on plain JSON values
(dicts, lists, strings, numbers, booleans and None) and use these helpers
to check a node's shape before rewriting it.
"""

import copy
import json
from typing import Any, Iterator, Union

from saveforge.core.exceptions import DocumentShapeError, ParseError

Document = Union[dict, list, str, int, float, bool, None]

VERSION_KEY = "version"
CREATED_AT_KEY = "created_at"
LAST_MODIFIED_KEY = "last_modified"


def parse_document(raw: bytes | str) -> dict:
    """Parse raw save bytes into a document.

    Args:
        raw: UTF-8 encoded JSON bytes, or an already decoded string

    Returns:
        The top-level JSON object

    Raises:
        ParseError: If the input is not UTF-8, not JSON, or not an object
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Save file is not valid UTF-8: {e}", original_error=e)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ParseError(f"Save file is not valid JSON: {e}", original_error=e)
    except RecursionError as e:
        raise ParseError("Save file is nested too deeply to parse", original_error=e)

    if not isinstance(data, dict):
        raise ParseError(
            f"Save file must contain a JSON object, got {type_name(data)}"
        )
    return data


def dump_document(document: Document, indent: int | None = 2) -> bytes:
    """Serialize a document to UTF-8 JSON bytes, preserving key order."""
    return json.dumps(document, indent=indent, ensure_ascii=False).encode("utf-8")


def copy_document(document: Document) -> Document:
    """Deep copy a document so a migration can never alias its input.

    Raises:
        DocumentShapeError: If the document is nested too deeply to copy
    """
    try:
        return copy.deepcopy(document)
    except RecursionError:
        raise DocumentShapeError("Document is nested too deeply to copy")


def type_name(value: Any) -> str:
    """JSON type name of a value, for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def expect_object(value: Any, path: str) -> dict:
    if not isinstance(value, dict):
        raise DocumentShapeError(
            f"Expected object at '{path}', got {type_name(value)}", path=path
        )
    return value


def expect_array(value: Any, path: str) -> list:
    if not isinstance(value, list):
        raise DocumentShapeError(
            f"Expected array at '{path}', got {type_name(value)}", path=path
        )
    return value


def expect_str(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise DocumentShapeError(
            f"Expected string at '{path}', got {type_name(value)}", path=path
        )
    return value


def get_path(document: Document, path: str, default: Any = ...) -> Any:
    """Read a nested value by dotted path.

    Args:
        document: The document to read
        path: Dotted path such as "engine.factories"
        default: Returned when a key is missing. When omitted, a missing
            key raises DocumentShapeError.

    Returns:
        The value found at the path
    """
    node = document
    walked = []
    for key in path.split("."):
        where = ".".join(walked) or "<root>"
        node = expect_object(node, where)
        walked.append(key)
        if key not in node:
            if default is ...:
                raise DocumentShapeError(
                    f"Missing key '{key}' at '{where}'", path=".".join(walked)
                )
            return default
        node = node[key]
    return node


def match_path(
    document: Document, path: str
) -> Iterator[tuple[str, tuple[str, ...], Any]]:
    """Find every node matching a dotted path.

    A ``*`` segment matches every key of an object. Missing keys are
    skipped, so a path that matches nothing yields nothing.

    Example:
        >>> doc = {"engine": {"factories": {"1": {"raw_inputs": {}}}}}
        >>> [(p, c) for p, c, _ in match_path(doc, "engine.factories.*.raw_inputs")]
        [('engine.factories.1.raw_inputs', ('1',))]

    Yields:
        (concrete dotted path, keys captured by wildcards, node)

    Raises:
        DocumentShapeError: If an intermediate node is not an object
    """
    if not path:
        yield "", (), document
        return

    def _walk(node, parts, walked, captured):
        if not parts:
            yield ".".join(walked), tuple(captured), node
            return
        head, rest = parts[0], parts[1:]
        obj = expect_object(node, ".".join(walked) or "<root>")
        if head == "*":
            for key, child in obj.items():
                yield from _walk(child, rest, walked + [key], captured + [key])
        elif head in obj:
            yield from _walk(obj[head], rest, walked + [head], captured)

    yield from _walk(document, path.split("."), [], [])


def read_version(document: dict) -> Any:
    """Return the raw `version` field, or None when absent."""
    return document.get(VERSION_KEY)
