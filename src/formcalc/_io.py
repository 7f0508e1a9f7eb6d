"""Reading form schemas, values and change events; writing computed values."""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w
from pydantic import ValidationError

from ._schema import FieldChange, FormSchema

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._eval_engine import PassResult

logger = logging.getLogger(__name__)


class SchemaLoadError(Exception):
    """A schema, values or events file could not be read or validated."""


def read_document(path: Path | str) -> Any:
    """Parse a JSON or TOML file, chosen by extension.

    Raises:
        SchemaLoadError: If the file is missing, has an unknown extension or
            does not parse.

    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".json", ".toml"):
        msg = f"Unsupported file type '{suffix}' for {path} (expected .json or .toml)"
        raise SchemaLoadError(msg)
    try:
        with path.open("rb") as f:
            if suffix == ".toml":
                return tomllib.load(f)
            return json.load(f)
    except FileNotFoundError as e:
        msg = f"File not found: {path}"
        raise SchemaLoadError(msg) from e
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Cannot parse {path}: {e}"
        raise SchemaLoadError(msg) from e


def load_schema(path: Path | str) -> FormSchema:
    """Load and validate a form schema from a JSON or TOML file.

    The document is either ``{"fields": [...]}`` or a bare list of fields.

    Raises:
        SchemaLoadError: If the file cannot be read or fails validation.

    """
    data = read_document(path)
    if isinstance(data, list):
        data = {"fields": data}
    try:
        schema = FormSchema.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid form schema in {path}:\n{e}"
        raise SchemaLoadError(msg) from e
    logger.debug("Loaded schema with %d field(s) from %s", len(schema.fields), path)
    return schema


def _flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested tables into dotted keys (``result.total``)."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{full_key}."))
        else:
            flat[full_key] = value
    return flat


def values_from_document(data: Any) -> dict[str, Any]:
    """Convert a parsed values document to a flat ``{field_id: value}`` mapping.

    Values may sit at the top level or under a ``values`` table. Nested
    tables become dotted field ids, so TOML ``result.total = 3`` and JSON
    ``{"result.total": 3}`` are the same thing.

    Raises:
        SchemaLoadError: If the document is not a table.

    """
    if not isinstance(data, dict):
        msg = "Values document must be a table of field ids to values"
        raise SchemaLoadError(msg)
    if isinstance(data.get("values"), dict):
        data = data["values"]
    return _flatten(data)


def load_values(path: Path | str) -> dict[str, Any]:
    """Load raw field values from a JSON or TOML file."""
    values = values_from_document(read_document(path))
    logger.debug("Loaded %d value(s) from %s", len(values), path)
    return values


def load_changes(path: Path | str) -> list[FieldChange]:
    """Load timestamped change events, sorted by time.

    The document is a list of events, or a table with a ``changes`` list
    (``[[changes]]`` in TOML). Events at the same time keep file order.

    Raises:
        SchemaLoadError: If the file cannot be read or an event is invalid.

    """
    data = read_document(path)
    if isinstance(data, dict):
        data = data.get("changes", [])
    if not isinstance(data, list):
        msg = f"Expected a list of changes in {path}"
        raise SchemaLoadError(msg)
    try:
        changes = [FieldChange.model_validate(item) for item in data]
    except ValidationError as e:
        msg = f"Invalid change event in {path}:\n{e}"
        raise SchemaLoadError(msg) from e
    return sorted(changes, key=lambda change: change.at_ms)


def results_to_dict(result: PassResult) -> dict[str, Any]:
    """Convert a pass result to a dictionary suitable for TOML export.

    Empty values are left out, since TOML has no null. Fields that fell back
    after an error are listed under ``errors`` with their message.

    Returns:
        ``{"values": {field_id: value}, "errors": {field_id: message}}``,
        without ``errors`` when every field succeeded.

    """
    data: dict[str, Any] = {
        "values": {field_id: value for field_id, value in result.values.items() if value is not None},
    }
    errors = {r.field_id: r.error.message for r in result.results if r.error is not None}
    if errors:
        data["errors"] = errors
    return data


def export_values_to_toml(result: PassResult, output_path: Path | str) -> None:
    """Write the values of a pass to a TOML file."""
    output_path = Path(output_path)
    with output_path.open("wb") as f:
        tomli_w.dump(results_to_dict(result), f)

    logger.debug("Exported values to %s", output_path)
