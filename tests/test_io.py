"""Tests for reading schemas, values and change events, and exporting results."""

import json
import math
import tomllib
from pathlib import Path

import pytest

from formcalc._eval_engine import EvaluationError, EvaluationResult, PassResult
from formcalc._expr import ErrorKind
from formcalc._io import (
    SchemaLoadError,
    export_values_to_toml,
    load_changes,
    load_schema,
    load_values,
    results_to_dict,
    values_from_document,
)


class TestLoadSchema:
    """Tests for load_schema()."""

    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "form.json"
        path.write_text(
            json.dumps(
                {
                    "fields": [
                        {"id": "x"},
                        {"id": "y", "expression": {"expression": "x * 2", "dependencies": ["x"], "debounceMs": 5}},
                    ],
                },
            ),
        )
        schema = load_schema(path)
        assert schema.field_ids == ("x", "y")
        assert schema.get_field("y").expression.debounce_ms == 5  # type: ignore[union-attr]

    def test_json_bare_list(self, tmp_path: Path) -> None:
        path = tmp_path / "form.json"
        path.write_text('[{"id": "a"}, {"id": "b"}]')
        assert load_schema(path).field_ids == ("a", "b")

    def test_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "form.toml"
        path.write_text(
            """
[[fields]]
id = "x"

[[fields]]
id = "y"
expression = { expression = "x + 1", dependencies = ["x"] }
""",
        )
        schema = load_schema(path)
        assert schema.get_field("y").is_derived

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SchemaLoadError, match="File not found"):
            load_schema(tmp_path / "missing.json")

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "form.yaml"
        path.write_text("fields: []")
        with pytest.raises(SchemaLoadError, match="Unsupported file type"):
            load_schema(path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "form.json"
        path.write_text("{not json")
        with pytest.raises(SchemaLoadError, match="Cannot parse"):
            load_schema(path)

    def test_validation_error(self, tmp_path: Path) -> None:
        path = tmp_path / "form.json"
        path.write_text('{"fields": [{"id": "a"}, {"id": "a"}]}')
        with pytest.raises(SchemaLoadError, match="Duplicate field ids"):
            load_schema(path)


class TestLoadValues:
    """Tests for load_values() and values_from_document()."""

    def test_flat_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "values.toml"
        path.write_text('weight = 70\nheight = "175"\n')
        assert load_values(path) == {"weight": 70, "height": "175"}

    def test_values_table_and_nested_ids(self, tmp_path: Path) -> None:
        path = tmp_path / "values.toml"
        path.write_text("[values]\nx = 1\n\n[values.result]\ntotal = 3\n")
        assert load_values(path) == {"x": 1, "result.total": 3}

    def test_json_dotted_keys(self) -> None:
        assert values_from_document({"result.total": 3}) == {"result.total": 3}

    def test_not_a_table(self) -> None:
        with pytest.raises(SchemaLoadError, match="table"):
            values_from_document([1, 2])


class TestLoadChanges:
    def test_sorted_by_time(self, tmp_path: Path) -> None:
        path = tmp_path / "events.toml"
        path.write_text(
            """
[[changes]]
fieldId = "x"
newValue = 2
atMs = 100

[[changes]]
fieldId = "x"
newValue = 1
atMs = 0
""",
        )
        changes = load_changes(path)
        assert [(c.at_ms, c.new_value) for c in changes] == [(0, 1), (100, 2)]

    def test_json_list(self, tmp_path: Path) -> None:
        path = tmp_path / "events.json"
        path.write_text('[{"fieldId": "x", "newValue": "a"}]')
        [change] = load_changes(path)
        assert change.field_id == "x"
        assert change.at_ms == 0

    def test_invalid_event(self, tmp_path: Path) -> None:
        path = tmp_path / "events.json"
        path.write_text('[{"newValue": 1}]')
        with pytest.raises(SchemaLoadError, match="Invalid change event"):
            load_changes(path)


class TestExport:
    """Tests for results_to_dict() and export_values_to_toml()."""

    @pytest.fixture
    def result(self) -> PassResult:
        failed = EvaluationResult(
            field_id="bad",
            value=None,
            error=EvaluationError(kind=ErrorKind.TYPE, message="Enter a number"),
            fallback=True,
        )
        return PassResult(
            values={"x": 3, "y": 6, "ratio": math.nan, "bad": None},
            results=[EvaluationResult(field_id="y", value=6), failed],
        )

    def test_results_to_dict(self, result: PassResult) -> None:
        data = results_to_dict(result)
        assert data["values"]["y"] == 6
        assert "bad" not in data["values"]
        assert data["errors"] == {"bad": "Enter a number"}

    def test_no_errors_section_on_success(self) -> None:
        assert results_to_dict(PassResult(values={"x": 1})) == {"values": {"x": 1}}

    def test_export_round_trip(self, result: PassResult, tmp_path: Path) -> None:
        path = tmp_path / "out.toml"
        export_values_to_toml(result, path)
        with path.open("rb") as f:
            data = tomllib.load(f)
        assert data["values"]["x"] == 3
        assert math.isnan(data["values"]["ratio"])
        assert data["errors"]["bad"] == "Enter a number"
