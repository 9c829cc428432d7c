"""Tests for the public file-level API."""

import json
from pathlib import Path
from typing import Any

import pytest

from erdedupe import ParseError, read_pairs_jsonl, read_records_jsonl, resolve, write_jsonl
from erdedupe.api import write_outputs
from erdedupe.audit.logger import AuditLogger
from erdedupe.errors import ConfigurationError
from erdedupe.models import Record


def _read_jsonl(path: Path) -> list[dict[str, Any]]:
    with path.open() as f:
        return [json.loads(line) for line in f if line.strip()]


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_read_records_jsonl(sample_files: tuple[Path, Path, Path]) -> None:
    """Test records are read in file order with typed attributes."""
    records_path, _, _ = sample_files

    records = read_records_jsonl(records_path)

    assert [r.rid for r in records] == ["r1", "r2", "r3", "r4"]
    assert records[0].get("city") == "Boston"
    assert records[3].get("updated") is None


@pytest.mark.unit
def test_read_records_skips_blank_lines(tmp_path: Path) -> None:
    """Test blank lines are ignored."""
    path = tmp_path / "records.jsonl"
    path.write_text('{"rid": "a"}\n\n{"rid": "b", "attributes": {"x": 1}}\n')

    records = read_records_jsonl(path)

    assert records == [Record("a"), Record("b", {"x": 1})]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("content", "line"),
    [
        ('{"rid": "a"}\n{broken\n', 2),
        ('["a", "b"]\n', 1),
        ('{"rid": "a"}\n{"attributes": {}}\n', 2),
    ],
)
def test_read_records_errors_name_the_line(tmp_path: Path, content: str, line: int) -> None:
    """Test malformed lines raise ParseError with file and line."""
    path = tmp_path / "records.jsonl"
    path.write_text(content)

    with pytest.raises(ParseError) as exc_info:
        read_records_jsonl(path)

    assert exc_info.value.line == line
    assert exc_info.value.file == str(path)


@pytest.mark.unit
def test_read_pairs_accepts_objects_and_arrays(tmp_path: Path) -> None:
    """Test both pair formats."""
    path = tmp_path / "pairs.jsonl"
    path.write_text('{"rid_a": "a", "rid_b": "b"}\n["c", "d"]\n')

    assert read_pairs_jsonl(path) == [("a", "b"), ("c", "d")]


@pytest.mark.unit
def test_read_pairs_rejects_other_shapes(tmp_path: Path) -> None:
    """Test a three-element array is not a pair."""
    path = tmp_path / "pairs.jsonl"
    path.write_text('["a", "b", "c"]\n')

    with pytest.raises(ParseError, match="pairs.jsonl:1"):
        read_pairs_jsonl(path)


@pytest.mark.unit
def test_read_missing_file(tmp_path: Path) -> None:
    """Test a missing input is FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        read_records_jsonl(tmp_path / "absent.jsonl")


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_write_jsonl_sorted_keys_and_to_dict(tmp_path: Path) -> None:
    """Test objects are converted and keys sorted."""
    path = tmp_path / "out.jsonl"

    count = write_jsonl([Record("a", {"z": 1, "b": "é"}), {"y": 2, "a": 1}], path)

    assert count == 2
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == '{"attributes": {"b": "é", "z": 1}, "rid": "a"}'
    assert lines[1] == '{"a": 1, "y": 2}'


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_resolve_from_paths(sample_files: tuple[Path, Path, Path]) -> None:
    """Test resolve accepts file paths for every input."""
    records_path, pairs_path, config_path = sample_files

    result = resolve(records_path, pairs_path, config_path)

    assert result.summary["records_in"] == 4
    assert result.summary["records_out"] == 3
    merged = [r for r in result.canonical_records if len(r.member_rids) > 1]
    assert [r.member_rids for r in merged] == [("r1", "r2")]


@pytest.mark.unit
def test_resolve_from_objects(
    sample_records: list[Record],
    sample_pairs: list[tuple[str, str]],
    sample_config: dict[str, Any],
) -> None:
    """Test resolve accepts in-memory records, pairs and config data."""
    result = resolve(sample_records, sample_pairs, sample_config)

    assert len(result.clustering.clusters) == 3
    assert result.warning_counts == {"skipped_pair": 1}


@pytest.mark.unit
def test_resolve_rejects_invalid_config(
    sample_records: list[Record],
    sample_pairs: list[tuple[str, str]],
) -> None:
    """Test configuration errors surface before any work is done."""
    with pytest.raises(ConfigurationError):
        resolve(sample_records, sample_pairs, {"classifier": {"comparisons": []}})


@pytest.mark.unit
def test_write_outputs(sample_files: tuple[Path, Path, Path], tmp_path: Path) -> None:
    """Test every artifact is written and logged with its hash."""
    records_path, pairs_path, config_path = sample_files
    result = resolve(records_path, pairs_path, config_path)
    out = tmp_path / "out"

    with AuditLogger(run_id="test", log_path=out / "events.jsonl") as logger:
        files = write_outputs(result, out, logger=logger)

    assert set(files) == {"verdicts", "clusters", "canonical_records", "warnings", "summary"}
    assert len(_read_jsonl(out / "verdicts.jsonl")) == 4
    assert len(_read_jsonl(out / "clusters.jsonl")) == 3
    assert len(_read_jsonl(out / "canonical_records.jsonl")) == 3
    assert _read_jsonl(out / "warnings.jsonl")[0]["kind"] == "skipped_pair"
    assert json.loads((out / "summary.json").read_text())["records_out"] == 3

    artifacts = [e for e in _read_jsonl(out / "events.jsonl") if e["event"] == "artifact_written"]
    assert len(artifacts) == 5
    assert all(e["data"]["sha256"].startswith("sha256:") for e in artifacts)
