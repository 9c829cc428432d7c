"""Pytest configuration and fixtures for test suite."""

import copy
import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Add src directory to path for imports
SRC_PATH = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_PATH))

from erdedupe.classifier import Classification, Verdict  # noqa: E402
from erdedupe.models import Record  # noqa: E402


@pytest.fixture
def make_record() -> Callable[..., Record]:
    """Factory for records: ``make_record("r1", name="Ann", email=None)``."""

    def _factory(rid: str = "r1", **attributes: Any) -> Record:
        return Record(rid=rid, attributes=attributes)

    return _factory


@pytest.fixture
def make_verdict() -> Callable[..., Verdict]:
    """Factory for verdicts with a classification shorthand.

    ``kind`` is one of "dup", "non", "unk"; confidence defaults to 0.9.
    """
    kinds = {
        "dup": Classification.DUPLICATE,
        "non": Classification.NON_DUPLICATE,
        "unk": Classification.UNKNOWN,
    }

    def _factory(
        rid_a: str,
        rid_b: str,
        kind: str = "dup",
        confidence: float = 0.9,
    ) -> Verdict:
        return Verdict(
            rid_a=rid_a,
            rid_b=rid_b,
            classification=kinds[kind],
            confidence=confidence,
        )

    return _factory


# ---------------------------------------------------------------------------
# Sample dataset
# ---------------------------------------------------------------------------

SAMPLE_RECORDS: list[dict[str, Any]] = [
    {
        "rid": "r1",
        "attributes": {
            "name": "Jonathan Smith",
            "email": "jon@example.com",
            "city": "Boston",
            "updated": "2023-01-01",
        },
    },
    {
        "rid": "r2",
        "attributes": {
            "name": "Jonathon Smith",
            "email": "jon@example.com",
            "city": "Boston MA",
            "updated": "2024-03-01",
        },
    },
    {
        "rid": "r3",
        "attributes": {
            "name": "Maria Garcia",
            "email": "maria@example.org",
            "city": "Austin",
            "updated": "2022-05-05",
        },
    },
    {
        "rid": "r4",
        "attributes": {"name": "Mario Garcia", "email": "mario@example.net", "city": "Dallas"},
    },
]

# r1-r2 duplicate, r3-r4 unknown, the rest non-duplicates; r4-r4 is skipped
SAMPLE_PAIRS: list[dict[str, str]] = [
    {"rid_a": "r1", "rid_b": "r2"},
    {"rid_a": "r1", "rid_b": "r3"},
    {"rid_a": "r2", "rid_b": "r3"},
    {"rid_a": "r3", "rid_b": "r4"},
    {"rid_a": "r4", "rid_b": "r4"},
]

SAMPLE_CONFIG: dict[str, Any] = {
    "classifier": {
        "comparisons": [
            {"attribute": "name", "measure": "levenshtein", "weight": 0.6},
            {"attribute": "email", "measure": {"type": "exact", "missing": 0.0}, "weight": 0.4},
        ],
        "duplicate_threshold": 0.85,
        "non_duplicate_threshold": 0.5,
    },
    "clustering": {"policy": "strict_transitive"},
    "fusion": {
        "attributes": {"name": ["vote", "most_recent"], "city": "longest"},
        "default": "most_recent",
        "timestamp_attribute": "updated",
    },
}


def _write_jsonl(path: Path, rows: list[Any]) -> Path:
    path.write_text("".join(json.dumps(row) + "\n" for row in rows), encoding="utf-8")
    return path


@pytest.fixture
def sample_files(tmp_path: Path) -> tuple[Path, Path, Path]:
    """Write the sample records, pairs and config; return their paths."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    records_path = _write_jsonl(data_dir / "records.jsonl", SAMPLE_RECORDS)
    pairs_path = _write_jsonl(data_dir / "pairs.jsonl", SAMPLE_PAIRS)
    config_path = data_dir / "config.json"
    config_path.write_text(json.dumps(SAMPLE_CONFIG), encoding="utf-8")
    return records_path, pairs_path, config_path


@pytest.fixture
def sample_records() -> list[Record]:
    """The sample records as typed records."""
    return [Record.from_dict(row) for row in SAMPLE_RECORDS]


@pytest.fixture
def sample_pairs() -> list[tuple[str, str]]:
    """The sample candidate pairs as tuples."""
    return [(row["rid_a"], row["rid_b"]) for row in SAMPLE_PAIRS]


@pytest.fixture
def sample_config() -> dict[str, Any]:
    """A fresh copy of the sample configuration data."""
    return copy.deepcopy(SAMPLE_CONFIG)
