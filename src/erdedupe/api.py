"""Public API for resolving record files.

This module provides the high-level entry points for erdedupe:
- Reading records and candidate pairs from JSONL files
- Running the resolution pipeline with a config file or object
- Writing results to JSONL with deterministic key ordering
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from erdedupe.errors import ErdedupeError
from erdedupe.models import Record
from erdedupe.utils import calculate_file_sha256

if TYPE_CHECKING:
    from erdedupe.audit.logger import AuditLogger
    from erdedupe.engine.config import ResolutionConfig, ResolutionResult

__all__ = [
    "read_records_jsonl",
    "read_pairs_jsonl",
    "write_jsonl",
    "write_outputs",
    "resolve",
    "ParseError",
]


class ParseError(ErdedupeError):
    """Raised when an input JSONL file cannot be read."""

    def __init__(
        self,
        message: str,
        file: str | None = None,
        line: int | None = None,
    ) -> None:
        """Initialize parse error.

        Parameters
        ----------
        message : str
            Error message.
        file : str | None, optional
            File where error occurred.
        line : int | None, optional
            1-based line number where error occurred.
        """
        super().__init__(message)
        self.file = file
        self.line = line


def _iter_jsonl(path: str | Path) -> Iterable[tuple[int, Any]]:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with file_path.open("r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                yield line_number, json.loads(line)
            except json.JSONDecodeError as e:
                raise ParseError(
                    f"{file_path.name}:{line_number}: invalid JSON ({e.msg})",
                    file=str(file_path),
                    line=line_number,
                ) from e


def read_records_jsonl(path: str | Path) -> list[Record]:
    """Read records from a JSONL file.

    Each line is an object ``{"rid": ..., "attributes": {...}}``.

    Parameters
    ----------
    path : str | Path
        Path to the JSONL file.

    Returns
    -------
    list[Record]
        Records in file order.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ParseError
        If a line is not valid JSON or lacks a ``rid``.

    Examples
    --------
        >>> from erdedupe import read_records_jsonl
        >>> records = read_records_jsonl("customers.jsonl")
        >>> records[0].get("name")
    """
    records: list[Record] = []
    for line_number, data in _iter_jsonl(path):
        if not isinstance(data, Mapping):
            raise ParseError(
                f"{Path(path).name}:{line_number}: expected a JSON object",
                file=str(path),
                line=line_number,
            )
        try:
            records.append(Record.from_dict(data))
        except ValueError as e:
            raise ParseError(f"{Path(path).name}:{line_number}: {e}", file=str(path), line=line_number) from e
    return records


def read_pairs_jsonl(path: str | Path) -> list[tuple[str, str]]:
    """Read candidate pairs from a JSONL file.

    Each line is either ``{"rid_a": ..., "rid_b": ...}`` or a two-element
    array.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ParseError
        If a line is not a valid pair.
    """
    pairs: list[tuple[str, str]] = []
    for line_number, data in _iter_jsonl(path):
        if isinstance(data, Mapping) and "rid_a" in data and "rid_b" in data:
            pairs.append((str(data["rid_a"]), str(data["rid_b"])))
        elif isinstance(data, list) and len(data) == 2:
            pairs.append((str(data[0]), str(data[1])))
        else:
            raise ParseError(
                f"{Path(path).name}:{line_number}: expected rid_a/rid_b object or [rid_a, rid_b]",
                file=str(path),
                line=line_number,
            )
    return pairs


def write_jsonl(
    items: Iterable[Any],
    path: str | Path,
    *,
    sort_keys: bool = True,
) -> int:
    """Write items to a JSONL file (one JSON object per line).

    Items with a ``to_dict()`` method are converted first. Output is
    deterministic with consistent key ordering and UTF-8 encoding.

    Parameters
    ----------
    items : Iterable[Any]
        Items to write.
    path : str | Path
        Output file path.
    sort_keys : bool, optional
        Whether to sort dictionary keys for deterministic output,
        by default True.

    Returns
    -------
    int
        Number of lines written.
    """
    file_path = Path(path)
    count = 0

    with file_path.open("w", encoding="utf-8", newline="\n") as f:
        for item in items:
            data = item.to_dict() if hasattr(item, "to_dict") else item
            json_str = json.dumps(data, ensure_ascii=False, sort_keys=sort_keys, default=str)
            f.write(json_str + "\n")
            count += 1

    return count


def write_outputs(
    result: ResolutionResult,
    output_dir: str | Path,
    *,
    logger: AuditLogger | None = None,
) -> dict[str, str]:
    """Write all result artifacts into a directory.

    Writes ``verdicts.jsonl``, ``clusters.jsonl``, ``canonical_records.jsonl``,
    ``warnings.jsonl`` and ``summary.json``.

    Parameters
    ----------
    result : ResolutionResult
        Result of a resolution run.
    output_dir : str | Path
        Directory to write into; created if missing.
    logger : AuditLogger | None, optional
        If given, an ``artifact_written`` event with the file hash is
        logged per artifact.

    Returns
    -------
    dict[str, str]
        Map of artifact name to file path.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    artifacts = {
        "verdicts": ("verdicts.jsonl", result.verdicts),
        "clusters": ("clusters.jsonl", result.clustering.clusters),
        "canonical_records": ("canonical_records.jsonl", result.canonical_records),
        "warnings": ("warnings.jsonl", result.warnings),
    }

    output_files: dict[str, str] = {}
    for name, (filename, items) in artifacts.items():
        path = out / filename
        count = write_jsonl(items, path)
        output_files[name] = str(path)
        if logger:
            logger.artifact_written(
                str(path), calculate_file_sha256(path), stage="output", record_count=count
            )

    summary_path = out / "summary.json"
    with summary_path.open("w", encoding="utf-8") as f:
        json.dump(result.summary, f, indent=2, sort_keys=True)
    output_files["summary"] = str(summary_path)
    if logger:
        logger.artifact_written(str(summary_path), calculate_file_sha256(summary_path), stage="output")

    return output_files


def resolve(
    records: Iterable[Record] | str | Path,
    pairs: Iterable[tuple[str, str]] | str | Path,
    config: ResolutionConfig | Mapping[str, Any] | str | Path,
    *,
    workers: int | None = None,
    logger: AuditLogger | None = None,
) -> ResolutionResult:
    """Resolve duplicate records into canonical entities.

    Simplified interface to the full pipeline: classify candidate pairs,
    cluster records and fuse each cluster.

    Parameters
    ----------
    records : Iterable[Record] | str | Path
        Records, or a path to a records JSONL file.
    pairs : Iterable[tuple[str, str]] | str | Path
        Candidate pairs, or a path to a pairs JSONL file.
    config : ResolutionConfig | Mapping[str, Any] | str | Path
        Configuration object, raw configuration data, or a JSON file path.
    workers : int | None, optional
        Thread pool size for classification and fusion.
    logger : AuditLogger | None, optional
        Audit logger for tracking.

    Returns
    -------
    ResolutionResult
        Verdicts, clusters, canonical records, warnings and summary.

    Raises
    ------
    ConfigurationError
        If the configuration is invalid.

    Examples
    --------
        >>> from erdedupe import resolve
        >>> result = resolve("records.jsonl", "pairs.jsonl", "config.json")
        >>> for record in result.canonical_records:
        ...     print(record.canonical_id, record.member_rids)
    """
    from erdedupe.engine import ResolutionConfig, load_config, run_resolution

    if isinstance(records, (str, Path)):
        records = read_records_jsonl(records)
    if isinstance(pairs, (str, Path)):
        pairs = read_pairs_jsonl(pairs)
    if not isinstance(config, ResolutionConfig):
        config = load_config(config)

    return run_resolution(records, pairs, config, workers=workers, logger=logger)
