"""End-to-end resolution runner.

Chains the three stages over in-memory data:

    Classification: candidate pairs -> verdicts
    Clustering:     verdicts -> partition of all record IDs
    Fusion:         clusters -> canonical records with provenance

Every stage is deterministic; the same records, pairs and configuration
produce the same output regardless of input order or worker count.
"""

import time
import traceback
from collections import Counter
from collections.abc import Iterable

from erdedupe.audit.logger import AuditLogger
from erdedupe.classifier.classify import classify_pairs
from erdedupe.clustering.cluster_builder import build_clusters
from erdedupe.engine.config import ResolutionConfig, ResolutionResult
from erdedupe.errors import ErdedupeError
from erdedupe.fusion.fuse import fuse_clusters
from erdedupe.models import Record

__all__ = ["index_records", "run_resolution"]

STAGE = "resolution"


def index_records(records: Iterable[Record]) -> dict[str, Record]:
    """Index records by rid.

    Raises
    ------
    ValueError
        If two records share a rid.
    """
    index: dict[str, Record] = {}
    for record in records:
        if record.rid in index:
            raise ValueError(f"Duplicate record id: {record.rid!r}")
        index[record.rid] = record
    return index


def run_resolution(
    records: Iterable[Record],
    pairs: Iterable[tuple[str, str]],
    config: ResolutionConfig,
    *,
    workers: int | None = None,
    logger: AuditLogger | None = None,
) -> ResolutionResult:
    """Classify, cluster and fuse a set of records.

    Parameters
    ----------
    records : Iterable[Record]
        All records; every rid appears in the output partition.
    pairs : Iterable[tuple[str, str]]
        Candidate pairs (from blocking upstream).
    config : ResolutionConfig
        Validated configuration.
    workers : int | None, optional
        Thread pool size for the classification and fusion stages.
    logger : AuditLogger | None, optional
        Audit logger for tracking. If None, no logging.

    Returns
    -------
    ResolutionResult
        Verdicts, clustering, canonical records, warnings and summary.

    Raises
    ------
    ConfigurationError
        If the configuration is rejected by a stage.
    ValueError
        If two records share a rid.

    Examples
    --------
        >>> from erdedupe.engine import load_config, run_resolution
        >>> config = load_config("resolution.json")
        >>> result = run_resolution(records, pairs, config)
        >>> len(result.canonical_records)
    """
    start = time.perf_counter()
    record_index = index_records(records)

    if logger:
        logger.stage_started(STAGE, expected_records=len(record_index))

    try:
        report = classify_pairs(
            record_index, pairs, config.classifier, workers=workers, logger=logger
        )
        clustering = build_clusters(
            report.verdicts,
            config.clustering,
            identifiers=record_index.keys(),
            logger=logger,
        )
        fusion = fuse_clusters(
            clustering, record_index, config.fusion, workers=workers, logger=logger
        )
    except ErdedupeError as e:
        if logger:
            logger.error(
                type(e).__name__, str(e), stage=STAGE, traceback=traceback.format_exc()
            )
        raise

    warnings = (*report.skipped, *report.warnings, *clustering.conflicts, *fusion.warnings)

    summary = {
        "records_in": len(record_index),
        "records_out": len(fusion.records),
        "review_clusters": clustering.stats.get("review_clusters", 0),
        "classification": dict(report.stats),
        "clustering": dict(clustering.stats),
        "fusion": dict(fusion.stats),
        "warnings": dict(sorted(Counter(w.kind for w in warnings).items())),
    }

    if logger:
        logger.stage_finished(
            STAGE,
            time.perf_counter() - start,
            counters={
                "records_in": summary["records_in"],
                "records_out": summary["records_out"],
                "warnings": len(warnings),
            },
        )

    return ResolutionResult(
        verdicts=report.verdicts,
        clustering=clustering,
        canonical_records=fusion.records,
        warnings=warnings,
        summary=summary,
    )
