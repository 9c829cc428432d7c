"""Pairwise classification of candidate record pairs.

This module implements the classifier that:
1. Scores every configured attribute with its measure
2. Aggregates attribute scores by weighted combination over defined scores
3. Maps the aggregate to DUPLICATE / NON_DUPLICATE / UNKNOWN with a confidence

``classify_pair`` is a pure function of (pair, configuration), so batches
are evaluated in parallel without coordination.
"""

import time
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from erdedupe.audit.logger import AuditLogger
from erdedupe.classifier.models import (
    Classification,
    ClassificationReport,
    ClassifierConfig,
    Verdict,
)
from erdedupe.errors import MeasurementError, MeasurementWarning, SkippedPair
from erdedupe.models import Record, is_missing, make_pair_id, order_pair
from erdedupe.similarity import SimilarityScore, combine_weighted

__all__ = [
    "classify_score",
    "classify_pair",
    "classify_pairs",
    "get_score_bucket",
]

STAGE = "classification"

WARNING_MEASUREMENT_ERROR = "measurement_error"
WARNING_ALL_UNDEFINED = "all_attributes_undefined"

# ---------------------------------------------------------------------------
# Bucket calculation
# ---------------------------------------------------------------------------

_BUCKET_THRESHOLDS = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9)
_BUCKET_LABELS = (
    "0.0-0.1",
    "0.1-0.2",
    "0.2-0.3",
    "0.3-0.4",
    "0.4-0.5",
    "0.5-0.6",
    "0.6-0.7",
    "0.7-0.8",
    "0.8-0.9",
    "0.9-1.0",
)


def get_score_bucket(score: float | None) -> str:
    """Get histogram bucket label for an aggregate score.

    Parameters
    ----------
    score : float | None
        Aggregate score (0.0-1.0), or None when undefined.

    Returns
    -------
    str
        Bucket label (e.g., '0.5-0.6'), or 'undefined'.
    """
    if score is None:
        return "undefined"
    for i, threshold in enumerate(_BUCKET_THRESHOLDS):
        if score < threshold:
            return _BUCKET_LABELS[i]
    return _BUCKET_LABELS[-1]


# ---------------------------------------------------------------------------
# Core classification
# ---------------------------------------------------------------------------


def classify_score(score: float | None, config: ClassifierConfig) -> tuple[Classification, float]:
    """Map an aggregate score to a classification and confidence.

    Parameters
    ----------
    score : float | None
        Aggregate score, or None when no attribute could be measured.
    config : ClassifierConfig
        Classifier thresholds.

    Returns
    -------
    tuple[Classification, float]
        Classification and its confidence.
    """
    if score is None:
        return Classification.UNKNOWN, 0.0
    if score >= config.duplicate_threshold:
        return Classification.DUPLICATE, score
    if score < config.non_duplicate_threshold:
        return Classification.NON_DUPLICATE, 1.0 - score
    return Classification.UNKNOWN, score


def _score_attributes(
    record_a: Record,
    record_b: Record,
    config: ClassifierConfig,
) -> tuple[dict[str, SimilarityScore], list[MeasurementWarning]]:
    pair_id = make_pair_id(record_a.rid, record_b.rid)
    scores: dict[str, SimilarityScore] = {}
    warnings: list[MeasurementWarning] = []

    for comparison in config.comparisons:
        left = record_a.get(comparison.attribute)
        right = record_b.get(comparison.attribute)

        if (
            config.exact_match_override
            and not is_missing(left)
            and type(left) is type(right)
            and left == right
        ):
            scores[comparison.attribute] = SimilarityScore.of(1.0)
            continue

        try:
            scores[comparison.attribute] = comparison.measure.compare(left, right)
        except MeasurementError as e:
            scores[comparison.attribute] = SimilarityScore.undefined()
            warnings.append(
                MeasurementWarning(pair_id=pair_id, attribute=comparison.attribute, message=str(e))
            )

    return scores, warnings


def _classify(
    record_a: Record,
    record_b: Record,
    config: ClassifierConfig,
) -> tuple[Verdict, list[MeasurementWarning]]:
    scores, measurement_warnings = _score_attributes(record_a, record_b, config)

    aggregate = combine_weighted(
        (scores[c.attribute], c.weight) for c in config.comparisons
    )
    classification, confidence = classify_score(aggregate.value, config)

    warning_codes: list[str] = []
    if measurement_warnings:
        warning_codes.append(WARNING_MEASUREMENT_ERROR)
    if not aggregate.is_defined:
        warning_codes.append(WARNING_ALL_UNDEFINED)

    verdict = Verdict(
        rid_a=record_a.rid,
        rid_b=record_b.rid,
        classification=classification,
        confidence=confidence,
        score=aggregate.value,
        attribute_scores={name: score.value for name, score in scores.items()},
        warnings=tuple(warning_codes),
    )
    return verdict, measurement_warnings


def classify_pair(record_a: Record, record_b: Record, config: ClassifierConfig) -> Verdict:
    """Classify a single record pair.

    Parameters
    ----------
    record_a : Record
        First record.
    record_b : Record
        Second record.
    config : ClassifierConfig
        Immutable classifier configuration.

    Returns
    -------
    Verdict
        Classification with confidence, aggregate and per-attribute scores.

    Raises
    ------
    TypeMismatchError
        If an attribute value is outside its measure's declared domain.
    """
    verdict, _ = _classify(record_a, record_b, config)
    return verdict


# ---------------------------------------------------------------------------
# Batch classification
# ---------------------------------------------------------------------------


def _prepare_jobs(
    record_index: Mapping[str, Record],
    pairs: Iterable[tuple[str, str]],
    stats: dict[str, Any],
) -> tuple[list[tuple[Record, Record]], list[SkippedPair]]:
    jobs: list[tuple[Record, Record]] = []
    skipped: list[SkippedPair] = []
    seen: set[tuple[str, str]] = set()

    for rid_a, rid_b in pairs:
        stats["pairs_in"] += 1

        if rid_a == rid_b:
            stats["pairs_skipped_self"] += 1
            skipped.append(SkippedPair(rid_a, rid_b, "self_pair"))
            continue

        if rid_a not in record_index or rid_b not in record_index:
            stats["pairs_skipped_missing_records"] += 1
            skipped.append(SkippedPair(rid_a, rid_b, "unknown_record"))
            continue

        key = order_pair(rid_a, rid_b)
        if key in seen:
            stats["pairs_skipped_duplicate"] += 1
            skipped.append(SkippedPair(rid_a, rid_b, "duplicate"))
            continue
        seen.add(key)

        jobs.append((record_index[key[0]], record_index[key[1]]))

    return jobs, skipped


def classify_pairs(
    records: Iterable[Record] | Mapping[str, Record],
    pairs: Iterable[tuple[str, str]],
    config: ClassifierConfig,
    *,
    workers: int | None = None,
    logger: AuditLogger | None = None,
) -> ClassificationReport:
    """Classify a batch of candidate pairs.

    Repeated and reversed pairs are classified once; self-pairs and pairs
    referencing unknown records are skipped and reported.

    Parameters
    ----------
    records : Iterable[Record] | Mapping[str, Record]
        Records, or an index of records by rid.
    pairs : Iterable[tuple[str, str]]
        Candidate pairs from an external blocking step.
    config : ClassifierConfig
        Immutable classifier configuration.
    workers : int | None, optional
        Thread pool size. None or 1 classifies sequentially.
    logger : AuditLogger | None, optional
        Audit logger for events, by default None.

    Returns
    -------
    ClassificationReport
        Verdicts sorted by pair_id, skipped pairs, warnings and stats.

    Raises
    ------
    TypeMismatchError
        If any attribute value is outside its measure's declared domain.
    """
    start = time.perf_counter()

    stats: dict[str, Any] = {
        "pairs_in": 0,
        "pairs_classified": 0,
        "pairs_skipped_self": 0,
        "pairs_skipped_missing_records": 0,
        "pairs_skipped_duplicate": 0,
        "measurement_errors": 0,
        "classifications": dict.fromkeys((c.value for c in Classification), 0),
        "score_buckets": dict.fromkeys((*_BUCKET_LABELS, "undefined"), 0),
    }

    if isinstance(records, Mapping):
        record_index = dict(records)
    else:
        record_index = {record.rid: record for record in records}

    jobs, skipped = _prepare_jobs(record_index, pairs, stats)

    if logger:
        logger.stage_started(STAGE, expected_records=len(jobs))

    def _run(job: tuple[Record, Record]) -> tuple[Verdict, list[MeasurementWarning]]:
        return _classify(job[0], job[1], config)

    if workers is not None and workers > 1 and len(jobs) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(_run, jobs))
    else:
        results = [_run(job) for job in jobs]

    verdicts: list[Verdict] = []
    warnings: list[MeasurementWarning] = []
    for verdict, measurement_warnings in results:
        verdicts.append(verdict)
        warnings.extend(measurement_warnings)
        stats["classifications"][verdict.classification.value] += 1
        stats["score_buckets"][get_score_bucket(verdict.score)] += 1

    stats["pairs_classified"] = len(verdicts)
    stats["measurement_errors"] = len(warnings)

    # Sort for determinism
    verdicts.sort(key=lambda v: v.pair_id)
    warnings.sort(key=lambda w: (w.pair_id, w.attribute))

    if logger:
        for skipped_pair in skipped:
            logger.warning(skipped_pair.to_dict(), stage=STAGE)
        for warning in warnings:
            logger.warning(warning.to_dict(), stage=STAGE)
        logger.stage_finished(
            STAGE,
            duration_seconds=time.perf_counter() - start,
            counters={
                "pairs_in": stats["pairs_in"],
                "pairs_classified": stats["pairs_classified"],
                "measurement_errors": stats["measurement_errors"],
                **{k.lower(): v for k, v in stats["classifications"].items()},
            },
        )

    return ClassificationReport(
        verdicts=tuple(verdicts),
        skipped=tuple(skipped),
        warnings=tuple(warnings),
        stats=stats,
    )
