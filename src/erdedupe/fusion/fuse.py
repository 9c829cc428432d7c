"""Fuse clusters into canonical records with field-level provenance."""

import time
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any

from erdedupe.audit.logger import AuditLogger
from erdedupe.clustering.models import Cluster, ClusteringResult
from erdedupe.errors import UnresolvedFusionConflict
from erdedupe.fusion.config import FusionConfig
from erdedupe.fusion.models import (
    AnnotatedValue,
    CanonicalRecord,
    FieldProvenance,
    FusionOutcome,
    FusionReport,
)
from erdedupe.fusion.strategies import FusionContext, distinct_values
from erdedupe.models import Record, compute_canonical_id, compute_cluster_id, is_missing
from erdedupe.utils import coerce_datetime

__all__ = ["fuse_cluster", "fuse_clusters"]

STAGE = "fusion"

RULE_SINGLETON = "singleton"
RULE_AGREEMENT = "agreement"
RULE_NO_VALUE = "no_value_in_cluster"
RULE_FALLBACK = "first_value_fallback"

REASON_NO_STRATEGY = "no_strategy"
REASON_CHAIN_EXHAUSTED = "chain_exhausted"


# ---------------------------------------------------------------------------
# Candidate gathering
# ---------------------------------------------------------------------------


def _record_timestamp(record: Record, config: FusionConfig) -> datetime | None:
    if not config.timestamp_attribute:
        return None
    raw = record.get(config.timestamp_attribute)
    if is_missing(raw):
        return None
    try:
        return coerce_datetime(raw)
    except (TypeError, ValueError, OverflowError):
        return None


def _record_source(record: Record, config: FusionConfig) -> str | None:
    if not config.source_attribute:
        return None
    raw = record.get(config.source_attribute)
    return None if is_missing(raw) else str(raw)


def _gather(
    attribute: str,
    members: Sequence[Record],
    config: FusionConfig,
) -> list[AnnotatedValue]:
    return [
        AnnotatedValue(
            value=record.get(attribute),
            rids=(record.rid,),
            source=_record_source(record, config),
            timestamp=_record_timestamp(record, config),
        )
        for record in members
        if not is_missing(record.get(attribute))
    ]


def _supporting_rids(winner: Any, original: list[AnnotatedValue], survivors: list[AnnotatedValue]) -> tuple[str, ...]:
    rids = {rid for c in original if c.value == winner for rid in c.rids}
    rids.update(rid for c in survivors if c.value == winner for rid in c.rids)
    return tuple(sorted(rids))


# ---------------------------------------------------------------------------
# Attribute fusion
# ---------------------------------------------------------------------------


def _fuse_attribute(
    attribute: str,
    members: Sequence[Record],
    config: FusionConfig,
    context: FusionContext,
) -> tuple[Any, FieldProvenance, UnresolvedFusionConflict | None]:
    candidates = _gather(attribute, members, config)

    if not candidates:
        return None, FieldProvenance(rids=(), rule=RULE_NO_VALUE), None

    distinct = distinct_values(c.value for c in candidates)
    if len(distinct) == 1:
        rids = tuple(sorted(rid for c in candidates for rid in c.rids))
        return distinct[0], FieldProvenance(rids=rids, rule=RULE_AGREEMENT), None

    chain = config.chain_for(attribute)
    survivors, applied = chain.resolve(candidates, context) if chain else (candidates, [])
    remaining = distinct_values(c.value for c in survivors)

    if len(remaining) == 1:
        winner = remaining[0]
        provenance = FieldProvenance(
            rids=_supporting_rids(winner, candidates, survivors),
            rule=">".join(applied),
            candidates=tuple(distinct),
        )
        return winner, provenance, None

    # Deterministic default: first surviving value by record-id order
    first = min(survivors, key=lambda c: c.rids)
    warning = UnresolvedFusionConflict(
        cluster_id=context.cluster_id,
        attribute=attribute,
        candidates=tuple(remaining),
        chosen_rid=first.rids[0],
        reason=REASON_CHAIN_EXHAUSTED if chain else REASON_NO_STRATEGY,
    )
    rule = ">".join([*applied, RULE_FALLBACK])
    provenance = FieldProvenance(
        rids=_supporting_rids(first.value, candidates, [first]),
        rule=rule,
        candidates=tuple(distinct),
    )
    return first.value, provenance, warning


def fuse_cluster(
    cluster: Cluster | Sequence[str],
    records: Mapping[str, Record],
    config: FusionConfig | None = None,
) -> FusionOutcome:
    """Fuse one cluster into a canonical record.

    Parameters
    ----------
    cluster : Cluster | Sequence[str]
        Cluster, or member record IDs.
    records : Mapping[str, Record]
        Record index by rid; must contain every member.
    config : FusionConfig | None, optional
        Fusion configuration. If None, every conflict falls back to the
        first value by record-id order (with a warning).

    Returns
    -------
    FusionOutcome
        Canonical record and unresolved-conflict warnings.

    Raises
    ------
    ValueError
        If the cluster is empty.
    KeyError
        If a member record is not in ``records``.
    """
    if config is None:
        config = FusionConfig()

    if isinstance(cluster, Cluster):
        member_rids = tuple(sorted(cluster.rids))
        cluster_id = cluster.cluster_id
    else:
        member_rids = tuple(sorted(set(cluster)))
        cluster_id = compute_cluster_id(member_rids)

    if not member_rids:
        raise ValueError("Cannot fuse an empty cluster")

    canonical_id = compute_canonical_id(member_rids)

    # Singleton: the lone record with full self-provenance, no strategy runs
    if len(member_rids) == 1:
        rid = member_rids[0]
        record = records[rid]
        self_provenance = FieldProvenance(rids=(rid,), rule=RULE_SINGLETON)
        return FusionOutcome(
            record=CanonicalRecord(
                canonical_id=canonical_id,
                cluster_id=cluster_id,
                member_rids=member_rids,
                attributes=record.attributes,
                provenance=dict.fromkeys(record.attributes, self_provenance),
            )
        )

    members = [records[rid] for rid in member_rids]
    winners: dict[str, tuple[str, ...]] = {}
    context = FusionContext(cluster_id=cluster_id, source_trust=config.source_trust, winners=winners)

    attribute_names = config.fusion_order({name for record in members for name in record.attributes})

    attributes: dict[str, Any] = {}
    provenance: dict[str, FieldProvenance] = {}
    warnings: list[UnresolvedFusionConflict] = []
    for name in attribute_names:
        value, field_provenance, warning = _fuse_attribute(name, members, config, context)
        attributes[name] = value
        provenance[name] = field_provenance
        winners[name] = field_provenance.rids
        if warning is not None:
            warnings.append(warning)

    attributes = {name: attributes[name] for name in sorted(attributes)}
    provenance = {name: provenance[name] for name in sorted(provenance)}

    return FusionOutcome(
        record=CanonicalRecord(
            canonical_id=canonical_id,
            cluster_id=cluster_id,
            member_rids=member_rids,
            attributes=attributes,
            provenance=provenance,
        ),
        warnings=tuple(warnings),
    )


def fuse_clusters(
    clusters: ClusteringResult | Iterable[Cluster],
    records: Iterable[Record] | Mapping[str, Record],
    config: FusionConfig | None = None,
    *,
    workers: int | None = None,
    logger: AuditLogger | None = None,
) -> FusionReport:
    """Fuse every cluster independently.

    Parameters
    ----------
    clusters : ClusteringResult | Iterable[Cluster]
        Clusters to fuse.
    records : Iterable[Record] | Mapping[str, Record]
        Records, or an index of records by rid.
    config : FusionConfig | None, optional
        Fusion configuration.
    workers : int | None, optional
        Thread pool size. None or 1 fuses sequentially.
    logger : AuditLogger | None, optional
        Audit logger for events, by default None.

    Returns
    -------
    FusionReport
        Canonical records sorted by canonical_id, warnings and stats.
    """
    start = time.perf_counter()

    if config is None:
        config = FusionConfig()

    cluster_list = list(clusters.clusters if isinstance(clusters, ClusteringResult) else clusters)
    record_index = dict(records) if isinstance(records, Mapping) else {r.rid: r for r in records}

    if logger:
        logger.stage_started(STAGE, expected_records=len(cluster_list))

    def _run(cluster: Cluster) -> FusionOutcome:
        return fuse_cluster(cluster, record_index, config)

    if workers is not None and workers > 1 and len(cluster_list) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(_run, cluster_list))
    else:
        outcomes = [_run(cluster) for cluster in cluster_list]

    canonical_records = sorted((o.record for o in outcomes), key=lambda r: r.canonical_id)
    warnings = sorted(
        (w for o in outcomes for w in o.warnings),
        key=lambda w: (w.cluster_id, w.attribute),
    )

    conflicts_resolved = sum(
        1
        for record in canonical_records
        for prov in record.provenance.values()
        if prov.candidates is not None and not prov.rule.endswith(RULE_FALLBACK)
    )

    stats = {
        "clusters_in": len(cluster_list),
        "singletons": sum(1 for r in canonical_records if len(r.member_rids) == 1),
        "records_merged": sum(len(r.member_rids) for r in canonical_records if len(r.member_rids) > 1),
        "records_out": len(canonical_records),
        "conflicts_resolved": conflicts_resolved,
        "conflicts_unresolved": len(warnings),
    }

    if logger:
        for warning in warnings:
            logger.warning(warning.to_dict(), stage=STAGE)
        logger.stage_finished(STAGE, time.perf_counter() - start, counters=stats)

    return FusionReport(records=tuple(canonical_records), warnings=tuple(warnings), stats=stats)
