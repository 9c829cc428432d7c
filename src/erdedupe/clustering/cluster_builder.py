"""Build clusters from pairwise verdicts under a consistency policy."""

import time
from collections.abc import Iterable

from erdedupe.audit.logger import AuditLogger
from erdedupe.classifier.models import Classification, Verdict
from erdedupe.clustering.graph import DuplicateGraph
from erdedupe.clustering.models import (
    Cluster,
    ClusteringConfig,
    ClusteringResult,
    ClusterStatus,
    ClusterSummary,
)
from erdedupe.clustering.policies import MergeState, apply_policy
from erdedupe.clustering.refine import refine_cluster
from erdedupe.clustering.union_find import UnionFind
from erdedupe.models import compute_cluster_id

__all__ = ["build_clusters", "summarize_cluster"]

STAGE = "clustering"


def build_clusters(
    verdicts: DuplicateGraph | Iterable[Verdict],
    config: ClusteringConfig | None = None,
    *,
    identifiers: Iterable[str] | None = None,
    logger: AuditLogger | None = None,
) -> ClusteringResult:
    """Partition all identifiers into clusters.

    Conflicts between Duplicate and NonDuplicate verdicts are reported as
    warnings on the result; clustering always completes.

    Parameters
    ----------
    verdicts : DuplicateGraph | Iterable[Verdict]
        Verdict graph, or verdicts to build one from (later verdicts for
        the same pair replace earlier ones).
    config : ClusteringConfig | None, optional
        Clustering configuration. If None, uses defaults (strict transitive).
    identifiers : Iterable[str] | None, optional
        Additional identifiers to cover; those without verdicts become
        singleton clusters.
    logger : AuditLogger | None, optional
        Audit logger for events, by default None.

    Returns
    -------
    ClusteringResult
        Disjoint, covering clusters sorted by cluster_id, plus conflicts
        and stats.
    """
    start = time.perf_counter()

    if config is None:
        config = ClusteringConfig()

    graph = verdicts if isinstance(verdicts, DuplicateGraph) else DuplicateGraph(verdicts)

    universe = set(graph.nodes)
    if identifiers is not None:
        universe.update(identifiers)

    if logger:
        logger.stage_started(STAGE, expected_records=len(universe))

    uf = UnionFind(universe)
    state = MergeState(uf, graph, config)
    apply_policy(state)

    components = uf.get_components()

    refined_splits = 0
    downgraded = frozenset(state.downgraded)
    if config.refine_clusters:
        refined: list[tuple[str, ...]] = []
        for component in components:
            parts = refine_cluster(component, graph, config.refine_max_size, downgraded)
            refined_splits += len(parts) - 1
            refined.extend(parts)
        components = refined

    clusters = [
        _create_cluster(rids, graph, downgraded, state.flagged) for rids in components
    ]
    clusters.sort(key=lambda c: c.cluster_id)

    stats = {
        "identifiers": len(universe),
        "verdicts": len(graph),
        "clusters": len(clusters),
        "singletons": sum(1 for c in clusters if c.is_singleton),
        "review_clusters": sum(1 for c in clusters if c.status == ClusterStatus.REVIEW),
        "largest_cluster": max((c.size for c in clusters), default=0),
        "refined_splits": refined_splits,
        **state.stats,
    }

    if logger:
        for conflict in state.conflicts:
            logger.warning(conflict.to_dict(), stage=STAGE)
        logger.stage_finished(STAGE, time.perf_counter() - start, counters=stats)

    return ClusteringResult(
        clusters=tuple(clusters),
        conflicts=tuple(state.conflicts),
        downgraded_pairs=tuple(sorted(downgraded)),
        stats=stats,
    )


def summarize_cluster(
    rids: tuple[str, ...],
    graph: DuplicateGraph,
    downgraded: frozenset[str] = frozenset(),
) -> ClusterSummary:
    """Summarize the internal verdicts of a cluster.

    Parameters
    ----------
    rids : tuple[str, ...]
        Sorted member identifiers.
    graph : DuplicateGraph
        Verdict graph.
    downgraded : frozenset[str], optional
        Pair IDs counted as Unknown regardless of their verdict.

    Returns
    -------
    ClusterSummary
        Edge counts and Duplicate confidence statistics.
    """
    members = set(rids)
    duplicate_confidences: list[float] = []
    unknown = 0
    negative = 0

    for rid in rids:
        for other, verdict in graph.neighbors(rid).items():
            # Visit each internal edge once, from its smaller endpoint
            if other not in members or other < rid:
                continue
            if verdict.pair_id in downgraded:
                unknown += 1
            elif verdict.classification == Classification.DUPLICATE:
                duplicate_confidences.append(verdict.confidence)
            elif verdict.classification == Classification.NON_DUPLICATE:
                negative += 1
            else:
                unknown += 1

    if not duplicate_confidences:
        return ClusterSummary(size=len(rids), unknown_edges=unknown, negative_edges=negative)

    return ClusterSummary(
        size=len(rids),
        duplicate_edges=len(duplicate_confidences),
        unknown_edges=unknown,
        negative_edges=negative,
        min_confidence=min(duplicate_confidences),
        mean_confidence=sum(duplicate_confidences) / len(duplicate_confidences),
        max_confidence=max(duplicate_confidences),
    )


def _create_cluster(
    rids: tuple[str, ...],
    graph: DuplicateGraph,
    downgraded: frozenset[str],
    flagged: set[str],
) -> Cluster:
    summary = summarize_cluster(rids, graph, downgraded)

    needs_review = (
        summary.unknown_edges > 0
        or summary.negative_edges > 0
        or any(rid in flagged for rid in rids)
    )

    return Cluster(
        cluster_id=compute_cluster_id(rids),
        status=ClusterStatus.REVIEW if needs_review else ClusterStatus.AUTO,
        rids=rids,
        summary=summary,
    )
