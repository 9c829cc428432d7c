"""Correlation-score refinement of clusters.

Each cluster is re-partitioned to maximize a score over its internal
verdicts: Duplicate edges weigh ``+confidence``, NonDuplicate edges
``-confidence``, Unknown and unknown pairs 0. Pairs kept together add
``w / |part|``; pairs split apart subtract ``w / (n - |part_i|) +
w / (n - |part_j|)``. Small clusters are searched exhaustively over all set
partitions, larger ones greedily. Refinement only ever splits a cluster.
"""

from collections.abc import Iterator, Sequence

from erdedupe.classifier.models import Classification, Verdict
from erdedupe.clustering.graph import DuplicateGraph

__all__ = [
    "edge_weight",
    "score_partition",
    "iter_partitions",
    "refine_cluster",
]

# Score differences below this are float noise
_SCORE_EPSILON = 1e-12


def edge_weight(verdict: Verdict | None) -> float:
    """Signed weight of a verdict for partition scoring."""
    if verdict is None:
        return 0.0
    if verdict.classification == Classification.DUPLICATE:
        return verdict.confidence
    if verdict.classification == Classification.NON_DUPLICATE:
        return -verdict.confidence
    return 0.0


def score_partition(labels: Sequence[int], weights: Sequence[Sequence[float]]) -> float:
    """Score a partition given as one group label per element.

    Parameters
    ----------
    labels : Sequence[int]
        Group label of each element.
    weights : Sequence[Sequence[float]]
        Symmetric weight matrix (upper triangle is read).

    Returns
    -------
    float
        Partition score (higher is better).
    """
    n = len(labels)
    sizes: dict[int, int] = {}
    for label in labels:
        sizes[label] = sizes.get(label, 0) + 1

    score = 0.0
    for i in range(n):
        for j in range(i + 1, n):
            weight = weights[i][j]
            if weight == 0.0:
                continue
            if labels[i] == labels[j]:
                score += weight / sizes[labels[i]]
            else:
                score -= weight / (n - sizes[labels[i]]) + weight / (n - sizes[labels[j]])
    return score


def iter_partitions(n: int) -> Iterator[tuple[int, ...]]:
    """Yield all set partitions of ``n`` elements as restricted growth strings.

    The first partition is the single group ``(0, 0, ..., 0)``; order is
    lexicographic.
    """
    if n <= 0:
        return
    labels = [0] * n

    def _extend(position: int, max_label: int) -> Iterator[tuple[int, ...]]:
        if position == n:
            yield tuple(labels)
            return
        for label in range(max_label + 2):
            labels[position] = label
            yield from _extend(position + 1, max(max_label, label))

    yield from _extend(1, 0)


def _best_exhaustive(weights: list[list[float]]) -> tuple[int, ...]:
    partitions = iter_partitions(len(weights))
    best = next(partitions)
    best_score = score_partition(best, weights)
    for labels in partitions:
        score = score_partition(labels, weights)
        if score > best_score + _SCORE_EPSILON:
            best, best_score = labels, score
    return best


def _best_greedy(weights: list[list[float]]) -> tuple[int, ...]:
    n = len(weights)
    edges = sorted(
        ((weights[i][j], i, j) for i in range(n) for j in range(i + 1, n) if weights[i][j] != 0.0),
        key=lambda e: (-e[0], e[1], e[2]),
    )

    labels = list(range(n))
    score = score_partition(labels, weights)
    for _, i, j in edges:
        if labels[i] == labels[j]:
            continue
        keep, drop = min(labels[i], labels[j]), max(labels[i], labels[j])
        candidate = [keep if label == drop else label for label in labels]
        candidate_score = score_partition(candidate, weights)
        if candidate_score > score + _SCORE_EPSILON:
            labels, score = candidate, candidate_score
    return tuple(labels)


def refine_cluster(
    rids: Sequence[str],
    graph: DuplicateGraph,
    max_exhaustive_size: int,
    downgraded: frozenset[str] = frozenset(),
) -> list[tuple[str, ...]]:
    """Re-partition one cluster by correlation scoring.

    Parameters
    ----------
    rids : Sequence[str]
        Sorted member identifiers.
    graph : DuplicateGraph
        Verdict graph.
    max_exhaustive_size : int
        Largest size searched exhaustively.
    downgraded : frozenset[str], optional
        Pair IDs whose Duplicate verdict was downgraded (weight 0).

    Returns
    -------
    list[tuple[str, ...]]
        Sub-clusters (sorted tuples), ordered by first member.
    """
    n = len(rids)
    if n <= 2:
        return [tuple(rids)]

    weights = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            verdict = graph.verdict(rids[i], rids[j])
            if verdict is not None and verdict.pair_id in downgraded:
                continue
            weights[i][j] = weights[j][i] = edge_weight(verdict)

    labels = _best_exhaustive(weights) if n <= max_exhaustive_size else _best_greedy(weights)

    groups: dict[int, list[str]] = {}
    for rid, label in zip(rids, labels, strict=True):
        groups.setdefault(label, []).append(rid)

    return sorted(tuple(sorted(members)) for members in groups.values())
