"""Merge loops for the clustering consistency policies.

All policies walk Duplicate edges in deterministic order (descending
confidence, then record IDs) over an index-based Union-Find. Before a merge
the verdicts between the two groups are tallied from the adjacency of the
smaller group, so each candidate merge costs O(edges of the smaller group).
"""

from dataclasses import dataclass, field

from erdedupe.classifier.models import Classification, Verdict
from erdedupe.clustering.graph import DuplicateGraph
from erdedupe.clustering.models import (
    ClusteringConfig,
    ClusteringPolicy,
    NegativeConstraintMode,
)
from erdedupe.clustering.union_find import UnionFind
from erdedupe.errors import ConstraintConflict

__all__ = ["CrossEdges", "MergeState", "apply_policy"]

RESOLUTION_DOWNGRADED = "downgraded"
RESOLUTION_SKIPPED = "skipped"
RESOLUTION_OUTVOTED = "outvoted"


@dataclass
class CrossEdges:
    """Tally of verdicts between two groups.

    Attributes
    ----------
    duplicate : int
        Duplicate verdicts.
    unknown : int
        Unknown verdicts.
    negative : int
        NonDuplicate verdicts.
    duplicate_weight : float
        Summed Duplicate confidence.
    negative_weight : float
        Summed NonDuplicate confidence.
    negatives : list[Verdict]
        The NonDuplicate verdicts.
    """

    duplicate: int = 0
    unknown: int = 0
    negative: int = 0
    duplicate_weight: float = 0.0
    negative_weight: float = 0.0
    negatives: list[Verdict] = field(default_factory=list)

    @property
    def total(self) -> int:
        """All known verdicts between the two groups."""
        return self.duplicate + self.unknown + self.negative

    @property
    def negative_pairs(self) -> list[str]:
        """Sorted pair IDs of the NonDuplicate verdicts."""
        return sorted(v.pair_id for v in self.negatives)

    @property
    def duplicate_fraction(self) -> float:
        """Share of Duplicate verdicts among all known verdicts."""
        return self.duplicate / self.total if self.total else 0.0


class MergeState:
    """Union-Find plus the bookkeeping of one clustering run.

    Parameters
    ----------
    uf : UnionFind
        Union-Find over every identifier in the run.
    graph : DuplicateGraph
        Verdict graph.
    config : ClusteringConfig
        Clustering configuration.
    """

    def __init__(self, uf: UnionFind, graph: DuplicateGraph, config: ClusteringConfig) -> None:
        self.uf = uf
        self.graph = graph
        self.config = config
        self.conflicts: list[ConstraintConflict] = []
        self.downgraded: list[str] = []
        self.flagged: set[str] = set()
        self.stats: dict[str, int] = {
            "merges": 0,
            "conflicts": 0,
            "downgraded_edges": 0,
            "size_capped": 0,
            "majority_rejected": 0,
        }

    def roots(self, edge: Verdict) -> tuple[int, int]:
        """Current roots of an edge's endpoints."""
        return self.uf.find_rid(edge.rid_a), self.uf.find_rid(edge.rid_b)

    def cross_edges(self, root_x: int, root_y: int) -> CrossEdges:
        """Tally verdicts between the groups rooted at ``root_x`` and ``root_y``."""
        if self.uf.size(root_x) > self.uf.size(root_y):
            root_x, root_y = root_y, root_x

        cross = CrossEdges()
        for index in self.uf.members(root_x):
            rid = self.uf.elements[index]
            for other, verdict in self.graph.neighbors(rid).items():
                if self.uf.find_rid(other) != root_y:
                    continue
                if verdict.classification == Classification.DUPLICATE:
                    cross.duplicate += 1
                    cross.duplicate_weight += verdict.confidence
                elif verdict.classification == Classification.NON_DUPLICATE:
                    cross.negative += 1
                    cross.negative_weight += verdict.confidence
                    cross.negatives.append(verdict)
                else:
                    cross.unknown += 1

        return cross

    def exceeds_cap(self, root_x: int, root_y: int) -> bool:
        """Whether merging two groups would exceed ``max_cluster_size``."""
        cap = self.config.max_cluster_size
        return cap is not None and self.uf.size(root_x) + self.uf.size(root_y) > cap

    def merge(self, root_x: int, root_y: int) -> None:
        """Union two groups."""
        self.uf.union(root_x, root_y)
        self.stats["merges"] += 1

    def record_conflict(self, edge: Verdict, cross: CrossEdges, resolution: str) -> None:
        """Record a negative-constraint conflict and flag the records involved."""
        self.conflicts.append(
            ConstraintConflict(
                pair_id=edge.pair_id,
                negative_pairs=tuple(cross.negative_pairs),
                resolution=resolution,
            )
        )
        self.stats["conflicts"] += 1
        self.flagged.update((edge.rid_a, edge.rid_b))
        for verdict in cross.negatives:
            self.flagged.update((verdict.rid_a, verdict.rid_b))

    def negatives_allow_merge(self, edge: Verdict, cross: CrossEdges) -> bool:
        """Apply the configured NonDuplicate precedence to a contested merge.

        Under VETO the merge is always refused. Under OUTVOTE it goes ahead
        when the Duplicate confidence between the groups outweighs the
        NonDuplicate confidence.
        """
        if (
            self.config.negative_constraints == NegativeConstraintMode.OUTVOTE
            and cross.duplicate_weight > cross.negative_weight
        ):
            self.record_conflict(edge, cross, RESOLUTION_OUTVOTED)
            return True

        self.record_conflict(edge, cross, RESOLUTION_SKIPPED)
        return False


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


def _strict_transitive(state: MergeState, edges: list[Verdict]) -> None:
    for edge in edges:
        root_x, root_y = state.roots(edge)
        if root_x == root_y:
            continue

        cross = state.cross_edges(root_x, root_y)
        if cross.negative:
            state.record_conflict(edge, cross, RESOLUTION_DOWNGRADED)
            state.downgraded.append(edge.pair_id)
            state.stats["downgraded_edges"] += 1
            continue

        state.merge(root_x, root_y)


def _confidence_weighted(state: MergeState, edges: list[Verdict]) -> None:
    for edge in edges:
        root_x, root_y = state.roots(edge)
        if root_x == root_y:
            continue

        if state.exceeds_cap(root_x, root_y):
            state.stats["size_capped"] += 1
            continue

        cross = state.cross_edges(root_x, root_y)
        if cross.negative and not state.negatives_allow_merge(edge, cross):
            continue

        state.merge(root_x, root_y)


def _majority_link(state: MergeState, edges: list[Verdict]) -> None:
    min_fraction = state.config.min_majority_fraction
    veto = state.config.negative_constraints == NegativeConstraintMode.VETO

    # Rejected merges are retried while other merges keep changing the groups
    pending = edges
    remaining: list[Verdict] = []
    while pending:
        remaining = []
        progressed = False

        for edge in pending:
            root_x, root_y = state.roots(edge)
            if root_x == root_y:
                continue

            if state.exceeds_cap(root_x, root_y):
                state.stats["size_capped"] += 1
                continue

            cross = state.cross_edges(root_x, root_y)
            if cross.negative and veto:
                state.record_conflict(edge, cross, RESOLUTION_SKIPPED)
                continue

            if cross.duplicate_fraction < min_fraction:
                remaining.append(edge)
                continue

            if cross.negative:
                state.record_conflict(edge, cross, RESOLUTION_OUTVOTED)
            state.merge(root_x, root_y)
            progressed = True

        if not progressed:
            break
        pending = remaining

    state.stats["majority_rejected"] = sum(
        1 for edge in remaining if len(set(state.roots(edge))) == 2
    )


_POLICIES = {
    ClusteringPolicy.STRICT_TRANSITIVE: _strict_transitive,
    ClusteringPolicy.CONFIDENCE_WEIGHTED: _confidence_weighted,
    ClusteringPolicy.MAJORITY_LINK: _majority_link,
}


def apply_policy(state: MergeState) -> None:
    """Run the configured policy's merge loop over the graph's Duplicate edges.

    Parameters
    ----------
    state : MergeState
        Fresh merge state; mutated in place.
    """
    _POLICIES[state.config.policy](state, state.graph.duplicate_edges())
