"""Data models for clustering and consistency policies."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from erdedupe.errors import ConfigurationError, ConstraintConflict

__all__ = [
    "ClusterStatus",
    "ClusteringPolicy",
    "NegativeConstraintMode",
    "ClusteringConfig",
    "ClusterSummary",
    "Cluster",
    "ClusteringResult",
    "MAX_EXHAUSTIVE_REFINE_SIZE",
]

# Bell(10) = 115975 partitions; larger clusters are refined greedily
MAX_EXHAUSTIVE_REFINE_SIZE = 10


class ClusterStatus(StrEnum):
    """Cluster status after clustering.

    Attributes
    ----------
    AUTO : str
        Only Duplicate edges inside, no conflict involvement.
    REVIEW : str
        Contains Unknown/NonDuplicate edges or took part in a conflict.
    """

    AUTO = "AUTO"
    REVIEW = "REVIEW"


class ClusteringPolicy(StrEnum):
    """Consistency policy used to turn verdicts into clusters.

    Attributes
    ----------
    STRICT_TRANSITIVE : str
        Union over Duplicate edges; NonDuplicate edges are hard constraints
        and conflicting Duplicate edges are downgraded to Unknown.
    CONFIDENCE_WEIGHTED : str
        Greedy union in descending confidence order, with an optional
        cluster size cap.
    MAJORITY_LINK : str
        Merge two groups only if enough of the verdicts between them are
        Duplicate.
    """

    STRICT_TRANSITIVE = "strict_transitive"
    CONFIDENCE_WEIGHTED = "confidence_weighted"
    MAJORITY_LINK = "majority_link"


class NegativeConstraintMode(StrEnum):
    """Precedence of NonDuplicate edges under the non-strict policies.

    Attributes
    ----------
    VETO : str
        A single NonDuplicate edge between two groups blocks their merge.
    OUTVOTE : str
        NonDuplicate edges are weighed against the Duplicate edges between
        the two groups; the merge may go ahead and is flagged for review.
    """

    VETO = "veto"
    OUTVOTE = "outvote"


@dataclass(frozen=True)
class ClusteringConfig:
    """Configuration for the clustering engine.

    Attributes
    ----------
    policy : ClusteringPolicy
        Consistency policy, by default STRICT_TRANSITIVE.
    max_cluster_size : int | None
        Merges that would exceed this size are skipped (non-strict
        policies only). None disables the cap.
    min_majority_fraction : float
        Minimum share of Duplicate verdicts among all verdicts between two
        groups for a majority-link merge, in (0, 1]. Default 0.5.
    negative_constraints : NegativeConstraintMode
        NonDuplicate precedence for non-strict policies, by default VETO.
        The strict policy always vetoes.
    refine_clusters : bool
        Re-partition clusters by correlation scoring after merging,
        by default False. Refinement only splits.
    refine_max_size : int
        Largest cluster refined by exhaustive partition search; larger
        clusters are refined greedily. Default 8.
    """

    policy: ClusteringPolicy = ClusteringPolicy.STRICT_TRANSITIVE
    max_cluster_size: int | None = None
    min_majority_fraction: float = 0.5
    negative_constraints: NegativeConstraintMode = NegativeConstraintMode.VETO
    refine_clusters: bool = False
    refine_max_size: int = 8

    def __post_init__(self) -> None:
        """Coerce enums and validate."""
        try:
            object.__setattr__(self, "policy", ClusteringPolicy(self.policy))
            object.__setattr__(
                self,
                "negative_constraints",
                NegativeConstraintMode(self.negative_constraints),
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        if self.max_cluster_size is not None and self.max_cluster_size < 1:
            raise ConfigurationError(
                f"max_cluster_size must be >= 1, got {self.max_cluster_size}"
            )

        if not 0.0 < self.min_majority_fraction <= 1.0:
            raise ConfigurationError(
                f"min_majority_fraction must be in (0, 1], got {self.min_majority_fraction}"
            )

        if not 2 <= self.refine_max_size <= MAX_EXHAUSTIVE_REFINE_SIZE:
            raise ConfigurationError(
                f"refine_max_size must be in [2, {MAX_EXHAUSTIVE_REFINE_SIZE}], "
                f"got {self.refine_max_size}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "policy": self.policy.value,
            "max_cluster_size": self.max_cluster_size,
            "min_majority_fraction": self.min_majority_fraction,
            "negative_constraints": self.negative_constraints.value,
            "refine_clusters": self.refine_clusters,
            "refine_max_size": self.refine_max_size,
        }


@dataclass(frozen=True)
class ClusterSummary:
    """Per-cluster confidence summary over internal verdicts.

    Attributes
    ----------
    size : int
        Number of members.
    duplicate_edges : int
        Internal Duplicate verdicts.
    unknown_edges : int
        Internal Unknown verdicts (including downgraded edges).
    negative_edges : int
        Internal NonDuplicate verdicts.
    min_confidence : float | None
        Lowest internal Duplicate confidence (None without Duplicate edges).
    mean_confidence : float | None
        Mean internal Duplicate confidence.
    max_confidence : float | None
        Highest internal Duplicate confidence.
    """

    size: int
    duplicate_edges: int = 0
    unknown_edges: int = 0
    negative_edges: int = 0
    min_confidence: float | None = None
    mean_confidence: float | None = None
    max_confidence: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "size": self.size,
            "duplicate_edges": self.duplicate_edges,
            "unknown_edges": self.unknown_edges,
            "negative_edges": self.negative_edges,
            "min_confidence": self.min_confidence,
            "mean_confidence": self.mean_confidence,
            "max_confidence": self.max_confidence,
        }


@dataclass(frozen=True)
class Cluster:
    """A group of record identifiers believed to be one entity.

    Attributes
    ----------
    cluster_id : str
        Deterministic cluster identifier.
    status : ClusterStatus
        AUTO or REVIEW.
    rids : tuple[str, ...]
        Member record IDs (sorted, at least one).
    summary : ClusterSummary
        Confidence summary over internal verdicts.
    """

    cluster_id: str
    status: ClusterStatus
    rids: tuple[str, ...]
    summary: ClusterSummary

    @property
    def size(self) -> int:
        """Number of members."""
        return len(self.rids)

    @property
    def is_singleton(self) -> bool:
        """Whether the cluster has a single member."""
        return len(self.rids) == 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "cluster_id": self.cluster_id,
            "status": self.status.value,
            "rids": list(self.rids),
            "summary": self.summary.to_dict(),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Cluster":
        """Deserialize cluster from dictionary.

        Parameters
        ----------
        data : dict[str, Any]
            Dictionary representation (e.g., from JSONL).

        Returns
        -------
        Cluster
            Deserialized cluster.
        """
        rids = tuple(data["rids"])
        summary = data.get("summary") or {"size": len(rids)}
        return Cluster(
            cluster_id=data["cluster_id"],
            status=ClusterStatus(data.get("status", ClusterStatus.AUTO)),
            rids=rids,
            summary=ClusterSummary(**summary),
        )


@dataclass(frozen=True)
class ClusteringResult:
    """Partition of all identifiers plus non-fatal warnings.

    Attributes
    ----------
    clusters : tuple[Cluster, ...]
        Disjoint, covering clusters sorted by cluster_id.
    conflicts : tuple[ConstraintConflict, ...]
        Negative-constraint conflicts, in processing order.
    downgraded_pairs : tuple[str, ...]
        Duplicate edges downgraded to Unknown (strict policy), sorted.
    stats : dict[str, int]
        Counters (clusters, singletons, merges, skips, refinements).
    """

    clusters: tuple[Cluster, ...]
    conflicts: tuple[ConstraintConflict, ...] = ()
    downgraded_pairs: tuple[str, ...] = ()
    stats: dict[str, int] = field(default_factory=dict)

    @property
    def assignments(self) -> dict[str, str]:
        """Map every record ID to its cluster_id."""
        return {rid: cluster.cluster_id for cluster in self.clusters for rid in cluster.rids}

    def cluster_of(self, rid: str) -> Cluster:
        """Return the cluster containing ``rid``.

        Raises
        ------
        KeyError
            If ``rid`` was not part of the clustering run.
        """
        for cluster in self.clusters:
            if rid in cluster.rids:
                return cluster
        raise KeyError(rid)

    def partition(self) -> set[frozenset[str]]:
        """Return the clusters as a set of frozensets (order-free view)."""
        return {frozenset(cluster.rids) for cluster in self.clusters}
