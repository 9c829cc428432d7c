"""Clustering of pairwise verdicts into entity groups.

This module turns a sparse graph of Duplicate / NonDuplicate / Unknown
verdicts into a partition of record identifiers using an index-based
Union-Find under one of three consistency policies, with optional
correlation-score refinement.
"""

from erdedupe.clustering.cluster_builder import build_clusters, summarize_cluster
from erdedupe.clustering.graph import DuplicateGraph
from erdedupe.clustering.models import (
    Cluster,
    ClusteringConfig,
    ClusteringPolicy,
    ClusteringResult,
    ClusterStatus,
    ClusterSummary,
    NegativeConstraintMode,
)

__all__ = [
    "Cluster",
    "ClusteringConfig",
    "ClusteringPolicy",
    "ClusteringResult",
    "ClusterStatus",
    "ClusterSummary",
    "DuplicateGraph",
    "NegativeConstraintMode",
    "build_clusters",
    "summarize_cluster",
]
