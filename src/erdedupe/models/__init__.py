"""Shared data types for erdedupe.

Stage-specific types live closer to their consumers:
- Similarity scores → erdedupe.similarity
- Verdicts → erdedupe.classifier
- Clusters → erdedupe.clustering
- Canonical records → erdedupe.fusion
"""

from erdedupe.models.identifiers import (
    compute_canonical_id,
    compute_cluster_id,
    make_pair_id,
    order_pair,
)
from erdedupe.models.records import Record, is_missing

__all__ = [
    "Record",
    "is_missing",
    "order_pair",
    "make_pair_id",
    "compute_cluster_id",
    "compute_canonical_id",
]
