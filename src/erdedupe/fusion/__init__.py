"""Fusion of clusters into canonical records.

Per attribute, candidate values are gathered from the cluster members and
narrowed by a fallback chain of conflict-resolution strategies; the result
carries provenance naming the records that supplied each value.
"""

from erdedupe.fusion.config import FusionConfig
from erdedupe.fusion.fuse import fuse_cluster, fuse_clusters
from erdedupe.fusion.models import (
    AnnotatedValue,
    CanonicalRecord,
    FieldProvenance,
    FusionOutcome,
    FusionReport,
)
from erdedupe.fusion.strategies import (
    AttributeFusion,
    ConflictResolution,
    Corresponding,
    CustomMerge,
    Earliest,
    First,
    FusionContext,
    HighestSourceTrust,
    Last,
    Longest,
    MajorityVote,
    Maximum,
    Mean,
    Median,
    Minimum,
    MostRecent,
    SetUnion,
    Shortest,
    Sum,
)

__all__ = [
    # Models
    "AnnotatedValue",
    "CanonicalRecord",
    "FieldProvenance",
    "FusionOutcome",
    "FusionReport",
    # Configuration
    "FusionConfig",
    "AttributeFusion",
    "FusionContext",
    # Strategies
    "ConflictResolution",
    "MostRecent",
    "Earliest",
    "HighestSourceTrust",
    "Longest",
    "Shortest",
    "MajorityVote",
    "Minimum",
    "Maximum",
    "First",
    "Last",
    "Corresponding",
    "CustomMerge",
    "Mean",
    "Sum",
    "Median",
    "SetUnion",
    # Operations
    "fuse_cluster",
    "fuse_clusters",
]
