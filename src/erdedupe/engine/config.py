"""Resolution configuration and result dataclasses."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from erdedupe.classifier.models import ClassifierConfig, Verdict
from erdedupe.clustering.models import ClusteringConfig, ClusteringResult
from erdedupe.errors import (
    ConstraintConflict,
    MeasurementWarning,
    SkippedPair,
    UnresolvedFusionConflict,
)
from erdedupe.fusion.config import FusionConfig
from erdedupe.fusion.models import CanonicalRecord

__all__ = ["ResolutionConfig", "ResolutionResult", "ResolutionWarning"]

ResolutionWarning = MeasurementWarning | SkippedPair | ConstraintConflict | UnresolvedFusionConflict


@dataclass(frozen=True)
class ResolutionConfig:
    """Configuration for a full resolution run.

    Attributes
    ----------
    classifier : ClassifierConfig
        Attribute comparisons and decision thresholds.
    clustering : ClusteringConfig
        Consistency policy and its parameters.
    fusion : FusionConfig
        Per-attribute conflict-resolution chains.
    """

    classifier: ClassifierConfig
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    fusion: FusionConfig = field(default_factory=FusionConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "classifier": self.classifier.to_dict(),
            "clustering": self.clustering.to_dict(),
            "fusion": self.fusion.to_dict(),
        }


@dataclass(frozen=True)
class ResolutionResult:
    """Results from a resolution run.

    Attributes
    ----------
    verdicts : tuple[Verdict, ...]
        Pair verdicts sorted by pair_id.
    clustering : ClusteringResult
        Partition of all record IDs with conflicts and stats.
    canonical_records : tuple[CanonicalRecord, ...]
        One fused record per cluster, sorted by canonical_id.
    warnings : tuple[ResolutionWarning, ...]
        Every structured warning of the run, in stage order.
    summary : dict[str, Any]
        Per-stage counters and warning counts by kind.
    """

    verdicts: tuple[Verdict, ...]
    clustering: ClusteringResult
    canonical_records: tuple[CanonicalRecord, ...]
    warnings: tuple[ResolutionWarning, ...] = ()
    summary: dict[str, Any] = field(default_factory=dict)

    @property
    def warning_counts(self) -> dict[str, int]:
        """Warning counts keyed by warning kind."""
        return dict(sorted(Counter(w.kind for w in self.warnings).items()))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (summary level)."""
        return dict(self.summary)
