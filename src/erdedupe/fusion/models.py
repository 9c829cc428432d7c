"""Data models for cluster fusion."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from erdedupe.errors import UnresolvedFusionConflict

__all__ = [
    "AnnotatedValue",
    "FieldProvenance",
    "CanonicalRecord",
    "FusionOutcome",
    "FusionReport",
]


@dataclass(frozen=True)
class AnnotatedValue:
    """A candidate attribute value with its origin.

    Attributes
    ----------
    value : Any
        Attribute value.
    rids : tuple[str, ...]
        Records that supplied the value (several for merged values).
    source : str | None
        Source name of the supplying record, for trust ranking.
    timestamp : datetime | None
        Timestamp of the supplying record, for recency.
    """

    value: Any
    rids: tuple[str, ...]
    source: str | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True)
class FieldProvenance:
    """Provenance for a single fused attribute.

    Attributes
    ----------
    rids : tuple[str, ...]
        Record IDs that supplied the final value (sorted).
    rule : str
        Rule that settled the value ("singleton", "agreement", a strategy
        chain such as "majority_vote", or "first_value_fallback").
    candidates : tuple[Any, ...] | None
        Distinct competing values, when there was a conflict.
    """

    rids: tuple[str, ...]
    rule: str
    candidates: tuple[Any, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "rids": list(self.rids),
            "rule": self.rule,
            "candidates": list(self.candidates) if self.candidates is not None else None,
        }


@dataclass(frozen=True)
class CanonicalRecord:
    """One conflict-resolved record per cluster.

    Attributes
    ----------
    canonical_id : str
        Deterministic identifier ("m:" prefix).
    cluster_id : str
        Cluster the record was fused from.
    member_rids : tuple[str, ...]
        Member record IDs (sorted).
    attributes : Mapping[str, Any]
        Fused attribute values (read-only).
    provenance : Mapping[str, FieldProvenance]
        Attribute name to provenance (read-only).
    """

    canonical_id: str
    cluster_id: str
    member_rids: tuple[str, ...]
    attributes: Mapping[str, Any] = field(default_factory=dict)
    provenance: Mapping[str, FieldProvenance] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze mappings."""
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, "provenance", MappingProxyType(dict(self.provenance)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "canonical_id": self.canonical_id,
            "cluster_id": self.cluster_id,
            "member_rids": list(self.member_rids),
            "attributes": dict(self.attributes),
            "provenance": {name: prov.to_dict() for name, prov in self.provenance.items()},
        }


@dataclass(frozen=True)
class FusionOutcome:
    """Result of fusing one cluster.

    Attributes
    ----------
    record : CanonicalRecord
        Canonical record.
    warnings : tuple[UnresolvedFusionConflict, ...]
        Conflicts settled by the deterministic first-value default.
    """

    record: CanonicalRecord
    warnings: tuple[UnresolvedFusionConflict, ...] = ()


@dataclass(frozen=True)
class FusionReport:
    """Result of fusing a batch of clusters.

    Attributes
    ----------
    records : tuple[CanonicalRecord, ...]
        Canonical records sorted by canonical_id.
    warnings : tuple[UnresolvedFusionConflict, ...]
        All unresolved conflicts, sorted by cluster and attribute.
    stats : dict[str, int]
        Counters (clusters, singletons, conflicts resolved/unresolved).
    """

    records: tuple[CanonicalRecord, ...]
    warnings: tuple[UnresolvedFusionConflict, ...] = ()
    stats: dict[str, int] = field(default_factory=dict)
