"""Exception taxonomy and structured warnings for erdedupe.

Only ``ConfigurationError`` (and its subclass ``TypeMismatchError``) aborts
processing. Measurement failures, clustering constraint conflicts and
unresolved fusion conflicts degrade gracefully and are surfaced as
structured warnings on the stage results.
"""

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "ErdedupeError",
    "ConfigurationError",
    "TypeMismatchError",
    "MeasurementError",
    "MeasurementWarning",
    "SkippedPair",
    "ConstraintConflict",
    "UnresolvedFusionConflict",
]


class ErdedupeError(Exception):
    """Base class for all erdedupe errors."""


class ConfigurationError(ErdedupeError):
    """Raised for invalid configuration (weights, thresholds, policies, strategies).

    Fatal: raised before or at the very start of processing.
    """


class TypeMismatchError(ConfigurationError):
    """Raised when a measure receives a value outside its declared domain."""

    def __init__(
        self,
        message: str,
        measure: str | None = None,
        value_type: str | None = None,
    ) -> None:
        """Initialize type mismatch error.

        Parameters
        ----------
        message : str
            Error message.
        measure : str | None, optional
            Name of the measure that rejected the value.
        value_type : str | None, optional
            Declared value type of the measure.
        """
        super().__init__(message)
        self.measure = measure
        self.value_type = value_type


class MeasurementError(ErdedupeError):
    """Raised when a measure cannot compare two well-typed values.

    Recovered by the classifier as an undefined attribute score.
    """


# ---------------------------------------------------------------------------
# Structured warnings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MeasurementWarning:
    """A measure failed on one attribute of one pair.

    Attributes
    ----------
    pair_id : str
        Pair identifier ("rid_a|rid_b").
    attribute : str
        Attribute whose comparison failed.
    message : str
        Error message from the measure.
    """

    pair_id: str
    attribute: str
    message: str
    kind: str = field(default="measurement_error", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind,
            "pair_id": self.pair_id,
            "attribute": self.attribute,
            "message": self.message,
        }


@dataclass(frozen=True)
class SkippedPair:
    """A candidate pair that was not classified.

    Attributes
    ----------
    rid_a : str
        First record ID as supplied.
    rid_b : str
        Second record ID as supplied.
    reason : str
        One of "self_pair", "unknown_record", "duplicate".
    """

    rid_a: str
    rid_b: str
    reason: str
    kind: str = field(default="skipped_pair", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind,
            "rid_a": self.rid_a,
            "rid_b": self.rid_b,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ConstraintConflict:
    """A Duplicate edge contradicted a NonDuplicate constraint during clustering.

    Attributes
    ----------
    pair_id : str
        The Duplicate edge whose merge was contested.
    negative_pairs : tuple[str, ...]
        NonDuplicate pairs that would have ended up inside one cluster.
    resolution : str
        "downgraded" (strict policy), "skipped" (merge vetoed) or
        "outvoted" (merge accepted over the negative constraints).
    """

    pair_id: str
    negative_pairs: tuple[str, ...]
    resolution: str
    kind: str = field(default="constraint_conflict", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind,
            "pair_id": self.pair_id,
            "negative_pairs": list(self.negative_pairs),
            "resolution": self.resolution,
        }


@dataclass(frozen=True)
class UnresolvedFusionConflict:
    """Conflicting attribute values that no strategy could settle.

    Attributes
    ----------
    cluster_id : str
        Cluster being fused.
    attribute : str
        Attribute with conflicting values.
    candidates : tuple[Any, ...]
        Distinct values still in contention, in record-id order.
    chosen_rid : str
        Record whose value was taken (first by record-id order).
    reason : str
        "no_strategy" or "chain_exhausted".
    """

    cluster_id: str
    attribute: str
    candidates: tuple[Any, ...]
    chosen_rid: str
    reason: str
    kind: str = field(default="unresolved_fusion_conflict", init=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind,
            "cluster_id": self.cluster_id,
            "attribute": self.attribute,
            "candidates": list(self.candidates),
            "chosen_rid": self.chosen_rid,
            "reason": self.reason,
        }
