"""Data models for pairwise classification."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from erdedupe.errors import ConfigurationError, MeasurementWarning, SkippedPair
from erdedupe.models import make_pair_id, order_pair
from erdedupe.similarity import Measure
from erdedupe.similarity.combinators import validate_weights

__all__ = [
    "Classification",
    "AttributeComparison",
    "ClassifierConfig",
    "Verdict",
    "ClassificationReport",
]


class Classification(StrEnum):
    """Three-way pairwise outcome.

    Attributes
    ----------
    DUPLICATE : str
        Aggregate score at or above the duplicate threshold.
    NON_DUPLICATE : str
        Aggregate score below the non-duplicate threshold.
    UNKNOWN : str
        In between (or not measurable); needs human review.
    """

    DUPLICATE = "DUPLICATE"
    NON_DUPLICATE = "NON_DUPLICATE"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class AttributeComparison:
    """One weighted attribute comparison.

    Attributes
    ----------
    attribute : str
        Attribute name looked up on both records.
    measure : Measure
        Similarity measure applied to the attribute pair.
    weight : float
        Weight in the aggregate (weights across comparisons sum to 1).
    """

    attribute: str
    measure: Measure
    weight: float

    def __post_init__(self) -> None:
        """Validate attribute comparison."""
        if not self.attribute:
            raise ConfigurationError("Attribute name must be non-empty")
        if not isinstance(self.measure, Measure):
            raise ConfigurationError(
                f"Attribute {self.attribute!r}: measure must be a Measure, got {self.measure!r}"
            )


@dataclass(frozen=True)
class ClassifierConfig:
    """Immutable pairwise classifier configuration.

    Attributes
    ----------
    comparisons : tuple[AttributeComparison, ...]
        Weighted attribute comparisons; weights must sum to 1.
    duplicate_threshold : float
        Scores at or above are DUPLICATE.
    non_duplicate_threshold : float
        Scores strictly below are NON_DUPLICATE.
    exact_match_override : bool
        Score identical raw attribute values 1.0 regardless of the measure,
        by default True.
    """

    comparisons: tuple[AttributeComparison, ...]
    duplicate_threshold: float = 0.85
    non_duplicate_threshold: float = 0.5
    exact_match_override: bool = True

    def __post_init__(self) -> None:
        """Validate weights and thresholds."""
        object.__setattr__(self, "comparisons", tuple(self.comparisons))

        if not self.comparisons:
            raise ConfigurationError("At least one attribute comparison is required")

        names = [c.attribute for c in self.comparisons]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate attribute comparisons: {duplicates}")

        validate_weights([c.weight for c in self.comparisons])

        for label, value in (
            ("duplicate_threshold", self.duplicate_threshold),
            ("non_duplicate_threshold", self.non_duplicate_threshold),
        ):
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{label} must be in [0, 1], got {value}")

        if self.duplicate_threshold < self.non_duplicate_threshold:
            raise ConfigurationError(
                f"duplicate_threshold ({self.duplicate_threshold}) must be >= "
                f"non_duplicate_threshold ({self.non_duplicate_threshold})"
            )

    @property
    def attributes(self) -> tuple[str, ...]:
        """Compared attribute names, in configuration order."""
        return tuple(c.attribute for c in self.comparisons)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly summary (measures by name)."""
        return {
            "comparisons": [
                {"attribute": c.attribute, "measure": c.measure.name, "weight": c.weight}
                for c in self.comparisons
            ],
            "duplicate_threshold": self.duplicate_threshold,
            "non_duplicate_threshold": self.non_duplicate_threshold,
            "exact_match_override": self.exact_match_override,
        }


@dataclass(frozen=True)
class Verdict:
    """Immutable outcome of classifying one record pair.

    Record IDs are stored in lexicographic order so that a pair and its
    reverse produce the same verdict identity.

    Attributes
    ----------
    rid_a : str
        Smaller record ID.
    rid_b : str
        Larger record ID.
    classification : Classification
        Pairwise outcome.
    confidence : float
        Score for DUPLICATE/UNKNOWN, ``1 - score`` for NON_DUPLICATE.
    score : float | None
        Aggregate similarity, None when undefined.
    attribute_scores : dict[str, float | None]
        Per-attribute similarity (None when undefined).
    warnings : tuple[str, ...]
        Warning codes raised while classifying.
    """

    rid_a: str
    rid_b: str
    classification: Classification
    confidence: float
    score: float | None = None
    attribute_scores: dict[str, float | None] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Order record IDs and validate confidence."""
        if self.rid_a == self.rid_b:
            raise ValueError(f"Verdict requires two distinct records, got {self.rid_a!r} twice")
        first, second = order_pair(self.rid_a, self.rid_b)
        object.__setattr__(self, "rid_a", first)
        object.__setattr__(self, "rid_b", second)
        object.__setattr__(self, "classification", Classification(self.classification))
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Verdict confidence must be in [0, 1], got {self.confidence}")

    @property
    def pair_id(self) -> str:
        """Order-independent pair identifier."""
        return make_pair_id(self.rid_a, self.rid_b)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "pair_id": self.pair_id,
            "rid_a": self.rid_a,
            "rid_b": self.rid_b,
            "classification": self.classification.value,
            "confidence": self.confidence,
            "score": self.score,
            "attribute_scores": dict(self.attribute_scores),
            "warnings": list(self.warnings),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Verdict":
        """Create Verdict from a raw dict (e.g. a JSONL line).

        Parameters
        ----------
        data : dict[str, Any]
            Dict with at least rid_a, rid_b, classification and confidence.

        Returns
        -------
        Verdict
            Typed verdict.
        """
        return Verdict(
            rid_a=data["rid_a"],
            rid_b=data["rid_b"],
            classification=Classification(data["classification"]),
            confidence=float(data["confidence"]),
            score=data.get("score"),
            attribute_scores=dict(data.get("attribute_scores") or {}),
            warnings=tuple(data.get("warnings") or ()),
        )


@dataclass(frozen=True)
class ClassificationReport:
    """Result of classifying a candidate-pair batch.

    Attributes
    ----------
    verdicts : tuple[Verdict, ...]
        One verdict per distinct classified pair, sorted by pair_id.
    skipped : tuple[SkippedPair, ...]
        Candidate pairs that were not classified.
    warnings : tuple[MeasurementWarning, ...]
        Recovered measurement failures.
    stats : dict[str, Any]
        Counters (pairs in/classified/skipped, per-class counts, score buckets).
    """

    verdicts: tuple[Verdict, ...]
    skipped: tuple[SkippedPair, ...] = ()
    warnings: tuple[MeasurementWarning, ...] = ()
    stats: dict[str, Any] = field(default_factory=dict)
