"""Combinators composing measures into new measures.

Every combinator is itself a ``Measure``, so compositions nest freely:

    >>> name = ExactMatchOverride(MaxOf((EditDistance(), JaroWinkler())))
    >>> WeightedCombination(((name, 0.7), (TokenSetOverlap(), 0.3)))
"""

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from erdedupe.errors import ConfigurationError, MeasurementError
from erdedupe.models import is_missing
from erdedupe.similarity.base import Measure
from erdedupe.similarity.models import MissingValuePolicy, SimilarityScore

__all__ = [
    "WEIGHT_SUM_TOLERANCE",
    "combine_weighted",
    "validate_weights",
    "WeightedCombination",
    "MaxOf",
    "MinOf",
    "ExactMatchOverride",
    "MissingValueFallback",
    "Transformed",
    "Cutoff",
    "ScaleWithThreshold",
    "Negate",
]

WEIGHT_SUM_TOLERANCE = 1e-6


def validate_weights(weights: Sequence[float]) -> None:
    """Check weights are non-negative and sum to 1.

    Raises
    ------
    ConfigurationError
        If a weight is negative or not finite, or the sum differs from 1.
    """
    if not weights:
        raise ConfigurationError("At least one weighted component is required")
    for weight in weights:
        if not (math.isfinite(weight) and weight >= 0.0):
            raise ConfigurationError(f"Weights must be finite and >= 0, got {weight}")
    total = sum(weights)
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise ConfigurationError(f"Weights must sum to 1, got {total:.6f}")


def combine_weighted(scored: Iterable[tuple[SimilarityScore, float]]) -> SimilarityScore:
    """Weighted mean over the defined scores only.

    Weights are re-normalized over the subset of defined scores. If no
    score is defined (or all defined scores carry zero weight) the result
    is undefined.

    Parameters
    ----------
    scored : Iterable[tuple[SimilarityScore, float]]
        (score, weight) pairs.

    Returns
    -------
    SimilarityScore
        Aggregated score.
    """
    weighted_sum = 0.0
    weight_total = 0.0
    for score, weight in scored:
        if score.value is None:
            continue
        weighted_sum += weight * score.value
        weight_total += weight

    if weight_total <= 0.0:
        return SimilarityScore.undefined()
    return SimilarityScore.of(weighted_sum / weight_total)


def _require_measures(measures: Sequence[Measure], owner: str) -> None:
    if not measures:
        raise ConfigurationError(f"{owner} requires at least one measure")
    for measure in measures:
        if not isinstance(measure, Measure):
            raise ConfigurationError(f"{owner} got a non-measure component: {measure!r}")


@dataclass(frozen=True)
class WeightedCombination(Measure):
    """Weighted mean of several measures on the same attribute pair.

    Attributes
    ----------
    components : tuple[tuple[Measure, float], ...]
        (measure, weight) pairs. Weights must be >= 0 and sum to 1.
    """

    components: tuple[tuple[Measure, float], ...]

    def __post_init__(self) -> None:
        """Freeze components and validate weights."""
        components = tuple((measure, float(weight)) for measure, weight in self.components)
        object.__setattr__(self, "components", components)
        _require_measures([m for m, _ in components], "WeightedCombination")
        validate_weights([w for _, w in components])

    @classmethod
    def normalized(cls, components: Iterable[tuple[Measure, float]]) -> "WeightedCombination":
        """Build a combination from arbitrary non-negative weights, rescaled to sum 1."""
        items = list(components)
        total = sum(weight for _, weight in items)
        if any(weight < 0 for _, weight in items) or total <= 0:
            raise ConfigurationError("Weights must be >= 0 with a positive sum")
        return cls(tuple((measure, weight / total) for measure, weight in items))

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Weighted mean over the sub-measures that returned a defined score."""
        return combine_weighted(
            (measure.compare(left, right), weight) for measure, weight in self.components
        )


@dataclass(frozen=True)
class MaxOf(Measure):
    """Highest defined score among several measures; undefined if none is defined."""

    measures: tuple[Measure, ...]

    def __post_init__(self) -> None:
        """Validate components."""
        object.__setattr__(self, "measures", tuple(self.measures))
        _require_measures(self.measures, "MaxOf")

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Return the max over defined sub-scores."""
        values = [m.compare(left, right).value for m in self.measures]
        defined = [v for v in values if v is not None]
        return SimilarityScore.of(max(defined)) if defined else SimilarityScore.undefined()


@dataclass(frozen=True)
class MinOf(Measure):
    """Lowest defined score among several measures; undefined if none is defined."""

    measures: tuple[Measure, ...]

    def __post_init__(self) -> None:
        """Validate components."""
        object.__setattr__(self, "measures", tuple(self.measures))
        _require_measures(self.measures, "MinOf")

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Return the min over defined sub-scores."""
        values = [m.compare(left, right).value for m in self.measures]
        defined = [v for v in values if v is not None]
        return SimilarityScore.of(min(defined)) if defined else SimilarityScore.undefined()


@dataclass(frozen=True)
class ExactMatchOverride(Measure):
    """Force 1.0 when both raw values are present, of one type and equal."""

    measure: Measure

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Short-circuit identical values, otherwise delegate."""
        if not is_missing(left) and type(left) is type(right) and left == right:
            return SimilarityScore.of(1.0)
        return self.measure.compare(left, right)


@dataclass(frozen=True)
class MissingValueFallback(Measure):
    """Score missing values with a fixed penalty instead of the inner policy.

    Attributes
    ----------
    measure : Measure
        Measure used when both values are present.
    policy : MissingValuePolicy
        Policy applied when either value is missing.
    """

    measure: Measure
    policy: MissingValuePolicy = MissingValuePolicy(0.0)

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Apply the policy to missing values, otherwise delegate."""
        if is_missing(left) or is_missing(right):
            return self.policy.score()
        return self.measure.compare(left, right)


@dataclass(frozen=True)
class Transformed(Measure):
    """Pre-process both values before comparing (e.g. normalization).

    ``ValueError`` raised by the transform is reported as ``MeasurementError``.
    """

    measure: Measure
    transform: Callable[[Any], Any]

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Transform non-missing values, then delegate."""
        try:
            left = left if is_missing(left) else self.transform(left)
            right = right if is_missing(right) else self.transform(right)
        except ValueError as e:
            raise MeasurementError(f"Transform failed: {e}") from e
        return self.measure.compare(left, right)


@dataclass(frozen=True)
class Cutoff(Measure):
    """Map scores below ``threshold`` to 0.0."""

    measure: Measure
    threshold: float

    def __post_init__(self) -> None:
        """Validate threshold."""
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigurationError(f"Cutoff threshold must be in [0, 1], got {self.threshold}")

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Delegate, then zero out scores under the threshold."""
        score = self.measure.compare(left, right)
        if score.value is not None and score.value < self.threshold:
            return SimilarityScore.of(0.0)
        return score


@dataclass(frozen=True)
class ScaleWithThreshold(Measure):
    """Rescale (threshold, 1] onto (0, 1]; scores at or below threshold become 0.0."""

    measure: Measure
    threshold: float

    def __post_init__(self) -> None:
        """Validate threshold."""
        if not 0.0 <= self.threshold < 1.0:
            raise ConfigurationError(
                f"ScaleWithThreshold threshold must be in [0, 1), got {self.threshold}"
            )

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Delegate, then rescale."""
        score = self.measure.compare(left, right)
        if score.value is None:
            return score
        if score.value <= self.threshold:
            return SimilarityScore.of(0.0)
        return SimilarityScore.of((score.value - self.threshold) / (1.0 - self.threshold))


@dataclass(frozen=True)
class Negate(Measure):
    """Invert a measure: ``1 - score``. Undefined stays undefined."""

    measure: Measure

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Delegate, then invert."""
        score = self.measure.compare(left, right)
        return score if score.value is None else SimilarityScore.of(1.0 - score.value)
