"""Value types for the similarity framework."""

import math
from dataclasses import dataclass
from enum import StrEnum

from erdedupe.errors import ConfigurationError, MeasurementError

__all__ = ["SimilarityScore", "ValueType", "MissingValuePolicy"]

# Float noise tolerance at the [0, 1] boundaries
_BOUND_TOLERANCE = 1e-9


class ValueType(StrEnum):
    """Semantic value domain declared by a measure.

    Attributes
    ----------
    STRING : str
        Text values.
    NUMBER : str
        Real numbers (bool excluded).
    DATE : str
        Dates, datetimes or ISO8601 strings.
    SET : str
        Collections of tokens (list, tuple, set, frozenset).
    ANY : str
        No domain restriction.
    """

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    SET = "set"
    ANY = "any"


@dataclass(frozen=True, slots=True)
class SimilarityScore:
    """A similarity in [0, 1], or the explicit undefined state.

    Undefined means "could not be measured" (e.g. missing data) and is
    distinct from a measured 0.0. NaN is never a valid score.

    Attributes
    ----------
    value : float | None
        Score in [0, 1], or None when undefined.
    """

    value: float | None = None

    def __post_init__(self) -> None:
        """Validate range and clamp boundary float noise."""
        if self.value is None:
            return
        value = float(self.value)
        if math.isnan(value):
            raise MeasurementError("Similarity score must not be NaN")
        if value < 0.0:
            if value < -_BOUND_TOLERANCE:
                raise MeasurementError(f"Similarity score must be in [0, 1], got {value}")
            value = 0.0
        elif value > 1.0:
            if value > 1.0 + _BOUND_TOLERANCE:
                raise MeasurementError(f"Similarity score must be in [0, 1], got {value}")
            value = 1.0
        object.__setattr__(self, "value", value)

    @classmethod
    def undefined(cls) -> "SimilarityScore":
        """Return the undefined score."""
        return cls(None)

    @classmethod
    def of(cls, value: float | None) -> "SimilarityScore":
        """Wrap a raw float (or None for undefined)."""
        return cls(value)

    @property
    def is_defined(self) -> bool:
        """Whether the score carries a value."""
        return self.value is not None

    def value_or(self, default: float) -> float:
        """Return the value, or ``default`` when undefined."""
        return default if self.value is None else self.value

    def __str__(self) -> str:
        return "undefined" if self.value is None else f"{self.value:.4f}"


@dataclass(frozen=True, slots=True)
class MissingValuePolicy:
    """How a measure scores a pair where either value is missing.

    Attributes
    ----------
    penalty_score : float | None
        Fixed score to return, or None to return an undefined score
        (the attribute is then excluded from aggregation).
    """

    penalty_score: float | None = None

    def __post_init__(self) -> None:
        """Validate the penalty score."""
        if self.penalty_score is not None and not 0.0 <= self.penalty_score <= 1.0:
            raise ConfigurationError(
                f"Missing-value penalty must be in [0, 1], got {self.penalty_score}"
            )

    @classmethod
    def undefined(cls) -> "MissingValuePolicy":
        """Treat missing values as undefined (default)."""
        return cls(None)

    @classmethod
    def penalty(cls, score: float) -> "MissingValuePolicy":
        """Treat missing values as a fixed score."""
        return cls(score)

    def score(self) -> SimilarityScore:
        """Score to emit for a missing value."""
        return SimilarityScore(self.penalty_score)
