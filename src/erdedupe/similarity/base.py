"""Measure interface and the value-checking base class for built-ins."""

import numbers
from abc import ABC, abstractmethod
from collections.abc import Set
from dataclasses import dataclass, field
from datetime import date
from typing import Any, ClassVar

from erdedupe.errors import TypeMismatchError
from erdedupe.models import is_missing
from erdedupe.similarity.models import MissingValuePolicy, SimilarityScore, ValueType

__all__ = ["Measure", "ValueMeasure", "value_in_domain"]


def value_in_domain(value: Any, value_type: ValueType) -> bool:
    """Check whether a (non-missing) value belongs to a semantic domain.

    Parameters
    ----------
    value : Any
        Attribute value.
    value_type : ValueType
        Declared domain.

    Returns
    -------
    bool
        True if the value is acceptable for the domain.
    """
    if value_type == ValueType.ANY:
        return True
    if value_type == ValueType.STRING:
        return isinstance(value, str)
    if value_type == ValueType.NUMBER:
        return isinstance(value, numbers.Real) and not isinstance(value, bool)
    if value_type == ValueType.DATE:
        return isinstance(value, (date, str))
    if value_type == ValueType.SET:
        return isinstance(value, (list, tuple, Set))
    return False


class Measure(ABC):
    """A pure function from an attribute pair to a ``SimilarityScore``.

    Implementations must be free of side effects so a single instance can be
    evaluated concurrently across many pairs.
    """

    @abstractmethod
    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Score a pair of attribute values.

        Parameters
        ----------
        left : Any
            Value from the first record.
        right : Any
            Value from the second record.

        Returns
        -------
        SimilarityScore
            Score in [0, 1] or undefined.

        Raises
        ------
        TypeMismatchError
            If a value is outside the measure's declared domain.
        MeasurementError
            If well-typed values cannot be compared.
        """

    @property
    def name(self) -> str:
        """Human-readable measure name."""
        return type(self).__name__


@dataclass(frozen=True)
class ValueMeasure(Measure):
    """Base class for leaf measures.

    ``compare`` applies the missing-value policy, rejects values outside the
    declared domain, then delegates to ``_similarity``. Subclasses declare
    ``VALUE_TYPE`` and implement ``_similarity``, returning a float in
    [0, 1] or None for an undefined score.
    """

    VALUE_TYPE: ClassVar[ValueType] = ValueType.ANY

    missing: MissingValuePolicy = field(
        default_factory=MissingValuePolicy.undefined, kw_only=True
    )

    @property
    def value_type(self) -> ValueType:
        """Declared semantic domain."""
        return self.VALUE_TYPE

    def accepts(self, value: Any) -> bool:
        """Whether a non-missing value belongs to this measure's domain."""
        return value_in_domain(value, self.value_type)

    def compare(self, left: Any, right: Any) -> SimilarityScore:
        """Score a pair of attribute values (see ``Measure.compare``)."""
        if is_missing(left) or is_missing(right):
            return self.missing.score()

        for value in (left, right):
            if not self.accepts(value):
                raise TypeMismatchError(
                    f"{self.name} expects {self.value_type.value} values, "
                    f"got {type(value).__name__}: {value!r}",
                    measure=self.name,
                    value_type=self.value_type.value,
                )

        return SimilarityScore.of(self._similarity(left, right))

    @abstractmethod
    def _similarity(self, left: Any, right: Any) -> float | None:
        """Compute the raw similarity of two non-missing, well-typed values."""
