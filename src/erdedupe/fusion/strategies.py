"""Conflict-resolution strategies for attribute fusion.

A strategy narrows a list of candidate values: selection strategies keep
the subset of candidates that win under their criterion (ties survive for
the next strategy in the chain), merge strategies replace all candidates
with one computed value contributed by every candidate.
"""

import numbers
import statistics
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from erdedupe.errors import ConfigurationError
from erdedupe.fusion.models import AnnotatedValue

__all__ = [
    "FusionContext",
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
    "AttributeFusion",
    "distinct_values",
]


def distinct_values(values: Iterable[Any]) -> list[Any]:
    """Distinct values in first-seen order, compared with ``==``.

    Values need not be hashable (lists and dicts are common attribute values).
    """
    distinct: list[Any] = []
    for value in values:
        if not any(value == seen for seen in distinct):
            distinct.append(value)
    return distinct


def _keep_best(
    candidates: list[AnnotatedValue],
    key: Callable[[AnnotatedValue], Any],
) -> list[AnnotatedValue]:
    best = max(key(c) for c in candidates)
    return [c for c in candidates if key(c) == best]


def _sorted_if_comparable(values: list[Any]) -> list[Any]:
    try:
        return sorted(values)
    except TypeError:
        return values


def _length(value: Any) -> int:
    if isinstance(value, (str, list, tuple, set, frozenset, dict)):
        return len(value)
    return len(str(value))


@dataclass(frozen=True)
class FusionContext:
    """Per-cluster data shared by all strategies.

    Attributes
    ----------
    cluster_id : str
        Cluster being fused.
    source_trust : Mapping[str, float]
        Source name to trust score (higher wins).
    winners : Mapping[str, tuple[str, ...]]
        Attributes fused so far in this cluster, mapped to the record IDs
        that supplied their final value.
    """

    cluster_id: str
    source_trust: Mapping[str, float] = field(default_factory=dict)
    winners: Mapping[str, tuple[str, ...]] = field(default_factory=dict)


class ConflictResolution(ABC):
    """A strategy that narrows conflicting candidate values."""

    #: Registry / provenance name.
    NAME = "custom"

    @property
    def name(self) -> str:
        """Strategy name used in provenance."""
        return self.NAME

    @abstractmethod
    def resolve(
        self,
        candidates: list[AnnotatedValue],
        context: FusionContext,
    ) -> list[AnnotatedValue]:
        """Narrow ``candidates`` (non-empty, in record-id order).

        Returns
        -------
        list[AnnotatedValue]
            Non-empty subset (or merged replacement) of the candidates.
        """


# ---------------------------------------------------------------------------
# Selection strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MostRecent(ConflictResolution):
    """Keep the values with the latest timestamp.

    Candidates without a timestamp drop out; if none has one, all are kept.
    Requires ``FusionConfig.timestamp_attribute``.
    """

    NAME = "most_recent"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep candidates sharing the latest timestamp."""
        dated = [c for c in candidates if c.timestamp is not None]
        if not dated:
            return candidates
        return _keep_best(dated, lambda c: c.timestamp)


@dataclass(frozen=True)
class Earliest(ConflictResolution):
    """Keep the values with the earliest timestamp.

    Same rules as ``MostRecent``: undated candidates drop out unless none is
    dated.
    """

    NAME = "earliest"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep candidates sharing the earliest timestamp."""
        dated = [c for c in candidates if c.timestamp is not None]
        if not dated:
            return candidates
        earliest = min(c.timestamp for c in dated)  # type: ignore[type-var]
        return [c for c in dated if c.timestamp == earliest]


@dataclass(frozen=True)
class HighestSourceTrust(ConflictResolution):
    """Keep the values from the most trusted source.

    Sources absent from the trust ranking rank below every ranked source.
    Requires ``FusionConfig.source_attribute`` and ``source_trust``.
    """

    NAME = "source_trust"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep candidates from the highest-trust source."""
        trust = context.source_trust
        return _keep_best(
            candidates,
            lambda c: trust.get(c.source, float("-inf")) if c.source is not None else float("-inf"),
        )


@dataclass(frozen=True)
class Longest(ConflictResolution):
    """Keep the longest (most complete) values."""

    NAME = "longest"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep candidates with maximal length."""
        return _keep_best(candidates, lambda c: _length(c.value))


@dataclass(frozen=True)
class Shortest(ConflictResolution):
    """Keep the shortest values."""

    NAME = "shortest"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep candidates with minimal length."""
        return _keep_best(candidates, lambda c: -_length(c.value))


@dataclass(frozen=True)
class MajorityVote(ConflictResolution):
    """Keep the most frequent value(s); ties survive for the next strategy."""

    NAME = "majority_vote"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep candidates carrying a most-frequent value."""
        votes = [sum(len(other.rids) for other in candidates if other.value == c.value) for c in candidates]
        best = max(votes)
        return [c for c, count in zip(candidates, votes, strict=True) if count == best]


@dataclass(frozen=True)
class Minimum(ConflictResolution):
    """Keep the smallest value(s). Incomparable values are left unresolved."""

    NAME = "minimum"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep candidates equal to the minimum."""
        try:
            lowest = min(c.value for c in candidates)
        except TypeError:
            return candidates
        return [c for c in candidates if c.value == lowest]


@dataclass(frozen=True)
class Maximum(ConflictResolution):
    """Keep the largest value(s). Incomparable values are left unresolved."""

    NAME = "maximum"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep candidates equal to the maximum."""
        try:
            highest = max(c.value for c in candidates)
        except TypeError:
            return candidates
        return [c for c in candidates if c.value == highest]


@dataclass(frozen=True)
class First(ConflictResolution):
    """Keep the value of the record with the smallest identifier."""

    NAME = "first"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep the first candidate by record-id order."""
        return [min(candidates, key=lambda c: c.rids)]



@dataclass(frozen=True)
class Last(ConflictResolution):
    """Keep the value of the record with the largest identifier."""

    NAME = "last"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep the last candidate by record-id order."""
        return [max(candidates, key=lambda c: c.rids)]


@dataclass(frozen=True)
class Corresponding(ConflictResolution):
    """Keep the values supplied by the records that won another attribute.

    Keeps related attributes consistent: with ``city`` fused by recency and
    ``zip`` set to ``Corresponding("city")``, the zip code comes from the
    same record(s) as the chosen city. The referenced attribute is fused
    first. If it had no value in the cluster, or none of its winners
    supplied a candidate here, the candidates pass through unchanged.

    Attributes
    ----------
    attribute : str
        Attribute whose winning records are followed.
    """

    NAME = "corresponding"

    attribute: str

    def __post_init__(self) -> None:
        """Validate the referenced attribute."""
        if not isinstance(self.attribute, str) or not self.attribute:
            raise ConfigurationError("corresponding requires a non-empty attribute name")

    @property
    def name(self) -> str:
        """Strategy name used in provenance, including the followed attribute."""
        return f"{self.NAME}({self.attribute})"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Keep candidates from the referenced attribute's winning records."""
        winners = set(context.winners.get(self.attribute, ()))
        matching = [c for c in candidates if winners.intersection(c.rids)]
        return matching or candidates


# ---------------------------------------------------------------------------
# Merge strategies
# ---------------------------------------------------------------------------


def _merged(candidates: Sequence[AnnotatedValue], value: Any) -> list[AnnotatedValue]:
    rids = tuple(sorted({rid for c in candidates for rid in c.rids}))
    timestamps = [c.timestamp for c in candidates if c.timestamp is not None]
    return [AnnotatedValue(value=value, rids=rids, timestamp=max(timestamps, default=None))]


@dataclass(frozen=True)
class CustomMerge(ConflictResolution):
    """Combine all candidate values with a caller-supplied function.

    Attributes
    ----------
    func : Callable[[list[Any]], Any]
        Receives candidate values in record-id order, returns one value.
    label : str
        Name used in provenance.
    """

    func: Callable[[list[Any]], Any]
    label: str = "custom_merge"

    @property
    def name(self) -> str:
        """Strategy name used in provenance."""
        return self.label

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Replace candidates with the merged value."""
        return _merged(candidates, self.func([c.value for c in candidates]))


class _NumericMerge(ConflictResolution):
    """Merge numeric values; non-numeric candidates are left unresolved."""

    @staticmethod
    @abstractmethod
    def _combine(values: list[float]) -> float:
        """Combine numeric values."""

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Replace numeric candidates with the combined value."""
        values = [c.value for c in candidates]
        if not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in values):
            return candidates
        return _merged(candidates, self._combine(values))


@dataclass(frozen=True)
class Mean(_NumericMerge):
    """Arithmetic mean of numeric values."""

    NAME = "mean"

    @staticmethod
    def _combine(values: list[float]) -> float:
        return statistics.fmean(values)


@dataclass(frozen=True)
class Sum(_NumericMerge):
    """Sum of numeric values."""

    NAME = "sum"

    @staticmethod
    def _combine(values: list[float]) -> float:
        return sum(values)


@dataclass(frozen=True)
class Median(_NumericMerge):
    """Median of numeric values."""

    NAME = "median"

    @staticmethod
    def _combine(values: list[float]) -> float:
        return statistics.median(values)


@dataclass(frozen=True)
class SetUnion(ConflictResolution):
    """Union of all values; collections contribute their elements.

    The result is a sorted list when elements are mutually comparable,
    otherwise a list in first-seen order.
    """

    NAME = "set_union"

    def resolve(self, candidates: list[AnnotatedValue], context: FusionContext) -> list[AnnotatedValue]:
        """Replace candidates with the union of their elements."""
        elements: list[Any] = []
        for candidate in candidates:
            value = candidate.value
            if isinstance(value, (list, tuple, set, frozenset)):
                elements.extend(value)
            else:
                elements.append(value)

        return _merged(candidates, _sorted_if_comparable(distinct_values(elements)))


# ---------------------------------------------------------------------------
# Fallback chain
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttributeFusion:
    """Fallback chain of strategies for one attribute.

    Strategies are applied in order until at most one distinct value
    remains.

    Attributes
    ----------
    strategies : tuple[ConflictResolution, ...]
        Strategies in fallback order.
    """

    strategies: tuple[ConflictResolution, ...]

    def __post_init__(self) -> None:
        """Validate the chain."""
        object.__setattr__(self, "strategies", tuple(self.strategies))
        if not self.strategies:
            raise ConfigurationError("An attribute fusion chain needs at least one strategy")
        for strategy in self.strategies:
            if not isinstance(strategy, ConflictResolution):
                raise ConfigurationError(f"Not a conflict resolution strategy: {strategy!r}")

    @classmethod
    def of(cls, *strategies: ConflictResolution) -> "AttributeFusion":
        """Build a chain from positional strategies."""
        return cls(strategies)

    def resolve(
        self,
        candidates: list[AnnotatedValue],
        context: FusionContext,
    ) -> tuple[list[AnnotatedValue], list[str]]:
        """Run the chain.

        Parameters
        ----------
        candidates : list[AnnotatedValue]
            Candidates in record-id order (at least two distinct values).
        context : FusionContext
            Per-cluster context.

        Returns
        -------
        tuple[list[AnnotatedValue], list[str]]
            Surviving candidates and the names of the strategies applied.
        """
        applied: list[str] = []
        for strategy in self.strategies:
            if len(distinct_values(c.value for c in candidates)) <= 1:
                break
            narrowed = strategy.resolve(candidates, context)
            applied.append(strategy.name)
            if narrowed:
                candidates = narrowed
        return candidates, applied
