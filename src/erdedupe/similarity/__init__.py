"""Composable similarity measures.

A measure maps two attribute values to a ``SimilarityScore`` in [0, 1] or
to the explicit undefined state. Leaf measures declare a value domain and
a missing-value policy; combinators build new measures from existing ones.
"""

from erdedupe.similarity.base import Measure, ValueMeasure
from erdedupe.similarity.combinators import (
    Cutoff,
    ExactMatchOverride,
    MaxOf,
    MinOf,
    MissingValueFallback,
    Negate,
    ScaleWithThreshold,
    Transformed,
    WeightedCombination,
    combine_weighted,
)
from erdedupe.similarity.measures import (
    DateProximity,
    EditDistance,
    ExactMatch,
    FunctionMeasure,
    JaroWinkler,
    MatchingSimilarity,
    MongeElkan,
    NumericCloseness,
    TokenSetOverlap,
)
from erdedupe.similarity.models import MissingValuePolicy, SimilarityScore, ValueType

__all__ = [
    # Core types
    "SimilarityScore",
    "ValueType",
    "MissingValuePolicy",
    "Measure",
    "ValueMeasure",
    # Measures
    "ExactMatch",
    "EditDistance",
    "JaroWinkler",
    "TokenSetOverlap",
    "NumericCloseness",
    "DateProximity",
    "MongeElkan",
    "MatchingSimilarity",
    "FunctionMeasure",
    # Combinators
    "WeightedCombination",
    "MaxOf",
    "MinOf",
    "ExactMatchOverride",
    "MissingValueFallback",
    "Transformed",
    "Cutoff",
    "ScaleWithThreshold",
    "Negate",
    "combine_weighted",
]
