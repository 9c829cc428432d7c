"""Pairwise classification of candidate record pairs.

Aggregates weighted attribute similarities into a three-way verdict
(DUPLICATE / NON_DUPLICATE / UNKNOWN) with a confidence score.
"""

from erdedupe.classifier.classify import classify_pair, classify_pairs, classify_score
from erdedupe.classifier.models import (
    AttributeComparison,
    Classification,
    ClassificationReport,
    ClassifierConfig,
    Verdict,
)

__all__ = [
    "AttributeComparison",
    "Classification",
    "ClassificationReport",
    "ClassifierConfig",
    "Verdict",
    "classify_pair",
    "classify_pairs",
    "classify_score",
]
