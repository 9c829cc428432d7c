"""Tests for pairwise classification."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from erdedupe.audit.logger import AuditLogger
from erdedupe.classifier import (
    AttributeComparison,
    Classification,
    ClassifierConfig,
    Verdict,
    classify_pair,
    classify_pairs,
    classify_score,
)
from erdedupe.classifier.classify import get_score_bucket
from erdedupe.errors import ConfigurationError, TypeMismatchError
from erdedupe.models import Record
from erdedupe.similarity import (
    DateProximity,
    EditDistance,
    ExactMatch,
    FunctionMeasure,
    Negate,
    NumericCloseness,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _name_email_config(**options: object) -> ClassifierConfig:
    """Build the name (edit distance) + email (exact) configuration."""
    return ClassifierConfig(
        comparisons=(
            AttributeComparison("name", EditDistance(), 0.5),
            AttributeComparison("email", ExactMatch(), 0.5),
        ),
        **options,
    )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_config_requires_comparisons() -> None:
    """Test an empty comparison list is rejected."""
    with pytest.raises(ConfigurationError):
        ClassifierConfig(comparisons=())


@pytest.mark.unit
def test_config_rejects_weights_not_summing_to_one() -> None:
    """Test weights must sum to 1."""
    with pytest.raises(ConfigurationError, match="sum to 1"):
        ClassifierConfig(
            comparisons=(
                AttributeComparison("name", EditDistance(), 0.6),
                AttributeComparison("email", ExactMatch(), 0.6),
            )
        )


@pytest.mark.unit
def test_config_rejects_duplicate_attributes() -> None:
    """Test the same attribute cannot be compared twice."""
    with pytest.raises(ConfigurationError, match="Duplicate"):
        ClassifierConfig(
            comparisons=(
                AttributeComparison("name", EditDistance(), 0.5),
                AttributeComparison("name", ExactMatch(), 0.5),
            )
        )


@pytest.mark.unit
@pytest.mark.parametrize(
    ("dup", "nondup"),
    [(0.4, 0.6), (1.2, 0.5), (0.8, -0.1)],
)
def test_config_rejects_bad_thresholds(dup: float, nondup: float) -> None:
    """Test thresholds must be ordered and within [0, 1]."""
    with pytest.raises(ConfigurationError):
        _name_email_config(duplicate_threshold=dup, non_duplicate_threshold=nondup)


@pytest.mark.unit
def test_config_rejects_non_measure() -> None:
    """Test a comparison needs a Measure instance."""
    with pytest.raises(ConfigurationError):
        AttributeComparison("name", "levenshtein", 1.0)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Score to classification
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    ("score", "expected", "confidence"),
    [
        (0.95, Classification.DUPLICATE, 0.95),
        (0.85, Classification.DUPLICATE, 0.85),
        (0.7, Classification.UNKNOWN, 0.7),
        (0.5, Classification.UNKNOWN, 0.5),
        (0.2, Classification.NON_DUPLICATE, 0.8),
        (None, Classification.UNKNOWN, 0.0),
    ],
)
def test_classify_score(score: float | None, expected: Classification, confidence: float) -> None:
    """Test threshold mapping and confidence per region."""
    config = _name_email_config()

    classification, conf = classify_score(score, config)

    assert classification == expected
    assert conf == pytest.approx(confidence)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("score", "bucket"),
    [(0.0, "0.0-0.1"), (0.55, "0.5-0.6"), (0.9, "0.9-1.0"), (1.0, "0.9-1.0"), (None, "undefined")],
)
def test_get_score_bucket(score: float | None, bucket: str) -> None:
    """Test histogram bucket labels."""
    assert get_score_bucket(score) == bucket


# ---------------------------------------------------------------------------
# Single pair
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_typo_with_identical_email_is_duplicate(make_record: Callable[..., Record]) -> None:
    """Test a one-letter name typo plus identical email classifies as Duplicate."""
    a = make_record("a", name="Jonathan Smith", email="jsmith@example.com")
    b = make_record("b", name="Jonathon Smith", email="jsmith@example.com")

    verdict = classify_pair(a, b, _name_email_config(duplicate_threshold=0.85))

    assert verdict.classification == Classification.DUPLICATE
    assert verdict.score == pytest.approx((1 - 1 / 14 + 1.0) / 2)
    assert verdict.confidence == pytest.approx(verdict.score)
    assert verdict.attribute_scores["email"] == 1.0
    assert verdict.attribute_scores["name"] == pytest.approx(1 - 1 / 14)


@pytest.mark.unit
def test_exact_match_override(make_record: Callable[..., Record]) -> None:
    """Test identical non-missing values score 1.0 regardless of the measure."""
    a = make_record("a", code="X-1")
    b = make_record("b", code="X-1")
    comparisons = (AttributeComparison("code", Negate(ExactMatch()), 1.0),)

    with_override = classify_pair(a, b, ClassifierConfig(comparisons=comparisons))
    without_override = classify_pair(
        a, b, ClassifierConfig(comparisons=comparisons, exact_match_override=False)
    )

    assert with_override.attribute_scores["code"] == 1.0
    assert with_override.classification == Classification.DUPLICATE
    assert without_override.attribute_scores["code"] == 0.0
    assert without_override.classification == Classification.NON_DUPLICATE


@pytest.mark.unit
def test_exact_match_override_ignores_equal_values_of_other_types(
    make_record: Callable[..., Record],
) -> None:
    """Test True vs 1 is not short-circuited and still reaches the domain check."""
    numeric = ClassifierConfig(comparisons=(AttributeComparison("count", NumericCloseness(), 1.0),))
    negated = ClassifierConfig(comparisons=(AttributeComparison("count", Negate(ExactMatch()), 1.0),))

    with pytest.raises(TypeMismatchError):
        classify_pair(make_record("a", count=True), make_record("b", count=1), numeric)

    verdict = classify_pair(make_record("a", count=1), make_record("b", count=1.0), negated)
    assert verdict.attribute_scores["count"] == 0.0



@pytest.mark.unit
def test_missing_attribute_is_excluded_from_aggregate(make_record: Callable[..., Record]) -> None:
    """Test missing values are undefined and the remaining weights renormalize."""
    a = make_record("a", name="Ann Lee", email=None)
    b = make_record("b", name="Ann Lee", email="ann@example.com")

    verdict = classify_pair(a, b, _name_email_config())

    assert verdict.attribute_scores["email"] is None
    assert verdict.score == 1.0
    assert verdict.classification == Classification.DUPLICATE


@pytest.mark.unit
def test_all_attributes_missing_is_unknown(make_record: Callable[..., Record]) -> None:
    """Test a pair with nothing to compare is Unknown with zero confidence."""
    verdict = classify_pair(make_record("a"), make_record("b"), _name_email_config())

    assert verdict.classification == Classification.UNKNOWN
    assert verdict.confidence == 0.0
    assert verdict.score is None
    assert "all_attributes_undefined" in verdict.warnings


@pytest.mark.unit
def test_type_mismatch_propagates(make_record: Callable[..., Record]) -> None:
    """Test out-of-domain values abort classification."""
    config = ClassifierConfig(comparisons=(AttributeComparison("age", NumericCloseness(), 1.0),))

    with pytest.raises(TypeMismatchError):
        classify_pair(make_record("a", age="forty"), make_record("b", age=41), config)


@pytest.mark.unit
def test_measurement_error_becomes_warning(make_record: Callable[..., Record]) -> None:
    """Test a measurement failure yields an undefined score and a warning code."""
    config = ClassifierConfig(
        comparisons=(
            AttributeComparison("born", DateProximity(), 0.5),
            AttributeComparison("name", ExactMatch(), 0.5),
        )
    )
    a = make_record("a", born="1990-02-30", name="Ann")
    b = make_record("b", born="1990-02-28", name="Ann")

    verdict = classify_pair(a, b, config)

    assert verdict.attribute_scores["born"] is None
    assert verdict.score == 1.0
    assert "measurement_error" in verdict.warnings


@pytest.mark.unit
def test_numeric_overflow_becomes_warning(make_record: Callable[..., Record]) -> None:
    """Test an integer beyond float range degrades to an undefined score."""
    config = ClassifierConfig(
        comparisons=(
            AttributeComparison("amount", NumericCloseness(max_difference=10), 0.5),
            AttributeComparison("name", ExactMatch(), 0.5),
        )
    )
    a = make_record("a", amount=10**400, name="Ann")
    b = make_record("b", amount=5, name="Ann")

    verdict = classify_pair(a, b, config)

    assert verdict.attribute_scores["amount"] is None
    assert verdict.score == 1.0
    assert "measurement_error" in verdict.warnings



# ---------------------------------------------------------------------------
# Verdict model
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_verdict_orders_rids_and_rejects_self_pairs() -> None:
    """Test verdict identity is order-independent."""
    verdict = Verdict("z", "a", Classification.DUPLICATE, 0.9)

    assert (verdict.rid_a, verdict.rid_b) == ("a", "z")
    assert verdict.pair_id == "a|z"
    with pytest.raises(ValueError):
        Verdict("a", "a", Classification.DUPLICATE, 0.9)


@pytest.mark.unit
def test_verdict_dict_round_trip() -> None:
    """Test to_dict/from_dict preserve a verdict."""
    verdict = Verdict(
        "a", "b", Classification.UNKNOWN, 0.6, score=0.6, attribute_scores={"name": 0.6}
    )

    assert Verdict.from_dict(json.loads(json.dumps(verdict.to_dict()))) == verdict


# ---------------------------------------------------------------------------
# Batch classification
# ---------------------------------------------------------------------------


@pytest.fixture
def people(make_record: Callable[..., Record]) -> list[Record]:
    """Four people, two of them the same person."""
    return [
        make_record("p1", name="Jonathan Smith", email="js@example.com"),
        make_record("p2", name="Jonathon Smith", email="js@example.com"),
        make_record("p3", name="Maria Garcia", email="mg@example.com"),
        make_record("p4", name="Wei Zhang", email="wz@example.com"),
    ]


@pytest.mark.unit
def test_classify_pairs_skips_and_dedupes(people: list[Record]) -> None:
    """Test self, unknown and repeated pairs are skipped and reported."""
    pairs = [
        ("p1", "p2"),
        ("p2", "p1"),
        ("p3", "p3"),
        ("p1", "missing"),
        ("p3", "p4"),
    ]

    report = classify_pairs(people, pairs, _name_email_config())

    assert [v.pair_id for v in report.verdicts] == ["p1|p2", "p3|p4"]
    assert sorted(s.reason for s in report.skipped) == ["duplicate", "self_pair", "unknown_record"]
    assert report.stats["pairs_in"] == 5
    assert report.stats["pairs_classified"] == 2
    assert report.stats["classifications"]["DUPLICATE"] == 1
    assert report.stats["classifications"]["NON_DUPLICATE"] == 1


@pytest.mark.unit
def test_classify_pairs_parallel_matches_sequential(people: list[Record]) -> None:
    """Test thread-pool classification is identical to sequential."""
    pairs = [(a.rid, b.rid) for i, a in enumerate(people) for b in people[i + 1 :]]
    config = _name_email_config()

    sequential = classify_pairs(people, pairs, config)
    parallel = classify_pairs(people, list(reversed(pairs)), config, workers=4)

    assert sequential.verdicts == parallel.verdicts


@pytest.mark.unit
def test_classify_pairs_collects_measurement_warnings(make_record: Callable[..., Record]) -> None:
    """Test measurement failures are collected per pair and attribute."""

    def fragile(left: str, right: str) -> float:
        raise ValueError("cannot compare")

    config = ClassifierConfig(
        comparisons=(
            AttributeComparison("name", FunctionMeasure(fragile, label="fragile"), 0.5),
            AttributeComparison("email", ExactMatch(), 0.5),
        )
    )
    records = [make_record("a", name="x", email="e"), make_record("b", name="y", email="e")]

    report = classify_pairs(records, [("a", "b")], config)

    assert len(report.warnings) == 1
    assert report.warnings[0].pair_id == "a|b"
    assert report.warnings[0].attribute == "name"
    assert report.stats["measurement_errors"] == 1


@pytest.mark.unit
def test_classify_pairs_logs_stage_events(people: list[Record], tmp_path: Path) -> None:
    """Test stage lifecycle and skipped-pair warnings are logged."""
    log_path = tmp_path / "events.jsonl"

    with AuditLogger(run_id="test", log_path=log_path) as logger:
        classify_pairs(people, [("p1", "p2"), ("p1", "p1")], _name_email_config(), logger=logger)

    with log_path.open() as f:
        events = [json.loads(line) for line in f if line.strip()]

    names = [e["event"] for e in events]
    assert names[0] == "stage_started"
    assert names[-1] == "stage_finished"
    assert "skipped_pair" in names
    assert all(e["stage"] == "classification" for e in events)
