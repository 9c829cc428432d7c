"""Tests for similarity measures and combinators."""

import math
from datetime import date

import pytest

from erdedupe.errors import ConfigurationError, MeasurementError, TypeMismatchError
from erdedupe.similarity import (
    Cutoff,
    DateProximity,
    EditDistance,
    ExactMatch,
    ExactMatchOverride,
    FunctionMeasure,
    JaroWinkler,
    MatchingSimilarity,
    MaxOf,
    MinOf,
    MissingValueFallback,
    MissingValuePolicy,
    MongeElkan,
    Negate,
    NumericCloseness,
    ScaleWithThreshold,
    SimilarityScore,
    TokenSetOverlap,
    Transformed,
    ValueType,
    WeightedCombination,
    combine_weighted,
)
from erdedupe.similarity.measures import ngrams, tokenize

# ---------------------------------------------------------------------------
# SimilarityScore
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_score_undefined_is_distinct_from_zero() -> None:
    """Test undefined and 0.0 are different states."""
    assert not SimilarityScore.undefined().is_defined
    assert SimilarityScore.of(0.0).is_defined
    assert SimilarityScore.undefined() != SimilarityScore.of(0.0)
    assert SimilarityScore.undefined().value_or(0.3) == 0.3


@pytest.mark.unit
@pytest.mark.parametrize("value", [float("nan"), -0.5, 1.5])
def test_score_rejects_invalid_values(value: float) -> None:
    """Test NaN and out-of-range scores are rejected."""
    with pytest.raises(MeasurementError):
        SimilarityScore.of(value)


@pytest.mark.unit
def test_score_clamps_boundary_noise() -> None:
    """Test tiny float overshoot at the bounds is clamped."""
    assert SimilarityScore.of(1.0 + 1e-12).value == 1.0
    assert SimilarityScore.of(-1e-12).value == 0.0


# ---------------------------------------------------------------------------
# Leaf measures
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_exact_match() -> None:
    """Test exact match with and without case sensitivity."""
    assert ExactMatch().compare("a@x.org", "a@x.org").value == 1.0
    assert ExactMatch().compare("A@x.org", "a@x.org").value == 0.0
    assert ExactMatch(case_sensitive=False).compare(" A@x.org", "a@x.org").value == 1.0
    assert ExactMatch().compare(42, 42).value == 1.0


@pytest.mark.unit
def test_edit_distance_typo() -> None:
    """Test one substitution in a 14-character name."""
    score = EditDistance().compare("Jonathan Smith", "Jonathon Smith")

    assert score.value == pytest.approx(1 - 1 / 14)


@pytest.mark.unit
def test_edit_distance_case_insensitive() -> None:
    """Test case folding before comparison."""
    assert EditDistance(case_sensitive=False).compare("SMITH", "smith").value == 1.0
    assert EditDistance().compare("SMITH", "smith").value == 0.0


@pytest.mark.unit
def test_jaro_winkler_classic_example() -> None:
    """Test the textbook MARTHA/MARHTA value."""
    score = JaroWinkler().compare("MARTHA", "MARHTA")

    assert score.value == pytest.approx(0.9611, abs=1e-3)


@pytest.mark.unit
def test_jaro_winkler_rejects_large_prefix_weight() -> None:
    """Test prefix weight is bounded."""
    with pytest.raises(ConfigurationError):
        JaroWinkler(prefix_weight=0.3)


@pytest.mark.unit
def test_tokenize_strings_and_collections() -> None:
    """Test text splitting and collection casefolding."""
    assert tokenize("Acme, Inc.") == ["acme", "inc"]
    assert tokenize(["Red", "BLUE", 3]) == ["red", "blue", 3]



@pytest.mark.unit
def test_ngram_tokens() -> None:
    """Test character n-grams, including text shorter than n."""
    assert ngrams("Smith", 2) == ["sm", "mi", "it", "th"]
    assert ngrams("ab", 3) == ["ab"]
    assert ngrams("", 3) == []
    assert tokenize("Jon", tokens="ngram", n=2) == ["jo", "on"]
    assert tokenize(["Jon"], tokens="ngram", n=2) == ["jon"]


@pytest.mark.unit
def test_token_set_over_ngrams() -> None:
    """Test overlap on bigrams tolerates a missing letter."""
    bigrams = TokenSetOverlap(tokens="ngram", n=2)

    assert bigrams.compare("jon", "john").value == pytest.approx(0.25)
    assert TokenSetOverlap().compare("jon", "john").value == 0.0


@pytest.mark.unit
def test_token_set_jaccard_and_cosine() -> None:
    """Test both overlap methods on simple inputs."""
    jaccard = TokenSetOverlap()
    cosine = TokenSetOverlap(method="cosine")

    assert jaccard.compare("the quick fox", "quick brown fox").value == pytest.approx(0.5)
    assert cosine.compare("a a b", "a b").value == pytest.approx(3 / math.sqrt(10))
    assert jaccard.compare(["x", "y"], {"y", "x"}).value == 1.0


@pytest.mark.unit
def test_token_set_without_tokens_is_undefined() -> None:
    """Test punctuation-only text yields an undefined score."""
    assert not TokenSetOverlap().compare("!!!", "abc").is_defined


@pytest.mark.unit
def test_token_set_rejects_unknown_method() -> None:
    """Test unknown overlap method is a configuration error."""
    with pytest.raises(ConfigurationError):
        TokenSetOverlap(method="dice")
    with pytest.raises(ConfigurationError):
        TokenSetOverlap(tokens="syllable")
    with pytest.raises(ConfigurationError):
        TokenSetOverlap(tokens="ngram", n=0)


@pytest.mark.unit
def test_monge_elkan_is_symmetric() -> None:
    """Test token order and direction do not matter."""
    measure = MongeElkan(inner=ExactMatch())

    assert measure.compare("john smith", "smith john").value == 1.0
    assert measure.compare("john smith", "john").value == pytest.approx(0.75)
    assert measure.compare("john", "john smith").value == pytest.approx(0.75)



@pytest.mark.unit
def test_matching_uses_each_token_once() -> None:
    """Test one-to-one matching penalizes repeated and extra tokens."""
    measure = MatchingSimilarity(inner=ExactMatch())

    assert measure.compare("john smith", "smith john").value == 1.0
    assert measure.compare("john john", "john").value == pytest.approx(0.5)
    assert MongeElkan(inner=ExactMatch()).compare("john john", "john").value == 1.0
    assert measure.compare(["a", "b"], ["a", "b", "c"]).value == pytest.approx(2 / 3)
    assert not measure.compare("   ", "john").is_defined


@pytest.mark.unit
def test_matching_prefers_best_pairs() -> None:
    """Test the strongest pairs are matched first."""
    measure = MatchingSimilarity(inner=EditDistance())

    # "jon" pairs with "jonn" (0.75) rather than "joe" (0.667)
    score = measure.compare(["jon", "joe"], ["jonn", "joe"]).value

    assert score == pytest.approx((0.75 + 1.0) / 2)


@pytest.mark.unit
def test_numeric_closeness() -> None:
    """Test linear closeness and the zero floor."""
    measure = NumericCloseness(max_difference=10)

    assert measure.compare(100, 105).value == pytest.approx(0.5)
    assert measure.compare(100, 200).value == 0.0
    assert measure.compare(2.5, 2.5).value == 1.0


@pytest.mark.unit
def test_numeric_closeness_non_finite_is_measurement_error() -> None:
    """Test NaN inputs cannot be compared."""
    with pytest.raises(MeasurementError):
        NumericCloseness().compare(float("nan"), 1.0)


@pytest.mark.unit
def test_date_proximity_mixed_inputs() -> None:
    """Test dates and ISO strings compare on the same scale."""
    measure = DateProximity(max_days=10)

    assert measure.compare("2024-01-01", "2024-01-06").value == pytest.approx(0.5)
    assert measure.compare(date(2024, 1, 1), "2024-01-01T00:00:00Z").value == 1.0
    assert measure.compare("2020-01-01", "2024-01-01").value == 0.0


@pytest.mark.unit
def test_date_proximity_unparseable_is_measurement_error() -> None:
    """Test an unparseable date string raises MeasurementError."""
    with pytest.raises(MeasurementError):
        DateProximity().compare("2024-01-01", "last tuesday")


@pytest.mark.unit
@pytest.mark.parametrize(("left", "right"), [(10**400, 5), (5, -(10**400))])
def test_numeric_closeness_out_of_float_range_is_measurement_error(left: float, right: float) -> None:
    """Test numbers beyond float range raise MeasurementError, not OverflowError."""
    with pytest.raises(MeasurementError):
        NumericCloseness().compare(left, right)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("left", "right"),
    [
        ("0001-01-01T00:00:00+05:00", "2024-01-01"),
        ("9999-12-31T23:59:59-05:00", "2024-01-01"),
    ],
)
def test_date_proximity_out_of_range_is_measurement_error(left: str, right: str) -> None:
    """Test dates pushed out of range by their offset raise MeasurementError."""
    with pytest.raises(MeasurementError):
        DateProximity().compare(left, right)



@pytest.mark.unit
def test_function_measure_wraps_errors() -> None:
    """Test caller functions can score, and their errors become MeasurementError."""

    def ratio(left: float, right: float) -> float:
        return min(left, right) / max(left, right)

    measure = FunctionMeasure(ratio, domain=ValueType.NUMBER)

    assert measure.compare(5, 10).value == pytest.approx(0.5)
    assert measure.name == "ratio"
    with pytest.raises(MeasurementError):
        measure.compare(0, 0)


# ---------------------------------------------------------------------------
# Missing values and type domains
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize("missing", [None, "", "   ", [], ()])
def test_missing_values_are_undefined_by_default(missing: object) -> None:
    """Test every missing form yields an undefined score."""
    assert not EditDistance().compare(missing, "Smith").is_defined


@pytest.mark.unit
def test_missing_value_penalty() -> None:
    """Test a configured penalty replaces the undefined score."""
    measure = EditDistance(missing=MissingValuePolicy.penalty(0.25))

    assert measure.compare(None, "Smith").value == 0.25


@pytest.mark.unit
def test_missing_value_penalty_must_be_in_unit_interval() -> None:
    """Test penalty bounds are validated."""
    with pytest.raises(ConfigurationError):
        MissingValuePolicy(1.5)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("measure", "left", "right"),
    [
        (EditDistance(), 5, "five"),
        (NumericCloseness(), True, 1),
        (NumericCloseness(), "1", 1),
        (DateProximity(), 20240101, "2024-01-01"),
    ],
)
def test_type_mismatch_is_raised_eagerly(measure: object, left: object, right: object) -> None:
    """Test values outside the declared domain raise TypeMismatchError."""
    with pytest.raises(TypeMismatchError) as exc_info:
        measure.compare(left, right)  # type: ignore[attr-defined]

    assert isinstance(exc_info.value, ConfigurationError)


# ---------------------------------------------------------------------------
# Combinators
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_combine_weighted_renormalizes_over_defined_scores() -> None:
    """Test undefined components are dropped and weights rescaled."""
    result = combine_weighted(
        [
            (SimilarityScore.of(0.8), 0.5),
            (SimilarityScore.undefined(), 0.3),
            (SimilarityScore.of(0.4), 0.2),
        ]
    )

    assert result.value == pytest.approx((0.5 * 0.8 + 0.2 * 0.4) / 0.7)


@pytest.mark.unit
def test_combine_weighted_all_undefined() -> None:
    """Test all-undefined input is undefined, not zero."""
    result = combine_weighted([(SimilarityScore.undefined(), 1.0)])

    assert not result.is_defined


@pytest.mark.unit
@pytest.mark.parametrize(
    "weights",
    [(0.5, 0.4), (0.7, 0.7), (-0.5, 1.5), (float("nan"), 1.0)],
)
def test_weighted_combination_validates_weights(weights: tuple[float, float]) -> None:
    """Test weights must be non-negative, finite and sum to 1."""
    with pytest.raises(ConfigurationError):
        WeightedCombination(((ExactMatch(), weights[0]), (EditDistance(), weights[1])))


@pytest.mark.unit
def test_weighted_combination_normalized() -> None:
    """Test arbitrary weights are rescaled to sum 1."""
    combo = WeightedCombination.normalized([(ExactMatch(), 3), (EditDistance(), 1)])

    assert [w for _, w in combo.components] == pytest.approx([0.75, 0.25])
    assert combo.compare("abcd", "abce").value == pytest.approx(0.25 * 0.75)


@pytest.mark.unit
def test_max_and_min_of() -> None:
    """Test max/min pick among sub-measure scores."""
    measures = (ExactMatch(), EditDistance())

    assert MaxOf(measures).compare("abcd", "abce").value == pytest.approx(0.75)
    assert MinOf(measures).compare("abcd", "abce").value == 0.0


@pytest.mark.unit
def test_max_of_requires_measures() -> None:
    """Test empty combinators are rejected."""
    with pytest.raises(ConfigurationError):
        MaxOf(())


@pytest.mark.unit
def test_exact_match_override_short_circuits() -> None:
    """Test identical values score 1.0 even when the inner measure would not."""
    measure = ExactMatchOverride(Negate(ExactMatch()))

    assert measure.compare("same", "same").value == 1.0
    assert measure.compare("same", "other").value == 1.0
    assert not measure.compare(None, None).is_defined


@pytest.mark.unit
@pytest.mark.parametrize(("left", "right"), [(True, 1), (1, 1.0)])
def test_exact_match_override_requires_same_type(left: object, right: object) -> None:
    """Test equal values of different types are left to the inner measure."""
    measure = ExactMatchOverride(Negate(ExactMatch()))

    assert measure.compare(left, right).value == 0.0
    assert measure.compare(right, right).value == 1.0



@pytest.mark.unit
def test_missing_value_fallback() -> None:
    """Test fallback scores missing values with its own policy."""
    measure = MissingValueFallback(EditDistance())

    assert measure.compare(None, "x").value == 0.0
    assert measure.compare("abcd", "abcd").value == 1.0


@pytest.mark.unit
def test_transformed_normalizes_before_comparing() -> None:
    """Test a transform is applied to both values."""
    measure = Transformed(ExactMatch(), lambda v: v.replace("-", "").strip())

    assert measure.compare("555-1234", " 5551234 ").value == 1.0


@pytest.mark.unit
def test_cutoff_and_scale() -> None:
    """Test thresholding combinators."""
    edit = EditDistance()

    assert Cutoff(edit, 0.8).compare("abcd", "abce").value == 0.0
    assert Cutoff(edit, 0.5).compare("abcd", "abce").value == pytest.approx(0.75)
    assert ScaleWithThreshold(edit, 0.5).compare("abcd", "abce").value == pytest.approx(0.5)
    assert ScaleWithThreshold(edit, 0.8).compare("abcd", "abce").value == 0.0

    with pytest.raises(ConfigurationError):
        ScaleWithThreshold(edit, 1.0)


@pytest.mark.unit
def test_negate_keeps_undefined() -> None:
    """Test negation inverts defined scores only."""
    measure = Negate(EditDistance())

    assert measure.compare("abcd", "abce").value == pytest.approx(0.25)
    assert not measure.compare(None, "abce").is_defined
