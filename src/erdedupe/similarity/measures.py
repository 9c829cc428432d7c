"""Built-in similarity measures.

String measures delegate to ``rapidfuzz`` for the edit-based metrics; the
token, numeric and date measures are plain arithmetic.
"""

import math
import re
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from rapidfuzz.distance import JaroWinkler as _JaroWinklerDistance
from rapidfuzz.distance import Levenshtein

from erdedupe.errors import ConfigurationError, MeasurementError
from erdedupe.similarity.base import Measure, ValueMeasure, value_in_domain
from erdedupe.similarity.models import ValueType
from erdedupe.utils import coerce_datetime

__all__ = [
    "ExactMatch",
    "EditDistance",
    "JaroWinkler",
    "TokenSetOverlap",
    "NumericCloseness",
    "DateProximity",
    "MongeElkan",
    "MatchingSimilarity",
    "FunctionMeasure",
    "tokenize",
    "ngrams",
]

_TOKEN_RE = re.compile(r"\w+")

_SECONDS_PER_DAY = 86400.0


TOKENIZERS = ("word", "ngram")


def ngrams(text: str, n: int) -> list[str]:
    """Overlapping character n-grams of lowercased ``text``.

    Text shorter than ``n`` yields itself as a single gram, so short values
    still compare.
    """
    text = text.lower()
    if len(text) <= n:
        return [text] if text else []
    return [text[i : i + n] for i in range(len(text) - n + 1)]


def tokenize(value: str | Iterable[Any], tokens: str = "word", n: int = 3) -> list[Any]:
    """Split a value into comparison tokens.

    Strings are lowercased and split on non-word characters (``"word"``) or
    into character n-grams (``"ngram"``); collections contribute their
    elements (strings casefolded).

    Parameters
    ----------
    value : str | Iterable[Any]
        Text or collection.
    tokens : str, optional
        ``"word"`` (default) or ``"ngram"``; only applies to strings.
    n : int, optional
        Gram length for ``"ngram"``, by default 3.

    Returns
    -------
    list[Any]
        Tokens in encounter order (duplicates kept).
    """
    if isinstance(value, str):
        if tokens == "ngram":
            return ngrams(value, n)
        return _TOKEN_RE.findall(value.lower())
    return [item.casefold() if isinstance(item, str) else item for item in value]


# ---------------------------------------------------------------------------
# Equality and edit-based string measures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExactMatch(ValueMeasure):
    """1.0 for equal values, 0.0 otherwise.

    Attributes
    ----------
    case_sensitive : bool
        Compare strings verbatim, by default True. When False, strings
        are compared after ``str.casefold`` and outer whitespace stripping.
    """

    VALUE_TYPE = ValueType.ANY

    case_sensitive: bool = True

    def _similarity(self, left: Any, right: Any) -> float:
        if not self.case_sensitive and isinstance(left, str) and isinstance(right, str):
            return 1.0 if left.strip().casefold() == right.strip().casefold() else 0.0
        return 1.0 if left == right else 0.0


@dataclass(frozen=True)
class EditDistance(ValueMeasure):
    """Normalized Levenshtein similarity: ``1 - distance / max(len)``.

    Attributes
    ----------
    case_sensitive : bool
        Compare verbatim, by default True.
    """

    VALUE_TYPE = ValueType.STRING

    case_sensitive: bool = True

    def _similarity(self, left: str, right: str) -> float:
        if not self.case_sensitive:
            left, right = left.casefold(), right.casefold()
        return Levenshtein.normalized_similarity(left, right)


@dataclass(frozen=True)
class JaroWinkler(ValueMeasure):
    """Jaro-Winkler similarity, favouring strings with a common prefix.

    Attributes
    ----------
    prefix_weight : float
        Winkler prefix scaling factor, in [0, 0.25]. Default 0.1.
    case_sensitive : bool
        Compare verbatim, by default True.
    """

    VALUE_TYPE = ValueType.STRING

    prefix_weight: float = 0.1
    case_sensitive: bool = True

    def __post_init__(self) -> None:
        """Validate prefix weight."""
        if not 0.0 <= self.prefix_weight <= 0.25:
            raise ConfigurationError(
                f"prefix_weight must be in [0, 0.25], got {self.prefix_weight}"
            )

    def _similarity(self, left: str, right: str) -> float:
        if not self.case_sensitive:
            left, right = left.casefold(), right.casefold()
        return _JaroWinklerDistance.normalized_similarity(
            left, right, prefix_weight=self.prefix_weight
        )


# ---------------------------------------------------------------------------
# Token-based measures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenSetOverlap(ValueMeasure):
    """Overlap of tokenized text or token collections.

    ``jaccard`` compares distinct token sets; ``cosine`` compares token
    count vectors. Values that produce no tokens (e.g. punctuation only)
    yield an undefined score.

    Attributes
    ----------
    method : str
        "jaccard" (default) or "cosine".
    tokens : str
        How strings are split: "word" (default) or "ngram".
    n : int
        Gram length when ``tokens`` is "ngram", by default 3.
    """

    VALUE_TYPE = ValueType.SET

    method: str = "jaccard"
    tokens: str = "word"
    n: int = 3

    def __post_init__(self) -> None:
        """Validate method and tokenizer."""
        if self.method not in ("jaccard", "cosine"):
            raise ConfigurationError(
                f"TokenSetOverlap method must be 'jaccard' or 'cosine', got {self.method!r}"
            )
        if self.tokens not in TOKENIZERS:
            raise ConfigurationError(f"tokens must be one of {TOKENIZERS}, got {self.tokens!r}")
        if not isinstance(self.n, int) or self.n < 1:
            raise ConfigurationError(f"n-gram length must be a positive integer, got {self.n!r}")

    def accepts(self, value: Any) -> bool:
        """Accept both text and token collections."""
        return isinstance(value, str) or value_in_domain(value, ValueType.SET)

    def _similarity(self, left: Any, right: Any) -> float | None:
        tokens_left = tokenize(left, self.tokens, self.n)
        tokens_right = tokenize(right, self.tokens, self.n)
        if not tokens_left or not tokens_right:
            return None

        try:
            if self.method == "jaccard":
                set_left, set_right = set(tokens_left), set(tokens_right)
                return len(set_left & set_right) / len(set_left | set_right)

            counts_left, counts_right = Counter(tokens_left), Counter(tokens_right)
        except TypeError as e:
            raise MeasurementError(f"Tokens are not hashable: {e}") from e

        dot = sum(counts_left[t] * counts_right[t] for t in counts_left.keys() & counts_right.keys())
        norm_left = math.sqrt(sum(c * c for c in counts_left.values()))
        norm_right = math.sqrt(sum(c * c for c in counts_right.values()))
        return dot / (norm_left * norm_right)


@dataclass(frozen=True)
class MongeElkan(ValueMeasure):
    """Monge-Elkan similarity over token lists.

    For every token on one side, take the best ``inner`` score against the
    tokens of the other side and average; the result is the mean of both
    directions, so the measure is symmetric.

    Attributes
    ----------
    inner : Measure
        Token-level measure, by default Jaro-Winkler.
    """

    VALUE_TYPE = ValueType.SET

    inner: Measure = field(default_factory=JaroWinkler)

    def accepts(self, value: Any) -> bool:
        """Accept both text and token collections."""
        return isinstance(value, str) or value_in_domain(value, ValueType.SET)

    def _directed(self, source: list[Any], target: list[Any]) -> float | None:
        best_scores: list[float] = []
        for token in source:
            scores = [self.inner.compare(token, other).value for other in target]
            defined = [s for s in scores if s is not None]
            if defined:
                best_scores.append(max(defined))
        if not best_scores:
            return None
        return sum(best_scores) / len(best_scores)

    def _similarity(self, left: Any, right: Any) -> float | None:
        tokens_left = left.split() if isinstance(left, str) else list(left)
        tokens_right = right.split() if isinstance(right, str) else list(right)
        forward = self._directed(tokens_left, tokens_right)
        backward = self._directed(tokens_right, tokens_left)
        if forward is None or backward is None:
            return None
        return (forward + backward) / 2.0


@dataclass(frozen=True)
class MatchingSimilarity(ValueMeasure):
    """One-to-one matching of tokens.

    Unlike Monge-Elkan, every token is matched at most once: pairs are taken
    greedily by descending ``inner`` score (ties by position), which yields a
    stable matching. The matched scores are summed and divided by the size
    of the larger side, so unmatched extra tokens lower the similarity.

    Attributes
    ----------
    inner : Measure
        Token-level measure, by default Jaro-Winkler.
    """

    VALUE_TYPE = ValueType.SET

    inner: Measure = field(default_factory=JaroWinkler)

    def accepts(self, value: Any) -> bool:
        """Accept both text and token collections."""
        return isinstance(value, str) or value_in_domain(value, ValueType.SET)

    def _similarity(self, left: Any, right: Any) -> float | None:
        tokens_left = left.split() if isinstance(left, str) else list(left)
        tokens_right = right.split() if isinstance(right, str) else list(right)
        if not tokens_left or not tokens_right:
            return None

        edges = []
        for i, token in enumerate(tokens_left):
            for j, other in enumerate(tokens_right):
                score = self.inner.compare(token, other).value
                if score is not None:
                    edges.append((-score, i, j))
        if not edges:
            return None

        used_left: set[int] = set()
        used_right: set[int] = set()
        total = 0.0
        for negated, i, j in sorted(edges):
            if i in used_left or j in used_right:
                continue
            used_left.add(i)
            used_right.add(j)
            total -= negated
        return total / max(len(tokens_left), len(tokens_right))


# ---------------------------------------------------------------------------
# Numeric and temporal measures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumericCloseness(ValueMeasure):
    """Linear closeness: ``max(0, 1 - |a - b| / max_difference)``.

    Attributes
    ----------
    max_difference : float
        Absolute difference at which similarity reaches 0. Must be > 0.
    """

    VALUE_TYPE = ValueType.NUMBER

    max_difference: float = 1.0

    def __post_init__(self) -> None:
        """Validate max difference."""
        if not self.max_difference > 0:
            raise ConfigurationError(
                f"max_difference must be positive, got {self.max_difference}"
            )

    def _similarity(self, left: float, right: float) -> float:
        try:
            if math.isfinite(left) and math.isfinite(right):
                return max(0.0, 1.0 - abs(left - right) / self.max_difference)
        except ArithmeticError as e:
            raise MeasurementError(f"Cannot compare {left!r} and {right!r}: {e}") from e
        raise MeasurementError(f"Cannot compare non-finite numbers {left!r} and {right!r}")


@dataclass(frozen=True)
class DateProximity(ValueMeasure):
    """Linear date closeness: ``max(0, 1 - |days| / max_days)``.

    Accepts ``date``/``datetime`` objects and ISO8601 strings. A string that
    cannot be parsed, or a date pushed out of range by its UTC offset,
    raises ``MeasurementError``.

    Attributes
    ----------
    max_days : float
        Distance in days at which similarity reaches 0. Must be > 0.
    """

    VALUE_TYPE = ValueType.DATE

    max_days: float = 365.0

    def __post_init__(self) -> None:
        """Validate max days."""
        if not self.max_days > 0:
            raise ConfigurationError(f"max_days must be positive, got {self.max_days}")

    def _similarity(self, left: Any, right: Any) -> float:
        try:
            moment_left = coerce_datetime(left)
            moment_right = coerce_datetime(right)
        except ValueError as e:
            raise MeasurementError(f"Unparseable date: {e}") from e
        except ArithmeticError as e:
            raise MeasurementError(f"Date out of range: {e}") from e

        try:
            days = abs((moment_left - moment_right).total_seconds()) / _SECONDS_PER_DAY
        except ArithmeticError as e:
            raise MeasurementError(f"Date distance out of range: {e}") from e
        return max(0.0, 1.0 - days / self.max_days)


# ---------------------------------------------------------------------------
# Caller-supplied logic
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FunctionMeasure(ValueMeasure):
    """Wrap a caller-supplied pure function as a measure.

    The function receives two non-missing values and returns a float in
    [0, 1] or None (undefined). ``ValueError`` and ``ArithmeticError``
    raised by the function are reported as ``MeasurementError``.

    Attributes
    ----------
    func : Callable[[Any, Any], float | None]
        Similarity function.
    domain : ValueType
        Declared value domain, by default ANY.
    label : str | None
        Name used in logs and warnings.
    """

    func: Callable[[Any, Any], float | None]
    domain: ValueType = ValueType.ANY
    label: str | None = None

    @property
    def value_type(self) -> ValueType:
        """Declared semantic domain."""
        return self.domain

    @property
    def name(self) -> str:
        """Label, or the wrapped function's name."""
        return self.label or getattr(self.func, "__name__", "FunctionMeasure")

    def _similarity(self, left: Any, right: Any) -> float | None:
        try:
            return self.func(left, right)
        except (ValueError, ArithmeticError) as e:
            raise MeasurementError(f"{self.name} failed: {e}") from e
