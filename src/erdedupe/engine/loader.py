"""Build a ResolutionConfig from JSON.

Configuration files are validated against a JSON Schema, then measures and
fusion strategies are looked up by their registered names. Measures are
given either as a bare name (``"jaro_winkler"``) or as an object with a
``type`` key plus constructor parameters; combinators nest further measure
specs under ``measure`` / ``measures`` / ``components``.

Example::

    {
      "classifier": {
        "comparisons": [
          {"attribute": "name", "measure": "levenshtein", "weight": 0.6},
          {"attribute": "email", "measure": {"type": "exact", "missing": 0.0},
           "weight": 0.4}
        ],
        "duplicate_threshold": 0.85,
        "non_duplicate_threshold": 0.5
      },
      "clustering": {"policy": "strict_transitive"},
      "fusion": {"attributes": {"name": ["vote", "longest"]}}
    }
"""

import json
from collections.abc import Callable, Mapping
from functools import partial
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema.exceptions import best_match

from erdedupe.classifier.models import AttributeComparison, ClassifierConfig
from erdedupe.clustering.models import ClusteringConfig
from erdedupe.engine.config import ResolutionConfig
from erdedupe.errors import ConfigurationError
from erdedupe.fusion.config import FusionConfig
from erdedupe.fusion.strategies import (
    AttributeFusion,
    ConflictResolution,
    Corresponding,
    Earliest,
    First,
    HighestSourceTrust,
    Last,
    Longest,
    MajorityVote,
    Maximum,
    Mean,
    Median,
    Minimum,
    MostRecent,
    SetUnion,
    Shortest,
    Sum,
)
from erdedupe.similarity import (
    Cutoff,
    DateProximity,
    EditDistance,
    ExactMatch,
    ExactMatchOverride,
    JaroWinkler,
    MatchingSimilarity,
    MaxOf,
    Measure,
    MinOf,
    MissingValueFallback,
    MissingValuePolicy,
    MongeElkan,
    Negate,
    NumericCloseness,
    ScaleWithThreshold,
    TokenSetOverlap,
    WeightedCombination,
)

__all__ = [
    "CONFIG_SCHEMA",
    "MEASURES",
    "STRATEGIES",
    "build_measure",
    "build_strategy",
    "load_config",
    "read_config_file",
    "validate_config",
]


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------

#: Leaf measures by name. Parameters are passed to the constructor.
MEASURES: dict[str, Callable[..., Measure]] = {
    "exact": ExactMatch,
    "levenshtein": EditDistance,
    "edit_distance": EditDistance,
    "jaro_winkler": JaroWinkler,
    "jaccard": partial(TokenSetOverlap, method="jaccard"),
    "cosine": partial(TokenSetOverlap, method="cosine"),
    "token_set": TokenSetOverlap,
    "ngram": partial(TokenSetOverlap, tokens="ngram"),
    "monge_elkan": MongeElkan,
    "matching": MatchingSimilarity,
    "numeric": NumericCloseness,
    "date": DateProximity,
}

#: Combinators by name; built from nested measure specs.
COMBINATORS = frozenset(
    {"weighted", "max_of", "min_of", "exact_override", "fallback", "cutoff", "scale", "negate"}
)

#: Parameterless fusion strategies by name. ``corresponding`` takes an
#: attribute and is given as ``{"type": "corresponding", "attribute": ...}``.
STRATEGIES: dict[str, Callable[[], ConflictResolution]] = {
    "most_recent": MostRecent,
    "earliest": Earliest,
    "source_trust": HighestSourceTrust,
    "longest": Longest,
    "shortest": Shortest,
    "majority_vote": MajorityVote,
    "vote": MajorityVote,
    "minimum": Minimum,
    "min": Minimum,
    "maximum": Maximum,
    "max": Maximum,
    "first": First,
    "last": Last,
    "mean": Mean,
    "sum": Sum,
    "median": Median,
    "set_union": SetUnion,
    "union": SetUnion,
}


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_UNIT_INTERVAL = {"type": "number", "minimum": 0, "maximum": 1}

CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["classifier"],
    "additionalProperties": False,
    "properties": {
        "classifier": {
            "type": "object",
            "required": ["comparisons"],
            "additionalProperties": False,
            "properties": {
                "comparisons": {
                    "type": "array",
                    "minItems": 1,
                    "items": {
                        "type": "object",
                        "required": ["attribute", "measure", "weight"],
                        "additionalProperties": False,
                        "properties": {
                            "attribute": {"type": "string", "minLength": 1},
                            "measure": {"$ref": "#/$defs/measure"},
                            "weight": {"type": "number", "minimum": 0},
                        },
                    },
                },
                "duplicate_threshold": _UNIT_INTERVAL,
                "non_duplicate_threshold": _UNIT_INTERVAL,
                "exact_match_override": {"type": "boolean"},
            },
        },
        "clustering": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "policy": {
                    "enum": ["strict_transitive", "confidence_weighted", "majority_link"]
                },
                "max_cluster_size": {"type": ["integer", "null"], "minimum": 1},
                "min_majority_fraction": {"type": "number", "exclusiveMinimum": 0, "maximum": 1},
                "negative_constraints": {"enum": ["veto", "outvote"]},
                "refine_clusters": {"type": "boolean"},
                "refine_max_size": {"type": "integer", "minimum": 2},
            },
        },
        "fusion": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "attributes": {
                    "type": "object",
                    "additionalProperties": {"$ref": "#/$defs/chain"},
                },
                "default": {"$ref": "#/$defs/chain"},
                "source_attribute": {"type": "string"},
                "timestamp_attribute": {"type": "string"},
                "source_trust": {
                    "type": "object",
                    "additionalProperties": {"type": "number"},
                },
            },
        },
    },
    "$defs": {
        "measure": {
            "oneOf": [
                {"enum": sorted(MEASURES)},
                {
                    "type": "object",
                    "required": ["type"],
                    "properties": {
                        "type": {"enum": sorted(set(MEASURES) | COMBINATORS)},
                        "missing": {"type": ["number", "null"], "minimum": 0, "maximum": 1},
                        "threshold": _UNIT_INTERVAL,
                        "measure": {"$ref": "#/$defs/measure"},
                        "inner": {"$ref": "#/$defs/measure"},
                        "measures": {
                            "type": "array",
                            "minItems": 1,
                            "items": {"$ref": "#/$defs/measure"},
                        },
                        "components": {
                            "type": "array",
                            "minItems": 1,
                            "items": {
                                "type": "object",
                                "required": ["measure", "weight"],
                                "additionalProperties": False,
                                "properties": {
                                    "measure": {"$ref": "#/$defs/measure"},
                                    "weight": {"type": "number", "minimum": 0},
                                },
                            },
                        },
                    },
                },
            ]
        },
        "strategy": {
            "oneOf": [
                {"enum": sorted(STRATEGIES)},
                {
                    "type": "object",
                    "required": ["type", "attribute"],
                    "additionalProperties": False,
                    "properties": {
                        "type": {"const": "corresponding"},
                        "attribute": {"type": "string", "minLength": 1},
                    },
                },
            ]
        },
        "chain": {
            "oneOf": [
                {"$ref": "#/$defs/strategy"},
                {
                    "type": "array",
                    "minItems": 1,
                    "items": {"$ref": "#/$defs/strategy"},
                },
            ]
        },
    },
}


def validate_config(data: Any) -> None:
    """Validate raw configuration data against the schema.

    Parameters
    ----------
    data : Any
        Parsed JSON configuration.

    Raises
    ------
    ConfigurationError
        With the most relevant schema violation.
    """
    validator = jsonschema.Draft202012Validator(CONFIG_SCHEMA)
    error = best_match(validator.iter_errors(data))
    if error is not None:
        location = "/".join(str(p) for p in error.absolute_path) or "<root>"
        raise ConfigurationError(f"Invalid configuration at {location}: {error.message}")


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _missing_policy(spec: Mapping[str, Any]) -> dict[str, Any]:
    if "missing" not in spec:
        return {}
    penalty = spec["missing"]
    policy = MissingValuePolicy.undefined() if penalty is None else MissingValuePolicy.penalty(penalty)
    return {"missing": policy}


def _build_combinator(kind: str, spec: Mapping[str, Any]) -> Measure:
    if kind == "weighted":
        components = tuple(
            (build_measure(c["measure"]), float(c["weight"])) for c in spec.get("components", ())
        )
        return WeightedCombination(components)
    if kind in ("max_of", "min_of"):
        measures = tuple(build_measure(m) for m in spec.get("measures", ()))
        return MaxOf(measures) if kind == "max_of" else MinOf(measures)

    if "measure" not in spec:
        raise ConfigurationError(f"Combinator {kind!r} requires a nested 'measure'")
    inner = build_measure(spec["measure"])

    if kind == "exact_override":
        return ExactMatchOverride(inner)
    if kind == "negate":
        return Negate(inner)
    if kind == "fallback":
        penalty = spec.get("missing", 0.0)
        policy = MissingValuePolicy.undefined() if penalty is None else MissingValuePolicy.penalty(penalty)
        return MissingValueFallback(inner, policy)
    if "threshold" not in spec:
        raise ConfigurationError(f"Combinator {kind!r} requires a 'threshold'")
    try:
        threshold = float(spec["threshold"])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Combinator {kind!r} threshold must be a number: {e}") from e
    if kind == "cutoff":
        return Cutoff(inner, threshold)
    return ScaleWithThreshold(inner, threshold)


def build_measure(spec: str | Mapping[str, Any]) -> Measure:
    """Build a measure from its name or object spec.

    Parameters
    ----------
    spec : str | Mapping[str, Any]
        Registered name, or object with ``type`` and parameters.

    Returns
    -------
    Measure
        Constructed measure.

    Raises
    ------
    ConfigurationError
        If the name is unknown or the parameters are invalid.
    """
    if isinstance(spec, str):
        spec = {"type": spec}

    kind = spec.get("type")
    if kind in COMBINATORS:
        return _build_combinator(kind, spec)

    factory = MEASURES.get(kind)  # type: ignore[arg-type]
    if factory is None:
        raise ConfigurationError(f"Unknown measure: {kind!r}. Available: {sorted(MEASURES)}")

    params = {k: v for k, v in spec.items() if k not in ("type", "missing")}
    if "inner" in params:
        params["inner"] = build_measure(params["inner"])
    params.update(_missing_policy(spec))

    try:
        return factory(**params)
    except TypeError as e:
        raise ConfigurationError(f"Invalid parameters for measure {kind!r}: {e}") from e


def build_strategy(spec: str | Mapping[str, Any]) -> ConflictResolution:
    """Build a fusion strategy by registered name or ``corresponding`` spec.

    Raises
    ------
    ConfigurationError
        If the name is unknown.
    """
    if isinstance(spec, Mapping):
        if spec.get("type") != "corresponding":
            raise ConfigurationError(f"Unknown fusion strategy spec: {dict(spec)!r}")
        return Corresponding(spec.get("attribute", ""))

    name = spec
    factory = STRATEGIES.get(name)
    if factory is None:
        raise ConfigurationError(f"Unknown fusion strategy: {name!r}. Available: {sorted(STRATEGIES)}")
    return factory()


def _build_chain(spec: str | Mapping[str, Any] | list[Any]) -> AttributeFusion:
    items = spec if isinstance(spec, list) else [spec]
    return AttributeFusion(tuple(build_strategy(item) for item in items))


def _build_classifier(data: Mapping[str, Any]) -> ClassifierConfig:
    comparisons = tuple(
        AttributeComparison(
            attribute=c["attribute"],
            measure=build_measure(c["measure"]),
            weight=float(c["weight"]),
        )
        for c in data["comparisons"]
    )
    options = {
        key: data[key]
        for key in ("duplicate_threshold", "non_duplicate_threshold", "exact_match_override")
        if key in data
    }
    return ClassifierConfig(comparisons=comparisons, **options)


def _build_fusion(data: Mapping[str, Any]) -> FusionConfig:
    return FusionConfig(
        attributes={name: _build_chain(chain) for name, chain in data.get("attributes", {}).items()},
        default=_build_chain(data["default"]) if "default" in data else None,
        source_attribute=data.get("source_attribute"),
        timestamp_attribute=data.get("timestamp_attribute"),
        source_trust=data.get("source_trust", {}),
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON configuration file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ConfigurationError
        If the file is not valid JSON.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with config_path.open("r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Config file {config_path.name} is not valid JSON: {e}") from e


def load_config(source: str | Path | Mapping[str, Any]) -> ResolutionConfig:
    """Load and validate a resolution configuration.

    Parameters
    ----------
    source : str | Path | Mapping[str, Any]
        Path to a JSON file, or already-parsed configuration data.

    Returns
    -------
    ResolutionConfig
        Validated, immutable configuration.

    Raises
    ------
    ConfigurationError
        On schema violations, unknown names or invalid parameters.
    """
    data = dict(source) if isinstance(source, Mapping) else read_config_file(source)
    validate_config(data)

    return ResolutionConfig(
        classifier=_build_classifier(data["classifier"]),
        clustering=ClusteringConfig(**data.get("clustering", {})),
        fusion=_build_fusion(data.get("fusion", {})),
    )
