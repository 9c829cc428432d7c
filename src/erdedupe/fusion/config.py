"""Fusion configuration."""

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from erdedupe.errors import ConfigurationError
from erdedupe.fusion.strategies import (
    AttributeFusion,
    ConflictResolution,
    Corresponding,
    Earliest,
    HighestSourceTrust,
    MostRecent,
)

__all__ = ["FusionConfig"]


def _as_chain(value: AttributeFusion | ConflictResolution | Sequence[ConflictResolution]) -> AttributeFusion:
    if isinstance(value, AttributeFusion):
        return value
    if isinstance(value, ConflictResolution):
        return AttributeFusion((value,))
    return AttributeFusion(tuple(value))


@dataclass(frozen=True)
class FusionConfig:
    """Immutable fusion configuration.

    Attributes
    ----------
    attributes : Mapping[str, AttributeFusion]
        Per-attribute strategy chains. A single strategy or a sequence of
        strategies is accepted and wrapped into a chain.
    default : AttributeFusion | None
        Chain for attributes without their own entry. None leaves such
        conflicts to the first-value default (with a warning).
    source_attribute : str | None
        Record attribute naming the record's source (for trust ranking).
    timestamp_attribute : str | None
        Record attribute holding the record's timestamp (for recency).
    source_trust : Mapping[str, float]
        Source name to trust score; higher is more trusted.
    """

    attributes: Mapping[str, AttributeFusion] = field(default_factory=dict)
    default: AttributeFusion | None = None
    source_attribute: str | None = None
    timestamp_attribute: str | None = None
    source_trust: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Normalize chains and validate strategy requirements."""
        object.__setattr__(
            self,
            "attributes",
            {name: _as_chain(chain) for name, chain in self.attributes.items()},
        )
        if self.default is not None:
            object.__setattr__(self, "default", _as_chain(self.default))
        object.__setattr__(self, "source_trust", dict(self.source_trust))

        for source, trust in self.source_trust.items():
            if not isinstance(trust, (int, float)) or not math.isfinite(trust):
                raise ConfigurationError(f"Trust for source {source!r} must be a finite number")

        for label, chain in self._chains():
            for strategy in chain.strategies:
                if isinstance(strategy, (MostRecent, Earliest)) and not self.timestamp_attribute:
                    raise ConfigurationError(
                        f"{label}: {strategy.name} requires timestamp_attribute"
                    )
                if isinstance(strategy, Corresponding) and strategy.attribute not in self.attributes:
                    raise ConfigurationError(
                        f"{label}: {strategy.name} refers to an attribute without its own chain"
                    )
                if isinstance(strategy, HighestSourceTrust) and not (
                    self.source_attribute and self.source_trust
                ):
                    raise ConfigurationError(
                        f"{label}: source_trust requires source_attribute and a trust ranking"
                    )

        self._check_references()

    def _check_references(self) -> None:
        done: set[str] = set()

        def visit(name: str, path: list[str]) -> None:
            if name in path:
                cycle = " -> ".join([*path[path.index(name) :], name])
                raise ConfigurationError(f"Circular corresponding references: {cycle}")
            if name in done:
                return
            for followed in self.references(name):
                visit(followed, [*path, name])
            done.add(name)

        for name in sorted(self.attributes):
            visit(name, [])

    def _chains(self) -> list[tuple[str, AttributeFusion]]:
        chains = [(f"attribute {name!r}", chain) for name, chain in self.attributes.items()]
        if self.default is not None:
            chains.append(("default", self.default))
        return chains

    def chain_for(self, attribute: str) -> AttributeFusion | None:
        """Return the chain for an attribute, falling back to the default."""
        return self.attributes.get(attribute, self.default)

    def references(self, attribute: str) -> list[str]:
        """Attributes followed by ``corresponding`` in this attribute's chain."""
        chain = self.chain_for(attribute)
        if chain is None:
            return []
        return [s.attribute for s in chain.strategies if isinstance(s, Corresponding)]

    def fusion_order(self, attributes: Iterable[str]) -> list[str]:
        """Order attributes so every followed attribute is fused first.

        Otherwise attributes keep sorted order. Followed attributes missing
        from ``attributes`` are skipped.
        """
        present = set(attributes)
        order: list[str] = []

        def visit(name: str) -> None:
            if name in order:
                return
            for followed in self.references(name):
                if followed in present:
                    visit(followed)
            order.append(name)

        for name in sorted(present):
            visit(name)
        return order

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly summary (strategies by name)."""
        return {
            "attributes": {
                name: [s.name for s in chain.strategies] for name, chain in self.attributes.items()
            },
            "default": [s.name for s in self.default.strategies] if self.default else None,
            "source_attribute": self.source_attribute,
            "timestamp_attribute": self.timestamp_attribute,
            "source_trust": dict(self.source_trust),
        }
