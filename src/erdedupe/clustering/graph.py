"""Sparse verdict graph consumed by the clustering engine."""

from collections.abc import Iterable, Iterator

from erdedupe.classifier.models import Classification, Verdict
from erdedupe.models import order_pair

__all__ = ["DuplicateGraph", "edge_order_key"]


def edge_order_key(verdict: Verdict) -> tuple[float, str, str]:
    """Sort key: descending confidence, then record IDs lexicographically."""
    return (-verdict.confidence, verdict.rid_a, verdict.rid_b)


class DuplicateGraph:
    """Verdicts indexed by unordered record pair.

    Duplicate and Unknown verdicts are positive edges; NonDuplicate verdicts
    are kept as negative constraints. Each unordered pair holds at most one
    verdict: adding a verdict for a known pair replaces the previous one.

    Parameters
    ----------
    verdicts : Iterable[Verdict], optional
        Initial verdicts, added in order.
    """

    def __init__(self, verdicts: Iterable[Verdict] = ()) -> None:
        self._verdicts: dict[tuple[str, str], Verdict] = {}
        self._adjacency: dict[str, dict[str, Verdict]] = {}
        self.add_all(verdicts)

    def add(self, verdict: Verdict) -> Verdict | None:
        """Add or replace the verdict for a pair.

        Parameters
        ----------
        verdict : Verdict
            Verdict to store.

        Returns
        -------
        Verdict | None
            The replaced verdict, if any.
        """
        key = (verdict.rid_a, verdict.rid_b)
        previous = self._verdicts.get(key)
        self._verdicts[key] = verdict
        self._adjacency.setdefault(verdict.rid_a, {})[verdict.rid_b] = verdict
        self._adjacency.setdefault(verdict.rid_b, {})[verdict.rid_a] = verdict
        return previous

    def add_all(self, verdicts: Iterable[Verdict]) -> int:
        """Add verdicts in order; return how many replaced an existing verdict."""
        replaced = 0
        for verdict in verdicts:
            if self.add(verdict) is not None:
                replaced += 1
        return replaced

    def __len__(self) -> int:
        return len(self._verdicts)

    def __iter__(self) -> Iterator[Verdict]:
        return iter(self._verdicts.values())

    def __contains__(self, rid: object) -> bool:
        return rid in self._adjacency

    @property
    def nodes(self) -> tuple[str, ...]:
        """Identifiers appearing in at least one verdict, sorted."""
        return tuple(sorted(self._adjacency))

    def verdict(self, rid_a: str, rid_b: str) -> Verdict | None:
        """Return the verdict for a pair in either order, if any."""
        return self._verdicts.get(order_pair(rid_a, rid_b))

    def neighbors(self, rid: str) -> dict[str, Verdict]:
        """Return every verdict touching ``rid``, keyed by the other identifier."""
        return self._adjacency.get(rid, {})

    def edges(self, *classifications: Classification) -> list[Verdict]:
        """Verdicts with the given classifications, in deterministic edge order."""
        wanted = set(classifications)
        selected = [v for v in self._verdicts.values() if v.classification in wanted]
        selected.sort(key=edge_order_key)
        return selected

    def duplicate_edges(self) -> list[Verdict]:
        """Duplicate verdicts, in deterministic edge order."""
        return self.edges(Classification.DUPLICATE)

    def negative_edges(self) -> list[Verdict]:
        """NonDuplicate verdicts (negative constraints), in deterministic edge order."""
        return self.edges(Classification.NON_DUPLICATE)
