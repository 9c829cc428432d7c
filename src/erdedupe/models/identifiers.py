"""Deterministic identifiers for pairs, clusters and canonical records."""

import hashlib
from collections.abc import Iterable

__all__ = [
    "order_pair",
    "make_pair_id",
    "compute_cluster_id",
    "compute_canonical_id",
]


def order_pair(rid_a: str, rid_b: str) -> tuple[str, str]:
    """Return the two record IDs in lexicographic order."""
    return (rid_a, rid_b) if rid_a <= rid_b else (rid_b, rid_a)


def make_pair_id(rid_a: str, rid_b: str) -> str:
    """Build the order-independent pair identifier "rid_a|rid_b".

    Parameters
    ----------
    rid_a : str
        First record ID.
    rid_b : str
        Second record ID.

    Returns
    -------
    str
        Pair ID with the smaller record ID first.
    """
    first, second = order_pair(rid_a, rid_b)
    return f"{first}|{second}"


def _digest(prefix: str, rids: Iterable[str]) -> str:
    content = "\n".join(sorted(rids))
    hash_digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"{prefix}:{hash_digest[:12]}"


def compute_cluster_id(rids: Iterable[str]) -> str:
    """Compute deterministic cluster ID from member RIDs.

    Parameters
    ----------
    rids : Iterable[str]
        Record IDs in cluster, any order.

    Returns
    -------
    str
        Cluster ID in format "c:{sha256_prefix}".
    """
    return _digest("c", rids)


def compute_canonical_id(rids: Iterable[str]) -> str:
    """Compute deterministic canonical record ID from member RIDs.

    Parameters
    ----------
    rids : Iterable[str]
        Record IDs in cluster, any order.

    Returns
    -------
    str
        Canonical ID in format "m:{sha256_prefix}".
    """
    return _digest("m", rids)
