"""Record model consumed by every pipeline stage."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

__all__ = ["Record", "is_missing"]


def is_missing(value: Any) -> bool:
    """Check whether an attribute value counts as missing.

    ``None``, empty/whitespace-only strings and empty collections are missing.
    Zero and ``False`` are real values.

    Parameters
    ----------
    value : Any
        Attribute value.

    Returns
    -------
    bool
        True if value is missing.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class Record:
    """An immutable input record.

    Attributes
    ----------
    rid : str
        Stable unique record identifier.
    attributes : Mapping[str, Any]
        Attribute name to typed value. Stored as a read-only copy.
    """

    rid: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate the identifier and freeze the attribute mapping."""
        if not isinstance(self.rid, str) or not self.rid:
            raise ValueError(f"Record rid must be a non-empty string, got {self.rid!r}")
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def get(self, name: str, default: Any = None) -> Any:
        """Return an attribute value, or ``default`` when absent."""
        return self.attributes.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"rid": self.rid, "attributes": dict(self.attributes)}

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Record":
        """Create a record from a raw dict.

        Parameters
        ----------
        data : Mapping[str, Any]
            Dict with a ``rid`` key and an optional ``attributes`` mapping.

        Returns
        -------
        Record
            Typed record.
        """
        if "rid" not in data:
            raise ValueError("Record dict is missing required key 'rid'")
        return Record(rid=str(data["rid"]), attributes=data.get("attributes") or {})
