"""Entity resolution for structured records.

This package provides:
- Data models (erdedupe.models) - records and deterministic identifiers
- Similarity (erdedupe.similarity) - composable similarity measures
- Classifier (erdedupe.classifier) - pairwise three-way classification
- Clustering (erdedupe.clustering) - consistency-policy clustering
- Fusion (erdedupe.fusion) - canonical records with provenance
- Engine (erdedupe.engine) - configuration loading and orchestration
- Audit (erdedupe.audit) - structured JSONL event logging
- CLI (erdedupe.cli) - command-line interface
- Public API (erdedupe.api) - high-level convenience functions
"""

__version__ = "0.1.0"
__license__ = "MIT"

from erdedupe.api import (
    ParseError,
    read_pairs_jsonl,
    read_records_jsonl,
    resolve,
    write_jsonl,
)
from erdedupe.errors import ConfigurationError, ErdedupeError, MeasurementError
from erdedupe.models import Record

__all__ = [
    "__version__",
    "__license__",
    "Record",
    "resolve",
    "read_records_jsonl",
    "read_pairs_jsonl",
    "write_jsonl",
    "ParseError",
    "ErdedupeError",
    "ConfigurationError",
    "MeasurementError",
]
