"""Common utility functions for erdedupe.

This module consolidates shared hashing and timestamp helpers.
"""

from erdedupe.utils.hashing import (
    calculate_file_sha256,
    format_sha256,
)
from erdedupe.utils.timestamps import coerce_datetime, get_iso_timestamp

__all__ = [
    "get_iso_timestamp",
    "coerce_datetime",
    "calculate_file_sha256",
    "format_sha256",
]
