"""Tests for audit helper functions."""

import importlib.metadata
from unittest.mock import patch

import pytest

from erdedupe.audit.helpers import (
    generate_run_id,
    get_package_version,
    get_platform_info,
    get_python_version,
)


@pytest.mark.unit
def test_generate_run_id_is_sortable_and_unique() -> None:
    """Test run IDs are timestamp__hex and distinct."""
    first = generate_run_id()
    second = generate_run_id()

    timestamp, suffix = first.split("__")
    assert timestamp.endswith("Z")
    assert len(suffix) == 8
    int(suffix, 16)
    assert first != second


@pytest.mark.unit
def test_get_package_version_when_not_installed() -> None:
    """Test a missing distribution reports "unknown"."""
    with patch(
        "importlib.metadata.version",
        side_effect=importlib.metadata.PackageNotFoundError("erdedupe"),
    ):
        assert get_package_version() == "unknown"


@pytest.mark.unit
def test_environment_strings() -> None:
    """Test interpreter and platform descriptions."""
    assert get_python_version().count(".") >= 1
    assert get_platform_info().count("-") >= 2
