"""Resolution orchestration engine.

This package provides the entry point for running classification,
clustering and fusion in one call, plus configuration loading.
"""

from erdedupe.engine.config import ResolutionConfig, ResolutionResult
from erdedupe.engine.loader import load_config, validate_config
from erdedupe.engine.runner import run_resolution

__all__ = [
    "ResolutionConfig",
    "ResolutionResult",
    "load_config",
    "run_resolution",
    "validate_config",
]
