"""Audit logging subsystem for erdedupe.

Main Components
---------------
- AuditLogger: JSONL event logger accepted by every pipeline stage
- generate_run_id: Unique, sortable run identifiers
"""

from erdedupe.audit.helpers import generate_run_id, get_package_version
from erdedupe.audit.logger import AuditLogger
from erdedupe.audit.models import LogEvent

__all__ = [
    "AuditLogger",
    "LogEvent",
    "generate_run_id",
    "get_package_version",
]
