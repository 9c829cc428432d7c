"""JSONL audit trail shared by the resolution stages.

Every stage accepts ``logger: AuditLogger | None``. When given, the stage
brackets its work with ``stage_started``/``stage_finished`` and reports
recovered problems (skipped pairs, measurement failures, constraint
conflicts, fusion fallbacks) as WARN events named after the warning kind.
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from erdedupe.audit.helpers import get_package_version, get_platform_info, get_python_version
from erdedupe.audit.models import LogEvent
from erdedupe.utils import get_iso_timestamp

__all__ = ["AuditLogger"]


def _present(**fields: Any) -> dict[str, Any]:
    """Keep only the fields that were supplied."""
    return {key: value for key, value in fields.items() if value is not None}


class AuditLogger:
    """Append one JSON object per event to ``log_path``.

    The file stays open for the logger's lifetime and is flushed after each
    event, so a crashed run still leaves a readable trail. Stages only log
    from their coordinating thread; the logger itself holds no lock.

    Attributes
    ----------
    run_id : str
        Identifier stamped on every event.
    log_path : Path
        JSONL destination; parent directories are created.
    current_stage : str | None
        Stage opened by the latest ``stage_started``, used when an event
        names no stage of its own.
    """

    def __init__(self, run_id: str, log_path: Path) -> None:
        self.run_id = run_id
        self.log_path = Path(log_path)
        self.current_stage: str | None = None

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.log_path.open("a", encoding="utf-8")

    def __enter__(self) -> "AuditLogger":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Flush and close the log file; closing twice is harmless."""
        if not self._file.closed:
            self._file.flush()
            self._file.close()

    def event(
        self,
        event_type: str,
        data: dict[str, Any] | None = None,
        level: str = "INFO",
        stage: str | None = None,
        rid: str | None = None,
    ) -> None:
        """Write one event.

        Parameters
        ----------
        event_type : str
            Event name, e.g. ``"stage_started"`` or a warning kind.
        data : dict[str, Any] | None, optional
            Payload; values without a JSON form are written with ``str``.
        level : str, optional
            ``"DEBUG"``, ``"INFO"``, ``"WARN"`` or ``"ERROR"``.
        stage : str | None, optional
            Defaults to ``current_stage``.
        rid : str | None, optional
            Record the event is about, if any.
        """
        record = LogEvent(
            ts=get_iso_timestamp(),
            run_id=self.run_id,
            level=level,
            event=event_type,
            data=data or {},
            stage=stage if stage is not None else self.current_stage,
            rid=rid,
        )
        json.dump(asdict(record), self._file, ensure_ascii=False, separators=(",", ":"), default=str)
        self._file.write("\n")
        self._file.flush()

    # -- run lifecycle ------------------------------------------------------

    def run_started(self, command: list[str], parameters: dict[str, Any]) -> None:
        """Record the invocation together with package and interpreter versions."""
        environment = {
            "erdedupe": get_package_version(),
            "python": get_python_version(),
            "platform": get_platform_info(),
        }
        self.event(
            "run_started",
            data={"command": command, "parameters": parameters, "environment": environment},
        )

    def run_finished(
        self,
        status: str,
        duration_seconds: float,
        records_processed: int | None = None,
    ) -> None:
        self.event(
            "run_finished",
            data=_present(
                status=status,
                duration_seconds=duration_seconds,
                records_processed=records_processed,
            ),
        )

    # -- stage lifecycle ----------------------------------------------------

    def stage_started(self, stage: str, expected_records: int | None = None) -> None:
        """Open ``stage``; later events without an explicit stage inherit it."""
        self.current_stage = stage
        self.event("stage_started", data=_present(expected_records=expected_records), stage=stage)

    def stage_finished(
        self,
        stage: str,
        duration_seconds: float,
        counters: dict[str, int] | None = None,
    ) -> None:
        """Close ``stage`` with its elapsed time and counters (omitted when empty)."""
        self.event(
            "stage_finished",
            data=_present(duration_seconds=duration_seconds, counters=counters or None),
            stage=stage,
        )

    # -- outcomes -----------------------------------------------------------

    def warning(self, payload: dict[str, Any], stage: str | None = None) -> None:
        """Write a recovered problem as a WARN event.

        ``payload`` is a warning's ``to_dict()``; its ``kind`` is moved out of
        the data and becomes the event name.
        """
        data = dict(payload)
        kind = str(data.pop("kind", "warning"))
        self.event(kind, data=data, level="WARN", stage=stage)

    def artifact_written(
        self,
        path: str,
        sha256: str,
        stage: str | None = None,
        record_count: int | None = None,
    ) -> None:
        self.event(
            "artifact_written",
            data=_present(path=path, sha256=sha256, record_count=record_count),
            stage=stage,
        )

    def error(
        self,
        exception_class: str,
        message: str,
        stage: str | None = None,
        traceback: str | None = None,
    ) -> None:
        """Write a fatal error; ``traceback`` is only passed in verbose runs."""
        self.event(
            "error",
            data=_present(exception_class=exception_class, message=message, traceback=traceback),
            level="ERROR",
            stage=stage,
        )
