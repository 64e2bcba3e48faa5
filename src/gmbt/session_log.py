"""
gmbt JSONL session log - structured record of test sessions.

Writes timestamped JSON entries to ~/.gmbt/logs/gmbt_YYYY-MM-DD.jsonl

Log entry types:
- session_start: Test session started
- stage_start: Lifecycle stage started
- stage_complete: Lifecycle stage finished
- process_start: Engine process launched
- process_exit: Engine process finished
- compile_cancelled: First pass cancelled after asset conversion
- archive_disabled / archive_enabled: Archive toggled
- session_complete: Session finished
- session_error: Session aborted
"""

from __future__ import annotations
import json
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional


def get_log_file(log_dir: Path) -> Path:
    """Get today's log file path, creating the directory if needed."""
    log_dir.mkdir(parents=True, exist_ok=True)
    today = datetime.now().strftime("%Y-%m-%d")
    return log_dir / f"gmbt_{today}.jsonl"


@dataclass
class LogEntry:
    """A structured log entry."""
    ts: float  # Unix timestamp
    event: str
    session_id: str
    mode: Optional[str] = None
    stage: Optional[str] = None
    path: Optional[str] = None
    pid: Optional[int] = None
    args: Optional[list] = None
    returncode: Optional[int] = None
    duration_ms: Optional[float] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        """Serialize to JSON string."""
        d = {k: v for k, v in asdict(self).items() if v is not None}
        return json.dumps(d, default=str)


class SessionLogger:
    """
    Structured logger for one test session.

    Writes to a JSONL file for easy parsing and analysis. With no log file
    entries are only kept in memory.
    """

    def __init__(self, log_file: Optional[Path] = None, session_id: Optional[str] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.log_file = log_file
        self.entries: list[LogEntry] = []
        self._stage_starts: dict[str, float] = {}

    def _write(self, entry: LogEntry) -> None:
        self.entries.append(entry)
        if self.log_file is None:
            return
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(entry.to_json() + "\n")

    def _entry(self, event: str, **kwargs) -> LogEntry:
        return LogEntry(ts=time.time(), event=event, session_id=self.session_id, **kwargs)

    def events(self) -> list[str]:
        return [entry.event for entry in self.entries]

    # =========================================================================
    # Session-level events
    # =========================================================================

    def session_start(self, mode: str) -> None:
        self._write(self._entry("session_start", mode=mode))

    def session_complete(self) -> None:
        self._write(self._entry("session_complete"))

    def session_error(self, error: BaseException) -> None:
        self._write(self._entry("session_error", error=f"{type(error).__name__}: {error}"))

    # =========================================================================
    # Stage-level events
    # =========================================================================

    def stage_start(self, stage: str) -> None:
        self._stage_starts[stage] = time.time()
        self._write(self._entry("stage_start", stage=stage))

    def stage_complete(self, stage: str) -> None:
        start = self._stage_starts.pop(stage, None)
        duration_ms = (time.time() - start) * 1000 if start else None
        self._write(self._entry("stage_complete", stage=stage, duration_ms=duration_ms))

    # =========================================================================
    # Process and archive events
    # =========================================================================

    def process_start(self, pid: int, args: list) -> None:
        self._write(self._entry("process_start", pid=pid, args=args))

    def process_exit(self, pid: int, returncode: Optional[int]) -> None:
        self._write(self._entry("process_exit", pid=pid, returncode=returncode))

    def compile_cancelled(self, path: Path) -> None:
        self._write(self._entry("compile_cancelled", path=str(path)))

    def archive_disabled(self, path: Path) -> None:
        self._write(self._entry("archive_disabled", path=str(path)))

    def archive_enabled(self, path: Path) -> None:
        self._write(self._entry("archive_enabled", path=str(path)))
