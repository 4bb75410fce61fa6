from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.audit_record import AuditRecord

"""Audit log buffering.

Records are buffered in memory and appended as JSON Lines to
``<log_dir>/import-audit-YYYYMMDD-HHMMSS.log`` (UTC) on flush. The file path is
fixed on first access so one run writes one file.
"""

__all__ = [
    "AuditRecord",
    "AuditLogBuffer",
]

DEFAULT_LOG_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class AuditLogBuffer:
    """In-memory buffer for audit records. Flush writes JSON Lines.

    Not thread safe; one run owns one buffer.
    """
    def __init__(self, log_dir: Path | str = DEFAULT_LOG_DIR) -> None:
        self._log_dir = Path(log_dir)
        self._records: list[AuditRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._log_dir / f"import-audit-{stamp}.log"
        return self._file_path

    def append(self, record: AuditRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file; returns its path, or None if nothing was written."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
