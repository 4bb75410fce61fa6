from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""AuditRecord model for the import audit log.

One record per row outcome reported by the matching service (preview errors,
confirm results) plus file-level failures. ``row = -1`` marks a record that is
not attributable to a single row.
"""

__all__ = [
    "AuditRecord",
    "FILE_LEVEL_ROW",
]

FILE_LEVEL_ROW = -1


@dataclass(frozen=True)
class AuditRecord:
    """Structured audit record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Source file name
        row: Row number, or -1 for file-level records
        stage: Pipeline stage ("upload", "review", "preview", "confirm")
        status: Outcome ("ok", "skipped", "error")
        message: Human-readable detail
    """
    timestamp: str
    file: str
    row: int
    stage: str
    status: str
    message: str

    @staticmethod
    def create(file: str, row: int, stage: str, status: str, message: str = "") -> AuditRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return AuditRecord(
            timestamp=ts,
            file=file,
            row=row,
            stage=stage,
            status=status,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
