from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Batch result models for unattended (CLI) imports.

FileStat records the outcome of one file; ProcessingResult aggregates the run
and feeds the SUMMARY line.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-file outcome."""
    file_name: str
    status: str  # success / failed
    elapsed_seconds: float
    previewed_rows: int = 0
    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    invites_created: int = 0
    errors: int = 0
    error: str | None = None  # failure reason when status == failed


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated counts across all files of one run."""
    success_files: int
    failed_files: int
    processed: int
    created: int
    updated: int
    skipped: int
    invites_created: int
    errors: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
