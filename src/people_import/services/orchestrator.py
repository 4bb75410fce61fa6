from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..config.loader import ImportConfig
from ..logging.audit_log import AuditLogBuffer
from ..models.audit_record import FILE_LEVEL_ROW, AuditRecord
from ..models.exchange import SuggestedAction
from ..models.processing_result import FileStat, ProcessingResult
from ..tabular.reader import CSV_SUFFIXES, EXCEL_SUFFIXES, TabularSourceError, read_tabular_file
from .errors import ImportSessionError
from .matching_client import MatchingService, ServiceTransportError
from .progress import ProgressTracker
from .session import ReviewSession

"""Unattended import of one or more files.

Each file runs through its own ReviewSession with the configured policy:
suggested mapping (plus config overrides), optional auto-exclude and
incomplete-row exclusion, preview, then confirm with the default actions
(unless dry-run). A failure in one file is recorded and the run continues.
"""

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = CSV_SUFFIXES | EXCEL_SUFFIXES


class ProcessingError(Exception):
    """Fatal error that stops the whole run."""


def collect_source_files(paths: Iterable[Path]) -> list[Path]:
    """Expand directories (non-recursive) into supported files; keep explicit files as given."""
    files: list[Path] = []
    for path in paths:
        if not path.exists():
            raise ProcessingError(f"Path not found: {path}")
        if path.is_dir():
            try:
                found = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES)
            except OSError as e:
                raise ProcessingError(f"Error reading directory {path}: {e}") from e
            files.extend(found)
        else:
            files.append(path)
    return files


def _audit_preview(audit_log: AuditLogBuffer, file_name: str, session: ReviewSession) -> None:
    preview = session.preview
    if preview is None:
        return
    for row in preview.rows:
        if row.suggested_action is SuggestedAction.ERROR or row.errors:
            message = "; ".join(row.errors) or "preview reported an error"
            audit_log.append(AuditRecord.create(file_name, row.row, "preview", "error", message))


def _process_single_file(
    path: Path,
    config: ImportConfig,
    service: MatchingService,
    audit_log: AuditLogBuffer,
    dry_run: bool,
) -> FileStat:
    start = datetime.now(UTC)

    def elapsed() -> float:
        return (datetime.now(UTC) - start).total_seconds()

    session = ReviewSession(
        service,
        max_file_rows=config.limits.max_file_rows,
        max_preview_rows=config.limits.max_preview_rows,
    )
    stage = "upload"
    try:
        source = read_tabular_file(path)
        session.load_source(source, config.mapping)

        stage = "review"
        rows = session.confirm_mapping()
        flagged = [r for r in rows if r.issues]
        if flagged:
            logger.info("%s: %d of %d rows carry review issues", path.name, len(flagged), len(rows))
        if config.auto_exclude:
            session.auto_exclude()
        if config.skip_incomplete:
            excluded = session.exclude_incomplete()
            if excluded:
                logger.info("%s: excluded %d incomplete rows", path.name, len(excluded))

        stage = "preview"
        preview = session.run_preview()
        _audit_preview(audit_log, path.name, session)
        if dry_run:
            return FileStat(
                file_name=path.name,
                status="success",
                elapsed_seconds=elapsed(),
                previewed_rows=preview.summary.total,
            )

        stage = "confirm"
        result = session.confirm()
    except (TabularSourceError, ImportSessionError, ServiceTransportError) as e:
        logger.error("%s: %s failed: %s", path.name, stage, e)
        audit_log.append(AuditRecord.create(path.name, FILE_LEVEL_ROW, stage, "error", str(e)))
        return FileStat(file_name=path.name, status="failed", elapsed_seconds=elapsed(), error=str(e))

    for r in result.results:
        audit_log.append(AuditRecord.create(path.name, r.row, "confirm", r.status.value, r.message or ""))
    if result.errors:
        logger.warning("%s: %d rows reported errors on confirm", path.name, result.errors)

    return FileStat(
        file_name=path.name,
        status="success",
        elapsed_seconds=elapsed(),
        previewed_rows=len(session.confirm_rows),
        processed=result.processed,
        created=result.created,
        updated=result.updated,
        skipped=result.skipped,
        invites_created=result.invites_created,
        errors=result.errors,
    )


def process_files(
    paths: Iterable[Path],
    config: ImportConfig,
    service: MatchingService,
    *,
    dry_run: bool = False,
) -> ProcessingResult:
    """Import every file and aggregate the outcome.

    Raises:
        ProcessingError: when a given path does not exist
    """
    start_time = datetime.now(UTC)
    file_paths = collect_source_files(paths)
    audit_log = AuditLogBuffer(config.audit_log_dir)

    file_stats: list[FileStat] = []
    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            stat = _process_single_file(file_path, config, service, audit_log, dry_run)
            file_stats.append(stat)
            progress.set_postfix(
                success=sum(1 for s in file_stats if s.status == "success"),
                failed=sum(1 for s in file_stats if s.status == "failed"),
            )
            progress.finish_file(success=stat.status == "success")

    try:
        written = audit_log.flush()
    except OSError as e:
        logger.warning("could not write audit log: %s", e)
    else:
        if written is not None:
            logger.info("audit log: %s", written)

    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=sum(1 for s in file_stats if s.status == "success"),
        failed_files=sum(1 for s in file_stats if s.status == "failed"),
        processed=sum(s.processed for s in file_stats),
        created=sum(s.created for s in file_stats),
        updated=sum(s.updated for s in file_stats),
        skipped=sum(s.skipped for s in file_stats),
        invites_created=sum(s.invites_created for s in file_stats),
        errors=sum(s.errors for s in file_stats),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )
