from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering for a batch run."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for tiny values
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ProcessingResult) -> str:
    """Render the SUMMARY line.

    Format:
    SUMMARY files={n}/{n} success={s} failed={f} processed={p} created={c}
    updated={u} skipped={k} invites={i} errors={e} elapsed_sec={t}

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, processed=4, created=2, updated=1,
        ...     skipped=1, invites_created=0, errors=0, start_time=start, end_time=end,
        ...     elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY files=1/1 success=1 failed=0 processed=4 created=2 updated=1 skipped=1 invites=0 errors=0 elapsed_sec=2'
    """
    total = result.total_files
    return (
        f"SUMMARY files={total}/{total} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"processed={result.processed} "
        f"created={result.created} "
        f"updated={result.updated} "
        f"skipped={result.skipped} "
        f"invites={result.invites_created} "
        f"errors={result.errors} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
