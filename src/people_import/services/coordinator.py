from __future__ import annotations

from collections.abc import Sequence

from ..models.exchange import ConfirmAction, ConfirmRow, PreviewResponse, PreviewRow, SuggestedAction
from ..models.person import ImportRow, WorkingRow
from .errors import NoRowsError, RowLimitError

"""Adapters between the review session and the matching service.

Preview packages the included rows without their session-only state; the
preview response is folded back as one default ConfirmRow per previewed row.
"""

__all__ = [
    "DEFAULT_MAX_PREVIEW_ROWS",
    "preview_records",
    "default_action",
    "default_confirm_rows",
]

DEFAULT_MAX_PREVIEW_ROWS = 1000


def preview_records(rows: Sequence[WorkingRow], max_rows: int = DEFAULT_MAX_PREVIEW_ROWS) -> list[ImportRow]:
    """Included rows as plain ImportRows, in row-number order."""
    records = [r.record for r in sorted(rows, key=lambda r: r.row) if r.included]
    if not records:
        raise NoRowsError("no included rows to preview")
    if len(records) > max_rows:
        raise RowLimitError(len(records), max_rows, what="included rows")
    return records


def default_action(suggestion: PreviewRow | None) -> tuple[ConfirmAction, str | None]:
    """update (with matched id) / create as suggested; anything else skips."""
    if suggestion is None:
        return ConfirmAction.SKIP, None
    if suggestion.suggested_action is SuggestedAction.UPDATE and suggestion.person_id:
        return ConfirmAction.UPDATE, suggestion.person_id
    if suggestion.suggested_action is SuggestedAction.CREATE:
        return ConfirmAction.CREATE, suggestion.person_id
    return ConfirmAction.SKIP, suggestion.person_id


def default_confirm_rows(records: Sequence[ImportRow], preview: PreviewResponse) -> tuple[ConfirmRow, ...]:
    suggestions = preview.by_row()
    out = []
    for record in records:
        action, person_id = default_action(suggestions.get(record.row))
        out.append(ConfirmRow(record=record, action=action, person_id=person_id))
    return tuple(out)
