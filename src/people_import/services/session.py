from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, ClassVar

from ..models.dedupe_key import DedupeKey
from ..models.exchange import ConfirmAction, ConfirmResponse, ConfirmRow, PreviewResponse, PreviewRow
from ..models.fields import FieldKey
from ..models.person import ImportRow, WorkingRow
from ..tabular.reader import MissingHeadersError, TabularData
from .coordinator import DEFAULT_MAX_PREVIEW_ROWS, default_confirm_rows, preview_records
from .dedupe import auto_exclude as _auto_exclude
from .dedupe import blocking_duplicate_groups, recompute_dedupe_flags
from .errors import (
    BlockingDuplicatesError,
    InvalidActionError,
    InvalidTransitionError,
    MappingIncompleteError,
    NoRowsError,
    RowLimitError,
    SessionBusyError,
    StaleConfirmError,
    UnknownRowError,
)
from .header_mapper import missing_required_fields, suggest_mapping
from .matching_client import MatchingService
from .normalizer import MISSING_CONTACT_ISSUE, MISSING_NAME_ISSUE, build_working_rows

"""Review session: the import pipeline as an explicit state machine.

    upload -> map -> review -> preview -> confirm_ready -> confirming -> done

Each step is a frozen state object holding only the data valid in that step.
Going back to ``map`` or ``review`` drops the preview/confirm state, so a
fresh preview is always required before the next confirm. ``preview`` and
``confirming`` exist only while the service call is in flight; if the call
fails the session returns to the state it was in before the call.
"""

__all__ = [
    "Step",
    "UploadState",
    "MapState",
    "ReviewState",
    "PreviewState",
    "ConfirmReadyState",
    "ConfirmingState",
    "DoneState",
    "ReviewSession",
    "DEFAULT_MAX_FILE_ROWS",
    "INCOMPLETE_EXCLUDED_ISSUE",
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_ROWS = 2000
INCOMPLETE_EXCLUDED_ISSUE = "Excluded: missing name or contact"
_CONTACT_WARNINGS = (MISSING_NAME_ISSUE, MISSING_CONTACT_ISSUE)
_EDITABLE_FIELDS = {f.name for f in fields(ImportRow)} - {"row"}


class Step(Enum):
    UPLOAD = "upload"
    MAP = "map"
    REVIEW = "review"
    PREVIEW = "preview"
    CONFIRM_READY = "confirm_ready"
    CONFIRMING = "confirming"
    DONE = "done"


@dataclass(frozen=True)
class UploadState:
    step: ClassVar[Step] = Step.UPLOAD


@dataclass(frozen=True)
class MapState:
    step: ClassVar[Step] = Step.MAP
    source: TabularData
    mapping: Mapping[FieldKey, str]


@dataclass(frozen=True)
class ReviewState:
    step: ClassVar[Step] = Step.REVIEW
    source: TabularData
    mapping: Mapping[FieldKey, str]
    rows: tuple[WorkingRow, ...]


@dataclass(frozen=True)
class PreviewState:
    """Preview call in flight over exactly ``row_numbers``."""
    step: ClassVar[Step] = Step.PREVIEW
    review: ReviewState
    row_numbers: frozenset[int]


@dataclass(frozen=True)
class ConfirmReadyState:
    step: ClassVar[Step] = Step.CONFIRM_READY
    review: ReviewState
    row_numbers: frozenset[int]
    preview: PreviewResponse
    confirm_rows: tuple[ConfirmRow, ...]


@dataclass(frozen=True)
class ConfirmingState:
    step: ClassVar[Step] = Step.CONFIRMING
    ready: ConfirmReadyState


@dataclass(frozen=True)
class DoneState:
    step: ClassVar[Step] = Step.DONE
    ready: ConfirmReadyState
    result: ConfirmResponse


SessionState = (
    UploadState | MapState | ReviewState | PreviewState | ConfirmReadyState | ConfirmingState | DoneState
)


def _refresh_contact_warnings(row: WorkingRow) -> WorkingRow:
    kept = [w for w in row.warnings if w not in _CONTACT_WARNINGS]
    if not row.record.display_name:
        kept.append(MISSING_NAME_ISSUE)
    if not row.record.primary_email and not row.record.primary_phone:
        kept.append(MISSING_CONTACT_ISSUE)
    return replace(row, warnings=tuple(kept))


class ReviewSession:
    """One operator's import, from uploaded file to committed result.

    Not shared between operators; the matching service is the only collaborator
    that can block, and at most one call to it is in flight at a time.
    """

    def __init__(
        self,
        service: MatchingService,
        *,
        max_file_rows: int = DEFAULT_MAX_FILE_ROWS,
        max_preview_rows: int = DEFAULT_MAX_PREVIEW_ROWS,
    ) -> None:
        self._service = service
        self.max_file_rows = max_file_rows
        self.max_preview_rows = max_preview_rows
        self._state: SessionState = UploadState()

    # -- state access -------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def step(self) -> Step:
        return self._state.step

    def _require(self, *steps: Step) -> Any:
        if self.step in (Step.PREVIEW, Step.CONFIRMING):
            raise SessionBusyError(f"a {self.step.value} call is already in flight")
        if self.step not in steps:
            allowed = ", ".join(s.value for s in steps)
            raise InvalidTransitionError(f"not allowed in step '{self.step.value}' (expected {allowed})")
        return self._state

    def _review_state(self) -> ReviewState | None:
        st = self._state
        if isinstance(st, ReviewState):
            return st
        if isinstance(st, (PreviewState, ConfirmReadyState)):
            return st.review
        if isinstance(st, ConfirmingState):
            return st.ready.review
        if isinstance(st, DoneState):
            return st.ready.review
        return None

    @property
    def source(self) -> TabularData | None:
        st = self._state
        if isinstance(st, MapState):
            return st.source
        review = self._review_state()
        return review.source if review else None

    @property
    def mapping(self) -> dict[FieldKey, str]:
        st = self._state
        if isinstance(st, MapState):
            return dict(st.mapping)
        review = self._review_state()
        return dict(review.mapping) if review else {}

    @property
    def rows(self) -> list[WorkingRow]:
        review = self._review_state()
        return list(review.rows) if review else []

    def included_rows(self) -> list[WorkingRow]:
        return [r for r in self.rows if r.included]

    def get_row(self, row: int) -> WorkingRow:
        for r in self.rows:
            if r.row == row:
                return r
        raise UnknownRowError(f"no row {row}")

    def blocking_groups(self) -> dict[DedupeKey, list[int]]:
        return blocking_duplicate_groups(self.rows)

    @property
    def preview(self) -> PreviewResponse | None:
        st = self._state
        if isinstance(st, ConfirmReadyState):
            return st.preview
        if isinstance(st, (ConfirmingState, DoneState)):
            return st.ready.preview
        return None

    def preview_for(self, row: int) -> PreviewRow | None:
        preview = self.preview
        return preview.by_row().get(row) if preview else None

    @property
    def confirm_rows(self) -> list[ConfirmRow]:
        st = self._state
        if isinstance(st, ConfirmReadyState):
            return list(st.confirm_rows)
        if isinstance(st, (ConfirmingState, DoneState)):
            return list(st.ready.confirm_rows)
        return []

    @property
    def result(self) -> ConfirmResponse | None:
        return self._state.result if isinstance(self._state, DoneState) else None

    # -- upload / map -------------------------------------------------------

    def load_source(
        self,
        source: TabularData,
        mapping_overrides: Mapping[FieldKey, str | None] | None = None,
    ) -> dict[FieldKey, str]:
        """upload -> map with a suggested mapping (plus overrides)."""
        self._require(Step.UPLOAD)
        if not source.headers:
            raise MissingHeadersError(f"no headers found in {source.name or 'file'}")
        if len(source.rows) > self.max_file_rows:
            raise RowLimitError(len(source.rows), self.max_file_rows)

        mapping = suggest_mapping(source.headers)
        for key, header in (mapping_overrides or {}).items():
            if header:
                if header not in source.headers:
                    raise InvalidActionError(f"mapping for {key.value}: unknown header '{header}'")
                mapping[key] = header
            else:
                mapping.pop(key, None)
        self._state = MapState(source=source, mapping=mapping)
        logger.info("loaded %s: %d headers, %d rows", source.name or "file", len(source.headers), len(source.rows))
        return dict(mapping)

    def set_mapping(self, key: FieldKey, header: str | None) -> None:
        st = self._require(Step.MAP)
        mapping = dict(st.mapping)
        if header:
            if header not in st.source.headers:
                raise InvalidActionError(f"unknown header '{header}'")
            mapping[key] = header
        else:
            mapping.pop(key, None)
        self._state = replace(st, mapping=mapping)

    def back_to_upload(self) -> None:
        self._require(Step.MAP)
        self._state = UploadState()

    def confirm_mapping(self) -> list[WorkingRow]:
        """map -> review; normalizes every row and runs the dedupe pass."""
        st = self._require(Step.MAP)
        missing = missing_required_fields(st.mapping)
        if missing:
            raise MappingIncompleteError([k.value for k in missing])
        rows = build_working_rows(st.source.rows, st.mapping, max_rows=self.max_file_rows)
        rows = recompute_dedupe_flags(rows)
        self._state = ReviewState(source=st.source, mapping=dict(st.mapping), rows=tuple(rows))
        derived = sum(1 for r in rows if r.derived)
        logger.info("normalized %d rows (%d derived from multi-contact rows)", len(rows), derived)
        return list(rows)

    def back_to_map(self) -> None:
        """Return to mapping; review edits and any preview are discarded."""
        st = self._require(Step.REVIEW, Step.CONFIRM_READY)
        review = st if isinstance(st, ReviewState) else st.review
        self._state = MapState(source=review.source, mapping=dict(review.mapping))

    def back_to_review(self) -> None:
        """Drop the preview so rows can be edited again."""
        st = self._require(Step.CONFIRM_READY)
        self._state = st.review

    # -- review -------------------------------------------------------------

    def _replace_rows(self, st: ReviewState, rows: list[WorkingRow]) -> None:
        self._state = replace(st, rows=tuple(recompute_dedupe_flags(rows)))

    def update_row(self, row: int, /, **changes: Any) -> WorkingRow:
        """Edit ImportRow fields of one row, then recompute duplicates."""
        st = self._require(Step.REVIEW)
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise InvalidActionError(f"cannot edit fields: {', '.join(sorted(unknown))}")
        target = self.get_row(row)
        for key in ("emails", "phones", "skills", "tags", "certifications"):
            if key in changes:
                changes[key] = tuple(changes[key] or ())
        if "display_name" in changes:
            changes["display_name"] = (changes["display_name"] or "").strip()
        edited = _refresh_contact_warnings(replace(target, record=replace(target.record, **changes)))
        self._replace_rows(st, [edited if r.row == row else r for r in st.rows])
        return self.get_row(row)

    def set_excluded(self, row: int, excluded: bool) -> WorkingRow:
        st = self._require(Step.REVIEW)
        target = self.get_row(row)
        updated = replace(target, excluded=excluded, excluded_reason=target.excluded_reason if excluded else None)
        self._replace_rows(st, [updated if r.row == row else r for r in st.rows])
        return self.get_row(row)

    def auto_exclude(self) -> list[int]:
        """Exclude later rows of each blocking duplicate group; returns the newly excluded rows."""
        st = self._require(Step.REVIEW)
        before = {r.row for r in st.rows if r.excluded}
        rows = _auto_exclude(st.rows)
        self._state = replace(st, rows=tuple(rows))
        newly = sorted(r.row for r in rows if r.excluded and r.row not in before)
        if newly:
            logger.info("auto-excluded %d duplicate rows: %s", len(newly), newly)
        return newly

    def exclude_incomplete(self) -> list[int]:
        """Exclude included rows flagged as missing a name or any contact."""
        st = self._require(Step.REVIEW)
        newly: list[int] = []
        rows = []
        for r in st.rows:
            if r.included and any(w in _CONTACT_WARNINGS for w in r.warnings):
                newly.append(r.row)
                r = replace(r, excluded=True, excluded_reason=INCOMPLETE_EXCLUDED_ISSUE)
            rows.append(r)
        self._replace_rows(st, rows)
        return newly

    # -- preview / confirm --------------------------------------------------

    def run_preview(self) -> PreviewResponse:
        """review -> preview -> confirm_ready.

        Gates (checked before any network call): at least one included row,
        no blocking duplicates among included rows, preview row cap.
        """
        st = self._require(Step.REVIEW)
        groups = blocking_duplicate_groups(st.rows)
        if groups:
            raise BlockingDuplicatesError({f"{k.kind.value} '{k.value}'": v for k, v in groups.items()})
        records = preview_records(st.rows, self.max_preview_rows)
        row_numbers = frozenset(r.row for r in records)

        self._state = PreviewState(review=st, row_numbers=row_numbers)
        try:
            response = self._service.preview(records)
        except Exception:
            self._state = st
            raise

        confirm_rows = default_confirm_rows(records, response)
        self._state = ConfirmReadyState(
            review=st,
            row_numbers=row_numbers,
            preview=response,
            confirm_rows=confirm_rows,
        )
        s = response.summary
        logger.info("preview: %d rows, %d create, %d update, %d errors", s.total, s.creates, s.updates, s.errors)
        return response

    def set_action(self, row: int, action: ConfirmAction | str, person_id: str | None = None) -> ConfirmRow:
        st = self._require(Step.CONFIRM_READY)
        action = ConfirmAction(action)
        current = next((c for c in st.confirm_rows if c.row == row), None)
        if current is None:
            raise UnknownRowError(f"row {row} was not part of the preview")
        if action is ConfirmAction.UPDATE:
            suggestion = st.preview.by_row().get(row)
            person_id = person_id or current.person_id or (suggestion.person_id if suggestion else None)
            if not person_id:
                raise InvalidActionError(f"row {row}: update requires a matched person id")
        updated = ConfirmRow(record=current.record, action=action, person_id=person_id or current.person_id)
        self._state = replace(st, confirm_rows=tuple(updated if c.row == row else c for c in st.confirm_rows))
        return updated

    def confirm(self) -> ConfirmResponse:
        """confirm_ready -> confirming -> done; skip rows are sent too."""
        st = self._require(Step.CONFIRM_READY)
        included = frozenset(r.row for r in st.review.rows if r.included)
        sent = frozenset(c.row for c in st.confirm_rows)
        if included != st.row_numbers or sent != st.row_numbers:
            raise StaleConfirmError("rows changed since the last preview; run preview again")
        if not st.confirm_rows:
            raise NoRowsError("no rows to import")

        self._state = ConfirmingState(ready=st)
        try:
            result = self._service.confirm(list(st.confirm_rows))
        except Exception:
            self._state = st
            raise

        self._state = DoneState(ready=st, result=result)
        logger.info(
            "confirm: processed=%d created=%d updated=%d skipped=%d errors=%d",
            result.processed, result.created, result.updated, result.skipped, result.errors,
        )
        return result

    def reset(self) -> None:
        """Start a new import from any idle step."""
        self._require(*(s for s in Step if s not in (Step.PREVIEW, Step.CONFIRMING)))
        self._state = UploadState()
