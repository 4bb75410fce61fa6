from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .person import ImportRow

"""Request/response shapes exchanged with the matching service.

Preview: included rows in, one suggestion per row out.
Confirm: every previewed row with its chosen action in, per-row results and
aggregate counts out. Parsing helpers raise ResponseFormatError when the
service returns something that does not fit these shapes.
"""

__all__ = [
    "SuggestedAction",
    "ConfirmAction",
    "RowStatus",
    "ResponseFormatError",
    "PreviewRow",
    "PreviewSummary",
    "PreviewResponse",
    "ConfirmRow",
    "ConfirmResult",
    "ConfirmResponse",
]


class SuggestedAction(Enum):
    CREATE = "create"
    UPDATE = "update"
    ERROR = "error"


class ConfirmAction(Enum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class RowStatus(Enum):
    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"


class ResponseFormatError(ValueError):
    """Raised when a service payload does not match the expected shape."""


def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise ResponseFormatError(f"missing '{key}' in service response")
    return data[key]


def _as_int(data: Mapping[str, Any], key: str, default: int | None = None) -> int:
    value = data.get(key, default)
    if value is None:
        raise ResponseFormatError(f"missing '{key}' in service response")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ResponseFormatError(f"'{key}' is not an integer: {value!r}") from e


def _as_strings(value: Any, key: str) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        raise ResponseFormatError(f"'{key}' is not a list of strings: {value!r}")
    return tuple(str(v) for v in value)


def _as_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ResponseFormatError(f"{what} is not an object: {data!r}")
    return data


def _as_enum(enum_cls: type[Enum], value: Any, key: str) -> Any:
    try:
        return enum_cls(value)
    except (TypeError, ValueError) as e:
        raise ResponseFormatError(f"unknown {key} {value!r}") from e


@dataclass(frozen=True)
class PreviewRow:
    """The service's suggestion for one previewed row."""
    row: int
    suggested_action: SuggestedAction
    person_id: str | None = None
    match_by: str | None = None  # "email" | "ironworkerNumber"
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> PreviewRow:
        data = _as_mapping(data, "preview row")
        return PreviewRow(
            row=_as_int(data, "row"),
            suggested_action=_as_enum(SuggestedAction, _require(data, "suggestedAction"), "suggestedAction"),
            person_id=_as_text(data.get("personId")),
            match_by=_as_text(data.get("matchBy")),
            errors=_as_strings(data.get("errors"), "errors"),
            warnings=_as_strings(data.get("warnings"), "warnings"),
        )


@dataclass(frozen=True)
class PreviewSummary:
    total: int
    creates: int
    updates: int
    errors: int

    @staticmethod
    def from_rows(rows: tuple[PreviewRow, ...]) -> PreviewSummary:
        actions = [r.suggested_action for r in rows]
        return PreviewSummary(
            total=len(rows),
            creates=actions.count(SuggestedAction.CREATE),
            updates=actions.count(SuggestedAction.UPDATE),
            errors=actions.count(SuggestedAction.ERROR),
        )


@dataclass(frozen=True)
class PreviewResponse:
    rows: tuple[PreviewRow, ...]
    summary: PreviewSummary

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> PreviewResponse:
        if not isinstance(data, Mapping):
            raise ResponseFormatError("preview response is not an object")
        raw_rows = data.get("rows") or []
        if not isinstance(raw_rows, list):
            raise ResponseFormatError("'rows' in preview response is not a list")
        rows = tuple(PreviewRow.from_dict(r) for r in raw_rows)
        raw_summary = data.get("summary")
        if isinstance(raw_summary, Mapping):
            summary = PreviewSummary(
                total=_as_int(raw_summary, "total", len(rows)),
                creates=_as_int(raw_summary, "creates", 0),
                updates=_as_int(raw_summary, "updates", 0),
                errors=_as_int(raw_summary, "errors", 0),
            )
        else:
            summary = PreviewSummary.from_rows(rows)
        return PreviewResponse(rows=rows, summary=summary)

    def by_row(self) -> dict[int, PreviewRow]:
        return {r.row: r for r in self.rows}


@dataclass(frozen=True)
class ConfirmRow:
    """A previewed row with the operator's chosen action."""
    record: ImportRow
    action: ConfirmAction
    person_id: str | None = None

    @property
    def row(self) -> int:
        return self.record.row

    def to_payload(self) -> dict[str, Any]:
        payload = self.record.to_payload()
        payload["action"] = self.action.value
        if self.action is ConfirmAction.UPDATE and self.person_id:
            payload["personId"] = self.person_id
        return payload


@dataclass(frozen=True)
class ConfirmResult:
    row: int
    status: RowStatus
    message: str | None = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> ConfirmResult:
        data = _as_mapping(data, "confirm result")
        return ConfirmResult(
            row=_as_int(data, "row"),
            status=_as_enum(RowStatus, _require(data, "status"), "status"),
            message=_as_text(data.get("message")),
        )


@dataclass(frozen=True)
class ConfirmResponse:
    """Aggregate counts and per-row outcomes of a confirm call."""
    processed: int
    created: int
    updated: int
    skipped: int
    invites_created: int
    errors: int
    results: tuple[ConfirmResult, ...] = ()

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> ConfirmResponse:
        if not isinstance(data, Mapping):
            raise ResponseFormatError("confirm response is not an object")
        raw_results = data.get("results") or []
        if not isinstance(raw_results, list):
            raise ResponseFormatError("'results' in confirm response is not a list")
        return ConfirmResponse(
            processed=_as_int(data, "processed"),
            created=_as_int(data, "created", 0),
            updated=_as_int(data, "updated", 0),
            skipped=_as_int(data, "skipped", 0),
            invites_created=_as_int(data, "invitesCreated", 0),
            errors=_as_int(data, "errors", 0),
            results=tuple(ConfirmResult.from_dict(r) for r in raw_results),
        )
