from __future__ import annotations

"""Exceptions raised by the review session and the pipeline stages it drives."""

__all__ = [
    "ImportSessionError",
    "InvalidTransitionError",
    "MappingIncompleteError",
    "NoRowsError",
    "RowLimitError",
    "BlockingDuplicatesError",
    "SessionBusyError",
    "StaleConfirmError",
    "InvalidActionError",
    "UnknownRowError",
]


class ImportSessionError(Exception):
    """Base class for session-level failures (nothing is sent, nothing changes)."""


class InvalidTransitionError(ImportSessionError):
    """Operation not allowed in the session's current step."""


class MappingIncompleteError(ImportSessionError):
    """Required fields have no mapped header."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"required fields not mapped: {', '.join(missing)}")
        self.missing = missing


class NoRowsError(ImportSessionError):
    pass


class RowLimitError(ImportSessionError):
    def __init__(self, count: int, limit: int, what: str = "rows") -> None:
        super().__init__(f"row limit exceeded: {count} {what} (max {limit})")
        self.count = count
        self.limit = limit


class BlockingDuplicatesError(ImportSessionError):
    """Included rows still share a blocking identity key."""

    def __init__(self, groups: dict[str, list[int]]) -> None:
        detail = "; ".join(f"{k} (rows {', '.join(map(str, rows))})" for k, rows in groups.items())
        super().__init__(f"blocking duplicates must be resolved first: {detail}")
        self.groups = groups


class SessionBusyError(ImportSessionError):
    """A preview or confirm call is already in flight."""


class StaleConfirmError(ImportSessionError):
    """The included row set no longer matches the one the last preview covered."""


class InvalidActionError(ImportSessionError):
    pass


class UnknownRowError(ImportSessionError, KeyError):
    pass
