from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = [
    "DedupeKind",
    "DedupeKey",
]


class DedupeKind(Enum):
    """Identity key kinds, with the label used in issue text."""
    PRIMARY_EMAIL = "primary email"
    IRONWORKER_NUMBER = "ironworker number"
    PRIMARY_PHONE = "primary phone"
    NAME_COMPANY = "name + company"

    @property
    def blocking(self) -> bool:
        return self is not DedupeKind.NAME_COMPANY


@dataclass(frozen=True)
class DedupeKey:
    """One identity key derived from a row (hashable, used for grouping)."""
    kind: DedupeKind
    value: str

    @property
    def blocking(self) -> bool:
        return self.kind.blocking
