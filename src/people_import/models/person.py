from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""Person row models for the people import.

ImportRow is the typed record produced by normalization and sent to the matching
service. WorkingRow wraps it with session-only state (source row, derived flag,
exclusion, issues) that never leaves the review session.
"""

__all__ = [
    "PersonType",
    "ImportRow",
    "WorkingRow",
    "AUTO_EXCLUDED_ISSUE",
]

AUTO_EXCLUDED_ISSUE = "Auto-excluded duplicate"


class PersonType(Enum):
    """Canonical person categories."""
    INTERNAL_STAFF = "internal_staff"
    INTERNAL_UNION = "internal_union"
    EXTERNAL = "external"


@dataclass(frozen=True)
class ImportRow:
    """Normalized person record keyed by its (unique) row number.

    ``person_type`` holds a canonical PersonType value, or the original text when
    it could not be recognized so that the service can reject it.
    """
    row: int
    person_type: str
    display_name: str
    emails: tuple[str, ...] = ()
    primary_email: str | None = None
    phones: tuple[str, ...] = ()
    primary_phone: str | None = None
    company: str | None = None
    company_location: str | None = None
    org_location: str | None = None
    reports_to: str | None = None
    ironworker_number: str | None = None
    union_local: str | None = None
    date_of_birth: str | None = None
    skills: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    certifications: tuple[str, ...] = ()
    rating: float | None = None
    notes: str | None = None
    invite_role: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the service wire shape (camelCase, empty values omitted)."""
        payload: dict[str, Any] = {
            "row": self.row,
            "personType": self.person_type,
            "displayName": self.display_name,
        }
        optional: dict[str, Any] = {
            "emails": list(self.emails),
            "primaryEmail": self.primary_email,
            "phones": list(self.phones),
            "primaryPhone": self.primary_phone,
            "company": self.company,
            "companyLocation": self.company_location,
            "orgLocation": self.org_location,
            "reportsTo": self.reports_to,
            "ironworkerNumber": self.ironworker_number,
            "unionLocal": self.union_local,
            "dateOfBirth": self.date_of_birth,
            "skills": list(self.skills),
            "tags": list(self.tags),
            "certifications": list(self.certifications),
            "rating": self.rating,
            "notes": self.notes,
            "inviteRole": self.invite_role,
        }
        for key, value in optional.items():
            if value is None or value == []:
                continue
            payload[key] = value
        return payload


@dataclass(frozen=True)
class WorkingRow:
    """An ImportRow plus review-session state.

    Issues are kept in separate collections so each pass owns its own:
    ``warnings`` come from normalization, ``dedupe_issues`` are replaced wholesale
    on every dedupe recomputation, ``excluded_reason`` is set by auto-exclude.
    """
    record: ImportRow
    source_row: int
    derived: bool = False
    excluded: bool = False
    excluded_reason: str | None = None
    warnings: tuple[str, ...] = ()
    dedupe_issues: tuple[str, ...] = ()

    @property
    def row(self) -> int:
        return self.record.row

    @property
    def included(self) -> bool:
        return not self.excluded

    @property
    def issues(self) -> list[str]:
        """Merged, ordered issue list for display."""
        merged: list[str] = []
        notes = list(self.warnings)
        if self.excluded_reason:
            notes.append(self.excluded_reason)
        notes.extend(self.dedupe_issues)
        for issue in notes:
            if issue not in merged:
                merged.append(issue)
        return merged
