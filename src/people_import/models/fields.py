from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Field catalog for the people import.

Each FieldKey is one semantic column the importer understands. The catalog carries
the display label, the required flag and the header synonyms used to suggest a
column mapping for an uploaded file.
"""

__all__ = [
    "FieldKey",
    "FieldDef",
    "FIELD_CATALOG",
    "field_def",
    "required_fields",
]


class FieldKey(Enum):
    """Semantic fields recognized by the importer (wire names as values)."""
    PERSON_TYPE = "personType"
    DISPLAY_NAME = "displayName"
    EMAILS = "emails"
    PRIMARY_EMAIL = "primaryEmail"
    PHONES = "phones"
    PRIMARY_PHONE = "primaryPhone"
    COMPANY = "company"
    COMPANY_LOCATION = "companyLocation"
    ORG_LOCATION = "orgLocation"
    REPORTS_TO = "reportsTo"
    IRONWORKER_NUMBER = "ironworkerNumber"
    UNION_LOCAL = "unionLocal"
    DATE_OF_BIRTH = "dateOfBirth"
    SKILLS = "skills"
    TAGS = "tags"
    CERTIFICATIONS = "certifications"
    RATING = "rating"
    NOTES = "notes"
    INVITE_ROLE = "inviteRole"


@dataclass(frozen=True)
class FieldDef:
    """Catalog entry for one FieldKey."""
    key: FieldKey
    label: str
    synonyms: tuple[str, ...]
    required: bool = False
    hint: str | None = None


FIELD_CATALOG: tuple[FieldDef, ...] = (
    FieldDef(FieldKey.PERSON_TYPE, "Person Type",
             ("personType", "type", "person_type", "category"),
             hint="staff | ironworker | external"),
    FieldDef(FieldKey.DISPLAY_NAME, "Name",
             ("displayName", "name", "fullName", "employeeName", "contactName"),
             required=True),
    FieldDef(FieldKey.EMAILS, "Emails",
             ("emails", "emailAddresses", "email", "emailAddress"),
             hint="Pipe, comma or semicolon separated"),
    FieldDef(FieldKey.PRIMARY_EMAIL, "Primary Email",
             ("primaryEmail", "mainEmail", "workEmail")),
    FieldDef(FieldKey.PHONES, "Phones",
             ("phones", "phoneNumbers", "phone", "mobile", "cell", "telephone"),
             hint="Pipe, comma or semicolon separated"),
    FieldDef(FieldKey.PRIMARY_PHONE, "Primary Phone",
             ("primaryPhone", "mainPhone", "workPhone")),
    FieldDef(FieldKey.COMPANY, "Company",
             ("company", "companyName", "vendor", "supplier", "employer")),
    FieldDef(FieldKey.COMPANY_LOCATION, "Company Location",
             ("companyLocation", "companyBranch", "branch")),
    FieldDef(FieldKey.ORG_LOCATION, "Office",
             ("orgLocation", "office", "officeLocation", "location")),
    FieldDef(FieldKey.REPORTS_TO, "Reports To",
             ("reportsTo", "manager", "supervisor")),
    FieldDef(FieldKey.IRONWORKER_NUMBER, "Ironworker #",
             ("ironworkerNumber", "ironworker", "unionNumber", "memberNumber", "localNumber")),
    FieldDef(FieldKey.UNION_LOCAL, "Union Local",
             ("unionLocal", "local", "union")),
    FieldDef(FieldKey.DATE_OF_BIRTH, "Date of Birth",
             ("dateOfBirth", "dob", "birthdate"),
             hint="YYYY-MM-DD"),
    FieldDef(FieldKey.SKILLS, "Skills",
             ("skills", "skill", "trades")),
    FieldDef(FieldKey.TAGS, "Tags",
             ("tags", "tag", "labels")),
    FieldDef(FieldKey.CERTIFICATIONS, "Certifications",
             ("certifications", "certs", "certification", "tickets")),
    FieldDef(FieldKey.RATING, "Rating",
             ("rating", "score", "stars"),
             hint="Number"),
    FieldDef(FieldKey.NOTES, "Notes",
             ("notes", "note", "comments", "remarks")),
    FieldDef(FieldKey.INVITE_ROLE, "Invite Role",
             ("inviteRole", "role", "access", "accessRole"),
             hint="admin | pm | superintendent | foreman | viewer"),
)

_BY_KEY = {f.key: f for f in FIELD_CATALOG}


def field_def(key: FieldKey) -> FieldDef:
    return _BY_KEY[key]


def required_fields() -> list[FieldKey]:
    return [f.key for f in FIELD_CATALOG if f.required]
