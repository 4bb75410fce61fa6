from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import replace

from ..models.fields import FieldKey
from ..models.person import ImportRow, PersonType, WorkingRow
from .errors import RowLimitError

"""Row normalization: raw string-keyed rows -> typed WorkingRows.

Steps per raw row:
1. resolve each field's text through the mapping ("" when unmapped)
2. canonicalize the person type
3. parse multi-valued fields (pipe first, else comma/semicolon)
4. extract emails by pattern and phone candidates by separator, merged with
   the explicit lists (explicit values first)
5. resolve primary email / phone
6. advisories for missing name or contact
7. split multi-contact rows ("A; B" + two emails) into derived rows
"""

__all__ = [
    "MISSING_NAME_ISSUE",
    "MISSING_CONTACT_ISSUE",
    "canonicalize_person_type",
    "parse_list",
    "extract_emails",
    "extract_phone_candidates",
    "phone_digits",
    "split_display_name",
    "normalize_row",
    "build_working_rows",
]

MISSING_NAME_ISSUE = "Missing display name"
MISSING_CONTACT_ISSUE = "Missing contact (email or phone)"
MIN_PHONE_DIGITS = 7

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+'\-]+@[A-Za-z0-9\-]+(?:\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,}")
_EMAIL_FULL_RE = re.compile(rf"^{EMAIL_RE.pattern}$")
_PHONE_SPLIT_RE = re.compile(r"[\r\n,;|]")
_PHONE_STRIP_RE = re.compile(r"[^0-9+]")
_LIST_SPLIT_RE = re.compile(r"[,;]")
_TYPE_SEP_RE = re.compile(r"[\s\-]+")

# Name separators in priority order; the first class that yields >1 part wins
_NAME_SEPARATORS: tuple[re.Pattern[str], ...] = (
    re.compile(r"[;|]"),
    re.compile(r" / "),
    re.compile(r" & "),
)

_PERSON_TYPE_SYNONYMS: dict[str, PersonType] = {}
for _ptype, _words in (
    (PersonType.INTERNAL_STAFF, ("staff", "user", "employee", "internal", "internal_staff", "office")),
    (PersonType.INTERNAL_UNION, ("ironworker", "iron", "iw", "union", "member", "internal_union", "field")),
    (PersonType.EXTERNAL, ("external", "vendor", "supplier", "subcontractor", "client", "contractor", "contact")),
):
    for _word in _words:
        _PERSON_TYPE_SYNONYMS[_word] = _ptype


def canonicalize_person_type(raw: str | None) -> str:
    """Map free text onto a PersonType value; unknown text passes through unchanged."""
    text = (raw or "").strip()
    if not text:
        return PersonType.EXTERNAL.value
    key = _TYPE_SEP_RE.sub("_", text.lower())
    ptype = _PERSON_TYPE_SYNONYMS.get(key)
    return ptype.value if ptype is not None else text


def _dedupe(values: Sequence[str], *, case_insensitive: bool) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        key = v.lower() if case_insensitive else v
        if key in seen:
            continue
        seen.add(key)
        out.append(v)
    return out


def parse_list(raw: str | None, *, case_insensitive: bool = False) -> list[str]:
    text = (raw or "").strip()
    if not text:
        return []
    parts = text.split("|") if "|" in text else _LIST_SPLIT_RE.split(text)
    return _dedupe([p.strip() for p in parts if p.strip()], case_insensitive=case_insensitive)


def extract_emails(text: str | None) -> list[str]:
    """All email-looking substrings, lower-cased, first occurrence order."""
    return _dedupe([m.group(0).lower() for m in EMAIL_RE.finditer(text or "")], case_insensitive=True)


def phone_digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def _phone_parts(text: str | None) -> Iterator[str]:
    for part in _PHONE_SPLIT_RE.split(text or ""):
        part = part.strip()
        if len(phone_digits(part)) >= MIN_PHONE_DIGITS:
            yield part


def extract_phone_candidates(text: str | None) -> list[str]:
    """Phone candidates reduced to digits and '+', dropping anything under 7 digits."""
    return _dedupe([_PHONE_STRIP_RE.sub("", p) for p in _phone_parts(text)], case_insensitive=False)


def split_display_name(name: str | None) -> list[str]:
    text = (name or "").strip()
    for sep in _NAME_SEPARATORS:
        parts = [p.strip() for p in sep.split(text)]
        parts = [p for p in parts if p]
        if len(parts) > 1:
            return parts
    return [text] if text else []


def _merge_emails(explicit: list[str], extracted: list[str]) -> tuple[list[str], list[str]]:
    merged: list[str] = []
    rejected: list[str] = []
    for value in explicit:
        if _EMAIL_FULL_RE.match(value):
            merged.append(value.lower())
        elif not EMAIL_RE.search(value):
            rejected.append(value)
    merged = _dedupe(merged, case_insensitive=True)
    known = set(merged)
    merged.extend(e for e in extracted if e not in known)
    return merged, rejected


def _merge_phones(explicit: list[str], candidates: list[str]) -> list[str]:
    merged = [p for p in explicit if len(phone_digits(p)) >= MIN_PHONE_DIGITS]
    known = {phone_digits(p) for p in merged}
    for cand in candidates:
        digits = phone_digits(cand)
        if digits not in known:
            known.add(digits)
            merged.append(cand)
    return merged


def _parse_rating(text: str) -> tuple[float | None, str | None]:
    if not text:
        return None, None
    try:
        value = float(text)
    except ValueError:
        return None, f"Rating is not a number: '{text}'"
    if not math.isfinite(value):
        return None, f"Rating is not a number: '{text}'"
    return value, None


def _contact_warnings(record: ImportRow) -> list[str]:
    warnings = []
    if not record.display_name:
        warnings.append(MISSING_NAME_ISSUE)
    if not record.primary_email and not record.primary_phone:
        warnings.append(MISSING_CONTACT_ISSUE)
    return warnings


def derived_row_issue(source_row: int) -> str:
    return f"Derived from multi-contact row {source_row}; review this derived row"


def unsplit_row_issue(names: int, emails: int) -> str:
    return f"Possible unsplit multi-contact row ({names} names, {emails} emails)"


def normalize_row(
    raw: Mapping[str, str],
    mapping: Mapping[FieldKey, str | None],
    row_number: int,
    next_row_number: Callable[[], int],
) -> list[WorkingRow]:
    """Normalize one raw row into one or more WorkingRows.

    ``next_row_number`` hands out synthetic row numbers for derived rows; the
    caller guarantees they never collide with real source row numbers.
    """
    def get(key: FieldKey) -> str:
        header = mapping.get(key)
        if not header:
            return ""
        value = raw.get(header)
        return "" if value is None else str(value).strip()

    warnings: list[str] = []

    emails_text = get(FieldKey.EMAILS)
    primary_email_text = get(FieldKey.PRIMARY_EMAIL)
    extracted_emails = extract_emails(f"{emails_text}\n{primary_email_text}")
    emails, rejected = _merge_emails(parse_list(emails_text, case_insensitive=True), extracted_emails)
    warnings.extend(f"Unrecognized email: '{value}'" for value in rejected)
    explicit_primary = extract_emails(primary_email_text)
    primary_email = explicit_primary[0] if explicit_primary else (emails[0] if emails else None)

    phones_text = get(FieldKey.PHONES)
    primary_phone_text = get(FieldKey.PRIMARY_PHONE)
    phones = _merge_phones(
        parse_list(phones_text),
        extract_phone_candidates(f"{phones_text}\n{primary_phone_text}"),
    )
    explicit_primary_phone = next(_phone_parts(primary_phone_text), None)
    primary_phone = explicit_primary_phone or (phones[0] if phones else None)

    rating, rating_issue = _parse_rating(get(FieldKey.RATING))
    if rating_issue:
        warnings.append(rating_issue)

    invite_role = get(FieldKey.INVITE_ROLE).lower()
    display_name = get(FieldKey.DISPLAY_NAME)

    record = ImportRow(
        row=row_number,
        person_type=canonicalize_person_type(get(FieldKey.PERSON_TYPE)),
        display_name=display_name,
        emails=tuple(emails),
        primary_email=primary_email,
        phones=tuple(phones),
        primary_phone=primary_phone,
        company=get(FieldKey.COMPANY) or None,
        company_location=get(FieldKey.COMPANY_LOCATION) or None,
        org_location=get(FieldKey.ORG_LOCATION) or None,
        reports_to=get(FieldKey.REPORTS_TO) or None,
        ironworker_number=get(FieldKey.IRONWORKER_NUMBER) or None,
        union_local=get(FieldKey.UNION_LOCAL) or None,
        date_of_birth=get(FieldKey.DATE_OF_BIRTH) or None,
        skills=tuple(parse_list(get(FieldKey.SKILLS))),
        tags=tuple(parse_list(get(FieldKey.TAGS))),
        certifications=tuple(parse_list(get(FieldKey.CERTIFICATIONS))),
        rating=rating,
        notes=get(FieldKey.NOTES) or None,
        invite_role=invite_role or None,
    )

    name_parts = split_display_name(display_name)
    if len(name_parts) > 1 and len(name_parts) == len(extracted_emails):
        return _split_contacts(record, name_parts, extracted_emails, warnings, next_row_number)

    if len(name_parts) > 1 and len(extracted_emails) > 1:
        warnings.append(unsplit_row_issue(len(name_parts), len(extracted_emails)))

    return [
        WorkingRow(
            record=record,
            source_row=row_number,
            warnings=tuple(warnings + _contact_warnings(record)),
        )
    ]


def _split_contacts(
    record: ImportRow,
    names: list[str],
    emails: list[str],
    warnings: list[str],
    next_row_number: Callable[[], int],
) -> list[WorkingRow]:
    """One row per (name, email) pair; the first keeps the source row number and phones."""
    pair_phones = len(record.phones) == len(names)
    first = replace(record, display_name=names[0], emails=(emails[0],), primary_email=emails[0])
    rows = [
        WorkingRow(
            record=first,
            source_row=record.row,
            warnings=tuple(warnings + _contact_warnings(first)),
        )
    ]
    for name, email in zip(names[1:], emails[1:], strict=True):
        phone = record.phones[len(rows)] if pair_phones else None
        derived = replace(
            record,
            row=next_row_number(),
            display_name=name,
            emails=(email,),
            primary_email=email,
            phones=(phone,) if phone else (),
            primary_phone=phone,
            # per-person identifiers stay with the first contact
            ironworker_number=None,
            date_of_birth=None,
        )
        rows.append(
            WorkingRow(
                record=derived,
                source_row=record.row,
                derived=True,
                warnings=tuple(warnings + [derived_row_issue(record.row)] + _contact_warnings(derived)),
            )
        )
    return rows


def build_working_rows(
    raw_rows: Sequence[Mapping[str, str]],
    mapping: Mapping[FieldKey, str | None],
    *,
    max_rows: int | None = None,
) -> list[WorkingRow]:
    """Normalize every raw row; raw line i gets row number i + 2 (line 1 is the header).

    Raises RowLimitError before any normalization when the file exceeds ``max_rows``.
    """
    if max_rows is not None and len(raw_rows) > max_rows:
        raise RowLimitError(len(raw_rows), max_rows)

    synthetic = iter(range(len(raw_rows) + 2, 2**31))
    rows: list[WorkingRow] = []
    for idx, raw in enumerate(raw_rows):
        rows.extend(normalize_row(raw, mapping, idx + 2, lambda: next(synthetic)))
    return rows
