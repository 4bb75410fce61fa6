from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import replace

from ..models.dedupe_key import DedupeKey, DedupeKind
from ..models.person import AUTO_EXCLUDED_ISSUE, WorkingRow
from .normalizer import MIN_PHONE_DIGITS, phone_digits

"""Within-file duplicate detection.

Every included row yields identity keys: primary email, ironworker number and
primary phone digits (blocking), plus name+company (advisory). Rows sharing a
key form a duplicate group; each member receives an issue naming the group's
rows. Dedupe issues live in ``WorkingRow.dedupe_issues`` and are rebuilt from
scratch on every call, so recomputation is idempotent.
"""

__all__ = [
    "dedupe_keys",
    "duplicate_groups",
    "blocking_duplicate_groups",
    "recompute_dedupe_flags",
    "auto_exclude",
    "duplicate_issue",
]


def dedupe_keys(row: WorkingRow) -> list[DedupeKey]:
    """Identity keys for one row (none for excluded rows)."""
    if row.excluded:
        return []
    rec = row.record
    keys: list[DedupeKey] = []
    if rec.primary_email:
        keys.append(DedupeKey(DedupeKind.PRIMARY_EMAIL, rec.primary_email.strip().lower()))
    if rec.ironworker_number and rec.ironworker_number.strip():
        keys.append(DedupeKey(DedupeKind.IRONWORKER_NUMBER, rec.ironworker_number.strip().lower()))
    digits = phone_digits(rec.primary_phone)
    if len(digits) >= MIN_PHONE_DIGITS:
        keys.append(DedupeKey(DedupeKind.PRIMARY_PHONE, digits))
    name = rec.display_name.strip().lower()
    if name:
        company = (rec.company or "").strip().lower()
        keys.append(DedupeKey(DedupeKind.NAME_COMPANY, f"{name}|{company}"))
    return keys


def duplicate_groups(rows: Sequence[WorkingRow]) -> dict[DedupeKey, list[int]]:
    """Keys shared by two or more included rows -> sorted, distinct row numbers."""
    members: dict[DedupeKey, set[int]] = defaultdict(set)
    for row in rows:
        for key in dedupe_keys(row):
            members[key].add(row.row)
    return {key: sorted(nums) for key, nums in members.items() if len(nums) >= 2}


def blocking_duplicate_groups(rows: Sequence[WorkingRow]) -> dict[DedupeKey, list[int]]:
    return {key: nums for key, nums in duplicate_groups(rows).items() if key.blocking}


def duplicate_issue(kind: DedupeKind, row_numbers: Sequence[int]) -> str:
    listed = ", ".join(str(n) for n in row_numbers)
    if kind.blocking:
        return f"Duplicate {kind.value} within file (rows {listed})"
    return f"Potential duplicate {kind.value} within file (rows {listed})"


def recompute_dedupe_flags(rows: Sequence[WorkingRow]) -> list[WorkingRow]:
    """Return the rows with dedupe issues rebuilt; other issues are untouched."""
    issues: dict[int, list[str]] = defaultdict(list)
    for key, nums in duplicate_groups(rows).items():
        text = duplicate_issue(key.kind, nums)
        for n in nums:
            if text not in issues[n]:
                issues[n].append(text)

    out: list[WorkingRow] = []
    for row in rows:
        new_issues = tuple(issues.get(row.row, ()))
        out.append(row if row.dedupe_issues == new_issues else replace(row, dedupe_issues=new_issues))
    return out


def auto_exclude(rows: Sequence[WorkingRow]) -> list[WorkingRow]:
    """Exclude every included row whose blocking key was already claimed by a lower row number.

    Only blocking keys take part; advisory name+company duplicates are never excluded.
    """
    claimed: set[DedupeKey] = set()
    excluded_rows: set[int] = set()
    for row in sorted(rows, key=lambda r: r.row):
        keys = [k for k in dedupe_keys(row) if k.blocking]
        if not keys:
            continue
        if any(k in claimed for k in keys):
            excluded_rows.add(row.row)
            continue
        claimed.update(keys)

    updated = [
        replace(row, excluded=True, excluded_reason=AUTO_EXCLUDED_ISSUE) if row.row in excluded_rows else row
        for row in rows
    ]
    return recompute_dedupe_flags(updated)
