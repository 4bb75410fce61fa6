from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from ..models.fields import FIELD_CATALOG, FieldKey, required_fields

"""Header mapping suggestion.

Headers and synonyms are compared in normalized form (lower-case, alphanumerics
only). For each field an exact match wins; otherwise the first header, in file
order, whose normalized form contains a synonym. The result is only a
suggestion; operators override it freely.
"""

__all__ = [
    "normalize_header_key",
    "suggest_mapping",
    "missing_required_fields",
]

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_header_key(value: str | None) -> str:
    return _NON_ALNUM.sub("", (value or "").strip().lower())


def _pick(normalized: Sequence[tuple[str, str]], synonyms: Sequence[str]) -> str | None:
    keys = [normalize_header_key(s) for s in synonyms]
    keys = [k for k in keys if k]
    wanted = set(keys)
    for raw, key in normalized:
        if key in wanted:
            return raw
    for raw, key in normalized:
        if key and any(s in key for s in keys):
            return raw
    return None


def suggest_mapping(headers: Sequence[str]) -> dict[FieldKey, str]:
    """Suggest a FieldKey -> header mapping; unmatched fields are left out."""
    normalized = [(h, normalize_header_key(h)) for h in headers]
    mapping: dict[FieldKey, str] = {}
    for fdef in FIELD_CATALOG:
        picked = _pick(normalized, fdef.synonyms)
        if picked is not None:
            mapping[fdef.key] = picked
    return mapping


def missing_required_fields(mapping: Mapping[FieldKey, str | None]) -> list[FieldKey]:
    return [key for key in required_fields() if not (mapping.get(key) or "").strip()]
