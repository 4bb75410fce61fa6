from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from ..models.fields import FIELD_CATALOG

"""Tabular source adapter.

Decodes a .csv / .xlsx file into ordered headers plus string-keyed rows.
Line 1 is the header line; every cell is read as text and blank cells become "".
Fully blank lines are dropped. The untyped ``dict[str, str]`` row shape does not
travel past the normalizer.
"""

logger = logging.getLogger(__name__)

CSV_SUFFIXES = {".csv"}
EXCEL_SUFFIXES = {".xlsx"}


class TabularSourceError(Exception):
    """Base error for files that cannot be turned into headers + rows."""


class UnsupportedFormatError(TabularSourceError):
    """Raised for file types other than csv / xlsx."""


class MissingHeadersError(TabularSourceError):
    """Raised when the header line is missing or blank."""


@dataclass
class TabularData:
    headers: list[str]
    rows: list[dict[str, str]]  # header -> cell text
    name: str = field(default="")


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _frame_to_tabular(df: pd.DataFrame, name: str) -> TabularData:
    if df.shape[0] < 1:
        raise MissingHeadersError(f"no headers found in {name}")

    header_cells = [_cell_text(c) for c in df.iloc[0].tolist()]
    positions: list[tuple[int, str]] = []
    seen: set[str] = set()
    for idx, header in enumerate(header_cells):
        if not header:
            continue
        if header in seen:
            logger.warning("duplicate header '%s' in %s; keeping the first column", header, name)
            continue
        seen.add(header)
        positions.append((idx, header))
    if not positions:
        raise MissingHeadersError(f"no headers found in {name}")

    rows: list[dict[str, str]] = []
    for values in df.iloc[1:].itertuples(index=False, name=None):
        row = {header: _cell_text(values[idx]) if idx < len(values) else "" for idx, header in positions}
        if not any(row.values()):
            continue
        rows.append(row)

    return TabularData(headers=[h for _, h in positions], rows=rows, name=name)


def read_tabular_file(path: Path) -> TabularData:
    """Read a delimited-text or spreadsheet file (first sheet only).

    Raises
    ------
    UnsupportedFormatError: suffix is not csv / xlsx
    MissingHeadersError: the file has no usable header line
    TabularSourceError: the file cannot be read or decoded
    """
    suffix = path.suffix.lower()
    if suffix not in CSV_SUFFIXES | EXCEL_SUFFIXES:
        raise UnsupportedFormatError(f"unsupported file type '{suffix or path.name}'; upload .csv or .xlsx")
    try:
        if suffix in CSV_SUFFIXES:
            df = pd.read_csv(
                path, header=None, dtype=str, keep_default_na=False, na_filter=False,
                skip_blank_lines=True, encoding="utf-8-sig",
            )
        else:
            df = pd.read_excel(
                path, sheet_name=0, header=None, dtype=str, keep_default_na=False, na_filter=False,
                engine="openpyxl",
            )
    except pd.errors.EmptyDataError as e:
        raise MissingHeadersError(f"no headers found in {path.name}") from e
    except UnicodeDecodeError as e:
        raise TabularSourceError(f"{path.name} is not UTF-8 encoded text") from e
    except (ValueError, OSError, zipfile.BadZipFile) as e:
        # ParserError is a ValueError; corrupt workbooks surface as ValueError or BadZipFile
        raise TabularSourceError(f"unable to read {path.name}: {e}") from e

    return _frame_to_tabular(df.fillna(""), path.name)


def template_frame() -> pd.DataFrame:
    """Fixed-column template: one column per catalog field, two sample rows."""
    columns = [f.key.value for f in FIELD_CATALOG]
    samples = [
        {
            "personType": "ironworker",
            "displayName": "John Doe",
            "phones": "+15555550100",
            "company": "MYTE",
            "ironworkerNumber": "IW-1042",
            "unionLocal": "63",
            "dateOfBirth": "1988-01-05",
            "skills": "welding;forklift",
            "certifications": "fall arrest",
            "rating": "4",
        },
        {
            "personType": "staff",
            "displayName": "Jane PM",
            "emails": "jane@example.com",
            "primaryPhone": "+15555555555",
            "company": "MYTE",
            "orgLocation": "Head Office",
            "tags": "pm|lead",
            "inviteRole": "pm",
        },
    ]
    return pd.DataFrame(samples, columns=columns).fillna("")


def write_template(path: Path) -> Path:
    template_frame().to_csv(path, index=False)
    return path
