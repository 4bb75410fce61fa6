"""Domain models for the people import.

Field catalog, typed person rows, dedupe keys, the matching-service exchange
shapes and batch result records.
"""

from .audit_record import AuditRecord
from .dedupe_key import DedupeKey, DedupeKind
from .exchange import (
    ConfirmAction,
    ConfirmResponse,
    ConfirmResult,
    ConfirmRow,
    PreviewResponse,
    PreviewRow,
    PreviewSummary,
    ResponseFormatError,
    RowStatus,
    SuggestedAction,
)
from .fields import FIELD_CATALOG, FieldDef, FieldKey, field_def, required_fields
from .person import AUTO_EXCLUDED_ISSUE, ImportRow, PersonType, WorkingRow
from .processing_result import FileStat, ProcessingResult

__all__ = [
    # Catalog
    "FIELD_CATALOG",
    "FieldDef",
    "FieldKey",
    "field_def",
    "required_fields",
    # Rows
    "AUTO_EXCLUDED_ISSUE",
    "ImportRow",
    "PersonType",
    "WorkingRow",
    # Dedupe
    "DedupeKey",
    "DedupeKind",
    # Service exchange
    "ConfirmAction",
    "ConfirmResponse",
    "ConfirmResult",
    "ConfirmRow",
    "PreviewResponse",
    "PreviewRow",
    "PreviewSummary",
    "ResponseFormatError",
    "RowStatus",
    "SuggestedAction",
    # Results
    "AuditRecord",
    "FileStat",
    "ProcessingResult",
]
