# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Sequence
from pathlib import Path

import pytest

from people_import.models.exchange import (
    ConfirmAction,
    ConfirmResponse,
    ConfirmResult,
    ConfirmRow,
    PreviewResponse,
    PreviewRow,
    PreviewSummary,
    RowStatus,
    SuggestedAction,
)
from people_import.logging.init import reset_logging
from people_import.models.person import ImportRow
from people_import.services.matching_client import ServiceTransportError


class FakeMatchingService:
    """In-memory stand-in for the matching service.

    Preview: known emails -> update (with person id), blank name -> error,
    everything else -> create. Confirm: applies the chosen action; a create
    for a blank name is reported as a row error.
    """

    def __init__(self, known_emails: dict[str, str] | None = None) -> None:
        self.known_emails = known_emails or {}
        self.preview_calls: list[list[ImportRow]] = []
        self.confirm_calls: list[list[ConfirmRow]] = []
        self.fail_next: str | None = None

    def preview(self, rows: Sequence[ImportRow]) -> PreviewResponse:
        self.preview_calls.append(list(rows))
        if self.fail_next == "preview":
            self.fail_next = None
            raise ServiceTransportError("connection refused")
        out = []
        for r in rows:
            if not r.display_name:
                out.append(PreviewRow(row=r.row, suggested_action=SuggestedAction.ERROR, errors=("name is required",)))
            elif r.primary_email in self.known_emails:
                out.append(PreviewRow(
                    row=r.row,
                    suggested_action=SuggestedAction.UPDATE,
                    person_id=self.known_emails[r.primary_email],
                    match_by="email",
                ))
            else:
                out.append(PreviewRow(row=r.row, suggested_action=SuggestedAction.CREATE))
        rows_t = tuple(out)
        return PreviewResponse(rows=rows_t, summary=PreviewSummary.from_rows(rows_t))

    def confirm(self, rows: Sequence[ConfirmRow]) -> ConfirmResponse:
        self.confirm_calls.append(list(rows))
        if self.fail_next == "confirm":
            self.fail_next = None
            raise ServiceTransportError("gateway timeout", status_code=504)
        created = updated = skipped = errors = invites = 0
        results = []
        for r in rows:
            if r.action is ConfirmAction.SKIP:
                skipped += 1
                results.append(ConfirmResult(row=r.row, status=RowStatus.SKIPPED))
            elif not r.record.display_name:
                errors += 1
                results.append(ConfirmResult(row=r.row, status=RowStatus.ERROR, message="name is required"))
            elif r.action is ConfirmAction.UPDATE:
                updated += 1
                results.append(ConfirmResult(row=r.row, status=RowStatus.OK))
            else:
                created += 1
                if r.record.invite_role and r.record.primary_email:
                    invites += 1
                results.append(ConfirmResult(row=r.row, status=RowStatus.OK))
        return ConfirmResponse(
            processed=len(rows),
            created=created,
            updated=updated,
            skipped=skipped,
            invites_created=invites,
            errors=errors,
            results=tuple(results),
        )


@pytest.fixture()
def fake_service() -> FakeMatchingService:
    return FakeMatchingService(known_emails={"carol@acme.com": "person-7"})


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("PEOPLE_IMPORT_API_URL", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """service:
  base_url: https://api.example.test/
  timeout_seconds: 5
limits:
  max_file_rows: 2000
  max_preview_rows: 1000
mapping:
  notes: Comments
auto_exclude: true
skip_incomplete: true
audit_log_dir: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def people_csv(temp_workdir: Path) -> Path:
    """Five data rows; row 5 has neither name nor contact."""
    f = temp_workdir / "data" / "people.csv"
    f.write_text(
        "Type,Full Name,Email,Phone,Company,Ironworker #,Comments\n"
        "staff,Alice Smith,alice@acme.com,555-100-2000,Acme,,\n"
        "ironworker,Bob Jones,,+1 555 300 4000,Acme,IW-1,union steward\n"
        "vendor,Carol White,carol@acme.com,,Supply Co,,\n"
        "external,Dan Brown,dan@acme.com,,Supply Co,,\n"
        ",,,,Acme,,no name here\n",
        encoding="utf-8",
    )
    return f


@pytest.fixture(autouse=True)
def _fresh_logging():
    # handlers bind sys.stdout at setup time; rebuild them against each test's capture
    reset_logging()
    yield
    reset_logging()
