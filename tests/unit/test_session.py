from __future__ import annotations

import pytest

from people_import.models.exchange import ConfirmAction
from people_import.models.fields import FieldKey
from people_import.services.errors import (
    BlockingDuplicatesError,
    InvalidActionError,
    InvalidTransitionError,
    MappingIncompleteError,
    NoRowsError,
    RowLimitError,
    SessionBusyError,
)
from people_import.services.matching_client import ServiceTransportError
from people_import.services.session import ConfirmReadyState, ReviewSession, Step
from people_import.tabular.reader import MissingHeadersError, TabularData

HEADERS = ["Name", "Email", "Phone", "Company", "Ironworker #"]


def source(*rows: dict[str, str]) -> TabularData:
    return TabularData(headers=list(HEADERS), rows=[dict(r) for r in rows], name="people.csv")


def reviewed(service, *rows: dict[str, str]) -> ReviewSession:
    session = ReviewSession(service)
    session.load_source(source(*rows))
    session.confirm_mapping()
    return session


ALICE = {"Name": "Alice", "Email": "alice@acme.com", "Company": "Acme"}
BOB = {"Name": "Bob", "Email": "bob@acme.com", "Company": "Acme"}
CAROL = {"Name": "Carol", "Email": "carol@acme.com", "Company": "Acme"}


def test_load_source_suggests_mapping(fake_service):
    session = ReviewSession(fake_service)
    assert session.step is Step.UPLOAD
    mapping = session.load_source(source(ALICE))
    assert session.step is Step.MAP
    assert mapping[FieldKey.DISPLAY_NAME] == "Name"
    assert mapping[FieldKey.IRONWORKER_NUMBER] == "Ironworker #"


def test_load_source_applies_overrides(fake_service):
    session = ReviewSession(fake_service)
    mapping = session.load_source(source(ALICE), {FieldKey.COMPANY: None, FieldKey.NOTES: "Company"})
    assert FieldKey.COMPANY not in mapping
    assert mapping[FieldKey.NOTES] == "Company"


def test_load_source_without_headers_is_fatal(fake_service):
    session = ReviewSession(fake_service)
    with pytest.raises(MissingHeadersError):
        session.load_source(TabularData(headers=[], rows=[]))
    assert session.step is Step.UPLOAD


def test_load_source_rejects_oversized_file(fake_service):
    session = ReviewSession(fake_service, max_file_rows=2)
    with pytest.raises(RowLimitError):
        session.load_source(source(ALICE, BOB, CAROL))
    assert session.step is Step.UPLOAD


def test_confirm_mapping_requires_display_name(fake_service):
    session = ReviewSession(fake_service)
    session.load_source(source(ALICE))
    session.set_mapping(FieldKey.DISPLAY_NAME, None)
    with pytest.raises(MappingIncompleteError) as e:
        session.confirm_mapping()
    assert e.value.missing == ["displayName"]
    assert session.step is Step.MAP


def test_set_mapping_rejects_unknown_header(fake_service):
    session = ReviewSession(fake_service)
    session.load_source(source(ALICE))
    with pytest.raises(InvalidActionError):
        session.set_mapping(FieldKey.NOTES, "Nope")


def test_confirm_mapping_normalizes_and_flags_duplicates(fake_service):
    dup = {"Name": "Alicia", "Email": "alice@acme.com", "Company": "Other"}
    session = reviewed(fake_service, ALICE, BOB, dup)
    assert session.step is Step.REVIEW
    rows = {r.row: r for r in session.rows}
    assert set(rows) == {2, 3, 4}
    assert rows[2].issues == ["Duplicate primary email within file (rows 2, 4)"]
    assert rows[3].issues == []


def test_operations_rejected_in_wrong_step(fake_service):
    session = ReviewSession(fake_service)
    with pytest.raises(InvalidTransitionError):
        session.confirm_mapping()
    with pytest.raises(InvalidTransitionError):
        session.run_preview()
    with pytest.raises(InvalidTransitionError):
        session.confirm()


def test_preview_blocked_by_duplicates_without_network_call(fake_service):
    dup = {"Name": "Alicia", "Email": "alice@acme.com"}
    session = reviewed(fake_service, ALICE, dup)
    with pytest.raises(BlockingDuplicatesError):
        session.run_preview()
    assert fake_service.preview_calls == []
    assert session.step is Step.REVIEW


def test_excluding_a_duplicate_unblocks_preview(fake_service):
    dup = {"Name": "Alicia", "Email": "alice@acme.com"}
    session = reviewed(fake_service, ALICE, dup)
    session.set_excluded(3, True)
    assert session.get_row(2).issues == []
    session.run_preview()
    assert session.step is Step.CONFIRM_READY
    assert [r.row for r in fake_service.preview_calls[0]] == [2]


def test_edit_reintroduces_duplicate_and_is_redetected(fake_service):
    session = reviewed(fake_service, ALICE, BOB)
    assert session.blocking_groups() == {}
    session.update_row(3, primary_email="alice@acme.com")
    assert session.get_row(3).issues == ["Duplicate primary email within file (rows 2, 3)"]
    with pytest.raises(BlockingDuplicatesError):
        session.run_preview()


def test_update_row_refreshes_contact_warnings(fake_service):
    session = reviewed(fake_service, {"Name": "", "Company": "Acme"})
    assert "Missing display name" in session.get_row(2).issues
    row = session.update_row(2, display_name="Zed", primary_phone="555-222-3333")
    assert row.issues == []
    with pytest.raises(InvalidActionError):
        session.update_row(2, row=99)


def test_auto_exclude_from_session(fake_service):
    rows = [
        {"Name": "Bob Jones", "Ironworker #": "IW-1", "Email": "b1@x.com"},
        {"Name": "Carl", "Email": "c@x.com"},
        {"Name": "Dee", "Email": "d@x.com"},
        {"Name": "Robert Jones", "Ironworker #": "IW-1", "Email": "b2@x.com"},
    ]
    session = reviewed(fake_service, *rows)
    assert session.auto_exclude() == [5]
    assert session.get_row(2).included
    assert session.get_row(5).excluded
    assert "Auto-excluded duplicate" in session.get_row(5).issues
    # re-including clears the exclusion note and re-detects the duplicate
    row = session.set_excluded(5, False)
    assert "Auto-excluded duplicate" not in row.issues
    assert "Duplicate ironworker number within file (rows 2, 5)" in row.issues


def test_preview_requires_an_included_row(fake_service):
    session = reviewed(fake_service, ALICE)
    session.set_excluded(2, True)
    with pytest.raises(NoRowsError):
        session.run_preview()


def test_preview_row_cap(fake_service):
    session = ReviewSession(fake_service, max_preview_rows=2)
    session.load_source(source(ALICE, BOB, CAROL))
    session.confirm_mapping()
    with pytest.raises(RowLimitError):
        session.run_preview()
    assert fake_service.preview_calls == []


def test_preview_sends_records_without_session_fields(fake_service):
    session = reviewed(fake_service, ALICE)
    session.run_preview()
    sent = fake_service.preview_calls[0][0]
    payload = sent.to_payload()
    assert payload["row"] == 2
    assert not {"sourceRow", "derived", "excluded", "issues"} & set(payload)


def test_preview_defaults_actions(fake_service):
    nameless = {"Name": "", "Email": "x@acme.com"}
    session = reviewed(fake_service, ALICE, CAROL, nameless)
    session.run_preview()
    state = session.state
    assert isinstance(state, ConfirmReadyState)
    assert state.row_numbers == frozenset({2, 3, 4})
    actions = {c.row: (c.action, c.person_id) for c in session.confirm_rows}
    assert actions[2] == (ConfirmAction.CREATE, None)
    assert actions[3] == (ConfirmAction.UPDATE, "person-7")
    assert actions[4] == (ConfirmAction.SKIP, None)
    assert session.preview_for(4).errors == ("name is required",)


def test_transport_failure_leaves_state_for_retry(fake_service):
    session = reviewed(fake_service, ALICE)
    fake_service.fail_next = "preview"
    with pytest.raises(ServiceTransportError):
        session.run_preview()
    assert session.step is Step.REVIEW
    session.run_preview()
    assert session.step is Step.CONFIRM_READY

    fake_service.fail_next = "confirm"
    with pytest.raises(ServiceTransportError):
        session.confirm()
    assert session.step is Step.CONFIRM_READY
    result = session.confirm()
    assert session.step is Step.DONE
    assert result.processed == 1


def test_no_second_call_while_one_is_in_flight(fake_service):
    session = reviewed(fake_service, ALICE)
    reentered: list[Exception] = []

    original = fake_service.preview

    def reentrant_preview(rows):
        try:
            session.run_preview()
        except SessionBusyError as e:
            reentered.append(e)
        return original(rows)

    fake_service.preview = reentrant_preview
    session.run_preview()
    assert len(reentered) == 1
    assert len(fake_service.preview_calls) == 1


def test_set_action_update_needs_person_id(fake_service):
    session = reviewed(fake_service, ALICE, CAROL)
    session.run_preview()
    with pytest.raises(InvalidActionError):
        session.set_action(2, "update")
    assert session.set_action(2, ConfirmAction.UPDATE, "person-1").person_id == "person-1"
    assert session.set_action(3, "skip").action is ConfirmAction.SKIP


def test_going_back_discards_preview(fake_service):
    session = reviewed(fake_service, ALICE, BOB)
    session.run_preview()
    session.back_to_review()
    assert session.step is Step.REVIEW
    assert session.preview is None
    assert session.confirm_rows == []
    with pytest.raises(InvalidTransitionError):
        session.confirm()

    session.set_excluded(3, True)
    session.run_preview()
    assert session.state.row_numbers == frozenset({2})

    session.back_to_map()
    assert session.step is Step.MAP
    assert session.preview is None
    session.confirm_mapping()
    assert all(r.included for r in session.rows)


def test_confirm_sends_skip_rows_and_counts_add_up(fake_service):
    session = reviewed(fake_service, ALICE, BOB, CAROL)
    session.run_preview()
    session.set_action(3, "skip")
    result = session.confirm()
    sent = fake_service.confirm_calls[0]
    assert [c.row for c in sent] == [2, 3, 4]
    assert result.created == 1 and result.updated == 1 and result.skipped == 1
    assert result.created + result.updated + result.skipped + result.errors == result.processed == 3
    assert session.result == result


def test_reset_returns_to_upload(fake_service):
    session = reviewed(fake_service, ALICE)
    session.run_preview()
    session.confirm()
    session.reset()
    assert session.step is Step.UPLOAD
    assert session.rows == []


def test_row_is_not_an_editable_field(fake_service):
    session = reviewed(fake_service, ALICE)
    with pytest.raises(InvalidActionError, match="cannot edit fields: row"):
        session.update_row(2, row=99)
    assert session.get_row(2).row == 2


def test_clearing_list_fields_keeps_rows_sendable(fake_service):
    session = reviewed(fake_service, ALICE)
    row = session.update_row(2, emails=None, skills=["welding", "rigging"], display_name=None)
    assert row.record.emails == ()
    assert row.record.skills == ("welding", "rigging")
    assert "Missing display name" in row.issues
    session.update_row(2, display_name="Alice")
    session.run_preview()
    payload = fake_service.preview_calls[0][0].to_payload()
    assert "emails" not in payload
    assert payload["skills"] == ["welding", "rigging"]


def test_mapping_override_must_name_a_file_header(fake_service):
    session = ReviewSession(fake_service)
    with pytest.raises(InvalidActionError, match="unknown header 'Coments'"):
        session.load_source(source(ALICE), {FieldKey.NOTES: "Coments"})
    assert session.step is Step.UPLOAD


def test_back_to_map_from_review_keeps_mapping(fake_service):
    session = ReviewSession(fake_service)
    session.load_source(source(ALICE), {FieldKey.COMPANY: None})
    session.confirm_mapping()
    session.back_to_map()
    assert session.step is Step.MAP
    assert FieldKey.COMPANY not in session.mapping
    assert session.rows == []
