from __future__ import annotations

from people_import.models.exchange import ConfirmAction, ConfirmRow
from people_import.models.fields import FieldKey
from people_import.services.normalizer import normalize_row

WIRE_KEYS = {k.value for k in FieldKey} | {"row"}
MAPPING = {
    FieldKey.PERSON_TYPE: "Type",
    FieldKey.DISPLAY_NAME: "Name",
    FieldKey.EMAILS: "Email",
    FieldKey.PHONES: "Phone",
    FieldKey.SKILLS: "Skills",
    FieldKey.RATING: "Rating",
}


def test_preview_payload_uses_wire_keys_only():
    raw = {"Type": "ironworker", "Name": "Bob", "Email": "B@X.com", "Phone": "555 123 4567",
           "Skills": "welding;rigging", "Rating": "4"}
    (row,) = normalize_row(raw, MAPPING, 2, lambda: 100)
    payload = row.record.to_payload()
    assert set(payload) <= WIRE_KEYS
    assert payload["personType"] == "internal_union"
    assert payload["primaryEmail"] == "b@x.com"
    assert payload["skills"] == ["welding", "rigging"]
    assert payload["rating"] == 4.0


def test_confirm_payload_adds_action():
    (row,) = normalize_row({"Name": "Bob", "Email": "b@x.com"}, MAPPING, 7, lambda: 100)
    payload = ConfirmRow(row.record, ConfirmAction.CREATE).to_payload()
    assert set(payload) <= WIRE_KEYS | {"action", "personId"}
    assert payload["row"] == 7
    assert payload["action"] == "create"
