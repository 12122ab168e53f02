from datetime import datetime, timezone

import pytest

from gatecheck.catalog.ticket_catalog import InMemoryTicketCatalog
from gatecheck.evaluator import CheckInEvaluator, coerce_people_entering
from gatecheck.exceptions import MalformedInputError
from gatecheck.models.canonical import ResultKind, TicketRecord
from gatecheck.stores.admission_ledger import AdmissionLedger

T0 = datetime(2025, 11, 8, 17, 0, tzinfo=timezone.utc)


def _ticket(ticket_id: str, capacity: int) -> TicketRecord:
    return TicketRecord(
        ticket_id=ticket_id,
        capacity=capacity,
        holder_attributes={
            "name": "John Doe",
            "email": "john.doe@example.com",
            "iAm": "Student",
            "transport": "Own Transport",
        },
    )


def _evaluator() -> CheckInEvaluator:
    catalog = InMemoryTicketCatalog([_ticket("T1", 2), _ticket("T2", 4)])
    return CheckInEvaluator(catalog, AdmissionLedger(clock=lambda: T0))


def test_fresh_ticket_status_query_is_valid_not_started() -> None:
    payload = _evaluator().evaluate("T1", 0).to_payload()
    assert payload["result"] == "VALID"
    assert payload["entryStatus"] == "not-started"
    assert payload["totalEntered"] == 0
    assert payload["entryLog"] == []
    assert "isOverCapacity" not in payload


def test_full_party_then_latecomer_is_flagged_over_capacity() -> None:
    evaluator = _evaluator()
    evaluator.evaluate("T1", 0)

    payload = evaluator.evaluate("T1", 2).to_payload()
    assert payload["result"] == "VALID"
    assert payload["entryStatus"] == "complete"
    assert payload["totalEntered"] == 2
    assert payload["entryLog"] == [{"count": 2, "timestamp": T0.isoformat(), "cumulative": 2}]
    assert payload["isOverCapacity"] is False

    payload = evaluator.evaluate("T1", 1).to_payload()
    assert payload["result"] == "VALID"
    assert payload["entryStatus"] == "complete"
    assert payload["totalEntered"] == 3
    assert len(payload["entryLog"]) == 2
    assert payload["entryLog"][1]["cumulative"] == 3
    assert payload["isOverCapacity"] is True


def test_partial_entry_then_status_query_does_not_mutate() -> None:
    evaluator = _evaluator()
    payload = evaluator.evaluate("T2", 1).to_payload()
    assert payload["entryStatus"] == "partial"
    assert payload["totalEntered"] == 1

    for _ in range(5):
        payload = evaluator.evaluate("T2", 0).to_payload()
        assert payload["result"] == "PARTIAL"
        assert payload["entryStatus"] == "partial"
        assert payload["totalEntered"] == 1
        assert len(payload["entryLog"]) == 1
    assert len(evaluator.ledger.get("T2").entry_log) == 1


def test_complete_ticket_status_query_is_already_used() -> None:
    evaluator = _evaluator()
    evaluator.evaluate("T1", 2)
    result = evaluator.evaluate("T1", 0)
    assert result.kind == ResultKind.ALREADY_USED
    assert result.to_payload()["entryStatus"] == "complete"


def test_unknown_ticket_is_invalid_and_creates_no_state() -> None:
    evaluator = _evaluator()
    result = evaluator.evaluate("T99", 3)
    assert result.to_payload() == {"result": "INVALID"}
    assert "T99" not in evaluator.ledger
    assert len(evaluator.ledger) == 0


@pytest.mark.parametrize("people_entering", [-1, 1.5])
def test_unknown_ticket_wins_over_bad_people_count(people_entering) -> None:
    evaluator = _evaluator()
    assert evaluator.evaluate("T99", people_entering).kind == ResultKind.INVALID
    assert evaluator.evaluate("T1", people_entering).kind == ResultKind.ERROR
    assert "T99" not in evaluator.ledger


def test_malformed_body_is_error_with_message() -> None:
    evaluator = _evaluator()
    oversized_count = '{"ticketId": "T1", "peopleEntering": ' + "9" * 5000 + "}"
    bodies = (
        b"{not json",
        "[1, 2]",
        b"\xff\xfe",
        "42",
        oversized_count,
        {"peopleEntering": 2},
        {"ticketId": "   "},
        {"ticketId": 7},
    )
    for body in bodies:
        result = evaluator.handle(body)
        payload = result.to_payload()
        assert result.is_error
        assert payload["result"] == "ERROR"
        assert payload["message"]
    assert len(evaluator.ledger) == 0


def test_handle_parses_json_body() -> None:
    evaluator = _evaluator()
    payload = evaluator.handle(b'{"ticketId": " T2 ", "peopleEntering": "3"}').to_payload()
    assert payload["result"] == "VALID"
    assert payload["ticketId"] == "T2"
    assert payload["totalEntered"] == 3


def test_handle_without_people_count_is_status_only() -> None:
    evaluator = _evaluator()
    payload = evaluator.handle({"ticketId": "T2"}).to_payload()
    assert payload["result"] == "VALID"
    assert "isOverCapacity" not in payload


@pytest.mark.parametrize("people_entering", [-1, "-2", 1.5, "2.5"])
def test_negative_or_fractional_count_is_error_without_mutation(people_entering) -> None:
    evaluator = _evaluator()
    evaluator.evaluate("T2", 1)
    result = evaluator.evaluate("T2", people_entering)
    assert result.kind == ResultKind.ERROR
    assert "peopleEntering" in result.to_payload()["message"]
    assert evaluator.ledger.get("T2").total_entered == 1


def test_payload_omits_redacted_fields_and_keeps_display_fields() -> None:
    payload = _evaluator().evaluate("T1", 0).to_payload()
    assert "email" not in payload
    assert payload["name"] == "John Doe"
    assert payload["iAm"] == "Student"
    assert payload["transport"] == "Own Transport"
    assert payload["numberOfPeople"] == 2
    assert payload["ticketId"] == "T1"


def test_roster_columns_cannot_override_response_fields() -> None:
    ticket = TicketRecord(
        ticket_id="T5",
        capacity=1,
        holder_attributes={"result": "VALID", "entryStatus": "valid", "name": "Jane"},
    )
    evaluator = CheckInEvaluator(InMemoryTicketCatalog([ticket]), AdmissionLedger())
    evaluator.evaluate("T5", 1)
    payload = evaluator.evaluate("T5", 0).to_payload()
    assert payload["result"] == "ALREADY_USED"
    assert payload["entryStatus"] == "complete"
    assert payload["name"] == "Jane"


def test_custom_redacted_fields() -> None:
    catalog = InMemoryTicketCatalog([_ticket("T1", 2)])
    evaluator = CheckInEvaluator(catalog, AdmissionLedger(), redacted_fields=frozenset({"transport"}))
    payload = evaluator.evaluate("T1", 0).to_payload()
    assert "transport" not in payload
    assert payload["email"] == "john.doe@example.com"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, 0),
        ("", 0),
        ("  ", 0),
        ("abc", 0),
        (True, 0),
        ([2], 0),
        ({"n": 2}, 0),
        (float("nan"), 0),
        (0, 0),
        (3, 3),
        (2.0, 2),
        (" 4 ", 4),
        ("2.0", 2),
    ],
)
def test_coerce_people_entering(raw, expected: int) -> None:
    assert coerce_people_entering(raw) == expected


@pytest.mark.parametrize("raw", [-1, "-1", 0.5, "1.25", float("inf")])
def test_coerce_people_entering_rejects_invariant_violations(raw) -> None:
    with pytest.raises(MalformedInputError):
        coerce_people_entering(raw)
