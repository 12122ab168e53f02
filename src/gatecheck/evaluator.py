from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Mapping

from loguru import logger
from pydantic import ValidationError

from gatecheck.catalog.ticket_catalog import TicketCatalog, normalize_ticket_id
from gatecheck.exceptions import MalformedInputError
from gatecheck.models.canonical import STATUS_RESULT_MAP, CheckInRequest, ResultKind, TicketRecord
from gatecheck.stores.admission_ledger import AdmissionLedger, AdmissionSnapshot

DEFAULT_REDACTED_FIELDS = frozenset({"email", "phone"})

# Keys owned by the response itself; roster columns with these names are dropped.
RESERVED_PAYLOAD_KEYS = frozenset(
    {
        "result",
        "message",
        "ticketId",
        "numberOfPeople",
        "entryStatus",
        "totalEntered",
        "entryLog",
        "isOverCapacity",
    }
)


def coerce_people_entering(raw: Any) -> int:
    """Turn a scanner-supplied head count into an int.

    Anything that is not a number (missing, blank, text, booleans) means a
    status-only query and becomes 0. Negative or fractional counts are
    rejected rather than clamped.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return 0
        try:
            raw = float(text)
        except ValueError:
            return 0
    if isinstance(raw, float):
        if math.isnan(raw):
            return 0
        if not raw.is_integer():
            raise MalformedInputError(f"peopleEntering must be a whole number, got {raw!r}")
        raw = int(raw)
    if not isinstance(raw, int):
        return 0
    if raw < 0:
        raise MalformedInputError(f"peopleEntering must not be negative, got {raw}")
    return raw


@dataclass(frozen=True)
class ClassificationResult:
    kind: ResultKind
    ticket: TicketRecord | None = None
    snapshot: AdmissionSnapshot | None = None
    is_over_capacity: bool | None = None
    message: str | None = None
    redacted_fields: frozenset[str] = DEFAULT_REDACTED_FIELDS

    @property
    def is_error(self) -> bool:
        return self.kind == ResultKind.ERROR

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"result": self.kind.value}
        if self.is_error:
            payload["message"] = self.message or "Invalid request format"
            return payload
        if self.ticket is None or self.snapshot is None:
            return payload

        for key, value in self.ticket.holder_attributes.items():
            if key in RESERVED_PAYLOAD_KEYS or key in self.redacted_fields:
                continue
            payload[key] = value
        payload["ticketId"] = self.ticket.ticket_id
        payload["numberOfPeople"] = self.ticket.capacity
        payload["entryStatus"] = self.snapshot.status.value
        payload["totalEntered"] = self.snapshot.total_entered
        payload["entryLog"] = [event.to_payload() for event in self.snapshot.entry_log]
        if self.is_over_capacity is not None:
            payload["isOverCapacity"] = self.is_over_capacity
        return payload


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts) or "Invalid request format"


class CheckInEvaluator:
    """Joins the ticket catalog and the admission ledger for a single scan."""

    def __init__(
        self,
        catalog: TicketCatalog,
        ledger: AdmissionLedger,
        redacted_fields: frozenset[str] = DEFAULT_REDACTED_FIELDS,
    ) -> None:
        self.catalog = catalog
        self.ledger = ledger
        self.redacted_fields = redacted_fields

    def evaluate(self, ticket_id: str, people_entering: Any = 0) -> ClassificationResult:
        if not isinstance(ticket_id, str) or not normalize_ticket_id(ticket_id):
            return self._error(MalformedInputError("ticketId must be a non-empty string"))
        ticket_id = normalize_ticket_id(ticket_id)

        ticket = self.catalog.lookup(ticket_id)
        if ticket is None:
            logger.info("Check-in {}: INVALID (not in catalog)", ticket_id)
            return ClassificationResult(kind=ResultKind.INVALID)

        try:
            count = coerce_people_entering(people_entering)
            if count == 0:
                return self._status_only(ticket)
            return self._record(ticket, count)
        except MalformedInputError as exc:
            return self._error(exc, ticket_id)

    def handle(self, body: bytes | str | Mapping[str, Any]) -> ClassificationResult:
        """Classify a raw request body; never raises for bad input."""
        try:
            request = self._parse(body)
        except MalformedInputError as exc:
            return self._error(exc)
        return self.evaluate(request.ticket_id, request.people_entering)

    def _parse(self, body: bytes | str | Mapping[str, Any]) -> CheckInRequest:
        if isinstance(body, (bytes, bytearray)):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedInputError("request body is not UTF-8 text") from exc
        if isinstance(body, str):
            try:
                body = json.loads(body)
            except (ValueError, RecursionError) as exc:
                # ValueError covers JSONDecodeError and oversized integer literals
                reason = exc.msg if isinstance(exc, json.JSONDecodeError) else "body cannot be decoded"
                raise MalformedInputError(f"Invalid request format: {reason}") from exc
        if not isinstance(body, Mapping):
            raise MalformedInputError("Invalid request format: expected a JSON object")
        try:
            return CheckInRequest.model_validate(dict(body))
        except ValidationError as exc:
            raise MalformedInputError(f"Invalid request format: {_describe_validation_error(exc)}") from exc

    def _status_only(self, ticket: TicketRecord) -> ClassificationResult:
        snapshot = self.ledger.snapshot(ticket.ticket_id, ticket.capacity)
        kind = STATUS_RESULT_MAP[snapshot.status]
        logger.info(
            "Check-in {}: {} (status query, {}/{} entered)",
            ticket.ticket_id,
            kind.value,
            snapshot.total_entered,
            ticket.capacity,
        )
        return ClassificationResult(
            kind=kind,
            ticket=ticket,
            snapshot=snapshot,
            redacted_fields=self.redacted_fields,
        )

    def _record(self, ticket: TicketRecord, count: int) -> ClassificationResult:
        snapshot, is_over_capacity = self.ledger.record_entry(ticket.ticket_id, ticket.capacity, count)
        if is_over_capacity:
            logger.warning(
                "Check-in {}: admitted {} over capacity ({}/{} entered)",
                ticket.ticket_id,
                count,
                snapshot.total_entered,
                ticket.capacity,
            )
        else:
            logger.info(
                "Check-in {}: VALID, admitted {} ({}/{} entered)",
                ticket.ticket_id,
                count,
                snapshot.total_entered,
                ticket.capacity,
            )
        return ClassificationResult(
            kind=ResultKind.VALID,
            ticket=ticket,
            snapshot=snapshot,
            is_over_capacity=is_over_capacity,
            redacted_fields=self.redacted_fields,
        )

    def _error(self, exc: MalformedInputError, ticket_id: str | None = None) -> ClassificationResult:
        logger.warning("Check-in {}: ERROR ({})", ticket_id or "<unparsed>", exc.message)
        return ClassificationResult(kind=ResultKind.ERROR, message=exc.message)
