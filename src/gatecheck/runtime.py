from __future__ import annotations

import json
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping

from loguru import logger

from gatecheck import __version__
from gatecheck.catalog.ticket_catalog import InMemoryTicketCatalog, load_catalog
from gatecheck.evaluator import DEFAULT_REDACTED_FIELDS, CheckInEvaluator
from gatecheck.exceptions import CatalogLoadError, InvalidEntryError
from gatecheck.models.canonical import AdmissionStatus
from gatecheck.stores.admission_ledger import AdmissionLedger

ROSTER_FILENAMES = ("tickets.json", "tickets.csv")
PREADMITTED_FILENAME = "preadmitted.json"

ENDPOINTS = [
    {"method": "POST", "path": "/", "description": "Check in a ticket"},
    {"method": "POST", "path": "/api/checkin", "description": "Check in a ticket"},
    {"method": "GET", "path": "/api/tickets/{ticket_id}", "description": "Admission status without recording"},
    {"method": "GET", "path": "/api/summary", "description": "Gate summary"},
    {"method": "GET", "path": "/health", "description": "Liveness"},
]


class GateCheckRuntime:
    def __init__(
        self,
        catalog: InMemoryTicketCatalog,
        ledger: AdmissionLedger | None = None,
        redacted_fields: frozenset[str] = DEFAULT_REDACTED_FIELDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.catalog = catalog
        self.ledger = ledger or AdmissionLedger(clock=clock)
        self.evaluator = CheckInEvaluator(self.catalog, self.ledger, redacted_fields=redacted_fields)
        self.started_at = datetime.now(timezone.utc)

    @classmethod
    def from_data_dir(
        cls,
        data_dir: Path,
        redacted_fields: frozenset[str] = DEFAULT_REDACTED_FIELDS,
    ) -> GateCheckRuntime:
        roster = next((data_dir / name for name in ROSTER_FILENAMES if (data_dir / name).exists()), None)
        if roster is None:
            raise CatalogLoadError(f"no roster ({' or '.join(ROSTER_FILENAMES)}) found in {data_dir}")
        runtime = cls(load_catalog(roster), redacted_fields=redacted_fields)
        preadmitted = data_dir / PREADMITTED_FILENAME
        if preadmitted.exists():
            try:
                rows = json.loads(preadmitted.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                raise CatalogLoadError(f"cannot read {PREADMITTED_FILENAME}: {exc}") from exc
            runtime.seed_preadmitted(rows)
        return runtime

    def seed_preadmitted(self, rows: list[Mapping[str, Any]]) -> None:
        if not isinstance(rows, list):
            raise CatalogLoadError(f"{PREADMITTED_FILENAME} must be a list of {{\"ticketId\", \"count\"}} rows")
        for position, row in enumerate(rows, start=1):
            if not isinstance(row, Mapping):
                raise CatalogLoadError(f"preadmitted row {position}: expected an object")
            ticket_id = str(row.get("ticketId", "")).strip()
            ticket = self.catalog.lookup(ticket_id)
            if ticket is None:
                raise CatalogLoadError(f"preadmitted row {position}: unknown ticket {ticket_id!r}")
            count = row.get("count", ticket.capacity)
            try:
                self.ledger.record_entry(ticket.ticket_id, ticket.capacity, count)
            except InvalidEntryError as exc:
                raise CatalogLoadError(f"preadmitted row {position} ({ticket_id}): {exc.message}") from exc
        if rows:
            logger.info("Seeded {} preadmitted entry(ies)", len(rows))

    def check_in(self, body: bytes | str | Mapping[str, Any]) -> tuple[dict[str, Any], int]:
        result = self.evaluator.handle(body)
        return result.to_payload(), 400 if result.is_error else 200

    def ticket_detail(self, ticket_id: str) -> dict[str, Any]:
        return self.evaluator.evaluate(ticket_id, 0).to_payload()

    def summary(self) -> dict[str, Any]:
        by_status: Counter[str] = Counter({status.value: 0 for status in AdmissionStatus})
        people_admitted = 0
        over_capacity: list[str] = []
        for ticket in self.catalog:
            state = self.ledger.get(ticket.ticket_id)
            if state is None:
                by_status[AdmissionStatus.NOT_STARTED.value] += 1
                continue
            snapshot = self.ledger.snapshot(ticket.ticket_id, ticket.capacity)
            by_status[snapshot.status.value] += 1
            people_admitted += snapshot.total_entered
            if snapshot.is_over_capacity:
                over_capacity.append(ticket.ticket_id)
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "started_at": self.started_at.isoformat(),
            "total_tickets": len(self.catalog),
            "tickets_seen": len(self.ledger),
            "tickets_by_status": dict(by_status),
            "people_admitted": people_admitted,
            "people_authorized": sum(ticket.capacity for ticket in self.catalog),
            "over_capacity_tickets": sorted(over_capacity),
        }

    def service_info(self) -> dict[str, Any]:
        tickets: dict[str, list[str]] = {status.value: [] for status in AdmissionStatus}
        for ticket in self.catalog:
            state = self.ledger.get(ticket.ticket_id)
            status = state.status(ticket.capacity) if state else AdmissionStatus.NOT_STARTED
            tickets[status.value].append(ticket.ticket_id)
        return {
            "service": "gatecheck",
            "version": __version__,
            "status": "ok",
            "endpoints": ENDPOINTS,
            "tickets": tickets,
        }
