from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from pydantic import ValidationError

from gatecheck.exceptions import CatalogLoadError
from gatecheck.models.canonical import TicketRecord

TICKET_ID_FIELD = "ticketId"
CAPACITY_FIELD = "numberOfPeople"


class CatalogAdapter(ABC):
    @abstractmethod
    def parse(self, payload: str) -> list[TicketRecord]:
        """Normalize a roster export to ticket records."""


def record_from_row(row: Mapping[str, Any], position: int) -> TicketRecord:
    ticket_id = str(row.get(TICKET_ID_FIELD) or "").strip()
    if not ticket_id:
        raise CatalogLoadError(f"roster row {position}: missing {TICKET_ID_FIELD}")
    raw_capacity = row.get(CAPACITY_FIELD)
    try:
        capacity = int(str(raw_capacity).strip())
    except ValueError as exc:
        raise CatalogLoadError(
            f"roster row {position} ({ticket_id}): {CAPACITY_FIELD} must be a whole number, got {raw_capacity!r}"
        ) from exc
    holder_attributes = {
        key: value
        for key, value in row.items()
        if key not in {TICKET_ID_FIELD, CAPACITY_FIELD} and value not in (None, "")
    }
    try:
        return TicketRecord(ticket_id=ticket_id, capacity=capacity, holder_attributes=holder_attributes)
    except ValidationError as exc:
        raise CatalogLoadError(f"roster row {position} ({ticket_id}): {exc.errors()[0]['msg']}") from exc
