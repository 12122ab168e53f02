from __future__ import annotations

import json

from gatecheck.adapters.base import CatalogAdapter, record_from_row
from gatecheck.exceptions import CatalogLoadError
from gatecheck.models.canonical import TicketRecord


class RosterJsonAdapter(CatalogAdapter):
    def parse(self, payload: str) -> list[TicketRecord]:
        try:
            body = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise CatalogLoadError(f"roster is not valid JSON: {exc.msg}") from exc
        rows = body.get("tickets", []) if isinstance(body, dict) else body
        if not isinstance(rows, list):
            raise CatalogLoadError("roster JSON must be a list of tickets or {\"tickets\": [...]}")
        records: list[TicketRecord] = []
        for position, row in enumerate(rows, start=1):
            if not isinstance(row, dict):
                raise CatalogLoadError(f"roster row {position}: expected an object")
            records.append(record_from_row(row, position))
        return records
