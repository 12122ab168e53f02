from __future__ import annotations

import csv
from io import StringIO

from gatecheck.adapters.base import CatalogAdapter, record_from_row
from gatecheck.models.canonical import TicketRecord


class RosterCsvAdapter(CatalogAdapter):
    def parse(self, payload: str) -> list[TicketRecord]:
        rows = csv.DictReader(StringIO(payload))
        # header is line 1
        return [record_from_row(row, position) for position, row in enumerate(rows, start=2)]
