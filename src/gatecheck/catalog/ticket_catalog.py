from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, Protocol

from loguru import logger

from gatecheck.adapters import RosterCsvAdapter, RosterJsonAdapter
from gatecheck.adapters.base import CatalogAdapter
from gatecheck.exceptions import CatalogLoadError
from gatecheck.models.canonical import TicketRecord

ROSTER_ADAPTERS: dict[str, type[CatalogAdapter]] = {
    ".json": RosterJsonAdapter,
    ".csv": RosterCsvAdapter,
}


class TicketCatalog(Protocol):
    def lookup(self, ticket_id: str) -> TicketRecord | None:
        ...


def normalize_ticket_id(ticket_id: str) -> str:
    return ticket_id.strip()


class InMemoryTicketCatalog:
    def __init__(self, records: Iterable[TicketRecord] = ()) -> None:
        self._records: dict[str, TicketRecord] = {}
        for record in records:
            key = normalize_ticket_id(record.ticket_id)
            if key in self._records:
                raise CatalogLoadError(f"duplicate ticket id in roster: {key}")
            self._records[key] = record

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TicketRecord]:
        return iter(self._records.values())

    def __contains__(self, ticket_id: object) -> bool:
        return isinstance(ticket_id, str) and normalize_ticket_id(ticket_id) in self._records

    def lookup(self, ticket_id: str) -> TicketRecord | None:
        return self._records.get(normalize_ticket_id(ticket_id))


def load_catalog(path: Path) -> InMemoryTicketCatalog:
    adapter_cls = ROSTER_ADAPTERS.get(path.suffix.lower())
    if adapter_cls is None:
        raise CatalogLoadError(f"unsupported roster format: {path.name}")
    try:
        payload = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogLoadError(f"cannot read roster {path}: {exc}") from exc
    catalog = InMemoryTicketCatalog(adapter_cls().parse(payload))
    logger.info("Loaded {} ticket(s) from {}", len(catalog), path.name)
    return catalog
