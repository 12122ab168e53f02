from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Iterator

from gatecheck.exceptions import InvalidEntryError
from gatecheck.models.canonical import AdmissionStatus, EntryEvent


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def derive_status(total_entered: int, capacity: int) -> AdmissionStatus:
    if total_entered <= 0:
        return AdmissionStatus.NOT_STARTED
    if total_entered < capacity:
        return AdmissionStatus.PARTIAL
    return AdmissionStatus.COMPLETE


@dataclass
class AdmissionState:
    ticket_id: str
    total_entered: int = 0
    entry_log: list[EntryEvent] = field(default_factory=list)

    def status(self, capacity: int) -> AdmissionStatus:
        return derive_status(self.total_entered, capacity)

    def snapshot(self, capacity: int) -> AdmissionSnapshot:
        return AdmissionSnapshot(
            ticket_id=self.ticket_id,
            capacity=capacity,
            total_entered=self.total_entered,
            status=self.status(capacity),
            entry_log=tuple(self.entry_log),
        )


@dataclass(frozen=True)
class AdmissionSnapshot:
    ticket_id: str
    capacity: int
    total_entered: int
    status: AdmissionStatus
    entry_log: tuple[EntryEvent, ...]

    @property
    def is_over_capacity(self) -> bool:
        return self.total_entered > self.capacity


@dataclass
class _Slot:
    state: AdmissionState
    lock: Lock = field(default_factory=Lock)


class AdmissionLedger:
    """Per-ticket admission tallies and their append-only entry logs.

    Each ticket gets its own lock; the registry lock only guards creating
    slots, so entries on unrelated tickets never wait on each other.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self.clock = clock or _utcnow
        self._slots: dict[str, _Slot] = {}
        self._registry_lock = Lock()

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, ticket_id: object) -> bool:
        return ticket_id in self._slots

    def ticket_ids(self) -> Iterator[str]:
        return iter(list(self._slots))

    def get(self, ticket_id: str) -> AdmissionState | None:
        slot = self._slots.get(ticket_id)
        return slot.state if slot else None

    def get_or_init(self, ticket_id: str) -> AdmissionState:
        return self._slot(ticket_id).state

    def snapshot(self, ticket_id: str, capacity: int) -> AdmissionSnapshot:
        slot = self._slot(ticket_id)
        with slot.lock:
            return slot.state.snapshot(capacity)

    def record_entry(
        self,
        ticket_id: str,
        capacity: int,
        count: int,
        now: datetime | None = None,
    ) -> tuple[AdmissionSnapshot, bool]:
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise InvalidEntryError(f"people entering must be a positive integer, got {count!r}")
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise InvalidEntryError(f"ticket capacity must be a positive integer, got {capacity!r}")

        slot = self._slot(ticket_id)
        with slot.lock:
            state = slot.state
            cumulative = state.total_entered + count
            state.entry_log.append(
                EntryEvent(count=count, timestamp=now or self.clock(), cumulative_after=cumulative)
            )
            state.total_entered = cumulative
            snapshot = state.snapshot(capacity)
        return snapshot, snapshot.is_over_capacity

    def _slot(self, ticket_id: str) -> _Slot:
        slot = self._slots.get(ticket_id)
        if slot is not None:
            return slot
        with self._registry_lock:
            return self._slots.setdefault(ticket_id, _Slot(AdmissionState(ticket_id=ticket_id)))
