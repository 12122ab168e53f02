from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AdmissionStatus(str, Enum):
    NOT_STARTED = "not-started"
    PARTIAL = "partial"
    COMPLETE = "complete"


class ResultKind(str, Enum):
    VALID = "VALID"
    PARTIAL = "PARTIAL"
    ALREADY_USED = "ALREADY_USED"
    INVALID = "INVALID"
    ERROR = "ERROR"


STATUS_RESULT_MAP = {
    AdmissionStatus.NOT_STARTED: ResultKind.VALID,
    AdmissionStatus.PARTIAL: ResultKind.PARTIAL,
    AdmissionStatus.COMPLETE: ResultKind.ALREADY_USED,
}


class TicketRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    ticket_id: str = Field(min_length=1)
    capacity: int = Field(ge=1)
    holder_attributes: dict[str, Any] = Field(default_factory=dict)


class CheckInRequest(BaseModel):
    """Wire shape of a scan: ``{"ticketId": ..., "peopleEntering": ...}``.

    ``peopleEntering`` is kept raw; the evaluator coerces it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ticket_id: str = Field(alias="ticketId", min_length=1)
    people_entering: Any = Field(default=None, alias="peopleEntering")

    @field_validator("ticket_id")
    @classmethod
    def _strip_ticket_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("ticketId must not be blank")
        return value


@dataclass(frozen=True)
class EntryEvent:
    count: int
    timestamp: datetime
    cumulative_after: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "timestamp": self.timestamp.isoformat(),
            "cumulative": self.cumulative_after,
        }
