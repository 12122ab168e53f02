from .roster_csv import RosterCsvAdapter
from .roster_json import RosterJsonAdapter

__all__ = [
    "RosterCsvAdapter",
    "RosterJsonAdapter",
]
