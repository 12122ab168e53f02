from __future__ import annotations


class GateCheckError(Exception):
    """Base class for gatecheck errors; carries the HTTP status the API reports."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class MalformedInputError(GateCheckError):
    def __init__(self, message: str = "Invalid request format") -> None:
        super().__init__(message, 400)


class InvalidEntryError(MalformedInputError):
    """Raised by the ledger before mutating when an entry breaks an invariant."""


class CatalogLoadError(GateCheckError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 500)
