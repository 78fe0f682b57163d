"""Domain error taxonomy."""

from __future__ import annotations


class HQuantError(Exception):
    """Base class for errors raised by H-Quant."""


class AdapterError(HQuantError):
    """An external call failed after exhausting its retries."""

    def __init__(self, message: str, *, operation: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class MalformedResponseError(HQuantError):
    """An external call answered with data that does not fit the expected shape."""

    def __init__(self, message: str, *, operation: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.raw = raw


class InvalidInputError(HQuantError):
    """The text handed to the extraction call is not a recognisable list of records."""


class ImportAbortedError(HQuantError):
    """A batch import was aborted before any decision could be staged."""

    def __init__(self, message: str, *, cause: HQuantError) -> None:
        super().__init__(message)
        self.cause = cause


class InvalidTransitionError(HQuantError):
    """A review action was requested in a state that does not allow it."""


class RecordNotFoundError(HQuantError, KeyError):
    """No catalog record or project exists for the given id."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "record not found"


class PersistenceError(HQuantError):
    """The backing store rejected a create or delete call."""
