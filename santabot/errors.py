# santabot/errors.py
from __future__ import annotations


class SantaError(Exception):
    """Base class for every error raised by the secret santa core."""


# -------------------------------------------------
# Storage
# -------------------------------------------------

class StoreError(SantaError):
    pass


class StorageUnavailable(StoreError):
    """Connection could not be checked out / database locked or unreachable."""


class QueryFailed(StoreError):
    """Constraint violation or malformed query. The driver error is kept as __cause__."""


class EventAlreadyExists(QueryFailed):
    def __init__(self, year: int) -> None:
        super().__init__(f"An event for {year} already exists")
        self.year = year


# -------------------------------------------------
# Domain
# -------------------------------------------------

class EventClosed(SantaError):
    def __init__(self, year: int, message: str | None = None) -> None:
        super().__init__(message or f"Cannot join or leave the {year} event as names have already been drawn")
        self.year = year


class EventNotFound(EventClosed):
    def __init__(self, year: int) -> None:
        super().__init__(year, f"There is no secret santa event for {year} yet")


class NoValidAssignment(SantaError):
    pass


class NotAuthorized(SantaError):
    pass


class PartialNotificationFailure(SantaError):
    """A single participant could not be told who their giftee is. Never fatal to a draw."""

    def __init__(self, participant_id: int, reason: str) -> None:
        super().__init__(f"Could not notify {participant_id}: {reason}")
        self.participant_id = participant_id
        self.reason = reason
