# santabot/services/store.py
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from santabot.config.settings import DEFAULT_DRAW_LEASE_TIMEOUT
from santabot.database.repo import events_repo
from santabot.database.repo.users import get_display_names, insert_user
from santabot.database.session import Database
from santabot.database.tx import unit_of_work
from santabot.errors import EventAlreadyExists, EventClosed, EventNotFound, QueryFailed
from santabot.utils.dt import TimeProvider

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DrawSnapshot:
    """Roster + history read in the same transaction that claimed the draw lease."""
    year: int
    roster: list[int]
    links: dict[tuple[int, int], int]
    claimed_at: datetime


def validate_pairs(roster: Sequence[int], pairs: Sequence[tuple[int, int]]) -> None:
    """
    Pairs must be a derangement over exactly the roster:
    every participant gives once, receives once, never to themselves.
    """
    members = set(roster)
    givers = [p for p, _ in pairs]
    giftees = [g for _, g in pairs]

    if len(pairs) != len(roster) or set(givers) != members or len(set(givers)) != len(givers):
        raise QueryFailed("Assignment givers do not match the event roster")

    if set(giftees) != members or len(set(giftees)) != len(giftees):
        dupes = [uid for uid, c in Counter(giftees).items() if c > 1]
        raise QueryFailed(f"Assignment giftees are not a permutation of the roster (duplicates: {dupes})")

    selfish = [p for p, g in pairs if p == g]
    if selfish:
        raise QueryFailed(f"Participants assigned to themselves: {selfish}")


class EventStore:
    """
    Durable access to users, events and participation.

    Every method is one logical operation: one session, one transaction.
    Nothing is retried here; StorageUnavailable / QueryFailed reach the caller.

    A draw lease older than `lease_timeout` is treated as abandoned
    (the process died mid-draw) and no longer closes the event.
    """

    def __init__(
        self,
        db: Database,
        clock: Optional[TimeProvider] = None,
        lease_timeout: timedelta = timedelta(seconds=DEFAULT_DRAW_LEASE_TIMEOUT),
    ) -> None:
        self.db = db
        self.clock = clock or TimeProvider()
        self.lease_timeout = lease_timeout

    def lease_cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (now or self.clock.utcnow()) - self.lease_timeout

    # -------------------------------------------------
    # Users
    # -------------------------------------------------

    async def insert_user(self, user_id: int, display_name: str) -> None:
        async with unit_of_work(self.db) as session:
            await insert_user(session, user_id, display_name)

    async def display_names(self, user_ids: Iterable[int]) -> dict[int, str]:
        async with unit_of_work(self.db) as session:
            return await get_display_names(session, user_ids)

    # -------------------------------------------------
    # Events
    # -------------------------------------------------

    async def create_event(self, year: int, admin_id: int, admin_name: str) -> None:
        """Creates the event and enrols the administrator as its first participant."""
        async with unit_of_work(self.db) as session:
            if await events_repo.get_event(session, year) is not None:
                raise EventAlreadyExists(year)

            try:
                await events_repo.insert_event(session, year)
            except IntegrityError as e:
                raise EventAlreadyExists(year) from e

            await insert_user(session, admin_id, admin_name)
            await events_repo.add_participant(session, year, admin_id)

        log.info("Event %s created (admin=%s)", year, admin_id)

    async def is_open(self, year: int) -> bool:
        async with unit_of_work(self.db) as session:
            return await events_repo.is_open(session, year, self.lease_cutoff())

    async def roster(self, year: int) -> list[int]:
        async with unit_of_work(self.db) as session:
            return await events_repo.roster(session, year)

    async def historical_giftee_links(self, current_year: int, window: int) -> dict[tuple[int, int], int]:
        async with unit_of_work(self.db) as session:
            return await events_repo.giftee_links(session, current_year, window)

    async def latest_giftee(self, user_id: int, year: Optional[int] = None) -> Optional[int]:
        """Giftee in `year` (default: the most recent event), None if not drawn / not participating."""
        async with unit_of_work(self.db) as session:
            if year is None:
                year = await events_repo.latest_event_id(session)
                if year is None:
                    return None
            return await events_repo.get_giftee(session, year, user_id)

    # -------------------------------------------------
    # Roster mutations
    # -------------------------------------------------

    async def add_participant(self, year: int, user_id: int) -> None:
        async with unit_of_work(self.db) as session:
            await events_repo.add_participant(session, year, user_id)

    async def remove_participant(self, year: int, user_id: int) -> None:
        async with unit_of_work(self.db) as session:
            await events_repo.remove_participant(session, year, user_id)

    async def participant_count(self, year: int) -> int:
        async with unit_of_work(self.db) as session:
            return await events_repo.participant_count(session, year)

    async def is_participant(self, year: int, user_id: int) -> bool:
        async with unit_of_work(self.db) as session:
            return await events_repo.is_participant(session, year, user_id)

    # -------------------------------------------------
    # Draw
    # -------------------------------------------------

    async def claim_draw(self, year: int, window: int, now: datetime) -> DrawSnapshot:
        """
        Freezes the event (draw lease) and reads what the solver needs, atomically.
        A second concurrent draw finds the lease taken and gets EventClosed.
        """
        async with unit_of_work(self.db) as session:
            if await events_repo.get_event(session, year) is None:
                raise EventNotFound(year)

            stale_before = self.lease_cutoff(now)
            if not await events_repo.is_open(session, year, stale_before):
                raise EventClosed(year, f"Names for {year} have already been drawn (or are being drawn)")

            if not await events_repo.claim_draw(session, year, now, stale_before):
                raise EventClosed(year, f"Names for {year} are already being drawn")

            roster = await events_repo.roster(session, year)
            links = await events_repo.giftee_links(session, year, window)

        log.info("Draw lease taken for %s (%d participants, %d history links)", year, len(roster), len(links))
        return DrawSnapshot(year=year, roster=roster, links=links, claimed_at=now)

    async def release_draw(self, year: int, claimed_at: Optional[datetime] = None) -> None:
        async with unit_of_work(self.db) as session:
            await events_repo.release_draw(session, year, claimed_at)
        log.info("Draw lease released for %s", year)

    async def record_assignments(self, year: int, pairs: Sequence[tuple[int, int]]) -> None:
        """
        All-or-nothing: either every participant gets a giftee or none does.
        A drawn event is final; recording again raises EventClosed.
        """
        async with unit_of_work(self.db) as session:
            if await events_repo.has_giftees(session, year):
                raise EventClosed(year, f"Names for {year} have already been drawn")
            current = await events_repo.roster(session, year)
            validate_pairs(current, pairs)
            await events_repo.save_assignments(session, year, pairs)

        log.info("Recorded %d assignments for %s", len(pairs), year)
