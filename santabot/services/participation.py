# santabot/services/participation.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from santabot.database.repo import events_repo
from santabot.database.repo.users import insert_user
from santabot.database.tx import unit_of_work
from santabot.errors import EventClosed, EventNotFound
from santabot.services.store import EventStore
from santabot.utils.dt import TimeProvider

log = logging.getLogger(__name__)


class ChangeKind(str, enum.Enum):
    JOINED = "joined"
    LEFT = "left"


@dataclass(frozen=True, slots=True)
class ParticipationChange:
    user_id: int
    year: int
    total_participants: int
    kind: ChangeKind

    @property
    def joined(self) -> bool:
        return self.kind == ChangeKind.JOINED


class ParticipationService:
    """
    The only write path for participation rows before a draw.
    """

    def __init__(self, store: EventStore, clock: Optional[TimeProvider] = None) -> None:
        self.store = store
        self.clock = clock or TimeProvider()

    async def toggle(self, user_id: int, display_name: str, year: Optional[int] = None) -> ParticipationChange:
        """
        Join if not a participant, leave if already one.

        Open check, user upsert, membership flip and the new count all happen
        in one transaction, so concurrent toggles never miscount.
        """
        year = year if year is not None else self.clock.current_year()

        async with unit_of_work(self.store.db) as session:
            if not await events_repo.is_open(session, year, self.store.lease_cutoff()):
                if await events_repo.get_event(session, year) is None:
                    raise EventNotFound(year)
                raise EventClosed(year)

            await insert_user(session, user_id, display_name)

            if await events_repo.is_participant(session, year, user_id):
                await events_repo.remove_participant(session, year, user_id)
                kind = ChangeKind.LEFT
            else:
                await events_repo.add_participant(session, year, user_id)
                kind = ChangeKind.JOINED

            total = await events_repo.participant_count(session, year)

        log.info("User %s %s event %s (now %d participants)", user_id, kind.value, year, total)
        return ParticipationChange(user_id=user_id, year=year, total_participants=total, kind=kind)
