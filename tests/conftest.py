from __future__ import annotations

from datetime import datetime
from typing import Iterable

import pytest

from santabot.database.session import Database
from santabot.services.store import EventStore

YEAR = 2024
ADMIN_ID = 1000


class FixedClock:
    """Stands in for TimeProvider with a pinned year."""

    def __init__(self, year: int = YEAR) -> None:
        self.year = year

    def current_year(self) -> int:
        return self.year

    def utcnow(self) -> datetime:
        return datetime(self.year, 12, 1, 12, 0, 0)


class FakeNotifier:
    def __init__(self, fail_for: Iterable[int] = ()) -> None:
        self.sent: list[tuple[int, int, str, int]] = []
        self.fail_for = set(fail_for)

    async def send_assignment(self, participant_id: int, giftee_id: int, giftee_name: str, year: int) -> None:
        if participant_id in self.fail_for:
            raise RuntimeError("Forbidden: bot can't initiate conversation with a user")
        self.sent.append((participant_id, giftee_id, giftee_name, year))


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'santa.db'}")
    await database.init_models()
    yield database
    await database.close()


@pytest.fixture
def store(db, clock) -> EventStore:
    return EventStore(db, clock)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def seed(store):
    """
    seed(year, members, giftees=None)

    Opens `year` with members[0] as admin, enrols the rest in order and,
    when `giftees` ({user: giftee}) is given, records that draw.
    """

    async def _seed(year: int, members: list[int], giftees: dict[int, int] | None = None) -> None:
        admin, *others = members
        await store.create_event(year, admin, f"user-{admin}")
        for uid in others:
            await store.insert_user(uid, f"user-{uid}")
            await store.add_participant(year, uid)
        if giftees is not None:
            await store.record_assignments(year, list(giftees.items()))

    return _seed
