from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from conftest import ADMIN_ID, YEAR
from santabot.errors import EventClosed, EventNotFound
from santabot.services.participation import ChangeKind, ParticipationService


@pytest.fixture
def participation(store, clock) -> ParticipationService:
    return ParticipationService(store, clock)


async def test_join_reports_new_total(store, participation):
    await store.create_event(YEAR, ADMIN_ID, "Grif")

    change = await participation.toggle(7, "Ash")

    assert change.kind == ChangeKind.JOINED
    assert change.joined is True
    assert change.total_participants == 2
    assert change.year == YEAR
    assert await store.roster(YEAR) == [ADMIN_ID, 7]
    assert await store.display_names([7]) == {7: "Ash"}


async def test_toggle_twice_is_self_inverse(store, participation):
    await store.create_event(YEAR, ADMIN_ID, "Grif")
    before = await store.participant_count(YEAR)

    joined = await participation.toggle(7, "Ash")
    left = await participation.toggle(7, "Ash")

    assert joined.kind == ChangeKind.JOINED
    assert left.kind == ChangeKind.LEFT
    assert await store.participant_count(YEAR) == before
    assert left.total_participants == before


async def test_leaving_sixth_participant_leaves_five(store, seed, participation):
    await seed(YEAR, [ADMIN_ID, 2, 3, 4, 5, 6])

    change = await participation.toggle(6, "Misty")

    assert change.kind == ChangeKind.LEFT
    assert change.total_participants == 5
    assert await store.is_participant(YEAR, 6) is False


async def test_toggle_on_drawn_event_is_rejected(store, seed, participation):
    await seed(YEAR, [ADMIN_ID, 2, 3], {ADMIN_ID: 2, 2: 3, 3: ADMIN_ID})

    with pytest.raises(EventClosed):
        await participation.toggle(9, "Brock")
    with pytest.raises(EventClosed):
        await participation.toggle(2, "user-2")

    assert await store.roster(YEAR) == [ADMIN_ID, 2, 3]


async def test_toggle_while_draw_in_progress_is_rejected(store, seed, participation, clock):
    await seed(YEAR, [ADMIN_ID, 2, 3])
    await store.claim_draw(YEAR, 3, clock.utcnow())

    with pytest.raises(EventClosed):
        await participation.toggle(9, "Brock")

    assert await store.participant_count(YEAR) == 3


async def test_toggle_after_abandoned_draw_is_allowed(store, seed, participation, clock):
    await seed(YEAR, [ADMIN_ID, 2, 3])
    await store.claim_draw(YEAR, 3, clock.utcnow() - store.lease_timeout - timedelta(seconds=1))

    change = await participation.toggle(9, "Brock")

    assert change.kind == ChangeKind.JOINED
    assert change.total_participants == 4


async def test_toggle_without_event(participation):
    with pytest.raises(EventNotFound) as exc:
        await participation.toggle(7, "Ash")

    assert isinstance(exc.value, EventClosed)


async def test_toggle_keeps_existing_display_name(store, participation):
    await store.create_event(YEAR, ADMIN_ID, "Grif")
    await store.insert_user(7, "Ash Ketchum")

    await participation.toggle(7, "ash")

    assert await store.display_names([7]) == {7: "Ash Ketchum"}


async def test_explicit_year(store, participation):
    await store.create_event(2030, ADMIN_ID, "Grif")

    change = await participation.toggle(7, "Ash", year=2030)

    assert change.year == 2030
    assert await store.roster(2030) == [ADMIN_ID, 7]


async def test_concurrent_toggles_keep_count_consistent(store, participation):
    await store.create_event(YEAR, ADMIN_ID, "Grif")
    users = list(range(1, 11))

    changes = await asyncio.gather(*(participation.toggle(u, f"user-{u}") for u in users))

    assert all(c.kind == ChangeKind.JOINED for c in changes)
    # every toggle saw its own consistent snapshot: totals 2..11, no duplicates
    assert sorted(c.total_participants for c in changes) == list(range(2, 12))
    assert await store.participant_count(YEAR) == 11
