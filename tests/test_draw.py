from __future__ import annotations

import asyncio
import random

import pytest

from conftest import ADMIN_ID, YEAR, FakeNotifier
from santabot.errors import EventClosed, EventNotFound, NoValidAssignment, StorageUnavailable
from santabot.services.draw import DrawService
from santabot.services.solver import SolverConfig

A, B, C = ADMIN_ID, 2, 3
WEIGHTS = (0.0, 0.0, 0.5)


def make_draws(store, clock, notifier=None, seed: int = 0, **config) -> DrawService:
    return DrawService(store, SolverConfig(WEIGHTS, **config), notifier, clock, random.Random(seed))


async def test_draw_records_and_notifies(store, seed, clock):
    await seed(YEAR, [A, B, C])
    notifier = FakeNotifier()

    res = await make_draws(store, clock, notifier).draw()

    assert res.year == YEAR
    assert sorted(p for p, _ in res.pairs) == sorted([A, B, C])
    assert sorted(g for _, g in res.pairs) == sorted([A, B, C])
    assert all(p != g for p, g in res.pairs)
    assert res.failures == []
    assert res.notified == 3

    assert await store.is_open(YEAR) is False
    for participant, giftee in res.pairs:
        assert await store.latest_giftee(participant) == giftee

    assert sorted(notifier.sent) == sorted(
        (p, g, f"user-{g}", YEAR) for p, g in res.pairs
    )


@pytest.mark.parametrize("rng_seed", [0, 1, 2, 3, 4])
async def test_draw_avoids_last_years_pairings(store, seed, clock, rng_seed):
    await seed(YEAR - 1, [A, B, C], {A: B, B: C, C: A})
    await seed(YEAR, [A, B, C])

    res = await make_draws(store, clock, seed=rng_seed).draw()

    # the only derangement of three people that repeats nothing
    assert dict(res.pairs) == {A: C, C: B, B: A}


async def test_unsatisfiable_draw_fails_and_reopens(store, seed, clock):
    await seed(YEAR - 1, [A, B], {A: B, B: A})
    await seed(YEAR, [A, B])

    with pytest.raises(NoValidAssignment):
        await make_draws(store, clock, max_attempts=10).draw()

    assert await store.latest_giftee(A) is None
    assert await store.is_open(YEAR) is True  # lease handed back


async def test_draw_with_only_the_admin(store, seed, clock):
    await seed(YEAR, [A])

    with pytest.raises(NoValidAssignment):
        await make_draws(store, clock).draw()

    assert await store.is_open(YEAR) is True


async def test_draw_twice_fails_fast(store, seed, clock):
    await seed(YEAR, [A, B, C])
    draws = make_draws(store, clock)
    first = await draws.draw()

    with pytest.raises(EventClosed):
        await draws.draw()

    for participant, giftee in first.pairs:
        assert await store.latest_giftee(participant) == giftee


async def test_concurrent_draws_only_one_wins(store, seed, clock):
    await seed(YEAR, [A, B, C, 4, 5])

    results = await asyncio.gather(
        make_draws(store, clock, seed=1).draw(),
        make_draws(store, clock, seed=2).draw(),
        return_exceptions=True,
    )

    wins = [r for r in results if not isinstance(r, BaseException)]
    losses = [r for r in results if isinstance(r, BaseException)]
    assert len(wins) == 1
    assert len(losses) == 1 and isinstance(losses[0], EventClosed)

    for participant, giftee in wins[0].pairs:
        assert await store.latest_giftee(participant) == giftee


async def test_notification_failure_is_not_fatal(store, seed, clock):
    await seed(YEAR, [A, B, C])
    notifier = FakeNotifier(fail_for=[B])

    res = await make_draws(store, clock, notifier).draw()

    assert [f.participant_id for f in res.failures] == [B]
    assert res.notified == 2
    assert len(notifier.sent) == 2
    assert await store.latest_giftee(B) is not None


async def test_storage_failure_voids_draw(store, seed, clock, monkeypatch):
    await seed(YEAR, [A, B, C])

    async def broken_record(year, pairs):
        raise StorageUnavailable("Database unavailable: database is locked")

    monkeypatch.setattr(store, "record_assignments", broken_record)

    with pytest.raises(StorageUnavailable):
        await make_draws(store, clock).draw()

    for uid in (A, B, C):
        assert await store.latest_giftee(uid) is None
    assert await store.is_open(YEAR) is True


async def test_draw_without_event(store, clock):
    with pytest.raises(EventNotFound):
        await make_draws(store, clock).draw()


async def test_draw_under_caller_deadline(store, seed, clock):
    await seed(YEAR, [A, B, C])

    res = await asyncio.wait_for(make_draws(store, clock).draw(), timeout=10)

    assert len(res.pairs) == 3
