# santabot/database/repo/events_repo.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from santabot.database.models import Event, Participation
from santabot.errors import QueryFailed


# -------------------------------------------------
# Events
# -------------------------------------------------

async def get_event(session: AsyncSession, year: int) -> Optional[Event]:
    return await session.get(Event, year)


async def latest_event_id(session: AsyncSession) -> Optional[int]:
    res = await session.execute(select(func.max(Event.id)))
    return res.scalar_one_or_none()


async def insert_event(session: AsyncSession, year: int) -> Event:
    ev = Event(id=year)
    session.add(ev)
    await session.flush()  # duplicate year -> IntegrityError here
    return ev


def lease_held(ev: Event, stale_before: Optional[datetime] = None) -> bool:
    """A lease taken before `stale_before` belongs to a draw that never finished."""
    if ev.locked_at is None:
        return False
    return stale_before is None or ev.locked_at >= stale_before


async def is_open(session: AsyncSession, year: int, stale_before: Optional[datetime] = None) -> bool:
    """
    Open = event exists, no live draw holds it, and either nobody joined yet
    or someone still has no giftee.
    """
    ev = await get_event(session, year)
    if ev is None or lease_held(ev, stale_before):
        return False

    if await participant_count(session, year) == 0:
        return True

    res = await session.execute(
        select(Participation.id)
        .where(Participation.event_id == year, Participation.giftee_id.is_(None))
        .limit(1)
    )
    return res.scalar_one_or_none() is not None


async def claim_draw(
    session: AsyncSession,
    year: int,
    now: datetime,
    stale_before: Optional[datetime] = None,
) -> bool:
    """Compare-and-swap on the draw lease. False when a live draw holds it."""
    free = Event.locked_at.is_(None)
    if stale_before is not None:
        free = or_(free, Event.locked_at < stale_before)

    res = await session.execute(
        update(Event)
        .where(Event.id == year, free)
        .values(locked_at=now)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def release_draw(session: AsyncSession, year: int, claimed_at: Optional[datetime] = None) -> None:
    """With `claimed_at`, only that claim is released; a draw that took over a stale lease keeps it."""
    stmt = update(Event).where(Event.id == year)
    if claimed_at is not None:
        stmt = stmt.where(Event.locked_at == claimed_at)
    await session.execute(
        stmt
        .values(locked_at=None)
        .execution_options(synchronize_session=False)
    )


async def previous_event_ids(session: AsyncSession, current_year: int, window: int) -> list[int]:
    """Most recent first, strictly before current_year."""
    if window <= 0:
        return []

    res = await session.execute(
        select(Event.id)
        .where(Event.id < current_year)
        .order_by(Event.id.desc())
        .limit(window)
    )
    return [int(x) for x in res.scalars().all()]


# -------------------------------------------------
# Participation
# -------------------------------------------------

async def participant_count(session: AsyncSession, year: int) -> int:
    res = await session.execute(
        select(func.count(Participation.id)).where(Participation.event_id == year)
    )
    return int(res.scalar_one() or 0)


async def is_participant(session: AsyncSession, year: int, user_id: int) -> bool:
    res = await session.execute(
        select(Participation.id)
        .where(Participation.event_id == year, Participation.user_id == user_id)
        .limit(1)
    )
    return res.scalar_one_or_none() is not None


async def add_participant(session: AsyncSession, year: int, user_id: int) -> None:
    session.add(Participation(event_id=year, user_id=user_id, giftee_id=None))
    await session.flush()


async def remove_participant(session: AsyncSession, year: int, user_id: int) -> None:
    await session.execute(
        delete(Participation).where(
            Participation.event_id == year,
            Participation.user_id == user_id,
        )
    )


async def roster(session: AsyncSession, year: int) -> list[int]:
    res = await session.execute(
        select(Participation.user_id)
        .where(Participation.event_id == year)
        .order_by(Participation.id.asc())
    )
    return [int(x) for x in res.scalars().all()]


async def giftee_links(
    session: AsyncSession,
    current_year: int,
    window: int,
) -> dict[tuple[int, int], int]:
    """
    {(user_id, k): giftee_id} for the `window` most recent prior events.
    k is the recency index: 0 = most recent prior event.
    """
    years = await previous_event_ids(session, current_year, window)
    if not years:
        return {}

    recency = {year: k for k, year in enumerate(years)}

    res = await session.execute(
        select(Participation.event_id, Participation.user_id, Participation.giftee_id).where(
            Participation.event_id.in_(years),
            Participation.giftee_id.is_not(None),
        )
    )

    out: dict[tuple[int, int], int] = {}
    for event_id, user_id, giftee_id in res.all():
        out[(int(user_id), recency[int(event_id)])] = int(giftee_id)
    return out


async def get_giftee(session: AsyncSession, year: int, user_id: int) -> Optional[int]:
    res = await session.execute(
        select(Participation.giftee_id).where(
            Participation.event_id == year,
            Participation.user_id == user_id,
        )
    )
    return res.scalar_one_or_none()


async def has_giftees(session: AsyncSession, year: int) -> bool:
    res = await session.execute(
        select(Participation.id)
        .where(Participation.event_id == year, Participation.giftee_id.is_not(None))
        .limit(1)
    )
    return res.scalar_one_or_none() is not None


async def set_giftee(session: AsyncSession, year: int, user_id: int, giftee_id: int) -> int:
    res = await session.execute(
        update(Participation)
        .where(Participation.event_id == year, Participation.user_id == user_id)
        .values(giftee_id=giftee_id)
        .execution_options(synchronize_session=False)
    )
    return int(res.rowcount or 0)


async def save_assignments(
    session: AsyncSession,
    year: int,
    pairs: Sequence[tuple[int, int]],
) -> None:
    """
    Writes every giftee. Must run inside the caller's transaction:
    any failure here leaves the whole batch to be rolled back.
    """
    for participant_id, giftee_id in pairs:
        updated = await set_giftee(session, year, participant_id, giftee_id)
        if updated != 1:
            raise QueryFailed(
                f"Expected to update 1 participation row for user {participant_id} in {year}, got {updated}"
            )
