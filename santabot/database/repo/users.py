# santabot/database/repo/users.py
from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from santabot.database.models.user import User


async def insert_user(session: AsyncSession, user_id: int, display_name: str) -> None:
    """
    Insert-or-ignore. An existing row keeps the name it was created with.
    """
    stmt = (
        sqlite_insert(User)
        .values(id=user_id, display_name=display_name)
        .on_conflict_do_nothing(index_elements=["id"])
    )
    await session.execute(stmt)


async def get_display_names(session: AsyncSession, user_ids: Iterable[int]) -> dict[int, str]:
    ids = list(set(user_ids))
    if not ids:
        return {}

    res = await session.execute(select(User.id, User.display_name).where(User.id.in_(ids)))
    return {int(uid): name for uid, name in res.all()}
