# santabot/utils/middleware.py
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from santabot.errors import StoreError
from santabot.services.store import EventStore
from santabot.utils.names import tg_display_name

log = logging.getLogger(__name__)


def _extract_from_user(event: TelegramObject):
    """
    Best-effort extract aiogram `from_user` from different update types.
    Works for Message, CallbackQuery, InlineQuery, etc.
    """
    u = getattr(event, "from_user", None)
    if u:
        return u

    msg = getattr(event, "message", None)
    if msg and getattr(msg, "from_user", None):
        return msg.from_user

    cb = getattr(event, "callback_query", None)
    if cb and getattr(cb, "from_user", None):
        return cb.from_user

    return None


class UserUpsertMiddleware(BaseMiddleware):
    """
    Records every user the first time they interact (insert-or-ignore).
    """

    def __init__(self, store: EventStore) -> None:
        self.store = store

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        tg = _extract_from_user(event)
        if tg is not None and not tg.is_bot:
            try:
                await self.store.insert_user(tg.id, tg_display_name(tg))
            except StoreError:
                # the handler still runs; its own store calls report the outage
                log.exception("Failed to record user %s", tg.id)

        return await handler(event, data)
