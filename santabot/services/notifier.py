# santabot/services/notifier.py
from __future__ import annotations

from typing import Protocol

from aiogram import Bot
from aiogram.utils.markdown import hlink


class Notifier(Protocol):
    async def send_assignment(
        self,
        participant_id: int,
        giftee_id: int,
        giftee_name: str,
        year: int,
    ) -> None: ...


def mention(user_id: int, name: str) -> str:
    return hlink(name, f"tg://user?id={user_id}")


class TelegramNotifier:
    """Delivers each assignment as a private message."""

    def __init__(self, bot: Bot) -> None:
        self.bot = bot

    async def send_assignment(
        self,
        participant_id: int,
        giftee_id: int,
        giftee_name: str,
        year: int,
    ) -> None:
        await self.bot.send_message(
            chat_id=participant_id,
            text=f"🎉 Your Secret Santa assignment for the {year} event is {mention(giftee_id, giftee_name)}! 🎉",
            parse_mode="HTML",
        )
