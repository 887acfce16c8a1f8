# santabot/handlers/common.py
from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

router = Router(name="common")

HELP_TEXT = (
    "🎄 Secret Santa commands:\n"
    "/secret — show your giftee, or join this year's event\n"
    "/help — this message\n\n"
    "Organisers get an event panel under /secret to open the event and draw names."
)


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    await message.answer("🎅 Ho ho ho! Use /secret to see who you are buying a gift for.")


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT)
