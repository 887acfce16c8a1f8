# santabot/utils/names.py
from __future__ import annotations

from aiogram.types import User as TgUser


def display_name(username: str | None, first_name: str | None, last_name: str | None) -> str:
    name = " ".join([p for p in [first_name, last_name] if p]).strip()
    if name:
        return name
    if username:
        return f"@{username}"
    return "User"


def tg_display_name(tg: TgUser) -> str:
    return display_name(tg.username, tg.first_name, tg.last_name)
