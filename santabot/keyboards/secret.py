# santabot/keyboards/secret.py
from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

CB_NEW_EVENT = "santa:new_event"
CB_DRAW = "santa:draw"
CB_TOGGLE = "santa:toggle"

BUTTON_LABELS = {
    CB_NEW_EVENT: "🎄 Create New Secret Santa Event",
    CB_DRAW: "🎁 Draw Names",
    CB_TOGGLE: "🙋 Join (or Leave) Secret Santa",
}


def _kb(*callbacks: str) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    for cb in callbacks:
        kb.add(InlineKeyboardButton(text=BUTTON_LABELS[cb], callback_data=cb))
    kb.adjust(1)
    return kb.as_markup()


def admin_panel_kb() -> InlineKeyboardMarkup:
    return _kb(CB_NEW_EVENT, CB_DRAW)


def join_kb() -> InlineKeyboardMarkup:
    return _kb(CB_TOGGLE)
