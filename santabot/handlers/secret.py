# santabot/handlers/secret.py
from __future__ import annotations

import logging

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from santabot.errors import (
    EventAlreadyExists,
    EventClosed,
    NoValidAssignment,
    NotAuthorized,
    SantaError,
)
from santabot.keyboards.secret import CB_DRAW, CB_NEW_EVENT, CB_TOGGLE, admin_panel_kb, join_kb
from santabot.services.notifier import mention
from santabot.services.participation import ChangeKind
from santabot.services.secret_santa import SecretSantaService
from santabot.utils.names import tg_display_name

log = logging.getLogger(__name__)
router = Router(name="secret")

USER_FACING = (EventClosed, NoValidAssignment, NotAuthorized, EventAlreadyExists)
GENERIC_APOLOGY = "⚠️ Something went wrong talking to the database. Please try again later."


def explain(e: SantaError) -> str:
    """User-facing text for an error. Unexpected kinds get a generic apology."""
    if isinstance(e, USER_FACING):
        return f"⛔ {e}"
    return GENERIC_APOLOGY


async def _reply_error(cb: CallbackQuery, e: SantaError) -> None:
    if not isinstance(e, USER_FACING):
        log.error("Secret santa action %r failed: %s", cb.data, e, exc_info=e)
    await cb.answer(explain(e), show_alert=True)


@router.message(Command("secret"))
async def secret_cmd(message: Message, santa: SecretSantaService) -> None:
    tg = message.from_user
    if not tg:
        return

    if santa.is_admin(tg.id):
        await message.answer("🎅 Hello admin!", reply_markup=admin_panel_kb())
        return

    try:
        giftee_id = await santa.lookup_my_giftee(tg.id)
        giftee_name = await santa.giftee_name(giftee_id) if giftee_id is not None else None
    except SantaError as e:
        log.error("Giftee lookup failed for %s: %s", tg.id, e, exc_info=e)
        await message.answer(explain(e))
        return

    if giftee_id is None:
        await message.answer(
            "No giftee found - are you a participant for this event?",
            reply_markup=join_kb(),
        )
        return

    await message.answer(f"🎁 Your giftee is {mention(giftee_id, giftee_name or str(giftee_id))}")


@router.callback_query(F.data == CB_NEW_EVENT)
async def new_event_cb(cb: CallbackQuery, santa: SecretSantaService) -> None:
    try:
        res = await santa.open_event(cb.from_user.id, tg_display_name(cb.from_user))
    except SantaError as e:
        await _reply_error(cb, e)
        return

    await cb.answer()
    if cb.message:
        await cb.message.answer(f"🎄 The {res.year} Secret Santa has begun!", reply_markup=join_kb())


@router.callback_query(F.data == CB_TOGGLE)
async def toggle_cb(cb: CallbackQuery, santa: SecretSantaService) -> None:
    tg = cb.from_user
    try:
        change = await santa.toggle_membership(tg.id, tg_display_name(tg))
    except SantaError as e:
        await _reply_error(cb, e)
        return

    who = mention(tg.id, tg_display_name(tg))
    if change.kind == ChangeKind.JOINED:
        text = f"{who} has joined the event! {change.year} has {change.total_participants} participants"
    else:
        text = f"{who} has left the event. {change.year} has {change.total_participants} participants"

    await cb.answer()
    if cb.message:
        await cb.message.answer(text)


@router.callback_query(F.data == CB_DRAW)
async def draw_cb(cb: CallbackQuery, santa: SecretSantaService) -> None:
    # drawing can take a moment; stop the spinner first
    await cb.answer("Drawing names…")

    try:
        res = await santa.draw_names(cb.from_user.id)
    except SantaError as e:
        if not isinstance(e, USER_FACING):
            log.error("Draw failed: %s", e, exc_info=e)
        if cb.message:
            await cb.message.answer(explain(e))
        return

    text = "🎁 Names have been drawn! Check your DMs"
    if res.failures:
        text += f"\n⚠️ {len(res.failures)} participant(s) could not be messaged - they should start a chat with me and use /secret."
    if cb.message:
        await cb.message.answer(text)
