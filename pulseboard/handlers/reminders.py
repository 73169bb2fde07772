import asyncio
import logging
from datetime import date

from aiogram import Bot, Router
from aiogram.filters import Command
from aiogram.types import Message

from pulseboard.config import settings
from pulseboard.currency import notifications_enabled, set_notifications_enabled
from pulseboard.dates import today
from pulseboard.services.reminder_service import (
    ReminderStore,
    collect_reminder_hits,
    due_reminders,
    reminder_text,
)
from pulseboard.services.subscription_service import get_chats_with_subscriptions, get_subscriptions

logger = logging.getLogger(__name__)
router = Router()


async def send_due_reminders(bot: Bot, store: ReminderStore, now: date) -> int:
    """Send every reminder due on ``now`` that has not been sent yet. Returns the count sent."""
    sent = 0
    for chat_id in await get_chats_with_subscriptions():
        if not await notifications_enabled(chat_id):
            continue
        subs = await get_subscriptions(chat_id)
        for hit in await due_reminders(subs, now, store):
            try:
                await bot.send_message(chat_id, f"🔔 {reminder_text(hit, now)}")
                sent += 1
            except Exception:
                logger.error(
                    "Failed to send reminder",
                    exc_info=True,
                    extra={"chat_id": chat_id, "subscription_id": hit.subscription_id},
                )
    return sent


async def reminder_loop(bot: Bot, store: ReminderStore) -> None:
    interval = settings.reminder_check_minutes * 60
    while True:
        try:
            sent = await send_due_reminders(bot, store, today())
            if sent:
                logger.info("Sent %d reminders", sent)
        except Exception:
            logger.error("Reminder pass failed", exc_info=True)
        await asyncio.sleep(interval)


@router.message(Command("reminders"))
async def cmd_reminders(message: Message):
    parts = message.text.split(maxsplit=1) if message.text else []
    arg = parts[1].strip().lower() if len(parts) > 1 else None

    if arg in ("on", "off"):
        await set_notifications_enabled(message.chat.id, arg == "on")
        await message.answer(f"Reminders turned {arg}.")
        return
    if arg is not None:
        await message.answer("Usage: /reminders [on|off]")
        return

    enabled = await notifications_enabled(message.chat.id)
    now = today()
    hits = collect_reminder_hits(await get_subscriptions(message.chat.id), now)
    status = "on" if enabled else "off"
    if not hits:
        await message.answer(f"Reminders are {status}. No reminder triggers for today.")
        return
    lines = [f"• {reminder_text(hit, now)}" for hit in hits]
    await message.answer(f"Reminders are {status}. Today:\n" + "\n".join(lines))
