import logging
import re

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from pulseboard.config import settings
from pulseboard.currency import get_default_currency, notifications_enabled, set_default_currency

logger = logging.getLogger(__name__)
router = Router()

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


@router.message(Command("start"))
async def cmd_start(message: Message):
    await message.answer(
        "Welcome to Pulseboard — your recurring bills tracker!\n\n"
        "Add a subscription:\n"
        "  /addsub Netflix 15.99 monthly 2026-03-01 entertainment\n\n"
        "I'll project what you'll pay over the coming months and remind you before each charge.\n\n"
        "Type /help for all commands."
    )


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(
        "Subscriptions:\n"
        "  /subs — active subscriptions and totals\n"
        "  /addsub — add a subscription\n"
        "  /editsub <name> field=value — change amount, cycle, date, category or reminders\n"
        "  /pause <name>, /resume <name> — pause or resume a subscription\n"
        "  /removesub <name> — delete a subscription\n"
        "  /renewals [days] — upcoming renewals\n"
        "  /ics <name> — calendar file for a subscription\n\n"
        "Reports:\n"
        "  /trend [months] — projected charges per month\n"
        "  /categories — monthly spend by category\n"
        "  /buckets — renewals grouped by distance\n"
        "  /stats — overview\n"
        "  /export — download JSON backup\n"
        "  /import — restore a JSON backup (send the file with this caption)\n\n"
        "Setup:\n"
        "  /reminders [on|off] — renewal reminders\n"
        "  /setcurrency <code> — change default currency\n"
        "  /settings — view current config"
    )


@router.message(Command("setcurrency"))
async def cmd_setcurrency(message: Message):
    parts = message.text.split(maxsplit=1) if message.text else []
    code = parts[1].strip().upper() if len(parts) > 1 else ""
    if not _CURRENCY_RE.match(code):
        await message.answer("Usage: /setcurrency EUR")
        return
    await set_default_currency(message.chat.id, code)
    await message.answer(f"Default currency set to {code}.")


@router.message(Command("settings"))
async def cmd_settings(message: Message):
    cur = await get_default_currency(message.chat.id)
    enabled = await notifications_enabled(message.chat.id)
    await message.answer(
        "⚙️ Settings\n\n"
        f"Currency: {cur}\n"
        f"Reminders: {'on' if enabled else 'off'}\n"
        f"Projection: {settings.projection_months} months\n"
        f"Renewal window: {settings.renewal_window_days} days"
    )
