import logging

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import BufferedInputFile, Message

from pulseboard.categories import CATEGORIES, DEFAULT_REMINDER_DAYS, billing_cycle_label
from pulseboard.config import settings
from pulseboard.currency import format_amount_minor, format_relative_due, get_default_currency, parse_amount_minor
from pulseboard.dates import days_between, today
from pulseboard.ics import generate_subscription_ics
from pulseboard.services.forecast_service import monthly_total_minor, upcoming_renewals, yearly_total_minor
from pulseboard.services.subscription_service import (
    InvalidSubscriptionError,
    add_subscription,
    get_subscription_by_name,
    get_subscriptions,
    parse_billing_date,
    remove_subscription,
    set_subscription_active,
    update_subscription,
)

logger = logging.getLogger(__name__)
router = Router()

ADDSUB_USAGE = (
    "Usage: /addsub <name> <amount> <cycle> <next date> [category] [reminders]\n"
    "  cycle: weekly, monthly, yearly or a day count like 10d\n"
    "  e.g. /addsub Netflix 15.99 monthly 2026-03-01 entertainment 1,3"
)

EDITSUB_USAGE = (
    "Usage: /editsub <name> field=value ...\n"
    "  fields: amount, cycle, date, category, reminders, name\n"
    "  e.g. /editsub Netflix date=2026-04-01 amount=17.99"
)


def _parse_cycle(text: str) -> tuple[str, int | None]:
    text = text.lower()
    if text.endswith("d") and text[:-1].isdigit():
        return "custom_days", int(text[:-1])
    return text, None


def _parse_reminders(text: str) -> tuple[int, ...]:
    try:
        return tuple(int(x) for x in text.split(",") if x.strip())
    except ValueError:
        raise InvalidSubscriptionError("Reminders must be comma separated day counts, e.g. 1,3,7") from None


def parse_addsub_args(args: list[str]) -> dict:
    """Turn /addsub arguments into keyword arguments for add_subscription."""
    if len(args) < 4:
        raise InvalidSubscriptionError(ADDSUB_USAGE)

    name, amount_text, cycle_text, date_text = args[:4]
    try:
        amount_minor = parse_amount_minor(amount_text)
    except ValueError:
        raise InvalidSubscriptionError(f"Invalid amount '{amount_text}'.") from None
    billing_cycle, interval = _parse_cycle(cycle_text)
    next_billing_date = parse_billing_date(date_text)

    category = "other"
    reminders = DEFAULT_REMINDER_DAYS
    for extra in args[4:6]:
        if extra.lower() in CATEGORIES:
            category = extra.lower()
        else:
            reminders = _parse_reminders(extra)

    return {
        "name": name,
        "amount_minor": amount_minor,
        "billing_cycle": billing_cycle,
        "custom_interval_days": interval,
        "next_billing_date": next_billing_date,
        "category": category,
        "reminder_days_before": reminders,
    }


def parse_editsub_args(args: list[str]) -> tuple[str, dict]:
    """Turn ``/editsub <name> key=value ...`` arguments into a name and update_subscription fields."""
    if len(args) < 2:
        raise InvalidSubscriptionError(EDITSUB_USAGE)

    name, pairs = args[0], args[1:]
    fields: dict = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.lower()
        if not sep or not value:
            raise InvalidSubscriptionError(EDITSUB_USAGE)
        if key == "amount":
            try:
                fields["amount_minor"] = parse_amount_minor(value)
            except ValueError:
                raise InvalidSubscriptionError(f"Invalid amount '{value}'.") from None
        elif key == "cycle":
            cycle, interval = _parse_cycle(value)
            fields["billing_cycle"] = cycle
            if interval is not None:
                fields["custom_interval_days"] = interval
        elif key == "date":
            fields["next_billing_date"] = parse_billing_date(value)
        elif key == "category":
            fields["category"] = value.lower()
        elif key == "reminders":
            fields["reminder_days_before"] = () if value.lower() == "none" else _parse_reminders(value)
        elif key == "name":
            fields["name"] = value
        else:
            raise InvalidSubscriptionError(f"Unknown field '{key}'.\n{EDITSUB_USAGE}")
    return name, fields


@router.message(Command("subs"))
async def cmd_subs(message: Message):
    subs = await get_subscriptions(message.chat.id)
    if not subs:
        await message.answer("No active subscriptions. Use /addsub to add one.")
        return

    cur = await get_default_currency(message.chat.id)
    now = today()
    lines = []
    for s in subs:
        cycle = billing_cycle_label(s.billing_cycle)
        if s.billing_cycle == "custom_days":
            cycle = f"every {s.custom_interval_days} days"
        due = days_between(s.next_billing_date, now)
        due_info = format_relative_due(due) if due >= 0 else f"overdue since {s.next_billing_date.isoformat()}"
        lines.append(f"• {s.name}: {format_amount_minor(s.amount_minor, s.currency)} ({cycle}) — {due_info}")

    await message.answer(
        "📋 Active subscriptions:\n"
        + "\n".join(lines)
        + f"\n\nMonthly: ~{format_amount_minor(monthly_total_minor(subs), cur)}"
        + f"\nYearly: ~{format_amount_minor(yearly_total_minor(subs), cur)}"
    )


@router.message(Command("addsub"))
async def cmd_addsub(message: Message):
    parts = message.text.split(maxsplit=1) if message.text else []
    args = parts[1].split() if len(parts) > 1 else []
    cur = await get_default_currency(message.chat.id)

    try:
        fields = parse_addsub_args(args)
        await add_subscription(chat_id=message.chat.id, currency=cur, **fields)
    except InvalidSubscriptionError as exc:
        await message.answer(str(exc))
        return

    await message.answer(
        f"Added subscription: {fields['name']} {format_amount_minor(fields['amount_minor'], cur)} "
        f"({billing_cycle_label(fields['billing_cycle'])}), next charge {fields['next_billing_date'].isoformat()}"
    )


@router.message(Command("removesub"))
async def cmd_removesub(message: Message):
    parts = message.text.split(maxsplit=1) if message.text else []
    if len(parts) < 2:
        await message.answer("Usage: /removesub Netflix")
        return

    name = parts[1].strip()
    removed = await remove_subscription(message.chat.id, name)

    if removed:
        await message.answer(f"Removed subscription: {name}")
    else:
        await message.answer(f"Subscription '{name}' not found.")


@router.message(Command("editsub"))
async def cmd_editsub(message: Message):
    parts = message.text.split(maxsplit=1) if message.text else []
    args = parts[1].split() if len(parts) > 1 else []

    try:
        name, fields = parse_editsub_args(args)
        updated = await update_subscription(message.chat.id, name, **fields)
    except InvalidSubscriptionError as exc:
        await message.answer(str(exc))
        return

    if updated is None:
        await message.answer(f"Subscription '{name}' not found.")
        return
    await message.answer(
        f"Updated {updated.name}: {format_amount_minor(updated.amount_minor, updated.currency)} "
        f"({billing_cycle_label(updated.billing_cycle)}), next charge {updated.next_billing_date.isoformat()}"
    )


async def _toggle_active(message: Message, active: bool) -> None:
    command = "resume" if active else "pause"
    parts = message.text.split(maxsplit=1) if message.text else []
    if len(parts) < 2:
        await message.answer(f"Usage: /{command} Netflix")
        return

    name = parts[1].strip()
    if not await set_subscription_active(message.chat.id, name, active):
        await message.answer(f"Subscription '{name}' not found.")
        return
    await message.answer(f"{'Resumed' if active else 'Paused'} subscription: {name}")


@router.message(Command("pause"))
async def cmd_pause(message: Message):
    await _toggle_active(message, False)


@router.message(Command("resume"))
async def cmd_resume(message: Message):
    await _toggle_active(message, True)


@router.message(Command("renewals"))
async def cmd_renewals(message: Message):
    parts = message.text.split(maxsplit=1) if message.text else []
    window = settings.renewal_window_days
    if len(parts) > 1:
        if not parts[1].strip().isdigit():
            await message.answer("Usage: /renewals [days]")
            return
        window = int(parts[1].strip())

    subs = await get_subscriptions(message.chat.id)
    now = today()
    upcoming = upcoming_renewals(subs, now, window)
    if not upcoming:
        await message.answer(f"No renewals in the next {window} days.")
        return

    lines = [
        f"• {s.next_billing_date.strftime('%b %d')}: {s.name} "
        f"{format_amount_minor(s.amount_minor, s.currency)} "
        f"({format_relative_due(days_between(s.next_billing_date, now))})"
        for s in upcoming
    ]
    await message.answer(f"🗓 Renewals in the next {window} days:\n" + "\n".join(lines))


@router.message(Command("ics"))
async def cmd_ics(message: Message):
    parts = message.text.split(maxsplit=1) if message.text else []
    if len(parts) < 2:
        await message.answer("Usage: /ics Netflix")
        return

    sub = await get_subscription_by_name(message.chat.id, parts[1].strip())
    if sub is None:
        await message.answer(f"Subscription '{parts[1].strip()}' not found.")
        return

    doc = BufferedInputFile(generate_subscription_ics(sub).encode("utf-8"), filename=f"{sub.name}.ics")
    await message.answer_document(doc, caption=f"Calendar reminder for {sub.name}")
