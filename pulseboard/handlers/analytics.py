import logging
from pathlib import Path

from aiogram import Router
from aiogram.filters import Command
from aiogram.types import FSInputFile, Message

from pulseboard.categories import category_label
from pulseboard.charts import category_spend_chart, renewal_buckets_chart, spend_trend_chart
from pulseboard.config import settings
from pulseboard.currency import format_amount_minor, get_default_currency
from pulseboard.dates import today
from pulseboard.services.forecast_service import (
    build_analytics_summary,
    build_category_spend,
    build_renewal_buckets,
    build_spend_trend,
    yearly_total_minor,
)
from pulseboard.services.subscription_service import get_subscriptions

logger = logging.getLogger(__name__)
router = Router()

MAX_TREND_MONTHS = 24


async def _answer_with_chart(message: Message, chart_path: str | None, text: str) -> None:
    if chart_path:
        try:
            await message.answer_photo(FSInputFile(chart_path), caption=text)
        finally:
            Path(chart_path).unlink(missing_ok=True)
    else:
        await message.answer(text)


@router.message(Command("trend"))
async def cmd_trend(message: Message):
    parts = message.text.split(maxsplit=1) if message.text else []
    months = settings.projection_months
    if len(parts) > 1:
        arg = parts[1].strip()
        if not arg.isdigit() or not 1 <= int(arg) <= MAX_TREND_MONTHS:
            await message.answer(f"Usage: /trend [months 1-{MAX_TREND_MONTHS}]")
            return
        months = int(arg)

    subs = await get_subscriptions(message.chat.id)
    if not subs:
        await message.answer("No active subscriptions. Use /addsub to add one.")
        return

    cur = await get_default_currency(message.chat.id)
    points = build_spend_trend(subs, today(), months_ahead=months)
    lines = [f"• {p.month_label}: {format_amount_minor(p.amount_minor, cur)}" for p in points]
    total = sum(p.amount_minor for p in points)
    text = (
        f"📈 Projected charges ({months} months):\n\n"
        + "\n".join(lines)
        + f"\n\nTotal: {format_amount_minor(total, cur)}"
    )

    await _answer_with_chart(message, await spend_trend_chart(points, cur), text)


@router.message(Command("categories"))
async def cmd_categories(message: Message):
    subs = await get_subscriptions(message.chat.id)
    points = build_category_spend(subs)
    if not points:
        await message.answer("No recurring spend to break down yet.")
        return

    cur = await get_default_currency(message.chat.id)
    lines = [
        f"• {category_label(p.category)}: {format_amount_minor(p.amount_minor, cur)}/month ({p.share:.0%})"
        for p in points
    ]
    text = "📊 Monthly spend by category:\n\n" + "\n".join(lines)

    await _answer_with_chart(message, await category_spend_chart(points, cur), text)


@router.message(Command("buckets"))
async def cmd_buckets(message: Message):
    subs = await get_subscriptions(message.chat.id)
    points = build_renewal_buckets(subs, today(), days_ahead=settings.renewal_window_days)
    lines = [f"• {p.bucket_label}: {p.count}" for p in points]
    text = "🗓 Renewals by distance:\n\n" + "\n".join(lines)

    await _answer_with_chart(message, await renewal_buckets_chart(points), text)


@router.message(Command("stats"))
async def cmd_stats(message: Message):
    subs = await get_subscriptions(message.chat.id)
    cur = await get_default_currency(message.chat.id)
    summary = build_analytics_summary(subs, today())
    await message.answer(
        "📋 Overview\n\n"
        f"Active subscriptions: {summary.active_count}\n"
        f"Monthly baseline: {format_amount_minor(summary.monthly_baseline_minor, cur)}\n"
        f"Yearly forecast: {format_amount_minor(yearly_total_minor(subs), cur)}\n"
        f"Next 6 months: {format_amount_minor(summary.projected_six_month_minor, cur)}\n"
        f"Renewals in 30 days: {summary.renewal_count_30_days}"
    )
