import json
import logging
from datetime import date

from pulseboard.categories import BILLING_CYCLES, CATEGORIES
from pulseboard.db.database import get_db
from pulseboard.db.models import Subscription

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "amount_minor",
        "billing_cycle",
        "custom_interval_days",
        "next_billing_date",
        "category",
        "reminder_days_before",
        "is_active",
        "notes",
    }
)


class InvalidSubscriptionError(ValueError):
    pass


def parse_billing_date(value: date | str) -> date:
    """Accept a date or a strict ``YYYY-MM-DD`` string."""
    if isinstance(value, date):
        return value
    try:
        parsed = date.fromisoformat(value)
    except (TypeError, ValueError):
        parsed = None
    # fromisoformat also takes basic and week forms like "20260101" or "2026-W06-4"
    if parsed is None or parsed.isoformat() != value:
        raise InvalidSubscriptionError(f"Invalid date '{value}', expected YYYY-MM-DD.")
    return parsed


def validate_subscription(
    name: str,
    amount_minor: int,
    billing_cycle: str,
    next_billing_date: date | str,
    category: str = "other",
    custom_interval_days: int | None = None,
    reminder_days_before: tuple[int, ...] | list[int] = (),
) -> None:
    """Reject records the forecasting code cannot handle. Raises InvalidSubscriptionError."""
    if not name or not name.strip():
        raise InvalidSubscriptionError("Name is required.")
    if not isinstance(amount_minor, int) or isinstance(amount_minor, bool) or amount_minor <= 0:
        raise InvalidSubscriptionError("Amount must be a positive whole number of minor units.")
    if billing_cycle not in BILLING_CYCLES:
        raise InvalidSubscriptionError(
            f"Unknown billing cycle '{billing_cycle}'. Choose from: {', '.join(BILLING_CYCLES)}"
        )
    if category not in CATEGORIES:
        raise InvalidSubscriptionError(f"Unknown category '{category}'. Choose from: {', '.join(CATEGORIES)}")
    if billing_cycle == "custom_days":
        if (
            not isinstance(custom_interval_days, int)
            or isinstance(custom_interval_days, bool)
            or custom_interval_days <= 0
        ):
            raise InvalidSubscriptionError("custom_days billing needs a positive interval in days.")
    elif custom_interval_days is not None:
        raise InvalidSubscriptionError("An interval is only allowed for custom_days billing.")
    if any(not isinstance(d, int) or isinstance(d, bool) or d < 0 for d in reminder_days_before):
        raise InvalidSubscriptionError("Reminder lead times must be non-negative whole days.")
    parse_billing_date(next_billing_date)


def row_to_subscription(row) -> Subscription:
    data = dict(row)
    return Subscription(
        id=data["id"],
        chat_id=data["chat_id"],
        name=data["name"],
        amount_minor=data["amount_minor"],
        currency=data["currency"],
        billing_cycle=data["billing_cycle"],
        custom_interval_days=data["custom_interval_days"],
        next_billing_date=date.fromisoformat(data["next_billing_date"]),
        category=data["category"],
        reminder_days_before=tuple(sorted(set(json.loads(data["reminder_days_before"])))),
        is_active=bool(data["active"]),
        notes=data["notes"],
    )


async def get_subscriptions(chat_id: int) -> list[Subscription]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM subscriptions WHERE chat_id = ? AND active = 1 ORDER BY next_billing_date, name",
        (chat_id,),
    )
    rows = await cursor.fetchall()
    return [row_to_subscription(row) for row in rows]


async def get_all_subscriptions(chat_id: int) -> list[Subscription]:
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM subscriptions WHERE chat_id = ? ORDER BY next_billing_date, name",
        (chat_id,),
    )
    rows = await cursor.fetchall()
    return [row_to_subscription(row) for row in rows]


async def get_subscription(subscription_id: int) -> Subscription | None:
    db = await get_db()
    cursor = await db.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,))
    row = await cursor.fetchone()
    return row_to_subscription(row) if row else None


async def get_subscription_by_name(chat_id: int, name: str) -> Subscription | None:
    """Look up a subscription by name, case-insensitively. Paused ones are included."""
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM subscriptions WHERE chat_id = ? AND LOWER(name) = LOWER(?) ORDER BY id LIMIT 1",
        (chat_id, name.strip()),
    )
    row = await cursor.fetchone()
    return row_to_subscription(row) if row else None


async def get_chats_with_subscriptions() -> list[int]:
    db = await get_db()
    cursor = await db.execute("SELECT DISTINCT chat_id FROM subscriptions WHERE active = 1 ORDER BY chat_id")
    rows = await cursor.fetchall()
    return [row[0] for row in rows]


async def add_subscription(
    chat_id: int,
    name: str,
    amount_minor: int,
    currency: str,
    billing_cycle: str,
    next_billing_date: date | str,
    category: str = "other",
    custom_interval_days: int | None = None,
    reminder_days_before: tuple[int, ...] | list[int] = (),
    notes: str | None = None,
    is_active: bool = True,
) -> int:
    validate_subscription(
        name,
        amount_minor,
        billing_cycle,
        next_billing_date,
        category=category,
        custom_interval_days=custom_interval_days,
        reminder_days_before=reminder_days_before,
    )
    db = await get_db()
    cursor = await db.execute(
        """INSERT INTO subscriptions
        (chat_id, name, amount_minor, currency, billing_cycle, custom_interval_days,
         next_billing_date, category, reminder_days_before, notes, active)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            chat_id,
            name.strip(),
            amount_minor,
            currency.upper(),
            billing_cycle,
            custom_interval_days,
            parse_billing_date(next_billing_date).isoformat(),
            category,
            json.dumps(sorted(set(reminder_days_before))),
            notes,
            int(is_active),
        ),
    )
    await db.commit()
    logger.debug("Added subscription %s", name, extra={"chat_id": chat_id, "subscription_id": cursor.lastrowid})
    return cursor.lastrowid


async def update_subscription(chat_id: int, name: str, **fields) -> Subscription | None:
    """Change fields of the named subscription. Returns the stored result, or None if it does not exist.

    Switching away from custom_days clears the interval unless one is passed explicitly.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise TypeError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    existing = await get_subscription_by_name(chat_id, name)
    if existing is None:
        return None

    if fields.get("billing_cycle", "custom_days") != "custom_days" and "custom_interval_days" not in fields:
        fields["custom_interval_days"] = None

    merged = {key: getattr(existing, key) for key in UPDATABLE_FIELDS}
    merged.update(fields)
    validate_subscription(
        merged["name"],
        merged["amount_minor"],
        merged["billing_cycle"],
        merged["next_billing_date"],
        category=merged["category"],
        custom_interval_days=merged["custom_interval_days"],
        reminder_days_before=merged["reminder_days_before"],
    )

    db = await get_db()
    await db.execute(
        """UPDATE subscriptions SET
        name = ?, amount_minor = ?, billing_cycle = ?, custom_interval_days = ?, next_billing_date = ?,
        category = ?, reminder_days_before = ?, active = ?, notes = ?
        WHERE id = ?""",
        (
            merged["name"].strip(),
            merged["amount_minor"],
            merged["billing_cycle"],
            merged["custom_interval_days"],
            parse_billing_date(merged["next_billing_date"]).isoformat(),
            merged["category"],
            json.dumps(sorted(set(merged["reminder_days_before"]))),
            int(bool(merged["is_active"])),
            merged["notes"],
            existing.id,
        ),
    )
    await db.commit()
    logger.debug(
        "Updated subscription %s: %s",
        existing.name,
        ", ".join(sorted(fields)),
        extra={"chat_id": chat_id, "subscription_id": existing.id},
    )
    return await get_subscription(existing.id)


async def set_subscription_active(chat_id: int, name: str, active: bool) -> bool:
    return await update_subscription(chat_id, name, is_active=active) is not None


async def remove_subscription(chat_id: int, name: str) -> bool:
    db = await get_db()
    cursor = await db.execute(
        "DELETE FROM subscriptions WHERE chat_id = ? AND LOWER(name) = LOWER(?)",
        (chat_id, name.strip()),
    )
    await db.commit()
    return cursor.rowcount > 0


async def clear_subscriptions(chat_id: int) -> int:
    db = await get_db()
    cursor = await db.execute("DELETE FROM subscriptions WHERE chat_id = ?", (chat_id,))
    await db.commit()
    return cursor.rowcount
