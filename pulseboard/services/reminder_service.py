import asyncio
import logging
from collections.abc import Iterable
from datetime import date
from typing import Protocol

import aiosqlite

from pulseboard.config import settings
from pulseboard.dates import days_between, to_date
from pulseboard.db.models import ReminderHit, Subscription

logger = logging.getLogger(__name__)


class ReminderStore(Protocol):
    """Durable record of reminders that were already dispatched.

    ``claim`` must be atomic: of several concurrent callers for one key,
    exactly one gets ``True``.
    """

    async def has_fired(self, key: str) -> bool: ...

    async def mark_fired(self, key: str) -> None: ...

    async def claim(self, key: str) -> bool: ...


class MemoryReminderStore:
    def __init__(self) -> None:
        self._fired: set[str] = set()
        self._lock = asyncio.Lock()

    async def has_fired(self, key: str) -> bool:
        return key in self._fired

    async def mark_fired(self, key: str) -> None:
        async with self._lock:
            self._fired.add(key)

    async def claim(self, key: str) -> bool:
        async with self._lock:
            if key in self._fired:
                return False
            self._fired.add(key)
            return True


class SQLiteReminderStore:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def has_fired(self, key: str) -> bool:
        cursor = await self._db.execute("SELECT 1 FROM reminder_markers WHERE key = ?", (key,))
        return await cursor.fetchone() is not None

    async def mark_fired(self, key: str) -> None:
        await self._db.execute("INSERT OR IGNORE INTO reminder_markers (key) VALUES (?)", (key,))
        await self._db.commit()

    async def claim(self, key: str) -> bool:
        cursor = await self._db.execute("INSERT OR IGNORE INTO reminder_markers (key) VALUES (?)", (key,))
        await self._db.commit()
        return cursor.rowcount > 0


def collect_reminder_hits(subscriptions: Iterable[Subscription], today: date | str) -> list[ReminderHit]:
    """Reminders that apply on ``today``.

    A renewal due today always produces a hit with ``days_before=0``. Otherwise a
    hit is produced only when the days left match a configured lead time exactly.
    """
    hits = []
    for sub in subscriptions:
        if not sub.is_active:
            continue
        days_left = days_between(sub.next_billing_date, today)
        if days_left == 0 or days_left in sub.reminder_days_before:
            hits.append(
                ReminderHit(
                    subscription_id=sub.id,
                    name=sub.name,
                    days_before=days_left,
                    charge_date=sub.next_billing_date.isoformat(),
                )
            )
    return hits


def reminder_key(hit: ReminderHit, today: date | str) -> str:
    return (
        f"{settings.reminder_key_prefix}:{hit.subscription_id}:"
        f"{hit.charge_date}:{hit.days_before}:{to_date(today).isoformat()}"
    )


async def should_dispatch_reminder(hit: ReminderHit, today: date | str, store: ReminderStore) -> bool:
    return await store.claim(reminder_key(hit, today))


async def due_reminders(
    subscriptions: Iterable[Subscription],
    today: date | str,
    store: ReminderStore,
) -> list[ReminderHit]:
    due = []
    for hit in collect_reminder_hits(subscriptions, today):
        if await should_dispatch_reminder(hit, today, store):
            due.append(hit)
        else:
            logger.debug("Reminder already sent", extra={"subscription_id": hit.subscription_id})
    return due


def reminder_text(hit: ReminderHit, today: date | str) -> str:
    days_left = max(0, days_between(hit.charge_date, today))
    if days_left == 0:
        return f"{hit.name} renews today."
    return f"{hit.name} renews in {days_left} day{'' if days_left == 1 else 's'}."
