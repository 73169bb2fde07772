import aiosqlite

from pulseboard.config import settings

SCHEMA = """
CREATE TABLE IF NOT EXISTS subscriptions (
    id INTEGER PRIMARY KEY,
    chat_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    amount_minor INTEGER NOT NULL CHECK(amount_minor > 0),
    currency TEXT NOT NULL,
    billing_cycle TEXT NOT NULL DEFAULT 'monthly'
        CHECK(billing_cycle IN ('weekly', 'monthly', 'yearly', 'custom_days')),
    custom_interval_days INTEGER CHECK(custom_interval_days IS NULL OR custom_interval_days > 0),
    next_billing_date TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'other'
        CHECK(category IN ('entertainment', 'productivity', 'utilities', 'health', 'other')),
    reminder_days_before TEXT NOT NULL DEFAULT '[]',
    active BOOLEAN DEFAULT 1,
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    CHECK(billing_cycle != 'custom_days' OR custom_interval_days IS NOT NULL)
);

CREATE TABLE IF NOT EXISTS reminder_markers (
    key TEXT PRIMARY KEY,
    fired_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS chat_settings (
    chat_id INTEGER PRIMARY KEY,
    default_currency TEXT NOT NULL DEFAULT 'USD',
    notifications_enabled BOOLEAN NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_subscriptions_chat_active ON subscriptions(chat_id, active);
CREATE INDEX IF NOT EXISTS idx_subscriptions_next_billing ON subscriptions(next_billing_date);
"""

_db: aiosqlite.Connection | None = None


async def get_db() -> aiosqlite.Connection:
    global _db
    if _db is None:
        _db = await aiosqlite.connect(settings.db_path)
        _db.row_factory = aiosqlite.Row
        await _db.execute("PRAGMA journal_mode=WAL")
        await _db.execute("PRAGMA foreign_keys=ON")
    return _db


async def close_db():
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def init_db():
    db = await get_db()
    await db.executescript(SCHEMA)
    await db.commit()
