from pulseboard.config import settings
from pulseboard.db.database import get_db

CURRENCY_SYMBOLS: dict[str, str] = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "JPY": "¥",
    "CHF": "CHF",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "PLN": "zł",
    "CAD": "C$",
    "AUD": "A$",
    "INR": "₹",
}

_PREFIX_SYMBOLS = frozenset({"€", "$", "£", "¥", "₹", "C$", "A$"})


def currency_symbol(code: str) -> str:
    return CURRENCY_SYMBOLS.get(code, code)


def format_amount_minor(amount_minor: int, currency_code: str) -> str:
    sym = currency_symbol(currency_code)
    value = amount_minor / 100
    if sym in _PREFIX_SYMBOLS:
        return f"{sym}{value:,.2f}"
    return f"{value:,.2f} {sym}"


def parse_amount_minor(text: str) -> int:
    """Parse a decimal amount like ``"15.99"`` into minor units."""
    whole, _, frac = text.strip().partition(".")
    if not whole.isdigit() or (frac and (not frac.isdigit() or len(frac) > 2)):
        raise ValueError(f"Invalid amount '{text}'")
    return int(whole) * 100 + int(frac.ljust(2, "0"))


def format_relative_due(days: int) -> str:
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    return f"Due in {days} days"


async def get_default_currency(chat_id: int) -> str:
    db = await get_db()
    cursor = await db.execute(
        "SELECT default_currency FROM chat_settings WHERE chat_id = ?",
        (chat_id,),
    )
    row = await cursor.fetchone()
    if row:
        return row["default_currency"]
    return settings.default_currency


async def set_default_currency(chat_id: int, currency: str) -> None:
    db = await get_db()
    await db.execute(
        """INSERT INTO chat_settings (chat_id, default_currency) VALUES (?, ?)
        ON CONFLICT(chat_id) DO UPDATE SET default_currency = excluded.default_currency""",
        (chat_id, currency.upper()),
    )
    await db.commit()


async def notifications_enabled(chat_id: int) -> bool:
    db = await get_db()
    cursor = await db.execute(
        "SELECT notifications_enabled FROM chat_settings WHERE chat_id = ?",
        (chat_id,),
    )
    row = await cursor.fetchone()
    return bool(row["notifications_enabled"]) if row else True


async def set_notifications_enabled(chat_id: int, enabled: bool) -> None:
    db = await get_db()
    await db.execute(
        """INSERT INTO chat_settings (chat_id, default_currency, notifications_enabled) VALUES (?, ?, ?)
        ON CONFLICT(chat_id) DO UPDATE SET notifications_enabled = excluded.notifications_enabled""",
        (chat_id, settings.default_currency, int(enabled)),
    )
    await db.commit()
