import pytest

from pulseboard.currency import (
    format_amount_minor,
    format_relative_due,
    get_default_currency,
    notifications_enabled,
    parse_amount_minor,
    set_default_currency,
    set_notifications_enabled,
)


def test_format_amount_minor():
    assert format_amount_minor(1599, "USD") == "$15.99"
    assert format_amount_minor(123456, "EUR") == "€1,234.56"
    assert format_amount_minor(999, "SEK") == "9.99 kr"
    assert format_amount_minor(500, "XYZ") == "5.00 XYZ"


@pytest.mark.parametrize("text,expected", [("15.99", 1599), ("15", 1500), ("15.5", 1550), ("0.01", 1)])
def test_parse_amount_minor(text, expected):
    assert parse_amount_minor(text) == expected


@pytest.mark.parametrize("text", ["abc", "1.999", "-5", "1.2.3", ""])
def test_parse_amount_minor_rejects(text):
    with pytest.raises(ValueError):
        parse_amount_minor(text)


def test_format_relative_due():
    assert format_relative_due(0) == "Due today"
    assert format_relative_due(1) == "Due tomorrow"
    assert format_relative_due(5) == "Due in 5 days"


async def test_default_currency_roundtrip():
    assert await get_default_currency(1) == "USD"
    await set_default_currency(1, "eur")
    assert await get_default_currency(1) == "EUR"


async def test_notifications_toggle_keeps_currency():
    assert await notifications_enabled(1) is True
    await set_default_currency(1, "GBP")
    await set_notifications_enabled(1, False)
    assert await notifications_enabled(1) is False
    assert await get_default_currency(1) == "GBP"
