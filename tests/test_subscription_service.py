from datetime import date

import pytest

from pulseboard.handlers.subscriptions import parse_addsub_args, parse_editsub_args
from pulseboard.services.subscription_service import (
    InvalidSubscriptionError,
    add_subscription,
    get_all_subscriptions,
    get_chats_with_subscriptions,
    get_subscription_by_name,
    get_subscriptions,
    remove_subscription,
    set_subscription_active,
    update_subscription,
    validate_subscription,
)


async def test_add_and_list():
    sub_id = await add_subscription(
        chat_id=1,
        name="Netflix",
        amount_minor=1599,
        currency="usd",
        billing_cycle="monthly",
        next_billing_date=date(2026, 3, 1),
        category="entertainment",
        reminder_days_before=[7, 1, 3, 1],
    )
    assert sub_id >= 1

    subs = await get_subscriptions(1)
    assert len(subs) == 1
    sub = subs[0]
    assert sub.name == "Netflix"
    assert sub.currency == "USD"
    assert sub.next_billing_date == date(2026, 3, 1)
    assert sub.reminder_days_before == (1, 3, 7)
    assert sub.is_active is True


async def test_list_ordered_by_next_billing_then_name():
    await add_subscription(1, "Zed", 100, "USD", "monthly", "2026-03-01")
    await add_subscription(1, "Alpha", 100, "USD", "monthly", "2026-03-01")
    await add_subscription(1, "Early", 100, "USD", "weekly", "2026-02-20")
    assert [s.name for s in await get_subscriptions(1)] == ["Early", "Alpha", "Zed"]


async def test_custom_interval_round_trip():
    await add_subscription(
        1, "Gym", 300, "USD", "custom_days", "2026-02-10", category="health", custom_interval_days=10
    )
    sub = await get_subscription_by_name(1, "gym")
    assert sub is not None
    assert sub.billing_cycle == "custom_days"
    assert sub.custom_interval_days == 10


async def test_remove():
    await add_subscription(1, "Spotify", 999, "EUR", "monthly", "2026-03-01")
    assert await remove_subscription(1, "spotify") is True
    assert await get_subscriptions(1) == []
    assert await get_all_subscriptions(1) == []


async def test_remove_nonexistent():
    assert await remove_subscription(1, "nonexistent") is False


async def test_chats_with_subscriptions():
    await add_subscription(1, "A", 100, "USD", "monthly", "2026-03-01")
    await add_subscription(2, "B", 100, "USD", "monthly", "2026-03-01")
    await add_subscription(3, "C", 100, "USD", "monthly", "2026-03-01")
    await remove_subscription(3, "C")
    assert await get_chats_with_subscriptions() == [1, 2]


@pytest.mark.parametrize(
    "kwargs,message",
    [
        ({"amount_minor": 0}, "positive"),
        ({"amount_minor": 9.99}, "positive"),
        ({"amount_minor": True}, "positive"),
        ({"billing_cycle": "daily"}, "billing cycle"),
        ({"category": "groceries"}, "category"),
        ({"billing_cycle": "custom_days"}, "positive interval"),
        ({"billing_cycle": "custom_days", "custom_interval_days": 0}, "positive interval"),
        ({"custom_interval_days": 10}, "only allowed"),
        ({"reminder_days_before": (1, -1)}, "non-negative"),
        ({"next_billing_date": "2026-02-30"}, "Invalid date"),
        ({"next_billing_date": "20260101"}, "Invalid date"),
        ({"next_billing_date": "2026-W06-4"}, "Invalid date"),
        ({"reminder_days_before": (True,)}, "non-negative"),
        ({"name": "  "}, "Name"),
    ],
)
def test_validation_rejects(kwargs, message):
    fields = dict(name="Netflix", amount_minor=1599, billing_cycle="monthly", next_billing_date="2026-03-01")
    fields.update(kwargs)
    with pytest.raises(InvalidSubscriptionError, match=message):
        validate_subscription(**fields)


async def test_add_rejects_invalid_and_stores_nothing():
    with pytest.raises(InvalidSubscriptionError):
        await add_subscription(1, "Gym", 300, "USD", "custom_days", "2026-02-10")
    assert await get_all_subscriptions(1) == []


def test_parse_addsub_args_monthly():
    fields = parse_addsub_args(["Netflix", "15.99", "monthly", "2026-03-01", "entertainment", "1,3"])
    assert fields == {
        "name": "Netflix",
        "amount_minor": 1599,
        "billing_cycle": "monthly",
        "custom_interval_days": None,
        "next_billing_date": date(2026, 3, 1),
        "category": "entertainment",
        "reminder_days_before": (1, 3),
    }


def test_parse_addsub_args_custom_days_defaults():
    fields = parse_addsub_args(["Gym", "3", "10d", "2026-02-10"])
    assert fields["billing_cycle"] == "custom_days"
    assert fields["custom_interval_days"] == 10
    assert fields["amount_minor"] == 300
    assert fields["category"] == "other"
    assert fields["reminder_days_before"] == (1, 3, 7)


def test_parse_addsub_args_errors():
    with pytest.raises(InvalidSubscriptionError, match="Usage"):
        parse_addsub_args(["Netflix", "15.99"])
    with pytest.raises(InvalidSubscriptionError, match="amount"):
        parse_addsub_args(["Netflix", "abc", "monthly", "2026-03-01"])
    with pytest.raises(InvalidSubscriptionError, match="date"):
        parse_addsub_args(["Netflix", "15.99", "monthly", "March"])
    with pytest.raises(InvalidSubscriptionError, match="Reminders"):
        parse_addsub_args(["Netflix", "15.99", "monthly", "2026-03-01", "soon"])


async def test_compact_date_is_rejected_before_storage():
    with pytest.raises(InvalidSubscriptionError, match="YYYY-MM-DD"):
        await add_subscription(1, "Jan", 100, "USD", "monthly", "20260101")
    assert await get_subscriptions(1) == []


async def test_date_objects_are_stored_as_iso_text(test_db):
    await add_subscription(1, "Jan", 100, "USD", "monthly", date(2026, 1, 1))
    cursor = await test_db.execute("SELECT next_billing_date, typeof(next_billing_date) FROM subscriptions")
    row = await cursor.fetchone()
    assert tuple(row) == ("2026-01-01", "text")
    assert (await get_subscriptions(1))[0].next_billing_date == date(2026, 1, 1)


async def test_update_moves_next_billing_date():
    await add_subscription(1, "Netflix", 1599, "USD", "monthly", "2026-02-01", reminder_days_before=[3])
    updated = await update_subscription(1, "netflix", next_billing_date="2026-03-01", amount_minor=1799)

    assert updated is not None
    assert updated.next_billing_date == date(2026, 3, 1)
    assert updated.amount_minor == 1799
    assert updated.reminder_days_before == (3,)
    assert (await get_subscriptions(1))[0].next_billing_date == date(2026, 3, 1)


async def test_update_switching_cycle_clears_interval():
    await add_subscription(1, "Gym", 300, "USD", "custom_days", "2026-02-10", custom_interval_days=10)
    updated = await update_subscription(1, "Gym", billing_cycle="monthly")
    assert updated.billing_cycle == "monthly"
    assert updated.custom_interval_days is None

    updated = await update_subscription(1, "Gym", billing_cycle="custom_days", custom_interval_days=14)
    assert updated.custom_interval_days == 14


async def test_invalid_update_leaves_record_unchanged():
    await add_subscription(1, "Netflix", 1599, "USD", "monthly", "2026-03-01")
    with pytest.raises(InvalidSubscriptionError):
        await update_subscription(1, "Netflix", next_billing_date="2026-W06-4")
    with pytest.raises(InvalidSubscriptionError):
        await update_subscription(1, "Netflix", billing_cycle="custom_days")

    sub = await get_subscription_by_name(1, "Netflix")
    assert sub.next_billing_date == date(2026, 3, 1)
    assert sub.billing_cycle == "monthly"


async def test_update_missing_and_unknown_fields():
    assert await update_subscription(1, "Nope", amount_minor=100) is None
    await add_subscription(1, "Netflix", 1599, "USD", "monthly", "2026-03-01")
    with pytest.raises(TypeError, match="currency"):
        await update_subscription(1, "Netflix", currency="EUR")


async def test_pause_and_resume():
    await add_subscription(1, "Netflix", 1599, "USD", "monthly", "2026-03-01")

    assert await set_subscription_active(1, "Netflix", False) is True
    assert await get_subscriptions(1) == []
    assert await get_chats_with_subscriptions() == []
    paused = await get_all_subscriptions(1)
    assert [s.is_active for s in paused] == [False]

    assert await set_subscription_active(1, "netflix", True) is True
    assert [s.name for s in await get_subscriptions(1)] == ["Netflix"]
    assert await set_subscription_active(1, "Nope", True) is False


def test_parse_editsub_args():
    name, fields = parse_editsub_args(["Netflix", "date=2026-04-01", "amount=17.99", "reminders=none"])
    assert name == "Netflix"
    assert fields == {
        "next_billing_date": date(2026, 4, 1),
        "amount_minor": 1799,
        "reminder_days_before": (),
    }

    _, fields = parse_editsub_args(["Gym", "cycle=14d", "category=Health"])
    assert fields == {"billing_cycle": "custom_days", "custom_interval_days": 14, "category": "health"}


def test_parse_editsub_args_errors():
    with pytest.raises(InvalidSubscriptionError, match="Usage"):
        parse_editsub_args(["Netflix"])
    with pytest.raises(InvalidSubscriptionError, match="Unknown field"):
        parse_editsub_args(["Netflix", "price=3"])
    with pytest.raises(InvalidSubscriptionError, match="YYYY-MM-DD"):
        parse_editsub_args(["Netflix", "date=20260401"])
