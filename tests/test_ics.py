from datetime import UTC, date, datetime

from pulseboard.db.models import Subscription
from pulseboard.ics import generate_subscription_ics

NOW = datetime(2026, 2, 10, 9, 30, 0, tzinfo=UTC)


def _sub(**kw) -> Subscription:
    defaults = dict(
        id=42,
        name="Netflix",
        amount_minor=1599,
        billing_cycle="monthly",
        next_billing_date=date(2026, 3, 1),
        reminder_days_before=(0, 1, 3),
    )
    defaults.update(kw)
    return Subscription(**defaults)


def test_event_fields():
    ics = generate_subscription_ics(_sub(), now=NOW)
    lines = ics.split("\r\n")
    assert lines[0] == "BEGIN:VCALENDAR"
    assert "UID:42@pulseboard.local" in lines
    assert "DTSTAMP:20260210T093000Z" in lines
    assert "DTSTART;VALUE=DATE:20260301" in lines
    assert "RRULE:FREQ=MONTHLY;INTERVAL=1" in lines
    assert "SUMMARY:Netflix renewal" in lines
    assert "DESCRIPTION:Subscription renewal" in lines
    assert ics.endswith("END:VEVENT\r\nEND:VCALENDAR\r\n")


def test_alarms_only_for_positive_lead_times():
    ics = generate_subscription_ics(_sub(), now=NOW)
    assert ics.count("BEGIN:VALARM") == 2
    assert "TRIGGER:-P1D" in ics
    assert "TRIGGER:-P3D" in ics
    assert "TRIGGER:-P0D" not in ics


def test_custom_interval_rule():
    ics = generate_subscription_ics(_sub(billing_cycle="custom_days", custom_interval_days=10), now=NOW)
    assert "RRULE:FREQ=DAILY;INTERVAL=10" in ics


def test_yearly_and_weekly_rules():
    assert "RRULE:FREQ=YEARLY;INTERVAL=1" in generate_subscription_ics(_sub(billing_cycle="yearly"), now=NOW)
    assert "RRULE:FREQ=WEEKLY;INTERVAL=1" in generate_subscription_ics(_sub(billing_cycle="weekly"), now=NOW)


def test_text_is_escaped():
    ics = generate_subscription_ics(_sub(name="Foo, Bar; Baz", notes="line1\nline2"), now=NOW)
    assert "SUMMARY:Foo\\, Bar\\; Baz renewal" in ics
    assert "DESCRIPTION:line1\\nline2" in ics
