from datetime import UTC, datetime

from pulseboard.dates import DEFAULT_CUSTOM_INTERVAL_DAYS
from pulseboard.db.models import Subscription

PRODID = "-//Pulseboard//Subscription Tracker//EN"

_RRULES = {
    "weekly": "FREQ=WEEKLY;INTERVAL=1",
    "monthly": "FREQ=MONTHLY;INTERVAL=1",
    "yearly": "FREQ=YEARLY;INTERVAL=1",
}


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n").replace(",", "\\,").replace(";", "\\;")


def _recurrence_rule(subscription: Subscription) -> str:
    if subscription.billing_cycle == "custom_days":
        interval = subscription.custom_interval_days or DEFAULT_CUSTOM_INTERVAL_DAYS
        return f"FREQ=DAILY;INTERVAL={interval}"
    return _RRULES.get(subscription.billing_cycle, _RRULES["monthly"])


def generate_subscription_ics(subscription: Subscription, now: datetime | None = None) -> str:
    """Render a recurring calendar event with one alarm per positive lead time."""
    stamp = (now or datetime.now(UTC)).astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "BEGIN:VEVENT",
        f"UID:{subscription.id}@pulseboard.local",
        f"DTSTAMP:{stamp}",
        f"DTSTART;VALUE=DATE:{subscription.next_billing_date.strftime('%Y%m%d')}",
        f"RRULE:{_recurrence_rule(subscription)}",
        f"SUMMARY:{_escape(f'{subscription.name} renewal')}",
        f"DESCRIPTION:{_escape(subscription.notes or 'Subscription renewal')}",
    ]
    for days in subscription.reminder_days_before:
        if days <= 0:
            continue
        lines += [
            "BEGIN:VALARM",
            f"TRIGGER:-P{days}D",
            "ACTION:DISPLAY",
            f"DESCRIPTION:{_escape(f'Upcoming charge: {subscription.name}')}",
            "END:VALARM",
        ]
    lines += ["END:VEVENT", "END:VCALENDAR"]
    return "\r\n".join(lines) + "\r\n"
