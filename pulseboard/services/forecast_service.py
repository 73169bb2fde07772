import logging
import math
from collections.abc import Iterable
from datetime import date
from fractions import Fraction

from pulseboard.dates import (
    DEFAULT_CUSTOM_INTERVAL_DAYS,
    add_months,
    days_between,
    is_date_in_window,
    month_key,
    month_label,
    next_charge_date,
    to_date,
)
from pulseboard.db.models import (
    AnalyticsSummary,
    CategorySpendPoint,
    RenewalBucketPoint,
    SpendTrendPoint,
    Subscription,
)

logger = logging.getLogger(__name__)

# Iteration caps for the projection walk. The counter is shared by both phases.
CATCH_UP_GUARD = 400
PROJECTION_GUARD = 1200

RENEWAL_BUCKET_LABELS = ("0-7 days", "8-14 days", "15-21 days", "22-30 days")


def _round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def _active(subscriptions: Iterable[Subscription]) -> list[Subscription]:
    return [s for s in subscriptions if s.is_active]


def _interval_days(subscription: Subscription) -> int:
    if subscription.custom_interval_days is None:
        return DEFAULT_CUSTOM_INTERVAL_DAYS
    return subscription.custom_interval_days


def monthly_equivalent(subscription: Subscription) -> Fraction:
    amount = Fraction(subscription.amount_minor)
    cycle = subscription.billing_cycle
    if cycle == "weekly":
        return amount * 52 / 12
    if cycle == "monthly":
        return amount
    if cycle == "yearly":
        return amount / 12
    if cycle == "custom_days":
        interval = _interval_days(subscription)
        return amount * 30 / interval if interval > 0 else Fraction(0)
    return Fraction(0)


def yearly_equivalent(subscription: Subscription) -> Fraction:
    amount = Fraction(subscription.amount_minor)
    cycle = subscription.billing_cycle
    if cycle == "weekly":
        return amount * 52
    if cycle == "monthly":
        return amount * 12
    if cycle == "yearly":
        return amount
    if cycle == "custom_days":
        interval = _interval_days(subscription)
        return amount * 365 / interval if interval > 0 else Fraction(0)
    return Fraction(0)


def monthly_total_minor(subscriptions: Iterable[Subscription]) -> int:
    return _round_half_up(sum((monthly_equivalent(s) for s in _active(subscriptions)), Fraction(0)))


def yearly_total_minor(subscriptions: Iterable[Subscription]) -> int:
    return _round_half_up(sum((yearly_equivalent(s) for s in _active(subscriptions)), Fraction(0)))


def build_spend_trend(
    subscriptions: Iterable[Subscription],
    from_date: date | str,
    months_ahead: int | None = 6,
) -> list[SpendTrendPoint]:
    """Project billed totals per calendar month, starting with ``from_date``'s month.

    Charges dated before ``from_date`` are walked past without being counted.
    """
    start = to_date(from_date)
    months = max(1, 6 if months_ahead is None else months_ahead)
    first_of_month = start.replace(day=1)
    end_exclusive = add_months(first_of_month, months)

    keys = [month_key(add_months(first_of_month, i)) for i in range(months)]
    totals = dict.fromkeys(keys, 0)

    for sub in _active(subscriptions):
        charge = sub.next_billing_date
        guard = 0

        while charge < start and guard < CATCH_UP_GUARD:
            charge = next_charge_date(charge, sub.billing_cycle, sub.custom_interval_days)
            guard += 1

        while charge < end_exclusive and guard < PROJECTION_GUARD:
            key = month_key(charge)
            if key in totals:
                totals[key] += sub.amount_minor
            charge = next_charge_date(charge, sub.billing_cycle, sub.custom_interval_days)
            guard += 1

        if charge < end_exclusive:
            logger.warning(
                "Projection walk for %s stopped after %d steps",
                sub.name,
                guard,
                extra={"subscription_id": sub.id},
            )

    return [SpendTrendPoint(month_key=k, month_label=month_label(k), amount_minor=totals[k]) for k in keys]


def build_category_spend(subscriptions: Iterable[Subscription]) -> list[CategorySpendPoint]:
    totals: dict[str, Fraction] = {}
    for sub in _active(subscriptions):
        totals[sub.category] = totals.get(sub.category, Fraction(0)) + monthly_equivalent(sub)

    rounded = [(category, _round_half_up(amount)) for category, amount in totals.items()]
    rounded = [(category, amount) for category, amount in rounded if amount > 0]

    grand_total = sum(amount for _, amount in rounded)
    if grand_total == 0:
        return []

    points = [
        CategorySpendPoint(category=category, amount_minor=amount, share=amount / grand_total)
        for category, amount in rounded
    ]
    return sorted(points, key=lambda p: p.amount_minor, reverse=True)


def build_renewal_buckets(
    subscriptions: Iterable[Subscription],
    from_date: date | str,
    days_ahead: int = 30,
) -> list[RenewalBucketPoint]:
    counts = [0, 0, 0, 0]
    for sub in _active(subscriptions):
        delta = days_between(sub.next_billing_date, from_date)
        if delta < 0 or delta > days_ahead:
            continue
        if delta <= 7:
            counts[0] += 1
        elif delta <= 14:
            counts[1] += 1
        elif delta <= 21:
            counts[2] += 1
        else:
            counts[3] += 1
    return [RenewalBucketPoint(bucket_label=label, count=n) for label, n in zip(RENEWAL_BUCKET_LABELS, counts)]


def upcoming_renewals(
    subscriptions: Iterable[Subscription],
    from_date: date | str,
    window_days: int,
) -> list[Subscription]:
    selected = [s for s in _active(subscriptions) if is_date_in_window(s.next_billing_date, from_date, window_days)]
    return sorted(selected, key=lambda s: (s.next_billing_date, s.name))


def build_analytics_summary(subscriptions: Iterable[Subscription], today: date | str) -> AnalyticsSummary:
    subs = list(subscriptions)
    trend = build_spend_trend(subs, today, months_ahead=6)
    return AnalyticsSummary(
        monthly_baseline_minor=monthly_total_minor(subs),
        projected_six_month_minor=sum(p.amount_minor for p in trend),
        active_count=len(_active(subs)),
        renewal_count_30_days=len(upcoming_renewals(subs, today, 30)),
    )
