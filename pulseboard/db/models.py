from dataclasses import dataclass
from datetime import date, datetime


@dataclass(slots=True, frozen=True)
class Subscription:
    id: int | str | None
    name: str
    amount_minor: int
    billing_cycle: str
    next_billing_date: date
    category: str = "other"
    custom_interval_days: int | None = None
    reminder_days_before: tuple[int, ...] = ()
    is_active: bool = True
    currency: str = "USD"
    notes: str | None = None
    chat_id: int | None = None
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class SpendTrendPoint:
    month_key: str
    month_label: str
    amount_minor: int


@dataclass(slots=True, frozen=True)
class CategorySpendPoint:
    category: str
    amount_minor: int
    share: float


@dataclass(slots=True, frozen=True)
class RenewalBucketPoint:
    bucket_label: str
    count: int


@dataclass(slots=True, frozen=True)
class AnalyticsSummary:
    monthly_baseline_minor: int
    projected_six_month_minor: int
    active_count: int
    renewal_count_30_days: int


@dataclass(slots=True, frozen=True)
class ReminderHit:
    subscription_id: int | str | None
    name: str
    days_before: int
    charge_date: str
