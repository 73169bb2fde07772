from pulseboard.charts.templates import (
    category_spend_chart,
    renewal_buckets_chart,
    spend_trend_chart,
)

__all__ = [
    "category_spend_chart",
    "renewal_buckets_chart",
    "spend_trend_chart",
]
