CATEGORIES: tuple[str, ...] = (
    "entertainment",
    "productivity",
    "utilities",
    "health",
    "other",
)

BILLING_CYCLES: tuple[str, ...] = (
    "weekly",
    "monthly",
    "yearly",
    "custom_days",
)

DEFAULT_REMINDER_DAYS: tuple[int, ...] = (1, 3, 7)


def category_label(category: str) -> str:
    return category.replace("_", " ").title()


def billing_cycle_label(cycle: str) -> str:
    if cycle == "custom_days":
        return "Custom (days)"
    return cycle.replace("_", " ").title()
