"""
Display helpers for report figures.

Used by the printable HTML export and the CLI tables; CSV and JSON exports
keep raw values.
"""

import re
from typing import Any

STATUS_STYLES = {
    "scheduled": "blue",
    "completed": "green",
    "cancelled": "red",
    "no_show": "yellow",
    "rescheduled": "magenta",
}

MONEY_COLUMN = re.compile(r"(revenue|amount|order_value|balance|copay|budget)$")
PERCENT_COLUMN = re.compile(r"(utilization|_rate)$")


def format_currency(amount: float) -> str:
    """Format an amount as Canadian dollars, e.g. ``$1,234.50``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_percentage(value: float, decimals: int = 1) -> str:
    return f"{value:.{decimals}f}%"


def display_value(value: Any, column: str) -> str:
    """
    Render one report cell for people to read.

    Numbers in money columns become currency and numbers in rate columns
    become percentages; None renders blank.
    """
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if MONEY_COLUMN.search(column):
            return format_currency(value)
        if PERCENT_COLUMN.search(column):
            return format_percentage(value)
    return str(value)


def status_style(status: str) -> str:
    """Rich style name for a status label."""
    return STATUS_STYLES.get(status.lower(), "bright_black")
