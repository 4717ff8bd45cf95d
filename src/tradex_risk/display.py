"""Output formatting. The only place values are rounded."""
import math
from decimal import ROUND_HALF_UP, Decimal

from tradex_risk.closure.models import ClosureReason

MONEY_PLACES = 4


def round_money(value: float, places: int = MONEY_PLACES) -> float:
    """Round half-up to a fixed number of decimal places.

    Goes through the decimal repr of value, so 0.125 rounds to 0.13 rather
    than to the nearest binary float.
    """
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_money(value: float, currency: str = "$", places: int = 2) -> str:
    rounded = round_money(value, places)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{currency}{abs(rounded):,.{places}f}"


def format_percentage(value: float, places: int = 2) -> str:
    if math.isinf(value):
        return "∞%" if value > 0 else "-∞%"
    return f"{round_money(value, places):.{places}f}%"


def format_margin_level(level: float, places: int = 2) -> str:
    """Format a margin level, showing ∞ when no margin is in use."""
    if math.isinf(level):
        return "∞"
    return format_percentage(level, places)


def format_closure_reason(reason: ClosureReason) -> str:
    return reason.value.replace("_", " ").title()
