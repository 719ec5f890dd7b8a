"""Display formatting for dashboard values.

- Money: $X,XXX.XX
- Rates: decimal rate shown as X.XX%
- Multipliers: X.XXx
- Minutes: X.X min
Ratios whose denominator was zero render as the "N/A" sentinel instead of 0.
"""

import math

NO_DATA = "N/A"


def _missing(value) -> bool:
    return value is None or (isinstance(value, float) and not math.isfinite(value))


def format_money(value: float | int | None) -> str:
    """Format a dollar amount with thousands separators and cents."""
    if _missing(value):
        return NO_DATA
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percent(value: float | int | None) -> str:
    """Format a decimal rate (0.125) as 12.50%."""
    if _missing(value):
        return NO_DATA
    return f"{value * 100:.2f}%"


def format_multiplier(value: float | int | None) -> str:
    if _missing(value):
        return NO_DATA
    return f"{value:.2f}x"


def format_minutes(value: float | int | None) -> str:
    if _missing(value):
        return NO_DATA
    return f"{value:.1f} min"


def format_integer(value: float | int | None) -> str:
    """Format a whole number with comma separators."""
    if _missing(value):
        return NO_DATA
    return f"{int(value):,}"


RATIO_FORMATS = {
    "cpl": format_money,
    "cost_per_booked": format_money,
    "roas_x": format_multiplier,
    "booking_rate": format_percent,
    "close_rate": format_percent,
    "cancelling_rate": format_percent,
}


def format_ratio(name: str, value: float, has_data: bool = True) -> str:
    """Format a weekly ratio, or the sentinel when its denominator was zero."""
    if not has_data:
        return NO_DATA
    formatter = RATIO_FORMATS.get(name, lambda v: f"{v:.2f}")
    return formatter(value)
