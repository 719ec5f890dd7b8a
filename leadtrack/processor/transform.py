"""Aggregation module for the lead dashboard.

Takes the full in-memory lead set (as read from the store) and produces the
view models the dashboard renders:

    compute_stats(leads)            -> DashboardStats  (global KPIs, breakdowns)
    month_weeks(year, month)        -> ["1-7", "8-14", ...]
    weekly_report(leads, window)    -> WeeklyReport    (per-source table,
                                                        totals, ratios)

Everything here is a pure function of its arguments.  Inputs are never
mutated, every division guards its denominator, and every parse guards
non-finite results, so aggregation cannot fail on bad data.
"""

import calendar
import math
import re
from dataclasses import dataclass, field
from types import MappingProxyType

import pandas as pd

from leadtrack.schema.models import (
    DEFAULT_REPLY_CATEGORY,
    REPLY_CATEGORIES,
    ReplyTimeCategory,
    YesNo,
    first_integer,
)


UNKNOWN_SOURCE = "Unknown"

FALLBACK_WEEKS = ["1-7", "8-14", "15-21", "22-28"]

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


# ---------------------------------------------------------------------------
# Safe parse / math helpers
# ---------------------------------------------------------------------------

def parse_money(value) -> float:
    """Parse a currency display string, ignoring symbols and separators.

    Examples:
        "$15"       -> 15.0
        "$1,250.50" -> 1250.5
        "-$20"      -> -20.0
        "abc"       -> 0.0
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else 0.0
    s = _NON_NUMERIC.sub("", str(value))
    if not s:
        return 0.0
    try:
        result = float(s)
    except ValueError:
        return 0.0
    return result if math.isfinite(result) else 0.0


def reply_minutes(lead) -> float | None:
    """Resolve a lead's reply time in minutes.

    Prefers ``reply_time_minutes`` when it parses as a non-negative finite
    number, then the first integer in the legacy ``reply_time`` text.
    Returns None when neither is usable.
    """
    raw = (lead.reply_time_minutes or "").strip()
    # float() also accepts non-ASCII digits
    if raw and raw.isascii():
        try:
            minutes = float(raw)
        except ValueError:
            minutes = float("nan")
        if math.isfinite(minutes) and minutes >= 0:
            return minutes

    legacy = first_integer(getattr(lead, "reply_time", None))
    if legacy is not None:
        return float(legacy)
    return None


def _safe_div(numerator, denominator, default=0.0):
    """Divide safely, returning default on a zero/NaN denominator."""
    if denominator is None or denominator == 0:
        return default
    if isinstance(denominator, float) and math.isnan(denominator):
        return default
    return numerator / denominator


def _mean(values, default=0.0):
    values = list(values)
    return _safe_div(sum(values), len(values), default)


def _clean(value):
    """Convert numpy scalars to native Python types."""
    if hasattr(value, "item"):
        return value.item()
    return value


def _is_yes(value) -> bool:
    return value == YesNo.YES.value


# ---------------------------------------------------------------------------
# Global KPIs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CategoryReply:
    """Average reply minutes for one reply-time bucket."""
    average: float = 0.0
    count: int = 0


@dataclass(frozen=True)
class DashboardStats:
    total_leads: int = 0
    won_leads: int = 0
    win_rate: float = 0.0           # percentage, 0-100
    total_cost: float = 0.0
    avg_reply_time: float = 0.0
    by_source: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    by_job_type: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    avg_reply_by_category: MappingProxyType = field(
        default_factory=lambda: MappingProxyType(
            {c: CategoryReply() for c in REPLY_CATEGORIES}
        )
    )


def _count_by(leads, attr: str) -> MappingProxyType:
    counts: dict[str, int] = {}
    for lead in leads:
        key = getattr(lead, attr)
        counts[key] = counts.get(key, 0) + 1
    return MappingProxyType(counts)


def _reply_by_category(leads) -> MappingProxyType:
    buckets = {c: [] for c in REPLY_CATEGORIES}
    for lead in leads:
        minutes = reply_minutes(lead)
        if minutes is None:
            continue
        category = lead.reply_time_category or DEFAULT_REPLY_CATEGORY.value
        category = ReplyTimeCategory.coerce(category).value
        buckets[category].append(minutes)
    return MappingProxyType({
        c: CategoryReply(average=_mean(values), count=len(values))
        for c, values in buckets.items()
    })


def compute_stats(leads) -> DashboardStats:
    """Compute the KPI cards and breakdown tables over every lead."""
    leads = list(leads)
    total = len(leads)
    won = sum(1 for lead in leads if _is_yes(lead.job_won))
    replies = [m for m in (reply_minutes(lead) for lead in leads) if m is not None]

    return DashboardStats(
        total_leads=total,
        won_leads=won,
        win_rate=_safe_div(won, total) * 100,
        total_cost=sum(parse_money(lead.lead_cost) for lead in leads),
        avg_reply_time=_mean(replies),
        by_source=_count_by(leads, "lead_source"),
        by_job_type=_count_by(leads, "job_type"),
        avg_reply_by_category=_reply_by_category(leads),
    )


# ---------------------------------------------------------------------------
# Week windows
# ---------------------------------------------------------------------------

def week_label(start_day: int, end_day: int) -> str:
    return f"{start_day}-{end_day}"


def month_weeks(year: int, month: int) -> list[str]:
    """Partition a month into day ranges of at most 7 days from day 1.

    A 30-day month gives ["1-7", "8-14", "15-21", "22-28", "29-30"].
    """
    if not year or not month or not 1 <= month <= 12 or not 1 <= year <= 9999:
        return list(FALLBACK_WEEKS)
    last_day = calendar.monthrange(year, month)[1]
    return [week_label(start, min(start + 6, last_day))
            for start in range(1, last_day + 1, 7)]


@dataclass(frozen=True)
class WeekWindow:
    """A selected year, month, and inclusive day range."""
    year: int
    month: int
    start_day: int
    end_day: int

    @property
    def label(self) -> str:
        return week_label(self.start_day, self.end_day)

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month] if 1 <= self.month <= 12 else ""

    @property
    def is_valid(self) -> bool:
        return all([self.year, self.month, self.start_day, self.end_day])

    @classmethod
    def parse(cls, month_value: str, week: str) -> "WeekWindow":
        """Build a window from ``"YYYY-MM"`` and ``"start-end"`` strings.

        Raises:
            ValueError: If either string is malformed.
        """
        month_match = re.fullmatch(r"\s*([0-9]{4})-([0-9]{1,2})\s*", month_value or "")
        week_match = re.fullmatch(r"\s*([0-9]{1,2})\s*-\s*([0-9]{1,2})\s*", week or "")
        if not month_match:
            raise ValueError(f"Month must look like YYYY-MM, got {month_value!r}")
        if not week_match:
            raise ValueError(f"Week must look like START-END, got {week!r}")
        year, month = int(month_match.group(1)), int(month_match.group(2))
        if not 1 <= month <= 12:
            raise ValueError(f"Month out of range: {month}")
        return cls(year, month, int(week_match.group(1)), int(week_match.group(2)))


# ---------------------------------------------------------------------------
# Weekly source performance
# ---------------------------------------------------------------------------

SUM_COLUMNS = ["spend", "leads", "booked", "sold", "cancelled", "sold_amount", "revenue"]


@dataclass(frozen=True)
class SourceRow:
    """One lead source's totals within a week window."""
    source: str
    spend: float = 0.0
    leads: int = 0
    booked: int = 0
    sold: int = 0
    cancelled: int = 0
    sold_amount: float = 0.0
    revenue: float = 0.0
    cpl: float = 0.0
    five_x_return: float = 0.0


@dataclass(frozen=True)
class WeeklyTotals:
    spend: float = 0.0
    leads: int = 0
    booked: int = 0
    sold: int = 0
    cancelled: int = 0
    sold_amount: float = 0.0
    revenue: float = 0.0
    avg_reply_mins: float = 0.0


@dataclass(frozen=True)
class WeeklyRatios:
    """Derived ratios over the weekly totals.

    Every ratio is 0 when its denominator is 0; ``no_data`` names those
    ratios so a renderer can show a sentinel instead.
    """
    cpl: float = 0.0
    cost_per_booked: float = 0.0
    roas_x: float = 0.0
    booking_rate: float = 0.0
    close_rate: float = 0.0
    cancelling_rate: float = 0.0
    no_data: frozenset = frozenset()

    def has_data(self, name: str) -> bool:
        return name not in self.no_data


@dataclass(frozen=True)
class WeeklyReport:
    rows: tuple = ()
    totals: WeeklyTotals = WeeklyTotals()
    ratios: WeeklyRatios = WeeklyRatios(
        no_data=frozenset(["cpl", "cost_per_booked", "roas_x",
                           "booking_rate", "close_rate", "cancelling_rate"])
    )


def _leads_frame(leads) -> pd.DataFrame:
    """Tabulate the fields the weekly view sums over."""
    columns = ["date", "source"] + SUM_COLUMNS
    data = [
        {
            "date": lead.date,
            "source": lead.lead_source or UNKNOWN_SOURCE,
            "spend": parse_money(lead.lead_cost),
            "leads": 1,
            "booked": int(_is_yes(lead.booked)),
            "sold": int(_is_yes(lead.sold)),
            "cancelled": int(_is_yes(lead.cancelled)),
            "sold_amount": parse_money(lead.sold_amount),
            "revenue": parse_money(lead.revenue),
        }
        for lead in leads
    ]
    return pd.DataFrame(data, columns=columns)


def filter_window(leads, window: WeekWindow) -> list:
    """Leads dated inside *window*; unparseable dates are excluded."""
    leads = list(leads)
    if not leads or not window.is_valid:
        return []
    dates = pd.to_datetime(
        pd.Series([lead.date for lead in leads], dtype=object),
        format="%Y-%m-%d", errors="coerce",
    )
    mask = (
        (dates.dt.year == window.year)
        & (dates.dt.month == window.month)
        & (dates.dt.day >= window.start_day)
        & (dates.dt.day <= window.end_day)
    )
    return [lead for lead, keep in zip(leads, mask.tolist()) if keep]


def _group_by_source(leads) -> tuple:
    df = _leads_frame(leads)
    if df.empty:
        return ()
    grouped = df.groupby("source", sort=False)[SUM_COLUMNS].sum()
    grouped = grouped.sort_values("spend", ascending=False, kind="stable")

    rows = []
    for source, r in grouped.iterrows():
        spend = float(_clean(r["spend"]))
        count = int(_clean(r["leads"]))
        rows.append(SourceRow(
            source=str(source),
            spend=spend,
            leads=count,
            booked=int(_clean(r["booked"])),
            sold=int(_clean(r["sold"])),
            cancelled=int(_clean(r["cancelled"])),
            sold_amount=float(_clean(r["sold_amount"])),
            revenue=float(_clean(r["revenue"])),
            cpl=_safe_div(spend, count),
            five_x_return=spend * 5,
        ))
    return tuple(rows)


def compute_ratios(totals: WeeklyTotals) -> WeeklyRatios:
    """Derive the headline ratios from weekly totals."""
    parts = {
        "cpl": (totals.spend, totals.leads),
        "cost_per_booked": (totals.spend, totals.booked),
        "roas_x": (totals.sold_amount, totals.spend),
        "booking_rate": (totals.booked, totals.leads),
        "close_rate": (totals.sold, totals.booked),
        "cancelling_rate": (totals.cancelled, totals.booked),
    }
    values = {name: _safe_div(num, den) for name, (num, den) in parts.items()}
    no_data = frozenset(name for name, (_, den) in parts.items() if not den)
    return WeeklyRatios(no_data=no_data, **values)


def weekly_report(leads, window: WeekWindow) -> WeeklyReport:
    """Per-source performance for the leads inside *window*.

    Rows are sorted by spend, highest first.  An invalid window yields an
    empty report.
    """
    if not window.is_valid:
        return WeeklyReport()

    filtered = filter_window(leads, window)
    rows = _group_by_source(filtered)
    replies = [m for m in (reply_minutes(lead) for lead in filtered) if m is not None]

    totals = WeeklyTotals(
        spend=sum(r.spend for r in rows),
        leads=sum(r.leads for r in rows),
        booked=sum(r.booked for r in rows),
        sold=sum(r.sold for r in rows),
        cancelled=sum(r.cancelled for r in rows),
        sold_amount=sum(r.sold_amount for r in rows),
        revenue=sum(r.revenue for r in rows),
        avg_reply_mins=_mean(replies),
    )
    return WeeklyReport(rows=rows, totals=totals, ratios=compute_ratios(totals))
