"""Lead data models - the contract between importer, store, and dashboard.

Defines the canonical shape of a lead record: which fields exist, which
values the categorical fields may take, and how documents coming back from
the store are normalized (including legacy records written by older
clients).

Field values are kept as the strings users typed or imported.  Currency and
minutes are parsed on demand by the aggregation engine.
"""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class YesNo(str, Enum):
    """The only two legal values of a boolean-like lead field."""
    YES = "Yes"
    NO = "No"

    @classmethod
    def coerce(cls, value) -> "YesNo":
        """Case-insensitive ``"yes"`` is YES; anything else is NO."""
        if isinstance(value, str) and value.strip().lower() == "yes":
            return cls.YES
        return cls.NO


class ReplyTimeCategory(str, Enum):
    """Time-of-day / weekend bucket in which a lead was answered."""
    BUSINESS_HOURS = "7:00-3:30"
    AFTERNOON = "3:00-6:00"
    AFTER_SIX = "After 6"
    WEEKEND = "Weekend"

    @classmethod
    def coerce(cls, value) -> "ReplyTimeCategory":
        """Exact (case-sensitive) match, else the default bucket."""
        for member in cls:
            if value == member.value:
                return member
        return DEFAULT_REPLY_CATEGORY


DEFAULT_REPLY_CATEGORY = ReplyTimeCategory.BUSINESS_HOURS

REPLY_CATEGORIES = [c.value for c in ReplyTimeCategory]

_DIGITS = re.compile(r"[0-9]+")


def first_integer(text) -> str | None:
    """Return the first run of digits in *text*, or None."""
    if not text:
        return None
    match = _DIGITS.search(str(text))
    return match.group(0) if match else None


# ---------------------------------------------------------------------------
# Document key mapping
# ---------------------------------------------------------------------------

# python attribute -> stored document key
DOCUMENT_KEYS = {
    "date": "date",
    "customer": "customer",
    "lead_source": "leadSource",
    "job_type": "jobType",
    "lead_cost": "leadCost",
    "job_won": "jobWon",
    "comments": "comments",
    "reply_time_category": "replyTimeCategory",
    "reply_time_minutes": "replyTimeMinutes",
    "booked": "booked",
    "sold": "sold",
    "cancelled": "cancelled",
    "sold_amount": "soldAmount",
    "revenue": "revenue",
}


# ---------------------------------------------------------------------------
# LeadInput / Lead
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LeadInput:
    """A lead as written to the store (no identifier yet)."""
    date: str = ""
    customer: str = ""
    lead_source: str = ""
    job_type: str = ""
    lead_cost: str = ""
    job_won: str = YesNo.NO.value
    comments: str = ""
    reply_time_category: str = DEFAULT_REPLY_CATEGORY.value
    reply_time_minutes: str = ""
    booked: str = YesNo.NO.value
    sold: str = YesNo.NO.value
    cancelled: str = YesNo.NO.value
    sold_amount: str = ""
    revenue: str = ""

    def for_write(self) -> "LeadInput":
        """Copy with ``job_won`` mirrored from ``sold``."""
        return replace(self, job_won=self.sold)

    def to_dict(self) -> dict:
        return {key: getattr(self, attr) for attr, key in DOCUMENT_KEYS.items()}

    @classmethod
    def from_dict(cls, d: dict) -> "LeadInput":
        kwargs = {}
        for attr, key in DOCUMENT_KEYS.items():
            if key in d and d[key] is not None:
                kwargs[attr] = str(d[key])
        return cls(**kwargs)


@dataclass(frozen=True)
class Lead(LeadInput):
    """A stored lead, as seen by the dashboard.

    ``reply_time`` is the free-text reply field written by older clients;
    it is kept read-only so the aggregation engine can still mine it.
    """
    id: str = ""
    reply_time: str | None = field(default=None, compare=False)

    def to_input(self) -> LeadInput:
        return LeadInput.from_dict(self.to_dict())

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"id": self.id}
        d.update(super().to_dict())
        if self.reply_time is not None:
            d["replyTime"] = self.reply_time
        return d

    @classmethod
    def from_dict(cls, d: dict, id: str | None = None) -> "Lead":
        """Build a Lead from a stored document, deriving legacy fields.

        ``sold`` falls back to ``jobWon`` and ``booked`` falls back to
        ``sold`` only here, on read; writes never derive them.
        """
        legacy = d.get("replyTime")
        legacy = str(legacy) if legacy is not None else None

        category = d.get("replyTimeCategory")
        if category:
            category = ReplyTimeCategory.coerce(category).value
        elif legacy and "weekend" in legacy.lower():
            category = ReplyTimeCategory.WEEKEND.value
        else:
            category = DEFAULT_REPLY_CATEGORY.value

        minutes = d.get("replyTimeMinutes") or first_integer(legacy) or ""

        sold = d.get("sold") or ("Yes" if d.get("jobWon") == "Yes" else "No")
        booked = d.get("booked") or ("Yes" if sold == "Yes" else "No")

        def _text(key):
            value = d.get(key)
            return str(value) if value else ""

        def _flag(value):
            return "Yes" if value == "Yes" else "No"

        return cls(
            id=id if id is not None else _text("id"),
            date=_text("date"),
            customer=_text("customer"),
            lead_source=_text("leadSource"),
            job_type=_text("jobType"),
            lead_cost=_text("leadCost"),
            job_won=_flag(d.get("jobWon")),
            comments=_text("comments"),
            reply_time_category=str(category),
            reply_time_minutes=str(minutes),
            booked=_flag(booked),
            sold=_flag(sold),
            cancelled=_flag(d.get("cancelled")),
            sold_amount=_text("soldAmount"),
            revenue=_text("revenue"),
            reply_time=legacy,
        )
