"""Record-to-lead mapper for the lead importer.

Maps one header-keyed string record (from any ingestion format) onto a
canonical ``LeadInput``.  Sits between the ingestion layer
(leadtrack.processor.ingestion) and the import pipeline.

Each lead field declares an ordered list of acceptable header aliases; the
first alias with a non-empty value wins, otherwise the field default is
used.  Mapping never fails: unparseable booleans and categories degrade to
their defaults.  Rejection (missing date or customer) is decided after
mapping, never before.

Usage::

    from leadtrack.processor.mapper import map_records

    result = map_records([
        {"date": "2026-01-06", "name": "Ada", "source": "Yelp", "sold": "YES"},
        {"date": "", "customer": "No date"},
    ])
    result.leads      # [LeadInput(...)]  (sold / job_won == "Yes")
    result.rejected   # 1
"""

from dataclasses import dataclass, field

from leadtrack.processor.ingestion import normalize_header
from leadtrack.schema.models import LeadInput, ReplyTimeCategory, YesNo


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FIELD_ALIASES = {
    "date": ["date"],
    "customer": ["customer", "name"],
    "lead_source": ["lead source", "source"],
    "job_type": ["job type"],
    "lead_cost": ["lead cost", "cost"],
    "job_won": ["job won", "sold"],
    "comments": ["comments"],
    "reply_time_category": ["reply time category"],
    "reply_time_minutes": ["reply time minutes"],
    "booked": ["booked"],
    "sold": ["sold", "job won"],
    "cancelled": ["cancelled", "canceled"],
    "sold_amount": ["sold amount"],
    "revenue": ["revenue"],
}

BOOLEAN_FIELDS = ("job_won", "booked", "sold", "cancelled")

CURRENCY_FIELDS = ("lead_cost", "sold_amount", "revenue")

ZERO_MONEY = "$0"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def pick(record: dict, *aliases: str) -> str:
    """Return the first non-empty value among *aliases*, else ``""``."""
    for alias in aliases:
        value = record.get(normalize_header(alias))
        if value is not None and value != "":
            return value
    return ""


def yes_no(value) -> str:
    return YesNo.coerce(value).value


def map_record(record: dict) -> LeadInput:
    """Map one header-keyed record onto a write-normalized LeadInput."""
    values = {name: pick(record, *aliases) for name, aliases in FIELD_ALIASES.items()}

    for name in BOOLEAN_FIELDS:
        values[name] = yes_no(values[name])
    for name in CURRENCY_FIELDS:
        values[name] = values[name] or ZERO_MONEY
    values["reply_time_category"] = ReplyTimeCategory.coerce(
        values["reply_time_category"]
    ).value

    return LeadInput(**values).for_write()


def is_accepted(lead: LeadInput) -> bool:
    """A mapped lead is importable only with both a date and a customer."""
    return bool(lead.date) and bool(lead.customer)


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------

@dataclass
class MappingResult:
    """Output of :func:`map_records`."""
    leads: list[LeadInput] = field(default_factory=list)
    rejected: int = 0

    @property
    def accepted(self) -> int:
        return len(self.leads)


def map_records(records) -> MappingResult:
    """Map every record, keeping accepted leads in input order."""
    result = MappingResult()
    for record in records:
        lead = map_record(record)
        if is_accepted(lead):
            result.leads.append(lead)
        else:
            result.rejected += 1
    return result
