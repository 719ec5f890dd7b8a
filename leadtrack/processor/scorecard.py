"""Marketing scorecard expansion.

A weekly marketing scorecard is a wide export: channels as rows, one column
per reporting week labelled ``MON: D`` (e.g. ``JAN: 6``), and a cell value
holding the number of leads the channel produced that week.  This module
turns the "Channel Performance" section of such a sheet into one synthetic
``LeadInput`` per counted lead.

It only runs as a fallback, when the normal row mapper accepted nothing
from a delimited file.
"""

import datetime
import logging
import re

from leadtrack.schema.loader import ScorecardSettings
from leadtrack.schema.models import LeadInput, YesNo, DEFAULT_REPLY_CATEGORY, first_integer


logger = logging.getLogger(__name__)

WEEK_PATTERN = re.compile(r"([A-Z]{3}):\s*([0-9]{1,2})", re.IGNORECASE | re.ASCII)

META_ROW_PATTERN = re.compile(r"goal|actual", re.IGNORECASE)

MONTHS = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}


def _first_cell(row) -> str:
    return row[0].lower() if row else ""


def find_week_columns(matrix) -> list[tuple[int, str]]:
    """Return ``(column index, label)`` for each week column of the header row.

    The header row is the first row with any cell shaped like ``JAN: 6``.
    """
    for row in matrix:
        columns = [(idx, cell.strip()) for idx, cell in enumerate(row)
                   if WEEK_PATTERN.search(cell)]
        if columns:
            return columns
    return []


def week_date(label: str, year: int) -> str:
    """Build an ISO date from a ``MON: D`` week label.

    Unknown month abbreviations fall back to January.
    """
    match = WEEK_PATTERN.search(label)
    month = MONTHS.get(match.group(1).upper(), 1) if match else 1
    day = int(match.group(2)) if match else 1
    return f"{year}-{month:02d}-{day:02d}"


def _section_bounds(matrix, settings: ScorecardSettings) -> tuple[int, int] | None:
    start = next(
        (idx for idx, row in enumerate(matrix)
         if settings.section_start in _first_cell(row)),
        None,
    )
    if start is None:
        return None
    end = next(
        (idx for idx in range(start + 1, len(matrix))
         if settings.section_end in _first_cell(matrix[idx])),
        None,
    )
    if end is None:
        end = start + 1 + settings.max_section_rows
    return start, end


def _synthesize(source: str, label: str, date: str, n: int) -> LeadInput:
    no = YesNo.NO.value
    return LeadInput(
        date=date,
        customer=f"Imported {source} Lead {n}",
        lead_source=source,
        job_type="Imported",
        lead_cost="$0",
        job_won=no,
        comments=f"Imported from marketing scorecard ({label})",
        reply_time_category=DEFAULT_REPLY_CATEGORY.value,
        reply_time_minutes="",
        booked=no,
        sold=no,
        cancelled=no,
        sold_amount="$0",
        revenue="$0",
    )


def parse_scorecard(matrix, year: int | None = None,
                    settings: ScorecardSettings | None = None) -> list[LeadInput]:
    """Expand a scorecard matrix into synthetic leads.

    Args:
        matrix: Rows of string cells, as produced by ``csv_to_matrix``.
        year: Calendar year for the generated dates (default: current year).
        settings: Section markers; defaults match the standard export.

    Returns:
        One LeadInput per counted lead; empty when the sheet has no week
        header row or no channel section.
    """
    if not matrix:
        return []
    settings = settings or ScorecardSettings()
    year = year or datetime.date.today().year

    weeks = find_week_columns(matrix)
    bounds = _section_bounds(matrix, settings)
    if not weeks or bounds is None:
        logger.debug("Not a scorecard: week columns=%d, section=%s", len(weeks), bounds)
        return []

    start, end = bounds
    leads = []
    for row in matrix[start + 1:end]:
        source = row[0].strip() if row else ""
        if not source or META_ROW_PATTERN.search(source):
            continue
        for idx, label in weeks:
            raw = row[idx] if idx < len(row) else ""
            count = int(first_integer(raw) or 0)
            if count < 1:
                continue
            date = week_date(label, year)
            for n in range(1, count + 1):
                leads.append(_synthesize(source, label, date, n))

    logger.debug("Scorecard expanded to %d leads across %d week columns",
                 len(leads), len(weeks))
    return leads
