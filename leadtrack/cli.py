"""CLI entry point for the lead tracker.

Drives the import pipeline and the dashboard aggregations against a
JSON-file lead store.

Usage::

    # Import lead rows (CSV/TSV/JSON/XLSX) or a marketing scorecard CSV
    python -m leadtrack.cli import data/leads.csv data/scorecard.csv

    # KPI cards and breakdowns
    python -m leadtrack.cli stats

    # Enter, correct and remove single leads
    python -m leadtrack.cli add --date 2026-01-06 --customer "Ada" --source Yelp --cost '$15'
    python -m leadtrack.cli edit 3f2a... --sold Yes --sold-amount '$500'
    python -m leadtrack.cli delete 3f2a... --yes

    # Week ranges of a month, then one week's source performance
    python -m leadtrack.cli weeks --month 2026-01
    python -m leadtrack.cli weekly --month 2026-01 --week 8-14

    # Wipe the store
    python -m leadtrack.cli delete-all --yes

    # Use a YAML settings file / another store
    python -m leadtrack.cli --config leadtrack.yaml --store other.json stats
"""

import argparse
import datetime
import logging
import sys
from dataclasses import replace
from pathlib import Path

from leadtrack.processor.pipeline import import_file
from leadtrack.processor.transform import (
    WeekWindow,
    compute_stats,
    month_weeks,
    weekly_report,
)
from leadtrack.schema.design_system import (
    format_integer,
    format_minutes,
    format_money,
    format_ratio,
)
from leadtrack.schema.loader import load_settings
from leadtrack.schema.models import REPLY_CATEGORIES, LeadInput, YesNo
from leadtrack.store import JsonLeadStore


YES_NO = [member.value for member in YesNo]

# (option, LeadInput attribute, extra add_argument kwargs)
LEAD_OPTIONS = [
    ("--date", "date", {"help": "Lead date, YYYY-MM-DD."}),
    ("--customer", "customer", {"help": "Customer name."}),
    ("--source", "lead_source", {"help": "Lead source, e.g. Yelp."}),
    ("--job-type", "job_type", {"help": "Job type."}),
    ("--cost", "lead_cost", {"help": "Lead cost, e.g. $15."}),
    ("--comments", "comments", {"help": "Free-text comments."}),
    ("--reply-category", "reply_time_category",
     {"choices": REPLY_CATEGORIES, "help": "Reply time bucket."}),
    ("--reply-minutes", "reply_time_minutes", {"help": "Reply time in minutes."}),
    ("--booked", "booked", {"type": str.capitalize, "choices": YES_NO}),
    ("--sold", "sold", {"type": str.capitalize, "choices": YES_NO}),
    ("--cancelled", "cancelled", {"type": str.capitalize, "choices": YES_NO}),
    ("--sold-amount", "sold_amount", {"help": "Sold amount, e.g. $500."}),
    ("--revenue", "revenue", {"help": "Revenue, e.g. $450."}),
]


# ---------------------------------------------------------------------------
# Settings / store
# ---------------------------------------------------------------------------

def _load_settings(args):
    """Load Settings from --config (defaults when absent)."""
    config = getattr(args, "config", None)
    if config:
        path = Path(config)
        if not path.exists():
            _error(f"Config file not found: {path}")
        try:
            return load_settings(path)
        except ValueError as exc:
            _error(f"Invalid config {path}: {exc}")
    return load_settings()


def _open_store(args, settings):
    path = getattr(args, "store", None) or settings.store_path
    try:
        return JsonLeadStore(path, delete_batch_size=settings.delete_batch_size)
    except ValueError as exc:
        _error(str(exc))


def _configure_logging(args, settings):
    level = logging.DEBUG if getattr(args, "verbose", False) else settings.log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _window(args):
    try:
        return WeekWindow.parse(args.month, args.week)
    except ValueError as exc:
        _error(str(exc))


def _year_month(value):
    try:
        window = WeekWindow.parse(value, "1-7")
    except ValueError as exc:
        _error(str(exc))
    return window.year, window.month


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_import(args, settings, store):
    """Import one or more lead files."""
    failed = 0
    total = 0
    for name in args.files:
        path = Path(name)
        if not path.exists():
            _warn(f"File not found: {path}")
            failed += 1
            continue
        _info(f"Importing {path.name}...")
        result = import_file(path, store, settings)
        total += result.imported
        if result.ok:
            _info(result.message)
        else:
            _warn(result.message)
            failed += 1
    _info(f"Store now holds {format_integer(len(store))} leads ({total} added)")
    return 1 if failed else 0


def cmd_list(args, settings, store):
    """Print stored leads, newest first."""
    leads = store.all()
    if not leads:
        print("No leads yet.")
        return 0
    if args.limit:
        leads = leads[:args.limit]
    for lead in leads:
        print(f"{lead.date:<10}  {lead.customer:<28}  {lead.lead_source:<16}  "
              f"{lead.job_type:<14}  {lead.lead_cost:>8}  sold={lead.sold}  {lead.id}")
    return 0


def _lead_from_args(args, base):
    """Apply the given field options to *base*, write-normalized."""
    updates = {attr: getattr(args, attr) for _, attr, _ in LEAD_OPTIONS
               if getattr(args, attr, None) is not None}
    return replace(base, **updates).for_write()


def cmd_add(args, settings, store):
    """Enter a single lead by hand."""
    lead_id = store.create(_lead_from_args(args, LeadInput()))
    print(lead_id)
    _info(f"Added lead for {args.customer} ({args.date})")
    return 0


def cmd_edit(args, settings, store):
    """Change fields of one stored lead."""
    try:
        current = store.get(args.lead_id)
    except KeyError:
        _error(f"No lead with id {args.lead_id}")
    store.update(args.lead_id, _lead_from_args(args, current.to_input()))
    _info(f"Updated lead {args.lead_id}")
    return 0


def cmd_delete(args, settings, store):
    """Delete one stored lead."""
    if not args.yes:
        _error("Refusing to delete the lead without --yes.")
    try:
        store.delete(args.lead_id)
    except KeyError:
        _error(f"No lead with id {args.lead_id}")
    _info(f"Deleted lead {args.lead_id}")
    return 0


def cmd_stats(args, settings, store):
    """Show KPI cards and breakdowns."""
    stats = compute_stats(store.all())

    print(f"Total leads:    {format_integer(stats.total_leads)}")
    print(f"Won leads:      {format_integer(stats.won_leads)}")
    print(f"Win rate:       {stats.win_rate:.1f}%")
    print(f"Total cost:     {format_money(stats.total_cost)}")
    print(f"Avg reply time: {format_minutes(stats.avg_reply_time)}")

    print()
    print("Leads by source:")
    for source, count in sorted(stats.by_source.items(), key=lambda kv: -kv[1]):
        print(f"  {source or '(blank)':<24} {count:>6}")

    print()
    print("Leads by job type:")
    for job_type, count in sorted(stats.by_job_type.items(), key=lambda kv: -kv[1]):
        print(f"  {job_type or '(blank)':<24} {count:>6}")

    print()
    print("Avg reply by category:")
    for category, reply in stats.avg_reply_by_category.items():
        print(f"  {category:<24} {format_minutes(reply.average):>12}  ({reply.count})")
    return 0


def cmd_weeks(args, settings, store):
    """Print the week ranges of a month."""
    year, month = _year_month(args.month)
    for label in month_weeks(year, month):
        print(label)
    return 0


def cmd_weekly(args, settings, store):
    """Show one week's lead-source performance."""
    window = _window(args)
    weeks = month_weeks(window.year, window.month)
    if window.label not in weeks:
        _warn(f"{window.label} is not a week of {args.month} "
              f"(weeks: {', '.join(weeks)})")

    report = weekly_report(store.all(), window)
    print(f"{window.month_name} {window.year}, days {window.label}")
    print()

    header = (f"{'Source':<20} {'Spend':>12} {'Leads':>6} {'Booked':>7} "
              f"{'Sold':>5} {'Canc.':>6} {'CPL':>10} {'Sold $':>12} "
              f"{'Revenue':>12} {'5x Return':>12}")
    print(header)
    print("-" * len(header))
    for row in report.rows:
        print(f"{row.source:<20} {format_money(row.spend):>12} {row.leads:>6} "
              f"{row.booked:>7} {row.sold:>5} {row.cancelled:>6} "
              f"{format_money(row.cpl):>10} {format_money(row.sold_amount):>12} "
              f"{format_money(row.revenue):>12} {format_money(row.five_x_return):>12}")

    t = report.totals
    print("-" * len(header))
    print(f"{'Total':<20} {format_money(t.spend):>12} {t.leads:>6} {t.booked:>7} "
          f"{t.sold:>5} {t.cancelled:>6} {'':>10} {format_money(t.sold_amount):>12} "
          f"{format_money(t.revenue):>12}")
    print(f"Avg reply: {format_minutes(t.avg_reply_mins)}")

    print()
    r = report.ratios
    for name, label in [
        ("cpl", "Cost per lead"),
        ("cost_per_booked", "Cost per booked"),
        ("roas_x", "ROAS"),
        ("booking_rate", "Booking rate"),
        ("close_rate", "Close rate"),
        ("cancelling_rate", "Cancelling rate"),
    ]:
        print(f"{label + ':':<17} {format_ratio(name, getattr(r, name), r.has_data(name))}")
    return 0


def cmd_delete_all(args, settings, store):
    """Delete every stored lead."""
    if not args.yes:
        _error("Refusing to delete all leads without --yes.")
    if not len(store):
        _info("No leads to delete.")
        return 0
    deleted = store.delete_all()
    _info(f"Deleted {deleted} leads.")
    return 0


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="leadtrack",
        description="Import lead files and report lead KPIs.",
    )
    parser.add_argument(
        "--config",
        help="Path to a YAML settings file.",
    )
    parser.add_argument(
        "--store",
        help="Lead store JSON file (default: settings store_path).",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- import ----
    imp = subparsers.add_parser(
        "import",
        help="Import CSV, TSV, JSON, XLSX or scorecard files.",
    )
    imp.add_argument("files", nargs="+", help="Files to import.")
    imp.set_defaults(func=cmd_import)

    # ---- list ----
    lst = subparsers.add_parser("list", help="List stored leads, newest first.")
    lst.add_argument(
        "-n", "--limit",
        type=int,
        default=0,
        help="Show at most N leads (default: all).",
    )
    lst.set_defaults(func=cmd_list)

    # ---- add ----
    add = subparsers.add_parser("add", help="Enter a single lead.")
    _add_lead_args(add, required=("date", "customer"))
    add.set_defaults(func=cmd_add)

    # ---- edit ----
    edit = subparsers.add_parser(
        "edit",
        help="Change fields of a stored lead (unset options keep their value).",
    )
    edit.add_argument("lead_id", help="Lead id, as shown by 'list'.")
    _add_lead_args(edit)
    edit.set_defaults(func=cmd_edit)

    # ---- delete ----
    delete = subparsers.add_parser("delete", help="Delete one stored lead.")
    delete.add_argument("lead_id", help="Lead id, as shown by 'list'.")
    delete.add_argument(
        "--yes",
        action="store_true",
        default=False,
        help="Confirm the deletion.",
    )
    delete.set_defaults(func=cmd_delete)

    # ---- stats ----
    stats = subparsers.add_parser("stats", help="Show KPI cards and breakdowns.")
    stats.set_defaults(func=cmd_stats)

    # ---- weeks ----
    weeks = subparsers.add_parser("weeks", help="List the week ranges of a month.")
    _add_month_arg(weeks)
    weeks.set_defaults(func=cmd_weeks)

    # ---- weekly ----
    weekly = subparsers.add_parser(
        "weekly",
        help="Show lead-source performance for one week of a month.",
    )
    _add_month_arg(weekly)
    weekly.add_argument(
        "--week",
        default="1-7",
        help="Day range START-END (default: 1-7).",
    )
    weekly.set_defaults(func=cmd_weekly)

    # ---- delete-all ----
    wipe = subparsers.add_parser("delete-all", help="Delete every stored lead.")
    wipe.add_argument(
        "--yes",
        action="store_true",
        default=False,
        help="Confirm the deletion.",
    )
    wipe.set_defaults(func=cmd_delete_all)

    return parser


def _add_lead_args(parser, required=()):
    """Add one option per editable lead field (job won follows --sold)."""
    for flag, attr, extra in LEAD_OPTIONS:
        parser.add_argument(flag, dest=attr, default=None,
                            required=attr in required, **extra)


def _add_month_arg(parser):
    """Add --month YYYY-MM (default: current month)."""
    now = datetime.date.today()
    default = f"{now.year}-{now.month:02d}"
    parser.add_argument(
        "--month",
        default=default,
        help=f"Month as YYYY-MM (default: {default}).",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = _load_settings(args)
    _configure_logging(args, settings)
    store = _open_store(args, settings)
    return args.func(args, settings, store)


if __name__ == "__main__":
    sys.exit(main())
