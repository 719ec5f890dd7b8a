"""Data processor module for the lead tracker."""

from .ingestion import (
    ingest,
    ingest_excel,
    ingest_json,
    ingest_tabular,
    csv_to_matrix,
    matrix_to_records,
    normalize_header,
    decode_bytes,
    detect_format,
    SOURCE_TYPES,
)
from .mapper import (
    MappingResult,
    map_record,
    map_records,
)
from .pipeline import (
    ImportResult,
    import_file,
)
from .scorecard import parse_scorecard
from .transform import (
    DashboardStats,
    WeeklyReport,
    WeekWindow,
    compute_stats,
    month_weeks,
    parse_money,
    reply_minutes,
    weekly_report,
)
