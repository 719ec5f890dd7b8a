"""Data ingestion module for the lead importer.

Turns uploaded files into header-keyed string records, one conversion step
per format:

- Delimited text (.csv, .tsv, anything unrecognized): quote-aware comma or
  strict tab splitting, first row is the header
- JSON (.json): an array of flat objects
- Spreadsheet (.xlsx, .xls): first worksheet, header row as keys

Every record key passes through ``normalize_header`` so the row mapper can
look fields up without caring where the record came from.
"""

import datetime
import json
import math
import re
from pathlib import Path

import pandas as pd


BOM = "\ufeff"


# ---------------------------------------------------------------------------
# Header normalization
# ---------------------------------------------------------------------------

_HEADER_SEPARATORS = re.compile(r"[\s_]+")


def normalize_header(value) -> str:
    """Canonicalize a column label for fuzzy lookup.

    Examples:
        "\\ufeffDate"      -> "date"
        "  Lead Source "  -> "lead source"
        "reply_time__MINUTES" -> "reply time minutes"
    """
    s = str(value)
    if s.startswith(BOM):
        s = s[1:]
    return _HEADER_SEPARATORS.sub(" ", s.strip().lower())


# ---------------------------------------------------------------------------
# Encoding detection
# ---------------------------------------------------------------------------

def detect_encoding(raw: bytes) -> str:
    """Detect UTF-16 (with BOM) versus UTF-8 content."""
    if raw[:2] in (b"\xff\xfe", b"\xfe\xff"):
        return "utf-16"
    return "utf-8-sig"


def decode_bytes(raw: bytes) -> str:
    """Decode raw file bytes to text, dropping any byte-order mark."""
    text = raw.decode(detect_encoding(raw), errors="replace")
    if text.startswith(BOM):
        text = text[1:]
    return text


def read_text(path) -> str:
    return decode_bytes(Path(path).read_bytes())


# ---------------------------------------------------------------------------
# Delimited text
# ---------------------------------------------------------------------------

def _split_quoted(line: str, delimiter: str = ",") -> list[str]:
    """Split one line on *delimiter*, honouring double-quoted fields.

    ``""`` inside a quoted field is a literal quote.
    """
    values = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == '"':
            if in_quotes and line[i + 1:i + 2] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    values.append("".join(current).strip())
    return values


def csv_to_matrix(text: str) -> list[list[str]]:
    """Parse delimited text into a matrix of trimmed string cells.

    The delimiter is picked once per file: tab when the first non-empty
    line contains one, comma otherwise.  Tab mode ignores quotes.
    """
    if text.startswith(BOM):
        text = text[1:]
    lines = [line.rstrip() for line in re.split(r"\r?\n", text)]
    lines = [line for line in lines if line]
    if not lines:
        return []

    if "\t" in lines[0]:
        return [[v.strip() for v in line.split("\t")] for line in lines]
    return [_split_quoted(line) for line in lines]


def matrix_to_records(matrix: list[list[str]]) -> list[dict[str, str]]:
    """Key each data row by the normalized header row."""
    if len(matrix) < 2:
        return []
    headers = [normalize_header(h) for h in matrix[0]]
    records = []
    for cols in matrix[1:]:
        record = {}
        for idx, header in enumerate(headers):
            record[header] = cols[idx].strip() if idx < len(cols) else ""
        records.append(record)
    return records


def ingest_tabular(path) -> list[dict[str, str]]:
    """Ingest a CSV/TSV file into header-keyed records."""
    return matrix_to_records(csv_to_matrix(read_text(path)))


# ---------------------------------------------------------------------------
# Object rows (JSON, spreadsheets)
# ---------------------------------------------------------------------------

def _cell_to_text(value) -> str:
    """Render a JSON or spreadsheet cell as the string a user would type."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (pd.Timestamp, datetime.datetime)):
        if (value.hour, value.minute, value.second) == (0, 0, 0):
            return value.strftime("%Y-%m-%d")
        return value.isoformat(sep=" ")
    if isinstance(value, datetime.date):
        return value.isoformat()
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass  # containers
    return str(value).strip()


def normalize_record(row: dict) -> dict[str, str]:
    """Normalize an object row's keys and stringify its values."""
    return {normalize_header(key): _cell_to_text(value) for key, value in row.items()}


def ingest_json(path) -> list[dict[str, str]]:
    """Ingest a JSON array of flat objects.

    Raises json.JSONDecodeError on malformed content.  A document that is
    not an array yields no records; non-object items are skipped.
    """
    parsed = json.loads(read_text(path))
    if not isinstance(parsed, list):
        return []
    return [normalize_record(item) for item in parsed if isinstance(item, dict)]


def ingest_excel(path) -> list[dict[str, str]]:
    """Ingest the first worksheet of an .xlsx/.xls workbook.

    Raises:
        ValueError: If the reader cannot parse the workbook.
    """
    path = Path(path)
    engine = "openpyxl" if path.suffix.lower() != ".xls" else None
    try:
        df = pd.read_excel(path, sheet_name=0, engine=engine, dtype=object)
    except (ImportError, OSError):
        raise
    except Exception as exc:
        # openpyxl and xlrd each raise their own types for corrupt workbooks
        raise ValueError(f"Unreadable workbook {path.name}: {exc}") from exc
    df = df.fillna("")
    return [normalize_record(row) for row in df.to_dict(orient="records")]


# ---------------------------------------------------------------------------
# Format registry
# ---------------------------------------------------------------------------

TABULAR = "tabular"
JSON = "json"
EXCEL = "excel"

FORMATS = {
    ".csv": TABULAR,
    ".tsv": TABULAR,
    ".json": JSON,
    ".xlsx": EXCEL,
    ".xls": EXCEL,
}

SOURCE_TYPES = {
    TABULAR: ingest_tabular,
    JSON: ingest_json,
    EXCEL: ingest_excel,
}


def detect_format(path) -> str:
    """Pick the reader for *path* by extension; unknown means tabular."""
    return FORMATS.get(Path(path).suffix.lower(), TABULAR)


def ingest(path, file_format: str | None = None) -> list[dict[str, str]]:
    """Ingest a lead file into header-keyed string records.

    Args:
        path: Path to the data file.
        file_format: One of 'tabular', 'json', 'excel'.  Detected from the
            extension when omitted.

    Raises:
        ValueError: If file_format is not recognized.
    """
    file_format = file_format or detect_format(path)
    if file_format not in SOURCE_TYPES:
        raise ValueError(
            f"Unknown file format '{file_format}'. "
            f"Valid formats: {', '.join(sorted(SOURCE_TYPES))}"
        )
    return SOURCE_TYPES[file_format](path)
