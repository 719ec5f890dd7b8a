"""Lead file import pipeline.

Two stages with a row-count gate between them:

1. Ingest the file into header-keyed records (format picked by extension),
   map every record, and write each accepted lead to the store.
2. Only when stage 1 wrote nothing and the file is delimited text, re-read
   it as a weekly marketing scorecard and write the synthetic leads.

Rows are written one at a time and never rolled back, so a failure part way
through leaves the earlier rows in place and reports how many landed.
"""

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path

from leadtrack.processor.ingestion import TABULAR, csv_to_matrix, detect_format, ingest, read_text
from leadtrack.processor.mapper import map_records
from leadtrack.processor.scorecard import parse_scorecard
from leadtrack.schema.loader import Settings

logger = logging.getLogger(__name__)


IMPORTED = "imported"
EMPTY = "empty"
FAILED = "failed"

NO_ROWS_MESSAGE = "No rows found. Check file headers and content."
NONE_ACCEPTED_MESSAGE = "Imported 0 rows. Make sure date + customer are present."
FAILED_MESSAGE = "Import failed. Use CSV, XLSX, or JSON with matching headers."


@dataclass
class ImportResult:
    """Outcome of importing one file."""
    status: str
    imported: int
    file_name: str
    message: str
    rejected: int = 0
    from_scorecard: bool = False

    @property
    def ok(self) -> bool:
        return self.status != FAILED


class _PartialImport(Exception):
    def __init__(self, written, cause):
        super().__init__(str(cause))
        self.written = written
        self.cause = cause


def _write_all(store, leads) -> int:
    written = 0
    try:
        for lead in leads:
            store.create(lead.for_write())
            written += 1
    except Exception as exc:
        raise _PartialImport(written, exc) from exc
    return written


def _run(path: Path, store, settings: Settings, year: int | None) -> ImportResult:
    file_format = detect_format(path)
    records = ingest(path, file_format)
    logger.debug("Ingested %d records from %s (%s)", len(records), path.name, file_format)

    mapped = map_records(records)
    imported = _write_all(store, mapped.leads)
    from_scorecard = False

    if imported == 0 and file_format == TABULAR:
        matrix = csv_to_matrix(read_text(path))
        leads = parse_scorecard(matrix, year=year, settings=settings.scorecard)
        imported = _write_all(store, leads)
        from_scorecard = imported > 0

    if imported:
        status, message = IMPORTED, f"Imported {imported} leads from {path.name}"
    elif not records:
        status, message = EMPTY, NO_ROWS_MESSAGE
    else:
        status, message = EMPTY, NONE_ACCEPTED_MESSAGE

    return ImportResult(
        status=status,
        imported=imported,
        file_name=path.name,
        message=message,
        rejected=mapped.rejected,
        from_scorecard=from_scorecard,
    )


def import_file(path, store, settings: Settings | None = None,
                year: int | None = None) -> ImportResult:
    """Import one lead file into *store*.

    Args:
        path: CSV, TSV, JSON, XLSX or XLS file.  Unknown extensions are
            read as delimited text.
        store: A LeadStore (anything with ``create(LeadInput)``).
        settings: Scorecard markers; defaults when omitted.
        year: Year for scorecard dates (default: current year).

    Returns:
        ImportResult.  Unreadable files and store errors give status
        ``"failed"``; ``imported`` still counts rows written before the
        failure.
    """
    path = Path(path)
    settings = settings or Settings()
    try:
        result = _run(path, store, settings, year)
    except _PartialImport as exc:
        logger.warning("Import of %s stopped after %d leads: %s",
                       path.name, exc.written, exc.cause)
        return ImportResult(FAILED, exc.written, path.name, FAILED_MESSAGE)
    except (OSError, ValueError, ImportError, zipfile.BadZipFile) as exc:
        logger.warning("Import of %s failed: %s", path.name, exc)
        return ImportResult(FAILED, 0, path.name, FAILED_MESSAGE)

    logger.info("%s: %s", path.name, result.message)
    return result
