"""Tests for the file import pipeline."""

import json
import logging
import zipfile

import pandas as pd
import pytest

from leadtrack.processor import pipeline
from leadtrack.processor.pipeline import (
    EMPTY,
    FAILED,
    FAILED_MESSAGE,
    IMPORTED,
    NONE_ACCEPTED_MESSAGE,
    NO_ROWS_MESSAGE,
    ImportResult,
    import_file,
)
from leadtrack.schema.loader import ScorecardSettings, Settings
from leadtrack.store import InMemoryLeadStore


LEADS_CSV = """\
Date,Customer,Lead Source,Job Type,Lead Cost,Sold,Sold Amount
2026-01-06,Ada,Yelp,Repair,$15,yes,$500
2026-01-07,"Smith, Jo",Google,Install,$20,no,
,Missing Date,Yelp,,,,
2026-01-08,,Yelp,,,,
"""

SCORECARD_CSV = """\
Weekly Marketing Scorecard,,
,JAN: 6,JAN: 13
Channel Performance,,
Goal,10,10
Yelp,2,1
Brand & Reputation,,
"""


class FailingStore(InMemoryLeadStore):
    """Store whose create fails on the Nth call."""

    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = fail_on
        self.calls = 0

    def create(self, lead):
        self.calls += 1
        if self.calls == self.fail_on:
            raise RuntimeError("write rejected")
        return super().create(lead)


@pytest.fixture
def store():
    return InMemoryLeadStore()


# ---------------------------------------------------------------------------
# Row imports
# ---------------------------------------------------------------------------

class TestRowImport:
    def test_csv(self, tmp_path, store):
        p = tmp_path / "leads.csv"
        p.write_text(LEADS_CSV)
        result = import_file(p, store)

        assert isinstance(result, ImportResult)
        assert result.status == IMPORTED
        assert result.ok
        assert result.imported == 2
        assert result.rejected == 2
        assert not result.from_scorecard
        assert result.message == "Imported 2 leads from leads.csv"

        ada = next(lead for lead in store.all() if lead.customer == "Ada")
        assert ada.sold == "Yes"
        assert ada.job_won == "Yes"
        assert ada.sold_amount == "$500"
        jo = next(lead for lead in store.all() if lead.customer == "Smith, Jo")
        assert jo.sold_amount == "$0"

    def test_tsv(self, tmp_path, store):
        p = tmp_path / "leads.tsv"
        p.write_text("Date\tName\tSource\n2026-01-06\tAda\tYelp\n")
        result = import_file(p, store)
        assert result.imported == 1
        assert store.all()[0].lead_source == "Yelp"

    def test_utf16_export(self, tmp_path, store):
        p = tmp_path / "export.txt"
        p.write_bytes(b"\xff\xfe" + "Date\tCustomer\n2026-01-06\tAda\n".encode("utf-16-le"))
        assert import_file(p, store).imported == 1

    def test_json(self, tmp_path, store):
        p = tmp_path / "leads.json"
        p.write_text(json.dumps([
            {"date": "2026-01-06", "customer": "Ada", "jobWon": "yes"},
            {"date": "2026-01-07"},
        ]))
        result = import_file(p, store)
        assert result.imported == 1
        assert result.rejected == 1

    def test_xlsx(self, tmp_path, store):
        p = tmp_path / "leads.xlsx"
        pd.DataFrame({
            "Date": ["2026-01-06"],
            "Customer": ["Ada"],
            "Reply Time Minutes": [12],
        }).to_excel(p, index=False, engine="openpyxl")
        result = import_file(p, store)
        assert result.status == IMPORTED
        assert store.all()[0].reply_time_minutes == "12"

    def test_appends_to_existing(self, tmp_path, store):
        p = tmp_path / "leads.csv"
        p.write_text(LEADS_CSV)
        import_file(p, store)
        import_file(p, store)
        assert len(store) == 4


# ---------------------------------------------------------------------------
# Scorecard fallback
# ---------------------------------------------------------------------------

class TestScorecardFallback:
    def test_scorecard_csv(self, tmp_path, store):
        p = tmp_path / "scorecard.csv"
        p.write_text(SCORECARD_CSV)
        result = import_file(p, store, year=2026)

        assert result.status == IMPORTED
        assert result.from_scorecard
        assert result.imported == 3
        dates = sorted(lead.date for lead in store.all())
        assert dates == ["2026-01-06", "2026-01-06", "2026-01-13"]
        assert {lead.lead_source for lead in store.all()} == {"Yelp"}

    def test_custom_markers(self, tmp_path, store):
        p = tmp_path / "scorecard.csv"
        p.write_text(",JAN: 6\nLeads\nYelp,2\nEnd\nAngi,5\n")
        settings = Settings(scorecard=ScorecardSettings(section_start="leads",
                                                        section_end="end"))
        assert import_file(p, store, settings=settings).imported == 2

    def test_not_attempted_when_rows_imported(self, tmp_path, store, monkeypatch):
        calls = []
        monkeypatch.setattr(pipeline, "parse_scorecard",
                            lambda *a, **kw: calls.append(a) or [])
        p = tmp_path / "leads.csv"
        p.write_text(LEADS_CSV)
        import_file(p, store)
        assert calls == []

    def test_not_attempted_for_json(self, tmp_path, store, monkeypatch):
        calls = []
        monkeypatch.setattr(pipeline, "parse_scorecard",
                            lambda *a, **kw: calls.append(a) or [])
        p = tmp_path / "leads.json"
        p.write_text(json.dumps([{"source": "Yelp"}]))
        result = import_file(p, store)
        assert calls == []
        assert result.status == EMPTY


# ---------------------------------------------------------------------------
# Empty and failed imports
# ---------------------------------------------------------------------------

class TestOutcomes:
    def test_header_only(self, tmp_path, store):
        p = tmp_path / "leads.csv"
        p.write_text("Date,Customer\n")
        result = import_file(p, store)
        assert result.status == EMPTY
        assert result.ok
        assert result.message == NO_ROWS_MESSAGE

    def test_empty_file(self, tmp_path, store):
        p = tmp_path / "leads.csv"
        p.write_text("")
        assert import_file(p, store).message == NO_ROWS_MESSAGE

    def test_nothing_accepted(self, tmp_path, store):
        p = tmp_path / "leads.csv"
        p.write_text("Date,Source\n2026-01-06,Yelp\n")
        result = import_file(p, store)
        assert result.status == EMPTY
        assert result.imported == 0
        assert result.rejected == 1
        assert result.message == NONE_ACCEPTED_MESSAGE

    def test_malformed_json(self, tmp_path, store):
        p = tmp_path / "leads.json"
        p.write_text("[{\"date\": ")
        result = import_file(p, store)
        assert result.status == FAILED
        assert not result.ok
        assert result.imported == 0
        assert result.message == FAILED_MESSAGE

    def test_broken_workbook(self, tmp_path, store):
        p = tmp_path / "leads.xlsx"
        p.write_bytes(b"this is not a workbook")
        assert import_file(p, store).status == FAILED
        assert len(store) == 0

    def test_zip_without_workbook_parts(self, tmp_path, store):
        p = tmp_path / "leads.xlsx"
        with zipfile.ZipFile(p, "w") as archive:
            archive.writestr("hello.txt", "x")
        result = import_file(p, store)
        assert result.status == FAILED
        assert result.imported == 0
        assert result.message == FAILED_MESSAGE
        assert len(store) == 0

    def test_corrupt_legacy_workbook(self, tmp_path, store):
        # OLE compound-document signature followed by junk
        p = tmp_path / "leads.xls"
        p.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 600)
        result = import_file(p, store)
        assert result.status == FAILED
        assert result.imported == 0
        assert len(store) == 0

    def test_missing_file(self, tmp_path, store):
        assert import_file(tmp_path / "nope.csv", store).status == FAILED

    def test_partial_write_not_rolled_back(self, tmp_path):
        store = FailingStore(fail_on=2)
        p = tmp_path / "leads.csv"
        p.write_text(LEADS_CSV)
        result = import_file(p, store)
        assert result.status == FAILED
        assert result.imported == 1
        assert len(store) == 1

    def test_logs_outcome(self, tmp_path, store, caplog):
        p = tmp_path / "leads.csv"
        p.write_text(LEADS_CSV)
        with caplog.at_level(logging.INFO, logger="leadtrack.processor.pipeline"):
            import_file(p, store)
        assert "Imported 2 leads from leads.csv" in caplog.text
