"""Tests for the lead stores."""

import json

import pytest

from leadtrack.schema.models import Lead, LeadInput
from leadtrack.store import (
    InMemoryLeadStore,
    JsonLeadStore,
    LeadStore,
    batches,
)


def _lead(date="2026-01-06", customer="Ada", **kwargs):
    return LeadInput(date=date, customer=customer, **kwargs)


class CommitCounter(InMemoryLeadStore):
    """Records the number of documents left after every commit."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.commits = []

    def _commit(self):
        self.commits.append(len(self._documents))
        super()._commit()


# ---------------------------------------------------------------------------
# batches
# ---------------------------------------------------------------------------

class TestBatches:
    def test_even_split(self):
        assert batches([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_remainder(self):
        assert [len(b) for b in batches(list(range(950)), 400)] == [400, 400, 150]

    def test_empty(self):
        assert batches([], 400) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            batches([1], 0)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

class TestCrud:
    def test_create_and_get(self):
        store = InMemoryLeadStore()
        lead_id = store.create(_lead(sold="Yes", job_won="Yes"))
        lead = store.get(lead_id)
        assert isinstance(lead, Lead)
        assert lead.id == lead_id
        assert lead.customer == "Ada"
        assert lead.sold == "Yes"
        assert len(store) == 1

    def test_ids_unique(self):
        store = InMemoryLeadStore()
        assert store.create(_lead()) != store.create(_lead())

    def test_timestamps(self):
        store = InMemoryLeadStore()
        lead_id = store.create(_lead())
        doc = store._documents[lead_id]
        assert doc["createdAt"] == doc["updatedAt"]

    def test_update_replaces_fields(self):
        store = InMemoryLeadStore()
        lead_id = store.create(_lead(comments="first"))
        created = store._documents[lead_id]["createdAt"]
        store.update(lead_id, _lead(customer="Bob"))
        lead = store.get(lead_id)
        assert lead.customer == "Bob"
        assert lead.comments == ""
        assert store._documents[lead_id]["createdAt"] == created

    def test_update_unknown(self):
        with pytest.raises(KeyError):
            InMemoryLeadStore().update("missing", _lead())

    def test_delete(self):
        store = InMemoryLeadStore()
        lead_id = store.create(_lead())
        store.delete(lead_id)
        assert len(store) == 0
        with pytest.raises(KeyError):
            store.get(lead_id)

    def test_delete_unknown(self):
        with pytest.raises(KeyError):
            InMemoryLeadStore().delete("missing")

    def test_all_sorted_newest_first(self):
        store = InMemoryLeadStore()
        for date in ["2026-01-06", "2026-02-01", "2025-12-31"]:
            store.create(_lead(date=date))
        assert [lead.date for lead in store.all()] == [
            "2026-02-01", "2026-01-06", "2025-12-31",
        ]

    def test_documents_kept_as_written(self):
        store = InMemoryLeadStore({"old": {"date": "2025-01-01", "jobWon": "Yes"}})
        lead = store.get("old")
        assert lead.sold == "Yes"
        assert lead.booked == "Yes"
        assert "sold" not in store._documents["old"]

    def test_batch_size_bounds(self):
        with pytest.raises(ValueError):
            LeadStore(delete_batch_size=401)
        with pytest.raises(ValueError):
            LeadStore(delete_batch_size=0)


# ---------------------------------------------------------------------------
# delete_all
# ---------------------------------------------------------------------------

class TestDeleteAll:
    def test_batches_of_400(self):
        docs = {f"id{i}": {"date": "2026-01-06", "customer": f"C{i}"} for i in range(950)}
        store = CommitCounter(docs)
        assert store.delete_all() == 950
        assert store.commits == [550, 150, 0]
        assert len(store) == 0

    def test_smaller_batch_size(self):
        docs = {f"id{i}": {} for i in range(5)}
        store = CommitCounter(docs, delete_batch_size=2)
        assert store.delete_all() == 5
        assert store.commits == [3, 1, 0]

    def test_empty_store(self):
        store = CommitCounter()
        assert store.delete_all() == 0
        assert store.commits == []


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

class TestSubscribe:
    def test_initial_and_change_notifications(self):
        store = InMemoryLeadStore()
        seen = []
        store.subscribe(lambda leads: seen.append(len(leads)))
        store.create(_lead())
        store.create(_lead())
        assert seen == [0, 1, 2]

    def test_unsubscribe(self):
        store = InMemoryLeadStore()
        seen = []
        unsubscribe = store.subscribe(lambda leads: seen.append(len(leads)))
        unsubscribe()
        store.create(_lead())
        assert seen == [0]
        unsubscribe()

    def test_notified_per_delete_batch(self):
        docs = {f"id{i}": {} for i in range(3)}
        store = InMemoryLeadStore(docs, delete_batch_size=2)
        seen = []
        store.subscribe(lambda leads: seen.append(len(leads)))
        store.delete_all()
        assert seen == [3, 1, 0]


# ---------------------------------------------------------------------------
# JsonLeadStore
# ---------------------------------------------------------------------------

class TestJsonLeadStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "data" / "leads.json"
        store = JsonLeadStore(path)
        lead_id = store.create(_lead(lead_source="Yelp"))

        reopened = JsonLeadStore(path)
        assert len(reopened) == 1
        assert reopened.get(lead_id).lead_source == "Yelp"

    def test_file_layout(self, tmp_path):
        path = tmp_path / "leads.json"
        store = JsonLeadStore(path)
        lead_id = store.create(_lead())
        data = json.loads(path.read_text())
        assert list(data["leads"]) == [lead_id]
        assert data["leads"][lead_id]["customer"] == "Ada"

    def test_missing_file_is_empty(self, tmp_path):
        store = JsonLeadStore(tmp_path / "none.json")
        assert store.all() == []
        assert not (tmp_path / "none.json").exists()

    def test_legacy_document(self, tmp_path):
        path = tmp_path / "leads.json"
        path.write_text(json.dumps({"leads": {"a": {
            "date": "2025-06-01", "customer": "Ada", "jobWon": "Yes",
            "replyTime": "(Weekend): 214",
        }}}))
        lead = JsonLeadStore(path).get("a")
        assert (lead.sold, lead.booked) == ("Yes", "Yes")
        assert lead.reply_time_category == "Weekend"
        assert lead.reply_time_minutes == "214"

    def test_delete_all_persists(self, tmp_path):
        path = tmp_path / "leads.json"
        store = JsonLeadStore(path, delete_batch_size=1)
        store.create(_lead())
        store.create(_lead())
        store.delete_all()
        assert json.loads(path.read_text()) == {"leads": {}}

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "leads.json"
        path.write_text("{")
        with pytest.raises(ValueError, match="not valid JSON"):
            JsonLeadStore(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "leads.json"
        path.write_text(json.dumps({"leads": []}))
        with pytest.raises(ValueError, match="'leads' mapping"):
            JsonLeadStore(path)
