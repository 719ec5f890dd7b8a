"""Lead storage.

The dashboard keeps leads in a keyed document collection per account.  This
module defines that contract and two implementations: an in-memory store
(tests, one-shot CLI runs) and a JSON-file store.

Documents are kept exactly as written.  Reads go through ``Lead.from_dict``
so legacy documents pick up their derived fields on the way out.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from leadtrack.schema.loader import MAX_DELETE_BATCH
from leadtrack.schema.models import Lead, LeadInput

logger = logging.getLogger(__name__)

Subscriber = Callable[[list[Lead]], None]


def batches(items: list, size: int) -> list[list]:
    """Split *items* into consecutive chunks of at most *size*."""
    if size < 1:
        raise ValueError("Batch size must be positive")
    return [items[i:i + size] for i in range(0, len(items), size)]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LeadStore:
    """Keyed lead collection with change subscriptions.

    Subclasses persist committed state by overriding ``_commit``.
    """

    def __init__(self, documents: dict[str, dict] | None = None,
                 delete_batch_size: int = MAX_DELETE_BATCH):
        if not 1 <= delete_batch_size <= MAX_DELETE_BATCH:
            raise ValueError(
                f"delete_batch_size must be between 1 and {MAX_DELETE_BATCH}"
            )
        self._documents: dict[str, dict] = dict(documents or {})
        self._subscribers: list[Subscriber] = []
        self.delete_batch_size = delete_batch_size

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def all(self) -> list[Lead]:
        """Every lead, newest date first."""
        leads = [Lead.from_dict(doc, id=doc_id) for doc_id, doc in self._documents.items()]
        return sorted(leads, key=lambda lead: lead.date, reverse=True)

    def get(self, lead_id: str) -> Lead:
        return Lead.from_dict(self._documents[lead_id], id=lead_id)

    def __len__(self) -> int:
        return len(self._documents)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call *callback* with the full lead set now and after every change.

        Returns a function that cancels the subscription.
        """
        self._subscribers.append(callback)
        callback(self.all())

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, lead: LeadInput) -> str:
        """Append a new document and return its generated id."""
        lead_id = uuid.uuid4().hex
        now = _now()
        document = lead.to_dict()
        document["createdAt"] = now
        document["updatedAt"] = now
        self._documents[lead_id] = document
        self._commit()
        return lead_id

    def update(self, lead_id: str, lead: LeadInput) -> None:
        """Replace every lead field of an existing document.

        Raises:
            KeyError: If *lead_id* does not exist.
        """
        if lead_id not in self._documents:
            raise KeyError(lead_id)
        previous = self._documents[lead_id]
        document = lead.to_dict()
        if "createdAt" in previous:
            document["createdAt"] = previous["createdAt"]
        document["updatedAt"] = _now()
        self._documents[lead_id] = document
        self._commit()

    def delete(self, lead_id: str) -> None:
        if lead_id not in self._documents:
            raise KeyError(lead_id)
        del self._documents[lead_id]
        self._commit()

    def delete_all(self) -> int:
        """Delete every document, committing at most one batch at a time.

        Returns the number of documents deleted.
        """
        deleted = 0
        for chunk in batches(list(self._documents), self.delete_batch_size):
            for lead_id in chunk:
                del self._documents[lead_id]
            self._commit()
            deleted += len(chunk)
            logger.debug("Committed delete batch of %d", len(chunk))
        return deleted

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        self._persist()
        if self._subscribers:
            snapshot = self.all()
            for callback in list(self._subscribers):
                callback(snapshot)

    def _persist(self) -> None:
        """Hook for durable stores."""


class InMemoryLeadStore(LeadStore):
    """Store that lives only as long as the process."""


class JsonLeadStore(LeadStore):
    """Store persisted to a JSON file after every committed change."""

    def __init__(self, path: str | Path, delete_batch_size: int = MAX_DELETE_BATCH):
        self.path = Path(path)
        super().__init__(self._load(self.path), delete_batch_size=delete_batch_size)

    @staticmethod
    def _load(path: Path) -> dict[str, dict]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Lead store {path} is not valid JSON: {exc}") from exc
        leads = data.get("leads", {}) if isinstance(data, dict) else None
        if not isinstance(leads, dict):
            raise ValueError(f"Lead store {path} must hold a 'leads' mapping")
        return {str(k): dict(v) for k, v in leads.items() if isinstance(v, dict)}

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps({"leads": self._documents}, indent=2, sort_keys=True),
            encoding="utf-8",
        )
