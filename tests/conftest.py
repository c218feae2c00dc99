from __future__ import annotations

import copy
import itertools
from typing import Any, Mapping

import pytest

from app.core.errors import RecordNotFoundError
from app.storage import StoredRecord

NOW_MS = 1_760_000_000_000
FIXED_NOW_ISO = "2025-10-09T08:53:20.000+00:00"


def minutes_ago(minutes: float) -> int:
    return int(NOW_MS - minutes * 60_000)


class FakeDocumentStore:
    """In-memory document store that records every call."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self.error: Exception | None = None
        self._ids = itertools.count(1)

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_on and self.error is not None:
            raise self.error

    @property
    def writes(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] in ("create", "update")]

    def now(self) -> str:
        return FIXED_NOW_ISO

    def create_record(self, collection: str, fields: Mapping[str, Any]) -> str:
        self.calls.append(("create", collection))
        self._maybe_fail("create")
        record_id = f"doc-{next(self._ids)}"
        self.collections.setdefault(collection, {})[record_id] = dict(fields)
        return record_id

    def query_records(self, collection, filters, *, order_by=None, descending=False, limit=None):
        self.calls.append(("query", collection))
        self._maybe_fail("query")
        out = [
            StoredRecord(id=record_id, fields=copy.deepcopy(doc))
            for record_id, doc in self.collections.get(collection, {}).items()
            if all(doc.get(k) == v for k, v in filters.items())
        ]
        if order_by:
            out.sort(key=lambda r: r.fields.get(order_by), reverse=descending)
        return out[:limit] if limit is not None else out

    def update_record(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> None:
        self.calls.append(("update", collection))
        self._maybe_fail("update")
        docs = self.collections.get(collection, {})
        if record_id not in docs:
            raise RecordNotFoundError(record_id)
        docs[record_id].update(fields)

    def get_record(self, collection: str, record_id: str):
        self.calls.append(("get", collection))
        self._maybe_fail("get")
        doc = self.collections.get(collection, {}).get(record_id)
        return StoredRecord(id=record_id, fields=copy.deepcopy(doc)) if doc is not None else None


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def clock():
    return lambda: NOW_MS
