"""Document store port and its sqlite adapter.

The leak synchronizer only talks to :class:`DocumentStore`; any backend that
can create, query and update JSON-like documents by collection name fits.
"""

from __future__ import annotations

import json
import re
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol

from app.core.errors import DuplicateActiveLeakError, RecordNotFoundError, StorageError
from app.db import ACTIVE_LEAK_INDEX_PREFIX, connection

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


@dataclass(frozen=True)
class StoredRecord:
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)


class DocumentStore(Protocol):
    def create_record(self, collection: str, fields: Mapping[str, Any]) -> str: ...

    def query_records(
        self,
        collection: str,
        filters: Mapping[str, Any],
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[StoredRecord]: ...

    def update_record(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> None: ...

    def get_record(self, collection: str, record_id: str) -> Optional[StoredRecord]: ...

    def now(self) -> str: ...


def _json_path(name: str) -> str:
    if not _FIELD_RE.match(name):
        raise ValueError(f"Invalid field name: {name!r}")
    return f"$.{name}"


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as exc:
        if ACTIVE_LEAK_INDEX_PREFIX in str(exc):
            raise DuplicateActiveLeakError("An active leak is already open for this asset.") from exc
        raise StorageError(f"Integrity failure: {exc}") from exc
    except sqlite3.Error as exc:
        raise StorageError(f"Document store failure: {exc}") from exc


class SqliteDocumentStore:
    """JSON documents in one sqlite table, keyed by (collection, id)."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path

    def now(self) -> str:
        return utc_now_iso()

    def create_record(self, collection: str, fields: Mapping[str, Any]) -> str:
        record_id = uuid.uuid4().hex
        with _translate_errors(), connection(self.db_path) as conn:
            conn.execute(
                "INSERT INTO documents (collection, id, data, created_at) VALUES (?, ?, ?, ?)",
                (collection, record_id, json.dumps(dict(fields)), self.now()),
            )
        return record_id

    def get_record(self, collection: str, record_id: str) -> Optional[StoredRecord]:
        with _translate_errors(), connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT id, data FROM documents WHERE collection = ? AND id = ?",
                (collection, record_id),
            ).fetchone()
        if row is None:
            return None
        return StoredRecord(id=row["id"], fields=json.loads(row["data"]))

    def query_records(
        self,
        collection: str,
        filters: Mapping[str, Any],
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[StoredRecord]:
        sql = ["SELECT id, data FROM documents WHERE collection = ?"]
        params: List[Any] = [collection]
        for name, value in filters.items():
            sql.append("AND json_extract(data, ?) = ?")
            params.extend([_json_path(name), value])
        if order_by:
            sql.append(f"ORDER BY json_extract(data, ?) {'DESC' if descending else 'ASC'}, created_at")
            params.append(_json_path(order_by))
        else:
            sql.append("ORDER BY created_at")
        if limit is not None:
            sql.append("LIMIT ?")
            params.append(int(limit))

        with _translate_errors(), connection(self.db_path) as conn:
            rows = conn.execute(" ".join(sql), params).fetchall()
        return [StoredRecord(id=r["id"], fields=json.loads(r["data"])) for r in rows]

    def update_record(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> None:
        with _translate_errors(), connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND id = ?",
                (collection, record_id),
            ).fetchone()
            if row is None:
                raise RecordNotFoundError(f"No document {record_id!r} in {collection!r}.")
            merged = json.loads(row["data"])
            merged.update(fields)
            conn.execute(
                "UPDATE documents SET data = ? WHERE collection = ? AND id = ?",
                (json.dumps(merged), collection, record_id),
            )
