import hashlib
import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from app.core.config import settings

ACTIVE_LEAK_INDEX_PREFIX = "ux_active_leak_"

def get_conn(db_path: Optional[Path] = None) -> sqlite3.Connection:
    path = Path(db_path or settings.DATABASE_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn

@contextmanager
def connection(db_path: Optional[Path] = None) -> Iterator[sqlite3.Connection]:
    conn = get_conn(db_path)
    try:
        with conn:
            yield conn
    finally:
        conn.close()

def active_leak_index(collection: str) -> str:
    # one index per leak collection, so renaming the collection adds a new one
    safe = re.sub(r"[^A-Za-z0-9_]", "_", collection)
    digest = hashlib.sha1(collection.encode("utf-8")).hexdigest()[:8]
    return f"{ACTIVE_LEAK_INDEX_PREFIX}{safe}_{digest}"

def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"

def init_db(db_path: Optional[Path] = None, leaks_collection: Optional[str] = None):
    collection = leaks_collection or settings.LEAKS_COLLECTION
    leaks = _sql_literal(collection)
    with connection(db_path) as conn:
        conn.execute("""
        CREATE TABLE IF NOT EXISTS documents (
            collection TEXT NOT NULL,
            id TEXT NOT NULL,
            data TEXT NOT NULL,
            created_at TEXT NOT NULL,
            PRIMARY KEY (collection, id)
        );
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_documents_created ON documents(collection, created_at);")
        # one active leak per asset, enforced by the store itself
        conn.execute(f"""
        CREATE UNIQUE INDEX IF NOT EXISTS {active_leak_index(collection)}
        ON documents(collection, json_extract(data, '$.asset_id'))
        WHERE collection = {leaks} AND json_extract(data, '$.status') = 'active';
        """)
