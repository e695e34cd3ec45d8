from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

from campaigndocs.util import now_iso, to_float


SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    sort_order REAL NOT NULL DEFAULT 0,
    data TEXT NOT NULL,
    updated_at TEXT,
    PRIMARY KEY (collection, id)
)
"""


def connect(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def ensure_schema(db_path: str) -> None:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    with connect(db_path) as conn:
        conn.execute(SCHEMA)
        conn.commit()


def _require(db_path: str) -> None:
    if not Path(db_path).exists():
        raise FileNotFoundError(f"SQLite db not found: {db_path}")


def put_record(db_path: str, collection: str, doc: dict[str, Any], sort_order: Any = 0) -> None:
    record_id = str(doc.get("id") or "").strip()
    if not record_id:
        raise ValueError(f"record in {collection} has no id")
    with connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO records (collection, id, sort_order, data, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (collection, id) DO UPDATE SET
              sort_order = excluded.sort_order,
              data = excluded.data,
              updated_at = excluded.updated_at
            """,
            (collection, record_id, to_float(sort_order), json.dumps(doc, separators=(",", ":")), now_iso()),
        )
        conn.commit()


def list_records(db_path: str, collection: str) -> list[dict[str, Any]]:
    _require(db_path)
    with connect(db_path) as conn:
        cur = conn.execute(
            "SELECT data FROM records WHERE collection = ? ORDER BY sort_order, rowid",
            (collection,),
        )
        return [json.loads(r["data"]) for r in cur.fetchall()]


def get_record(db_path: str, collection: str, record_id: str) -> dict[str, Any] | None:
    _require(db_path)
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT data FROM records WHERE collection = ? AND id = ?",
            (collection, record_id),
        ).fetchone()
    return json.loads(row["data"]) if row else None


def update_record(db_path: str, collection: str, record_id: str, updates: dict[str, Any]) -> bool:
    _require(db_path)
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT data FROM records WHERE collection = ? AND id = ?",
            (collection, record_id),
        ).fetchone()
        if row is None:
            return False
        data = json.loads(row["data"])
        data.update(updates)
        conn.execute(
            "UPDATE records SET data = ?, updated_at = ? WHERE collection = ? AND id = ?",
            (json.dumps(data, separators=(",", ":")), now_iso(), collection, record_id),
        )
        conn.commit()
    return True
