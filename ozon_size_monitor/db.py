"""SQLite persistence layer for the size monitor.

Two tables: ``chats`` holds notification recipients, ``products`` holds the
last known canonical state (baseline) of every offer ever seen.
"""

from __future__ import annotations

import datetime as _dt
import sqlite3
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .config import DB_PATH
from .dimensions import CanonicalDimensions
from .utils import chunked

# SQLite caps bound parameters per statement.
_IN_CHUNK = 500


@dataclass(frozen=True)
class ProductBaseline:
    offer_id: str
    product_id: int
    name: str
    source_updated_at: str
    dimensions: CanonicalDimensions
    dim_hash: str
    attr_hash: Optional[str] = None
    last_seen_at: Optional[str] = None

    def touched(self, now: str) -> "ProductBaseline":
        """Same baseline with only last_seen_at refreshed."""
        return replace(self, last_seen_at=now)


def utcnow() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="seconds")


def _get_connection() -> sqlite3.Connection:
    Path(DB_PATH).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH, timeout=30)
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def init_db() -> None:
    """Create tables if they don't exist."""
    with _get_connection() as conn:
        conn.execute("""
          CREATE TABLE IF NOT EXISTS chats (
            chat_id TEXT PRIMARY KEY
          )
        """)
        conn.execute("""
          CREATE TABLE IF NOT EXISTS products (
            offer_id     TEXT PRIMARY KEY,
            product_id   INTEGER,
            name         TEXT,
            updated_at   TEXT,
            dim_hash     TEXT,
            depth_mm     REAL,
            width_mm     REAL,
            height_mm    REAL,
            weight_g     REAL,
            attr_hash    TEXT,
            last_seen_at TEXT
          )
        """)

        # --- Migration guard for DBs created before attribute tracking ---
        try:
            conn.execute("ALTER TABLE products ADD COLUMN attr_hash TEXT")
        except sqlite3.OperationalError:
            pass  # column already exists

        # Supports the unchanged-updated_at fast path
        conn.execute("CREATE INDEX IF NOT EXISTS idx_products_updated_at ON products(updated_at)")
        conn.commit()


# ---- Recipients --------------------------------------------------------------

def register_recipient(chat_id: str | int) -> bool:
    """Add a recipient. Returns True if it was not registered before."""
    with _get_connection() as conn:
        cur = conn.execute("INSERT OR IGNORE INTO chats (chat_id) VALUES (?)", (str(chat_id),))
        conn.commit()
        return cur.rowcount > 0


def list_recipients() -> List[str]:
    with _get_connection() as conn:
        cur = conn.execute("SELECT chat_id FROM chats ORDER BY rowid")
        return [r[0] for r in cur.fetchall()]


# ---- Baselines ---------------------------------------------------------------

_SELECT_COLUMNS = (
    "offer_id, product_id, name, updated_at, dim_hash, "
    "depth_mm, width_mm, height_mm, weight_g, attr_hash, last_seen_at"
)


def _row_to_baseline(row: Sequence) -> ProductBaseline:
    offer_id, product_id, name, updated_at, dim_hash, d, w, h, wg, attr_hash, last_seen = row
    return ProductBaseline(
        offer_id=offer_id,
        product_id=int(product_id or 0),
        name=name or "",
        source_updated_at=updated_at or "",
        dimensions=CanonicalDimensions(depth_mm=d, width_mm=w, height_mm=h, weight_g=wg),
        dim_hash=dim_hash or "",
        attr_hash=attr_hash,
        last_seen_at=last_seen,
    )


def get_baselines(offer_ids: Sequence[str]) -> Dict[str, ProductBaseline]:
    """Fetch baselines for many offers, keyed by offer_id. Missing offers are absent."""
    result: Dict[str, ProductBaseline] = {}
    with _get_connection() as conn:
        for part in chunked([str(o) for o in offer_ids], _IN_CHUNK):
            marks = ",".join("?" for _ in part)
            cur = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM products WHERE offer_id IN ({marks})",
                part,
            )
            for row in cur.fetchall():
                b = _row_to_baseline(row)
                result[b.offer_id] = b
    return result


def upsert_baselines(baselines: Iterable[ProductBaseline]) -> int:
    """
    Insert or fully overwrite baselines in a single transaction.
    Either every row becomes visible or none does.
    """
    rows = []
    for b in baselines:
        dims = b.dimensions
        rows.append((
            str(b.offer_id),
            int(b.product_id or 0),
            b.name or "",
            b.source_updated_at or "",
            b.dim_hash,
            dims.depth_mm,
            dims.width_mm,
            dims.height_mm,
            dims.weight_g,
            b.attr_hash,
            b.last_seen_at or utcnow(),
        ))
    if not rows:
        return 0

    with _get_connection() as conn:
        conn.executemany("""
            INSERT INTO products (
              offer_id, product_id, name, updated_at, dim_hash,
              depth_mm, width_mm, height_mm, weight_g, attr_hash, last_seen_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(offer_id) DO UPDATE SET
              product_id   = excluded.product_id,
              name         = excluded.name,
              updated_at   = excluded.updated_at,
              dim_hash     = excluded.dim_hash,
              depth_mm     = excluded.depth_mm,
              width_mm     = excluded.width_mm,
              height_mm    = excluded.height_mm,
              weight_g     = excluded.weight_g,
              attr_hash    = excluded.attr_hash,
              last_seen_at = excluded.last_seen_at
        """, rows)
        conn.commit()
    return len(rows)


def count_baselines() -> int:
    with _get_connection() as conn:
        return int(conn.execute("SELECT COUNT(1) FROM products").fetchone()[0])


__all__ = [
    "ProductBaseline",
    "utcnow",
    "init_db",
    "register_recipient",
    "list_recipients",
    "get_baselines",
    "upsert_baselines",
    "count_baselines",
]
