"""Database manager with dual SQLite / PostgreSQL backend.

When DATABASE_URL is provided, uses PostgreSQL via psycopg2.
Otherwise, falls back to SQLite for local development.

The _PgConnectionWrapper class bridges psycopg2's cursor-based API
to match sqlite3's conn.execute() pattern, so queries.py is backend
agnostic.

The instance is constructed by the process entry point and passed to
whatever needs the store; there is no module-level connection.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional
import sqlite3


# ---------------------------------------------------------------------------
# PostgreSQL connection wrapper
# ---------------------------------------------------------------------------

class _PgConnectionWrapper:
    """Wraps a psycopg2 connection to match sqlite3's conn.execute() API.

    Also translates ``?`` placeholders (sqlite3) to ``%s`` (psycopg2).
    """

    def __init__(self, pg_conn) -> None:
        self._conn = pg_conn

    def execute(self, sql: str, params=None):
        # Escape literal % so psycopg2 doesn't read them as format specifiers.
        escaped = sql.replace("%", "%%")
        translated = escaped.replace("?", "%s")
        cursor = self._conn.cursor()
        cursor.execute(translated, params or ())
        return cursor


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

# Column types that differ between the two backends.
_DIALECTS = {
    "sqlite": {
        "serial": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "real": "REAL",
        "now": "(datetime('now'))",
        "view": "CREATE VIEW IF NOT EXISTS",
    },
    "postgres": {
        "serial": "SERIAL PRIMARY KEY",
        "real": "DOUBLE PRECISION",
        "now": "''",
        "view": "CREATE OR REPLACE VIEW",
    },
}

# Yes leg falls back to the last traded price when no ask is known.
_DETAILED_PAIRS_SELECT = """
    SELECT
        mp.id AS pair_id,
        p.id AS poly_id,
        k.id AS kalshi_id,
        p.title AS poly_title,
        k.title AS kalshi_title,
        COALESCE(p.best_ask_yes, p.current_yes_price) AS poly_yes,
        p.best_ask_no AS poly_no,
        COALESCE(k.best_ask_yes, k.current_yes_price) AS kalshi_yes,
        k.best_ask_no AS kalshi_no,
        p.active AS poly_active,
        k.active AS kalshi_active,
        p.end_date AS poly_end_date,
        k.end_date AS kalshi_end_date,
        mp.match_type AS match_type,
        mp.confidence_score AS confidence_score,
        mp.created_at AS created_at
    FROM market_pairs mp
    JOIN markets p ON p.id = mp.poly_market_id
    JOIN markets k ON k.id = mp.kalshi_market_id
"""

_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS markets (
        id TEXT PRIMARY KEY,
        platform TEXT NOT NULL,
        external_id TEXT,
        condition_id TEXT,
        group_id TEXT,
        source_url TEXT,
        title TEXT NOT NULL DEFAULT '',
        image_url TEXT,
        active INTEGER NOT NULL DEFAULT 1,
        status TEXT,
        winning_outcome TEXT,
        current_yes_price {real},
        best_ask_yes {real},
        best_ask_no {real},
        volume_usd {real},
        end_date TEXT,
        price_history TEXT,
        updated_at TEXT
    )""",
    """CREATE TABLE IF NOT EXISTS market_pairs (
        id {serial},
        poly_market_id TEXT NOT NULL REFERENCES markets(id),
        kalshi_market_id TEXT NOT NULL REFERENCES markets(id),
        match_type TEXT NOT NULL DEFAULT 'Direct',
        confidence_score {real} DEFAULT 0.0,
        created_at TEXT DEFAULT {now}
    )""",
    """CREATE TABLE IF NOT EXISTS agent_logs (
        id {serial},
        agent_name TEXT NOT NULL,
        status TEXT NOT NULL,
        started_at TEXT,
        completed_at TEXT,
        duration_seconds {real},
        items_processed INTEGER DEFAULT 0,
        summary TEXT DEFAULT '',
        error TEXT
    )""",
    "CREATE INDEX IF NOT EXISTS idx_markets_platform_active ON markets(platform, active)",
    "CREATE INDEX IF NOT EXISTS idx_market_pairs_legs "
    "ON market_pairs(poly_market_id, kalshi_market_id)",
    "CREATE INDEX IF NOT EXISTS idx_agent_logs_name ON agent_logs(agent_name, started_at)",
)


def schema_statements(backend: str) -> List[str]:
    """DDL for ``backend``, one statement per entry, view last."""
    dialect = _DIALECTS[backend]
    statements = [sql.format(**dialect) for sql in _SCHEMA]
    statements.append(f"{dialect['view']} detailed_market_pairs AS {_DETAILED_PAIRS_SELECT}")
    return statements


# ---------------------------------------------------------------------------
# Database manager
# ---------------------------------------------------------------------------

class DatabaseManager:
    def __init__(self, db_path: Optional[Path] = None,
                 database_url: Optional[str] = None) -> None:
        self.database_url = database_url
        self.db_path = db_path
        self._backend = "postgres" if database_url else "sqlite"
        if self._backend == "sqlite" and db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @property
    def backend(self) -> str:
        return self._backend

    @contextmanager
    def _connect(self):
        """Yield a connection-like object for the active backend.

        Commits on clean exit, rolls back and re-raises otherwise.
        """
        if self._backend == "postgres":
            import psycopg2
            from psycopg2.extras import RealDictCursor

            raw = psycopg2.connect(self.database_url, cursor_factory=RealDictCursor)
            conn = _PgConnectionWrapper(raw)
        else:
            # Repair checks run from worker threads; each call opens its own connection.
            raw = sqlite3.connect(str(self.db_path), timeout=10)
            raw.row_factory = sqlite3.Row
            raw.execute("PRAGMA journal_mode=WAL")
            raw.execute("PRAGMA foreign_keys=ON")
            conn = raw
        try:
            yield conn
            raw.commit()
        except Exception:
            raw.rollback()
            raise
        finally:
            raw.close()

    def _returning_id(self, sql: str) -> str:
        """Append ``RETURNING id`` to an INSERT for PostgreSQL."""
        if self._backend == "postgres":
            return sql.rstrip() + " RETURNING id"
        return sql

    def _last_id(self, cursor) -> int:
        if self._backend == "postgres":
            row = cursor.fetchone()
            if row is None:
                return 0
            return row["id"] if isinstance(row, dict) else row[0]
        return cursor.lastrowid

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            for statement in schema_statements(self._backend):
                conn.execute(statement)
