"""Named query functions for all database operations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .database import DatabaseManager
from .models import AgentLog, Market, MarketPair


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class StoreWriteError(Exception):
    """A persisted update failed (connectivity, constraint violation, ...)."""


class MarketQueries:
    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    # ── Markets ──────────────────────────────────────────────

    def upsert_market(self, market: Market) -> str:
        """Insert or update a market row, returning its id."""
        with self.db._connect() as conn:
            conn.execute("""
                INSERT INTO markets (id, platform, external_id, condition_id,
                    group_id, source_url, title, image_url, active, status,
                    winning_outcome, current_yes_price, best_ask_yes, best_ask_no,
                    volume_usd, end_date, price_history, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    platform=excluded.platform,
                    external_id=excluded.external_id,
                    condition_id=excluded.condition_id,
                    group_id=excluded.group_id,
                    source_url=excluded.source_url,
                    title=excluded.title,
                    image_url=excluded.image_url,
                    active=excluded.active,
                    status=excluded.status,
                    winning_outcome=excluded.winning_outcome,
                    current_yes_price=excluded.current_yes_price,
                    best_ask_yes=excluded.best_ask_yes,
                    best_ask_no=excluded.best_ask_no,
                    volume_usd=excluded.volume_usd,
                    end_date=excluded.end_date,
                    price_history=excluded.price_history,
                    updated_at=excluded.updated_at
            """, (
                market.id, market.platform, market.external_id,
                market.condition_id, market.group_id, market.source_url,
                market.title, market.image_url, 1 if market.active else 0,
                market.status, market.winning_outcome, market.current_yes_price,
                market.best_ask_yes, market.best_ask_no, market.volume_usd,
                market.end_date, market.price_history_json(), _now(),
            ))
            return market.id

    def get_market_by_id(self, market_id: str) -> Optional[Dict[str, Any]]:
        with self.db._connect() as conn:
            row = conn.execute("SELECT * FROM markets WHERE id=?", (market_id,)).fetchone()
            return dict(row) if row else None

    def get_markets_by_ids(self, market_ids: Iterable[str]) -> List[Dict[str, Any]]:
        ids = list(market_ids)
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        with self.db._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM markets WHERE id IN ({placeholders})", tuple(ids),
            ).fetchall()
            return [dict(r) for r in rows]

    def get_active_markets(self, platform: Optional[str] = None) -> List[Dict[str, Any]]:
        """Markets still believed tradable, largest volume first."""
        with self.db._connect() as conn:
            if platform:
                rows = conn.execute(
                    "SELECT * FROM markets WHERE platform=? AND active=1 "
                    "ORDER BY volume_usd DESC",
                    (platform,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM markets WHERE active=1 ORDER BY volume_usd DESC",
                ).fetchall()
            return [dict(r) for r in rows]

    def mark_market_resolved(self, market_id: str,
                             winning_outcome: Optional[str] = None) -> bool:
        """Flip a market to resolved in a single UPDATE.

        ``winning_outcome`` is written only when given. Rows that are
        already inactive and resolved are left untouched; returns whether
        a row changed. Driver errors are raised as ``StoreWriteError``.
        """
        assignments = ["active=0", "status='resolved'", "updated_at=?"]
        params: List[Any] = [_now()]
        if winning_outcome is not None:
            assignments.append("winning_outcome=?")
            params.append(winning_outcome)
        params.append(market_id)

        sql = (
            f"UPDATE markets SET {', '.join(assignments)} "
            "WHERE id=? AND NOT (active=0 AND status='resolved')"
        )
        try:
            with self.db._connect() as conn:
                cursor = conn.execute(sql, tuple(params))
                return cursor.rowcount > 0
        except Exception as exc:
            raise StoreWriteError(str(exc)) from exc

    # ── Market Pairs ─────────────────────────────────────────

    def insert_pair(self, poly_market_id: str, kalshi_market_id: str,
                    match_type: str = "Direct",
                    confidence_score: float = 0.0) -> int:
        with self.db._connect() as conn:
            cursor = conn.execute(self.db._returning_id("""
                INSERT INTO market_pairs (poly_market_id, kalshi_market_id,
                    match_type, confidence_score, created_at)
                VALUES (?, ?, ?, ?, ?)
            """), (poly_market_id, kalshi_market_id, match_type,
                   confidence_score, _now()))
            return self.db._last_id(cursor)

    def get_detailed_pairs(self) -> List[MarketPair]:
        """All pairs from the ``detailed_market_pairs`` view, in pair-id order."""
        with self.db._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM detailed_market_pairs ORDER BY pair_id",
            ).fetchall()
            return [MarketPair.from_row(dict(r)) for r in rows]

    # ── Agent Logs ───────────────────────────────────────────

    def insert_agent_log(self, log: AgentLog) -> int:
        with self.db._connect() as conn:
            cursor = conn.execute(self.db._returning_id("""
                INSERT INTO agent_logs (agent_name, status, started_at,
                    completed_at, duration_seconds, items_processed, summary, error)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """), (
                log.agent_name, log.status, log.started_at,
                log.completed_at, log.duration_seconds,
                log.items_processed, log.summary, log.error,
            ))
            return self.db._last_id(cursor)

    def get_agent_logs(self, agent_name: Optional[str] = None,
                       limit: int = 50) -> List[Dict[str, Any]]:
        with self.db._connect() as conn:
            if agent_name:
                rows = conn.execute(
                    "SELECT * FROM agent_logs WHERE agent_name=? ORDER BY started_at DESC LIMIT ?",
                    (agent_name, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM agent_logs ORDER BY started_at DESC LIMIT ?",
                    (limit,),
                ).fetchall()
            return [dict(r) for r in rows]
