"""Tests for database schema creation and query functions.

Supports both SQLite (default) and PostgreSQL backends.
Set DATABASE_URL env var to run tests against PostgreSQL.
"""

import os
from unittest.mock import patch

import pytest

from db.database import DatabaseManager, schema_statements
from db.queries import MarketQueries, StoreWriteError
from db.models import AgentLog, Market


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path):
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        mgr = DatabaseManager(database_url=database_url)
        yield mgr
        with mgr._connect() as conn:
            for table in ["agent_logs", "market_pairs", "markets"]:
                conn.execute(f"TRUNCATE {table} CASCADE")
    else:
        mgr = DatabaseManager(db_path=db_path)
        yield mgr
        # Close WAL connections to avoid Windows PermissionError on cleanup
        try:
            with mgr._connect() as conn:
                conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        except Exception:
            pass


@pytest.fixture
def queries(db):
    return MarketQueries(db)


def _market(market_id="m1", platform="Kalshi", **fields):
    defaults = dict(external_id=f"EXT-{market_id}", title=f"Market {market_id}")
    defaults.update(fields)
    return Market(id=market_id, platform=platform, **defaults)


class TestDatabaseSchema:
    def test_schema_creates_tables_and_view(self, db):
        with db._connect() as conn:
            if db.backend == "postgres":
                rows = conn.execute(
                    "SELECT table_name AS name FROM information_schema.tables "
                    "WHERE table_schema = 'public'"
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT name FROM sqlite_master WHERE type IN ('table', 'view')"
                ).fetchall()
            names = {r["name"] for r in rows}

        assert {"markets", "market_pairs", "agent_logs", "detailed_market_pairs"} <= names

    def test_schema_is_idempotent(self, db_path):
        if os.getenv("DATABASE_URL"):
            pytest.skip("SQLite only")
        DatabaseManager(db_path=db_path)
        DatabaseManager(db_path=db_path)

    def test_postgres_dialect(self):
        statements = schema_statements("postgres")
        ddl = "\n".join(statements)

        assert "SERIAL PRIMARY KEY" in ddl
        assert "AUTOINCREMENT" not in ddl
        assert "DOUBLE PRECISION" in ddl
        assert statements[-1].startswith("CREATE OR REPLACE VIEW detailed_market_pairs")


class TestMarketQueries:
    def test_upsert_and_get(self, queries):
        queries.upsert_market(_market(current_yes_price=0.4,
                                      price_history=[("2025-01-01T00:00:00Z", 0.35)]))
        row = queries.get_market_by_id("m1")

        assert row["platform"] == "Kalshi"
        assert row["active"] == 1
        assert row["current_yes_price"] == 0.4
        assert row["updated_at"] is not None
        assert Market.from_row(row).price_history == [("2025-01-01T00:00:00Z", 0.35)]

    def test_upsert_updates_existing(self, queries):
        queries.upsert_market(_market(title="Old"))
        queries.upsert_market(_market(title="New"))
        assert queries.get_market_by_id("m1")["title"] == "New"

    def test_missing_market(self, queries):
        assert queries.get_market_by_id("nope") is None

    def test_get_active_markets(self, queries):
        queries.upsert_market(_market("a", volume_usd=10))
        queries.upsert_market(_market("b", volume_usd=500))
        queries.upsert_market(_market("c", platform="Polymarket", volume_usd=50))
        queries.upsert_market(_market("d", active=False, status="resolved"))

        assert [m["id"] for m in queries.get_active_markets()] == ["b", "c", "a"]
        assert [m["id"] for m in queries.get_active_markets("Kalshi")] == ["b", "a"]

    def test_get_markets_by_ids(self, queries):
        queries.upsert_market(_market("a"))
        queries.upsert_market(_market("b"))
        assert {m["id"] for m in queries.get_markets_by_ids(["a", "b", "z"])} == {"a", "b"}
        assert queries.get_markets_by_ids([]) == []


class TestMarkMarketResolved:
    def test_sets_terminal_fields(self, queries):
        queries.upsert_market(_market())
        assert queries.mark_market_resolved("m1", "Yes") is True

        row = queries.get_market_by_id("m1")
        assert row["active"] == 0
        assert row["status"] == "resolved"
        assert row["winning_outcome"] == "Yes"

    def test_without_winner_leaves_outcome(self, queries):
        queries.upsert_market(_market(winning_outcome="YES"))
        queries.mark_market_resolved("m1")
        assert queries.get_market_by_id("m1")["winning_outcome"] == "YES"

    def test_terminal_row_not_rewritten(self, queries):
        queries.upsert_market(_market())
        queries.mark_market_resolved("m1", "No")
        before = queries.get_market_by_id("m1")

        assert queries.mark_market_resolved("m1", "Yes") is False
        assert queries.get_market_by_id("m1") == before

    def test_closed_row_upgraded_to_resolved(self, queries):
        queries.upsert_market(_market(active=False, status="closed"))
        assert queries.mark_market_resolved("m1", "Yes") is True
        assert queries.get_market_by_id("m1")["status"] == "resolved"

    def test_unknown_id_changes_nothing(self, queries):
        assert queries.mark_market_resolved("ghost", "Yes") is False

    def test_driver_error_wrapped(self, queries):
        with patch.object(queries.db, "_connect", side_effect=RuntimeError("connection lost")):
            with pytest.raises(StoreWriteError, match="connection lost"):
                queries.mark_market_resolved("m1", "Yes")


class TestPairs:
    def test_detailed_pairs_view(self, queries):
        queries.upsert_market(_market("p1", platform="Polymarket", best_ask_yes=0.41,
                                      best_ask_no=0.6, end_date="2026-03-01T00:00:00Z"))
        queries.upsert_market(_market("k1", current_yes_price=0.55,
                                      end_date="2026-02-01T00:00:00Z"))
        pair_id = queries.insert_pair("p1", "k1", match_type="Inverse", confidence_score=0.9)

        pairs = queries.get_detailed_pairs()

        assert len(pairs) == 1
        pair = pairs[0]
        assert pair.pair_id == pair_id
        assert (pair.poly_id, pair.kalshi_id) == ("p1", "k1")
        assert pair.poly_yes == 0.41
        assert pair.poly_no == 0.6
        assert pair.kalshi_yes == 0.55
        assert pair.kalshi_no is None
        assert pair.match_type == "Inverse"
        assert pair.confidence_score == 0.9
        assert pair.poly_active and pair.kalshi_active
        assert pair.kalshi_end_date == "2026-02-01T00:00:00Z"

    def test_view_reflects_repair(self, queries):
        queries.upsert_market(_market("p1", platform="Polymarket"))
        queries.upsert_market(_market("k1"))
        queries.insert_pair("p1", "k1")
        queries.mark_market_resolved("k1", "Yes")

        assert queries.get_detailed_pairs()[0].kalshi_active is False


class TestAgentLogs:
    def test_insert_and_read(self, queries):
        log_id = queries.insert_agent_log(AgentLog(
            agent_name="repair", status="success",
            started_at="2026-01-01T00:00:00+00:00", items_processed=3,
        ))
        assert log_id > 0

        logs = queries.get_agent_logs(agent_name="repair")
        assert len(logs) == 1
        assert logs[0]["items_processed"] == 3
        assert queries.get_agent_logs(agent_name="other") == []
