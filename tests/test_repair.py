"""Tests for the lazy repair orchestrator — single checks, store writes, batches."""

import threading
from unittest.mock import MagicMock

import pytest
import requests

from db.database import DatabaseManager
from db.models import Market
from db.queries import MarketQueries, StoreWriteError
from reconcile.models import Platform, StoredMarketView
from reconcile.repair import RepairService
from reconcile.venues import VenueAdapter


@pytest.fixture
def queries(tmp_path):
    db = DatabaseManager(db_path=tmp_path / "test.db")
    yield MarketQueries(db)
    try:
        with db._connect() as conn:
            conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
    except Exception:
        pass


@pytest.fixture
def poly():
    return MagicMock()


@pytest.fixture
def kalshi():
    return MagicMock()


@pytest.fixture
def service(poly, kalshi, queries):
    return RepairService(VenueAdapter(poly, kalshi), queries, max_workers=4)


def _seed(queries, market_id="m1", platform="Kalshi", external_id="KXFED-25DEC",
          **fields):
    queries.upsert_market(Market(id=market_id, platform=platform,
                                 external_id=external_id, title=market_id, **fields))


class TestVerifyAndRepair:
    def test_end_to_end_kalshi_finalized(self, service, queries, kalshi):
        _seed(queries)
        kalshi.get_market.return_value = {"market": {"status": "finalized", "result": "yes"}}

        outcome = service.verify_and_repair("m1", Platform.KALSHI, "KXFED-25DEC")

        assert outcome.to_dict() == {"status": "resolved", "updated": True, "winner": "Yes"}
        row = queries.get_market_by_id("m1")
        assert row["active"] == 0
        assert row["status"] == "resolved"
        assert row["winning_outcome"] == "Yes"

    def test_exactly_one_store_update(self, poly, kalshi):
        store = MagicMock()
        store.mark_market_resolved.return_value = True
        kalshi.get_market.return_value = {"market": {"status": "settled", "result": "yes"}}
        service = RepairService(VenueAdapter(poly, kalshi), store)

        service.verify_and_repair("m1", "Kalshi", "KXFED-25DEC")

        store.mark_market_resolved.assert_called_once_with("m1", "Yes")

    def test_platform_given_as_string(self, service, queries, poly):
        _seed(queries, platform="Polymarket", external_id="0xabc")
        poly.get_gamma_market.return_value = {
            "closed": True, "outcomes": '["No", "Yes"]', "outcomePrices": '["0.01", "0.995"]',
        }

        outcome = service.verify_and_repair("m1", "polymarket", "0xabc")

        assert outcome.status == "resolved"
        assert outcome.winner == "Yes"

    def test_pending_close_keeps_stored_winner(self, service, queries, kalshi):
        _seed(queries, winning_outcome="YES")
        kalshi.get_market.return_value = {"market": {"status": "closed"}}

        outcome = service.verify_and_repair(
            "m1", Platform.KALSHI, "KXFED-25DEC",
            StoredMarketView(active=True, winning_outcome="YES"),
        )

        assert outcome.updated is True
        assert outcome.winner == "YES"
        row = queries.get_market_by_id("m1")
        assert row["winning_outcome"] == "YES"
        assert row["active"] == 0

    def test_pending_close_without_winner(self, service, queries, kalshi):
        _seed(queries)
        kalshi.get_market.return_value = {"market": {"status": "closed"}}

        outcome = service.verify_and_repair("m1", Platform.KALSHI, "KXFED-25DEC")

        assert outcome.winner == "Pending"
        assert queries.get_market_by_id("m1")["winning_outcome"] is None

    def test_live_price_not_persisted(self, service, queries, kalshi):
        _seed(queries, current_yes_price=0.30)
        before = queries.get_market_by_id("m1")
        kalshi.get_market.return_value = {"market": {"status": "active", "last_price": 41}}

        outcome = service.verify_and_repair("m1", Platform.KALSHI, "KXFED-25DEC")

        assert outcome.to_dict() == {"status": "active", "updated": False, "livePrice": 0.41}
        assert queries.get_market_by_id("m1") == before

    def test_active_without_price(self, service, queries, kalshi):
        _seed(queries)
        kalshi.get_market.return_value = {"market": {"status": "active"}}

        outcome = service.verify_and_repair("m1", Platform.KALSHI, "KXFED-25DEC")
        assert outcome.to_dict() == {"status": "active", "updated": False}

    def test_fails_open_on_network_error(self, service, queries, kalshi):
        _seed(queries)
        kalshi.get_market.side_effect = requests.ConnectionError("unreachable")

        outcome = service.verify_and_repair("m1", Platform.KALSHI, "KXFED-25DEC")

        assert outcome.to_dict() == {"status": "active", "updated": False}
        assert queries.get_market_by_id("m1")["active"] == 1

    def test_fails_open_on_parse_error(self, service, queries, poly):
        _seed(queries, platform="Polymarket", external_id="0xabc")
        poly.get_gamma_market.return_value = {"closed": True, "outcomes": "[broken"}

        outcome = service.verify_and_repair("m1", Platform.POLYMARKET, "0xabc")

        assert outcome.status == "active"
        assert outcome.updated is False

    def test_terminal_view_skips_venue(self, service, kalshi):
        outcome = service.verify_and_repair(
            "m1", Platform.KALSHI, "KXFED-25DEC",
            StoredMarketView(active=False, status="resolved", winning_outcome="No"),
        )

        kalshi.get_market.assert_not_called()
        assert outcome.to_dict() == {"status": "resolved", "updated": False, "winner": "No"}

    def test_repeat_call_is_idempotent(self, service, queries, kalshi):
        _seed(queries)
        kalshi.get_market.return_value = {"market": {"status": "settled", "result": "no"}}

        first = service.verify_and_repair("m1", Platform.KALSHI, "KXFED-25DEC")
        stamp = queries.get_market_by_id("m1")["updated_at"]
        second = service.verify_and_repair("m1", Platform.KALSHI, "KXFED-25DEC")

        assert first.updated is True
        assert second.updated is False
        assert second.status == "resolved"
        assert queries.get_market_by_id("m1")["updated_at"] == stamp

    def test_store_write_error_is_surfaced(self, poly, kalshi):
        store = MagicMock()
        store.mark_market_resolved.side_effect = StoreWriteError("database is locked")
        kalshi.get_market.return_value = {"market": {"status": "finalized", "result": "yes"}}
        service = RepairService(VenueAdapter(poly, kalshi), store)

        outcome = service.verify_and_repair("m1", Platform.KALSHI, "KXFED-25DEC")

        assert outcome.to_dict() == {"updated": False, "error": "database is locked"}

    def test_unknown_platform_raises(self, service):
        with pytest.raises(ValueError):
            service.verify_and_repair("m1", "Manifold", "abc")


class TestVerifyMany:
    def test_batch_repairs_and_skips(self, service, queries, poly, kalshi):
        _seed(queries, "k-live", external_id="K-LIVE")
        _seed(queries, "k-done", external_id="K-DONE")
        _seed(queries, "p-live", platform="Polymarket", external_id="0x1")
        _seed(queries, "k-old", external_id="K-OLD", active=False, status="resolved")
        _seed(queries, "no-id", external_id=None)

        def kalshi_market(ticker):
            if ticker == "K-DONE":
                return {"market": {"status": "finalized", "result": "no"}}
            return {"market": {"status": "active", "yes_ask": 30}}

        kalshi.get_market.side_effect = kalshi_market
        poly.get_gamma_market.return_value = {"closed": False, "outcomePrices": '["0.7", "0.3"]'}

        markets = [Market.from_row(r) for r in queries.get_markets_by_ids(
            ["k-live", "k-done", "p-live", "k-old", "no-id"])]
        outcomes = service.verify_many(markets)

        assert set(outcomes) == {"k-live", "k-done", "p-live"}
        assert outcomes["k-done"].updated is True
        assert outcomes["k-done"].winner == "No"
        assert outcomes["k-live"].live_price == pytest.approx(0.30)
        assert outcomes["p-live"].live_price == pytest.approx(0.7)
        assert queries.get_market_by_id("k-done")["active"] == 0
        assert queries.get_market_by_id("k-live")["active"] == 1

    def test_condition_id_used_when_no_external_id(self, service, queries, poly):
        _seed(queries, "p1", platform="Polymarket", external_id=None, condition_id="0xcond")
        poly.get_gamma_market.return_value = {"closed": False}

        service.verify_many([Market.from_row(queries.get_market_by_id("p1"))])

        poly.get_gamma_market.assert_called_once_with("0xcond")

    def test_concurrent_duplicates_write_once(self, service, queries, kalshi):
        """Many concurrent checks of one market change the row only once."""
        _seed(queries)
        gate = threading.Barrier(4, timeout=5)

        def settled(_ticker):
            gate.wait()
            return {"market": {"status": "settled", "result": "yes"}}

        kalshi.get_market.side_effect = settled
        market = Market.from_row(queries.get_market_by_id("m1"))
        threads_outcomes = []

        def check():
            threads_outcomes.append(service.verify_market(market))

        threads = [threading.Thread(target=check) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(1 for o in threads_outcomes if o.updated) == 1
        assert all(o.status == "resolved" for o in threads_outcomes)

    def test_unexpected_exception_recorded(self, service, queries):
        market = Market(id="x", platform="Manifold", external_id="abc")
        outcomes = service.verify_many([market])
        assert outcomes["x"].error is not None
        assert outcomes["x"].updated is False

    def test_empty_batch(self, service):
        assert service.verify_many([]) == {}
