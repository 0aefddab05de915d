"""
FastAPI app exposing lazy repair and the pair screener to page-level callers.

GET /repair-status?id=&platform=&external_id=
  400 {"error"}                              missing or unknown params
  200 {"status", "updated", "winner"?, "livePrice"?}
  200 {"updated": false, "error"}            store write failed
  500 {"error"}                              unexpected exception

GET /pairs?search=&match=ALL&sort=yield_desc
  400 {"error"}                              unknown match filter or sort key
  200 {"pairs": [...]}                       live pairs, screened and sorted
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from config import ReconcileConfig
from db.market_math import arbitrage_signal, compute_yield, normalize_order_book, overround
from db.models import Market, MarketPair
from db.queries import MarketQueries
from reconcile.models import Platform
from reconcile.repair import RepairService
from utils.screener import MATCH_FILTERS, SORT_KEYS, screen_pairs

logger = logging.getLogger(__name__)


def _leg(yes: Optional[float], no: Optional[float],
         reconcile: ReconcileConfig) -> Dict[str, Any]:
    book = normalize_order_book(Market(best_ask_yes=yes, best_ask_no=no),
                                spread=reconcile.assumed_spread)
    return {
        "buyYes": book.buy_yes,
        "buyNo": book.buy_no,
        "sellYes": book.sell_yes,
        "sellNo": book.sell_no,
        "overround": overround(book.buy_yes, book.buy_no),
        "arbitrage": arbitrage_signal(book, tolerance=reconcile.arbitrage_tolerance),
    }


def pair_to_dict(pair: MarketPair, reconcile: ReconcileConfig) -> Dict[str, Any]:
    result = compute_yield(pair)
    return {
        "pairId": pair.pair_id,
        "polyId": pair.poly_id,
        "kalshiId": pair.kalshi_id,
        "polyTitle": pair.poly_title,
        "kalshiTitle": pair.kalshi_title,
        "matchType": pair.match_type,
        "confidenceScore": pair.confidence_score,
        "bestYieldPct": result.best_yield_pct,
        "rows": [
            {"label": row.label, "cost": row.cost, "yieldPct": row.yield_pct}
            for row in result.rows
        ],
        "poly": _leg(pair.poly_yes, pair.poly_no, reconcile),
        "kalshi": _leg(pair.kalshi_yes, pair.kalshi_no, reconcile),
    }


def create_app(service: RepairService, queries: Optional[MarketQueries] = None,
               reconcile: Optional[ReconcileConfig] = None) -> FastAPI:
    """Build the app around an already-constructed repair service.

    The pairs view is served only when a store is passed in.
    """
    app = FastAPI(title="Market Repair", docs_url="/docs")
    reconcile = reconcile or ReconcileConfig()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Sync handler: FastAPI runs it in its threadpool, so blocking venue
    # fetches don't stall the event loop.
    @app.get("/repair-status")
    def repair_status(
        id: Optional[str] = Query(None),
        platform: Optional[str] = Query(None),
        external_id: Optional[str] = Query(None),
    ):
        if not id or not platform or not external_id:
            return JSONResponse({"error": "Missing params"}, status_code=400)
        try:
            venue = Platform.parse(platform)
        except ValueError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)

        try:
            outcome = service.verify_and_repair(id, venue, external_id)
        except Exception:
            logger.exception("Status check failed for market %s", id)
            return JSONResponse({"error": "Check failed"}, status_code=500)
        return JSONResponse(outcome.to_dict())

    if queries is not None:
        @app.get("/pairs")
        def pairs(
            search: str = Query(""),
            match: str = Query("ALL"),
            sort: str = Query("yield_desc"),
        ):
            match = match.upper()
            if match not in MATCH_FILTERS:
                return JSONResponse({"error": f"Unknown match filter: {match}"},
                                    status_code=400)
            if sort not in SORT_KEYS:
                return JSONResponse({"error": f"Unknown sort: {sort}"}, status_code=400)

            screened = screen_pairs(queries.get_detailed_pairs(), search, match, sort)
            return {"pairs": [pair_to_dict(p, reconcile) for p in screened]}

    return app
