"""Lazy repair: verify a believed-active market against its venue and
persist the resolution if the venue says it is over.

Called opportunistically from views (single market, batch of displayed
markets), never from a schedule. Safe to call repeatedly or concurrently
for the same market: the reconciler never touches terminal records and
the store UPDATE skips rows that are already resolved.

Outcomes:
  adapter failure      -> active, not updated (fail open)
  venue resolved       -> one UPDATE; resolved, updated
  store write failed   -> not updated, with error
  venue live           -> active, with live price (not persisted)
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, Optional, Union

from db.models import Market
from db.queries import MarketQueries, StoreWriteError
from utils.markets import is_resolved
from .models import (
    ACTIVE, PENDING, RESOLVED, AdapterError, Platform, PriceUpdate, Repair,
    RepairOutcome, StoredMarketView,
)
from .reconciler import reconcile
from .venues import VenueAdapter

logger = logging.getLogger(__name__)

_DEFAULT_MAX_WORKERS = 10


class RepairService:
    def __init__(self, adapter: VenueAdapter, queries: MarketQueries,
                 max_workers: int = _DEFAULT_MAX_WORKERS) -> None:
        self.adapter = adapter
        self.queries = queries
        self.max_workers = max_workers

    def verify_and_repair(self, market_id: str,
                          platform: Union[Platform, str],
                          external_id: str,
                          stored: Optional[StoredMarketView] = None) -> RepairOutcome:
        """Check one market against its venue, repairing the stored row if stale.

        ``stored`` is the caller's view of the row; when omitted the
        market is assumed active with no known winner, which is how views
        call this (they only ask about markets they show as live).
        """
        if not isinstance(platform, Platform):
            platform = Platform.parse(platform)
        stored = stored or StoredMarketView()

        if stored.is_terminal:
            return RepairOutcome(status=RESOLVED, winner=stored.winning_outcome)

        venue_status = self.adapter.fetch_venue_status(platform, external_id)
        if isinstance(venue_status, AdapterError):
            return RepairOutcome(status=ACTIVE)

        result = reconcile(stored, venue_status)

        if isinstance(result, Repair):
            try:
                changed = self.queries.mark_market_resolved(
                    market_id, result.winning_outcome,
                )
            except StoreWriteError as exc:
                logger.error("Repair write failed for market %s: %s", market_id, exc)
                return RepairOutcome(status=None, error=str(exc))

            winner = result.winning_outcome or stored.winning_outcome or PENDING
            if changed:
                logger.info("Lazy repair: %s is resolved. Winner: %s", market_id, winner)
            return RepairOutcome(status=RESOLVED, updated=changed, winner=winner)

        if isinstance(result, PriceUpdate):
            return RepairOutcome(status=ACTIVE, live_price=result.live_price)
        return RepairOutcome(status=ACTIVE)

    def verify_market(self, market: Market) -> RepairOutcome:
        return self.verify_and_repair(
            market.id,
            market.platform,
            market.venue_id or "",
            StoredMarketView(
                active=market.active,
                status=market.status,
                winning_outcome=market.winning_outcome,
            ),
        )

    def verify_many(self, markets: Iterable[Market]) -> Dict[str, RepairOutcome]:
        """Verify a batch of displayed markets concurrently.

        Markets already resolved in storage, or with no venue id to
        re-query, are skipped and absent from the result.
        """
        candidates = [m for m in markets if not is_resolved(m) and m.venue_id]
        outcomes: Dict[str, RepairOutcome] = {}
        if not candidates:
            return outcomes

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_market = {
                executor.submit(self.verify_market, market): market
                for market in candidates
            }
            for future in as_completed(future_to_market):
                market = future_to_market[future]
                try:
                    outcomes[market.id] = future.result()
                except Exception as exc:
                    logger.exception("Status check for market %s raised", market.id)
                    outcomes[market.id] = RepairOutcome(status=None, error=str(exc))
        return outcomes
