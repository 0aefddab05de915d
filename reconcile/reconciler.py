"""Decide whether a stored market needs repair given fresh venue status.

Rules, in order:
1. Stored record already inactive -> NoChange (terminal; never re-resolved)
2. Venue says resolved           -> Repair, carrying a known winner
3. Venue quotes a live price     -> PriceUpdate
4. Otherwise                     -> NoChange
"""

from __future__ import annotations

from typing import Optional

from .models import (
    PENDING, AdapterError, AdapterResult, NoChange, PriceUpdate,
    ReconcileResult, Repair, StoredMarketView,
)


def reconcile(stored: StoredMarketView,
              venue_status: Optional[AdapterResult]) -> ReconcileResult:
    if stored.is_terminal:
        return NoChange()
    if venue_status is None or isinstance(venue_status, AdapterError):
        return NoChange()

    if venue_status.resolved:
        winner = venue_status.winner
        if winner == PENDING:
            winner = None
        return Repair(winning_outcome=winner)

    if venue_status.live_price is not None:
        return PriceUpdate(live_price=venue_status.live_price)
    return NoChange()
