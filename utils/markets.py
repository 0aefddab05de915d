"""Per-market display helpers: venue deep links and the resolved gate."""

from __future__ import annotations

from db.models import Market

KALSHI_MARKETS_URL = "https://kalshi.com/markets"
POLYMARKET_EVENT_URL = "https://polymarket.com/event"

_TERMINAL_STATUSES = ("closed", "resolved")


def market_url(market: Market) -> str:
    """Best venue URL for a market.

    Kalshi pages live at the series level, so the series prefix (text
    before the first dash, e.g. ``KXNCAAF`` from ``KXNCAAF-26``) is used
    when it is longer than two characters.
    """
    if market.platform == "Kalshi":
        raw_id = market.group_id or market.external_id
        if not raw_id:
            return KALSHI_MARKETS_URL
        prefix = raw_id.split("-")[0]
        if len(prefix) > 2:
            return f"{KALSHI_MARKETS_URL}/{prefix}"
        return f"{KALSHI_MARKETS_URL}/{raw_id}"

    if market.platform == "Polymarket":
        if market.source_url:
            return market.source_url
        return f"{POLYMARKET_EVENT_URL}/{market.group_id or market.external_id}"

    return market.source_url or "#"


def is_resolved(market: Market) -> bool:
    """Stored state already says the market is over; no live check needed."""
    return not market.active or market.status in _TERMINAL_STATUSES
