"""Venue adapters: raw market-detail JSON -> ``VenueStatus``.

Each venue gets an explicit decode function. Decoders and the adapter
return an ``AdapterError`` value instead of raising, so a venue schema
change shows up as a logged "no determination" rather than a crash or
a false "still active".

Polymarket (Gamma ``/markets/{id}``):
  closed/resolved -> resolved; winner is the outcome whose price is at
  or above the winner threshold. ``outcomes`` and ``outcomePrices``
  arrive as JSON-encoded strings of arrays.
  open -> live price is the first outcome price.

Kalshi (``/markets/{ticker}``, nested under ``market``):
  finalized/settled -> resolved, winner from ``result``
  closed            -> resolved, winner "Pending"
  anything else     -> live price from last_price, else yes_ask (cents)
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import requests

from db.market_math import implied_probability
from .models import (
    PENDING, AdapterError, AdapterErrorKind, AdapterResult, Platform, VenueStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_WINNER_THRESHOLD = 0.99

_KALSHI_SETTLED = ("finalized", "settled")
_KALSHI_CLOSED = "closed"


def _parse_error(message: str) -> AdapterError:
    return AdapterError(AdapterErrorKind.PARSE, message)


def _decode_array(value: Any, field_name: str) -> Optional[List[Any]]:
    """Decode a Gamma array field, which is usually a JSON string of a list."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = json.loads(value)
    if not isinstance(value, list):
        raise ValueError(f"{field_name} is not an array")
    return value


def decode_polymarket_market(payload: Any,
                             winner_threshold: float = DEFAULT_WINNER_THRESHOLD
                             ) -> AdapterResult:
    if not isinstance(payload, dict):
        return _parse_error("market payload is not an object")

    try:
        prices = _decode_array(payload.get("outcomePrices"), "outcomePrices")

        if payload.get("closed") or payload.get("resolved"):
            outcomes = _decode_array(payload.get("outcomes"), "outcomes")
            winner = None
            if outcomes and prices:
                for index, price in enumerate(prices):
                    if float(price) >= winner_threshold:
                        if index < len(outcomes):
                            winner = str(outcomes[index])
                        break
            return VenueStatus(resolved=True, winner=winner)

        live_price = None
        if prices:
            live_price = implied_probability(float(prices[0]))
        return VenueStatus(resolved=False, live_price=live_price)
    except (ValueError, TypeError) as exc:
        return _parse_error(f"outcome arrays: {exc}")


def decode_kalshi_market(payload: Any) -> AdapterResult:
    if not isinstance(payload, dict):
        return _parse_error("market payload is not an object")
    market = payload.get("market")
    if not isinstance(market, dict):
        return _parse_error("payload has no 'market' object")

    status = market.get("status")
    if status in _KALSHI_SETTLED:
        winner = "Yes" if market.get("result") == "yes" else "No"
        return VenueStatus(resolved=True, winner=winner)
    if status == _KALSHI_CLOSED:
        return VenueStatus(resolved=True, winner=PENDING)

    # Kalshi quotes are integer cents; a zero quote means "no quote".
    cents = market.get("last_price") or market.get("yes_ask")
    if not cents:
        return VenueStatus(resolved=False)
    try:
        return VenueStatus(resolved=False,
                           live_price=implied_probability(float(cents) / 100))
    except (ValueError, TypeError) as exc:
        return _parse_error(f"price field: {exc}")


class VenueAdapter:
    """Fetches a market from its venue and decodes it to a ``VenueStatus``."""

    def __init__(self, polymarket_client: Any, kalshi_client: Any,
                 winner_threshold: float = DEFAULT_WINNER_THRESHOLD) -> None:
        self.polymarket_client = polymarket_client
        self.kalshi_client = kalshi_client
        self.winner_threshold = winner_threshold

    def fetch_venue_status(self, platform: Platform, external_id: str) -> AdapterResult:
        try:
            if platform is Platform.POLYMARKET:
                payload = self.polymarket_client.get_gamma_market(external_id)
            else:
                payload = self.kalshi_client.get_market(external_id)
        except requests.RequestException as exc:
            # requests' JSONDecodeError is both a RequestException and a ValueError
            if isinstance(exc, ValueError):
                result: AdapterResult = _parse_error(f"undecodable body: {exc}")
            else:
                result = AdapterError(AdapterErrorKind.UNAVAILABLE, str(exc))
        except ValueError as exc:
            result = _parse_error(f"undecodable body: {exc}")
        else:
            if platform is Platform.POLYMARKET:
                result = decode_polymarket_market(payload, self.winner_threshold)
            else:
                result = decode_kalshi_market(payload)

        if isinstance(result, AdapterError):
            logger.warning(
                "%s status check for %s failed (%s): %s",
                platform.value, external_id, result.kind.value, result.message,
            )
        return result
