"""Polymarket Gamma API client.

Gamma API: https://gamma-api.polymarket.com (no auth required)
  - /markets/{id}: single market detail, including ``closed``,
    ``resolved``, ``outcomes`` and ``outcomePrices``

Only read operations are exposed. Non-2xx responses raise
``requests.HTTPError`` via ``raise_for_status``.
"""

from __future__ import annotations

from typing import Any, Dict

import requests

from config import PolymarketConfig


class PolymarketClient:
    def __init__(self, config: PolymarketConfig) -> None:
        self.config = config
        self.gamma_url = config.gamma_url
        self.timeout = config.timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": "MarketRepair/1.0",
        })

    def get_gamma_market(self, market_id: str) -> Dict[str, Any]:
        """Fetch a single market by id (or condition ID) from Gamma."""
        resp = self.session.get(
            f"{self.gamma_url}/markets/{market_id}",
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def health_check(self) -> bool:
        """Test connectivity to the Gamma API."""
        try:
            resp = self.session.get(
                f"{self.gamma_url}/markets",
                params={"limit": 1},
                timeout=self.timeout,
            )
            return resp.status_code == 200
        except requests.RequestException:
            return False
