"""Kalshi trade API v2 client.

Market-detail reads are public. When an API key id and an RSA private
key file are configured, every request is additionally signed:

1. Load RSA private key from file
2. For each request, create a timestamp + method + path signature
3. Sign with RSA-PSS (SHA-256) and send in headers

Rate limit: 0.06s delay between calls (~16 req/sec, under 20/sec limit).
"""

from __future__ import annotations

import base64
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from config import KalshiConfig


class KalshiClient:
    def __init__(self, config: KalshiConfig) -> None:
        self.config = config
        self.base_url = config.base_url
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self._last_request_time = 0.0
        self._rate_lock = threading.Lock()
        self._private_key = (
            self._load_private_key() if config.signing_enabled else None
        )

    def _load_private_key(self) -> Any:
        """Load RSA private key from the configured file path."""
        key_path = Path(self.config.private_key_path)
        if not key_path.exists():
            raise FileNotFoundError(f"Kalshi private key not found: {key_path}")
        key_data = key_path.read_bytes()
        return serialization.load_pem_private_key(key_data, password=None)

    def _sign_request(self, method: str, path: str, timestamp: str) -> str:
        """Create RSA-PSS signature for Kalshi API authentication.

        The signature payload is: timestamp + method + full URL path
        """
        message = f"{timestamp}{method}{path}".encode("utf-8")
        signature = self._private_key.sign(
            message,
            padding.PSS(
                mgf=padding.MGF1(hashes.SHA256()),
                salt_length=padding.PSS.DIGEST_LENGTH,
            ),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode("utf-8")

    def _auth_headers(self, method: str, path: str) -> Dict[str, str]:
        if self._private_key is None:
            return {}
        timestamp = str(int(datetime.now(timezone.utc).timestamp() * 1000))
        full_path = urlparse(self.base_url).path + path
        return {
            "KALSHI-ACCESS-KEY": self.config.api_key_id,
            "KALSHI-ACCESS-SIGNATURE": self._sign_request(method, full_path, timestamp),
            "KALSHI-ACCESS-TIMESTAMP": timestamp,
        }

    def _rate_limit(self) -> None:
        """Enforce minimum delay between API calls."""
        with self._rate_lock:
            elapsed = time.time() - self._last_request_time
            if elapsed < self.config.rate_limit_delay:
                time.sleep(self.config.rate_limit_delay - elapsed)
            self._last_request_time = time.time()

    def _request(self, method: str, path: str,
                 params: Optional[Dict] = None) -> Dict[str, Any]:
        """Make a (optionally signed) request to the Kalshi API."""
        self._rate_limit()
        response = self.session.request(
            method=method,
            url=f"{self.base_url}{path}",
            headers=self._auth_headers(method.upper(), path),
            params=params,
            timeout=self.config.timeout,
        )
        response.raise_for_status()
        return response.json()

    # ── Public API Methods ───────────────────────────────────

    def get_market(self, ticker: str) -> Dict[str, Any]:
        """Fetch a single market by ticker. The payload nests it under ``market``."""
        return self._request("GET", f"/markets/{ticker}")

    def health_check(self) -> bool:
        """Test connectivity to the Kalshi API."""
        try:
            self._request("GET", "/exchange/status")
            return True
        except requests.RequestException:
            return False
