"""Tests for Polymarket client — Gamma market-detail requests."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from config import PolymarketConfig


class TestPolymarketClient:
    @patch("clients.polymarket_client.requests.Session")
    def test_get_gamma_market(self, mock_session_cls):
        mock_session = MagicMock()
        mock_response = MagicMock()
        mock_response.json.return_value = {"id": "1", "closed": False}
        mock_session.get.return_value = mock_response
        mock_session_cls.return_value = mock_session

        from clients.polymarket_client import PolymarketClient
        client = PolymarketClient(PolymarketConfig(timeout=3.0))

        market = client.get_gamma_market("0xabc")

        assert market == {"id": "1", "closed": False}
        mock_session.get.assert_called_once_with(
            "https://gamma-api.polymarket.com/markets/0xabc", timeout=3.0,
        )
        mock_response.raise_for_status.assert_called_once()

    @patch("clients.polymarket_client.requests.Session")
    def test_non_2xx_raises(self, mock_session_cls):
        mock_session = MagicMock()
        mock_response = MagicMock()
        mock_response.raise_for_status.side_effect = requests.HTTPError("404")
        mock_session.get.return_value = mock_response
        mock_session_cls.return_value = mock_session

        from clients.polymarket_client import PolymarketClient
        client = PolymarketClient(PolymarketConfig())

        with pytest.raises(requests.HTTPError):
            client.get_gamma_market("missing")

    @patch("clients.polymarket_client.requests.Session")
    def test_health_check_handles_network_error(self, mock_session_cls):
        mock_session = MagicMock()
        mock_session.get.side_effect = requests.ConnectionError("down")
        mock_session_cls.return_value = mock_session

        from clients.polymarket_client import PolymarketClient
        assert PolymarketClient(PolymarketConfig()).health_check() is False

    def test_default_urls(self):
        from clients.polymarket_client import PolymarketClient
        client = PolymarketClient(PolymarketConfig())
        assert client.gamma_url == "https://gamma-api.polymarket.com"
        assert client.timeout == 5.0
