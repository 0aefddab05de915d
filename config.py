"""Configuration dataclasses and .env loading for the market repair service."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os

from dotenv import load_dotenv

load_dotenv()

# Project root
PROJECT_DIR = Path(__file__).resolve().parent
DATA_DIR = PROJECT_DIR / "data"
DB_PATH = DATA_DIR / "markets.db"


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass
class KalshiConfig:
    api_key_id: str = ""
    private_key_path: str = ""
    base_url: str = "https://api.elections.kalshi.com/trade-api/v2"
    rate_limit_delay: float = 0.06  # ~16 req/sec, under 20/sec limit
    timeout: float = 5.0

    @property
    def signing_enabled(self) -> bool:
        return bool(self.api_key_id and self.private_key_path)

    @classmethod
    def from_env(cls) -> KalshiConfig:
        return cls(
            api_key_id=os.getenv("KALSHI_API_KEY_ID", ""),
            private_key_path=os.getenv("KALSHI_PRIVATE_KEY_PATH", ""),
            timeout=_env_float("KALSHI_TIMEOUT", 5.0),
        )


@dataclass
class PolymarketConfig:
    gamma_url: str = "https://gamma-api.polymarket.com"
    timeout: float = 5.0

    @classmethod
    def from_env(cls) -> PolymarketConfig:
        return cls(timeout=_env_float("POLYMARKET_TIMEOUT", 5.0))


@dataclass
class ReconcileConfig:
    winner_price_threshold: float = 0.99    # outcome price treated as a settled winner
    arbitrage_tolerance: float = 0.01       # band around $1 ignored as noise
    assumed_spread: float = 0.01            # display-only bid/ask gap
    max_workers: int = 10                   # parallel checks per batch

    @classmethod
    def from_env(cls) -> ReconcileConfig:
        return cls(
            winner_price_threshold=_env_float("WINNER_PRICE_THRESHOLD", 0.99),
            arbitrage_tolerance=_env_float("ARBITRAGE_TOLERANCE", 0.01),
            assumed_spread=_env_float("ASSUMED_SPREAD", 0.01),
            max_workers=int(os.getenv("REPAIR_MAX_WORKERS", "10")),
        )


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> ServerConfig:
        return cls(
            host=os.getenv("REPAIR_HOST", "127.0.0.1"),
            port=int(os.getenv("REPAIR_PORT", "8000")),
        )


@dataclass
class AppConfig:
    kalshi: KalshiConfig = field(default_factory=KalshiConfig)
    polymarket: PolymarketConfig = field(default_factory=PolymarketConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    db_path: Path = DB_PATH
    database_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> AppConfig:
        return cls(
            kalshi=KalshiConfig.from_env(),
            polymarket=PolymarketConfig.from_env(),
            reconcile=ReconcileConfig.from_env(),
            server=ServerConfig.from_env(),
            database_url=os.getenv("DATABASE_URL") or None,
        )


def load_config() -> AppConfig:
    """Load configuration from environment variables."""
    return AppConfig.from_env()
