from .database import DatabaseManager
from .models import Market, MarketPair, AgentLog
from .queries import MarketQueries, StoreWriteError

__all__ = [
    "DatabaseManager",
    "Market",
    "MarketPair",
    "AgentLog",
    "MarketQueries",
    "StoreWriteError",
]
