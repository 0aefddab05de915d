from .models import (
    Platform, VenueStatus, AdapterError, AdapterErrorKind, StoredMarketView,
    NoChange, Repair, PriceUpdate, RepairOutcome,
)
from .reconciler import reconcile
from .repair import RepairService
from .venues import VenueAdapter, decode_kalshi_market, decode_polymarket_market

__all__ = [
    "Platform",
    "VenueStatus",
    "AdapterError",
    "AdapterErrorKind",
    "StoredMarketView",
    "NoChange",
    "Repair",
    "PriceUpdate",
    "RepairOutcome",
    "reconcile",
    "RepairService",
    "VenueAdapter",
    "decode_kalshi_market",
    "decode_polymarket_market",
]
