"""Data models for stored market entities."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class Market:
    """One venue-native market mirrored locally."""
    id: str = ""
    platform: str = ""                  # "Polymarket" or "Kalshi"
    external_id: Optional[str] = None   # venue-native id used to re-query
    condition_id: Optional[str] = None
    group_id: Optional[str] = None      # series / event grouping for deep links
    source_url: Optional[str] = None
    title: str = ""
    image_url: Optional[str] = None
    active: bool = True
    status: Optional[str] = None        # None, "closed", "resolved"
    winning_outcome: Optional[str] = None
    current_yes_price: Optional[float] = None
    best_ask_yes: Optional[float] = None
    best_ask_no: Optional[float] = None
    volume_usd: Optional[float] = None
    end_date: Optional[str] = None
    price_history: List[Tuple[str, float]] = field(default_factory=list)
    updated_at: Optional[str] = None

    @property
    def venue_id(self) -> Optional[str]:
        """Id to re-query the venue with."""
        return self.external_id or self.condition_id

    def price_history_json(self) -> str:
        return json.dumps([{"t": t, "p": p} for t, p in self.price_history])

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> Market:
        history = row.get("price_history")
        samples: List[Tuple[str, float]] = []
        if history:
            samples = [(s["t"], float(s["p"])) for s in json.loads(history)]
        return cls(
            id=str(row["id"]),
            platform=row.get("platform") or "",
            external_id=row.get("external_id"),
            condition_id=row.get("condition_id"),
            group_id=row.get("group_id"),
            source_url=row.get("source_url"),
            title=row.get("title") or "",
            image_url=row.get("image_url"),
            active=bool(row.get("active", 1)),
            status=row.get("status"),
            winning_outcome=row.get("winning_outcome"),
            current_yes_price=row.get("current_yes_price"),
            best_ask_yes=row.get("best_ask_yes"),
            best_ask_no=row.get("best_ask_no"),
            volume_usd=row.get("volume_usd"),
            end_date=row.get("end_date"),
            price_history=samples,
            updated_at=row.get("updated_at"),
        )


@dataclass
class MarketPair:
    """Two markets, one per venue, believed to reference the same event."""
    pair_id: Optional[int] = None
    poly_id: Optional[str] = None
    kalshi_id: Optional[str] = None
    match_type: str = "Direct"          # "Direct" or "Inverse"
    poly_yes: Optional[float] = None
    poly_no: Optional[float] = None
    kalshi_yes: Optional[float] = None
    kalshi_no: Optional[float] = None
    confidence_score: float = 0.0
    poly_title: str = ""
    kalshi_title: str = ""
    poly_active: bool = True
    kalshi_active: bool = True
    poly_end_date: Optional[str] = None
    kalshi_end_date: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> MarketPair:
        return cls(
            pair_id=row.get("pair_id"),
            poly_id=row.get("poly_id"),
            kalshi_id=row.get("kalshi_id"),
            match_type=row.get("match_type") or "Direct",
            poly_yes=row.get("poly_yes"),
            poly_no=row.get("poly_no"),
            kalshi_yes=row.get("kalshi_yes"),
            kalshi_no=row.get("kalshi_no"),
            confidence_score=row.get("confidence_score") or 0.0,
            poly_title=row.get("poly_title") or "",
            kalshi_title=row.get("kalshi_title") or "",
            poly_active=bool(row.get("poly_active")),
            kalshi_active=bool(row.get("kalshi_active")),
            poly_end_date=row.get("poly_end_date"),
            kalshi_end_date=row.get("kalshi_end_date"),
            created_at=row.get("created_at"),
        )


@dataclass
class AgentLog:
    """Execution log entry for a batch scan run."""
    id: Optional[int] = None
    agent_name: str = ""
    status: str = ""                    # running, success, error
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_seconds: Optional[float] = None
    items_processed: int = 0
    summary: str = ""
    error: Optional[str] = None
