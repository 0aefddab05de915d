"""Value types for venue status reconciliation.

Nothing here is persisted directly: ``VenueStatus`` is produced per
adapter call, reconcile results are computed per check, and
``RepairOutcome`` is what callers (HTTP route, batch scan) receive.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

PENDING = "Pending"
RESOLVED = "resolved"
CLOSED = "closed"
ACTIVE = "active"


class Platform(str, Enum):
    POLYMARKET = "Polymarket"
    KALSHI = "Kalshi"

    @classmethod
    def parse(cls, value: str) -> Platform:
        """Case-insensitive lookup; raises ValueError for unknown venues."""
        for member in cls:
            if member.value.lower() == (value or "").strip().lower():
                return member
        raise ValueError(f"Unknown platform: {value!r}")


@dataclass(frozen=True)
class VenueStatus:
    resolved: bool
    winner: Optional[str] = None        # only meaningful when resolved
    live_price: Optional[float] = None  # only meaningful when not resolved


class AdapterErrorKind(Enum):
    UNAVAILABLE = "unavailable"   # network error, timeout, non-2xx
    PARSE = "parse"               # payload decoded but fields missing/malformed


@dataclass(frozen=True)
class AdapterError:
    kind: AdapterErrorKind
    message: str


AdapterResult = Union[VenueStatus, AdapterError]


@dataclass(frozen=True)
class StoredMarketView:
    """The slice of a stored market row the reconciler needs."""
    active: bool = True
    status: Optional[str] = None
    winning_outcome: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return not self.active

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> StoredMarketView:
        return cls(
            active=bool(row.get("active", True)),
            status=row.get("status"),
            winning_outcome=row.get("winning_outcome"),
        )


# ── Reconcile results ────────────────────────────────────────

@dataclass(frozen=True)
class NoChange:
    pass


@dataclass(frozen=True)
class Repair:
    active: bool = False
    status: str = RESOLVED
    winning_outcome: Optional[str] = None   # None leaves the stored value alone


@dataclass(frozen=True)
class PriceUpdate:
    live_price: float


ReconcileResult = Union[NoChange, Repair, PriceUpdate]


@dataclass
class RepairOutcome:
    """Result of one verify-and-repair call.

    ``error`` is set only when the store write failed; adapter failures
    are reported as an ordinary active/not-updated outcome.
    """
    status: Optional[str] = ACTIVE
    updated: bool = False
    winner: Optional[str] = None
    live_price: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape used by the HTTP route."""
        if self.error is not None:
            return {"updated": False, "error": self.error}
        body: Dict[str, Any] = {"status": self.status, "updated": self.updated}
        if self.winner is not None:
            body["winner"] = self.winner
        if self.live_price is not None:
            body["livePrice"] = self.live_price
        return body
