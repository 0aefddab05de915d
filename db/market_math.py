"""Prediction market domain calculations.

Encodes the binary-market arithmetic used by display views:
- Implied probability from price (clamped to [0, 1])
- Overround: how far YES + NO sits from the $1 payout
- Order book normalization from partial price data
- Buy / mint arbitrage signal
- Cross-venue pair cost and yield under Direct / Inverse matching
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .models import Market, MarketPair

DEFAULT_SPREAD = 0.01
DEFAULT_ARB_TOLERANCE = 0.01
_FLOAT_EPS = 1e-9

INVERSE = "Inverse"
DIRECT = "Direct"


def implied_probability(yes_price: Optional[float]) -> Optional[float]:
    """Convert a market price to implied probability.

    In an efficient binary market, the yes price IS the implied probability.
    A yes price of $0.65 implies a 65% probability of the event occurring.
    Out-of-range prices from malformed upstream data are clamped.
    """
    if yes_price is None:
        return None
    return max(0.0, min(1.0, yes_price))


def overround(yes_price: Optional[float], no_price: Optional[float]) -> Optional[float]:
    """Calculate the overround of a binary market.

    In a perfectly efficient market: yes_price + no_price = 1.00

    Examples:
      yes=0.52, no=0.52 -> overround=0.04 (4% vig)
      yes=0.65, no=0.35 -> overround=0.00
      yes=0.40, no=0.50 -> overround=-0.10 (both sides cost less than $1)
    """
    if yes_price is None or no_price is None:
        return None
    return round(yes_price + no_price - 1.0, 4)


# ── Order book ───────────────────────────────────────────────

@dataclass(frozen=True)
class OrderBook:
    buy_yes: float
    buy_no: float
    sell_yes: float
    sell_no: float


def normalize_order_book(market: Market, spread: float = DEFAULT_SPREAD) -> OrderBook:
    """Derive a full two-sided book from whatever prices a market carries.

    buy_yes: best ask YES -> current YES price -> 0
    buy_no:  best ask NO  -> 1 - buy_yes
    Both are clamped to [0, 1]. Sell prices are buy minus an assumed
    spread; they are a display approximation, not real bids.
    """
    buy_yes = market.best_ask_yes
    if buy_yes is None:
        buy_yes = market.current_yes_price
    if buy_yes is None:
        buy_yes = 0.0

    buy_no = market.best_ask_no
    if buy_no is None:
        buy_no = 1.0 - buy_yes

    buy_yes = implied_probability(buy_yes)
    buy_no = implied_probability(buy_no)

    return OrderBook(
        buy_yes=buy_yes,
        buy_no=buy_no,
        sell_yes=max(0.0, buy_yes - spread),
        sell_no=max(0.0, buy_no - spread),
    )


def arbitrage_signal(book: OrderBook,
                     tolerance: float = DEFAULT_ARB_TOLERANCE) -> Optional[str]:
    """Classify a book as "buy" arb, "mint" arb, or neither.

    buy:  YES + NO < 1 - tolerance (both sides cost less than the payout)
    mint: YES + NO > 1 + tolerance (minting a pair and selling both pays)
    """
    total = book.buy_yes + book.buy_no
    # Float residue only; a sum landing exactly on the band edge is not flagged.
    if total < 1.0 - tolerance - _FLOAT_EPS:
        return "buy"
    if total > 1.0 + tolerance + _FLOAT_EPS:
        return "mint"
    return None


# ── Cross-venue pairs ────────────────────────────────────────

@dataclass(frozen=True)
class YieldRow:
    label: str
    cost: float
    yield_pct: Optional[float] = None   # None when cost >= 1


@dataclass(frozen=True)
class PairYield:
    best_yield_pct: float
    rows: List[YieldRow] = field(default_factory=list)


def _yield_row(label: str, first: Optional[float], second: Optional[float]) -> YieldRow:
    cost = (first or 0.0) + (second or 0.0)
    yield_pct = (1.0 - cost) * 100 if cost < 1 else None
    return YieldRow(label=label, cost=cost, yield_pct=yield_pct)


def compute_yield(pair: MarketPair) -> PairYield:
    """Cost of buying both legs of a pair, and the resulting yield.

    Inverse: Polymarket YES pairs with Kalshi YES (and NO with NO).
    Direct:  Polymarket YES pairs with Kalshi NO (and NO with YES).
    Missing prices count as 0.
    """
    if pair.match_type == INVERSE:
        rows = [
            _yield_row("POLY YES + KALSHI YES", pair.poly_yes, pair.kalshi_yes),
            _yield_row("POLY NO + KALSHI NO", pair.poly_no, pair.kalshi_no),
        ]
    else:
        rows = [
            _yield_row("POLY YES + KALSHI NO", pair.poly_yes, pair.kalshi_no),
            _yield_row("POLY NO + KALSHI YES", pair.poly_no, pair.kalshi_yes),
        ]
    best = max(row.yield_pct or 0.0 for row in rows)
    return PairYield(best_yield_pct=best, rows=rows)
