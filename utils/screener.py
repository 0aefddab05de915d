"""Cross-venue pair screener: filter predicates and stable sort orders.

Sort keys:
  yield_desc   best pair yield, highest first
  ending_soon  earlier of the two legs' end dates, soonest first
  conf_desc    match confidence, highest first
  newest       pair creation time, newest first

All sorts are stable, so ties keep their input order. Pairs missing the
sort field go last. An unknown sort key leaves the order unchanged.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import List, Optional

from db.market_math import INVERSE, compute_yield
from db.models import MarketPair

SORT_KEYS = ("yield_desc", "ending_soon", "conf_desc", "newest")
MATCH_FILTERS = ("ALL", "DIRECT", "INVERSE")


# Postgres and venue timestamps: any fraction width, "Z", "+00", "+0000" or "+00:00".
_ISO_DATETIME = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2})?)"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}(?::?\d{2})?)?$"
)


def _normalize_iso(value: str) -> str:
    """Rewrite into the subset ``datetime.fromisoformat`` accepts on 3.9."""
    match = _ISO_DATETIME.match(value.strip())
    if not match:
        return value
    text = match.group("base")
    frac = match.group("frac")
    if frac:
        text += "." + frac[:6].ljust(6, "0")
    tz = match.group("tz")
    if tz == "Z":
        text += "+00:00"
    elif tz:
        digits = tz[1:].replace(":", "")
        text += f"{tz[0]}{digits[:2]}:{digits[2:4] or '00'}"
    return text


def _timestamp(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(_normalize_iso(value))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def soonest_end(pair: MarketPair) -> float:
    """Earlier end date of the two legs as epoch seconds; inf when neither parses."""
    ends = [t for t in (_timestamp(pair.poly_end_date), _timestamp(pair.kalshi_end_date))
            if t is not None]
    return min(ends) if ends else math.inf


def is_live(pair: MarketPair) -> bool:
    """Both legs still active; resolved pairs are hidden from the screener."""
    return pair.poly_active and pair.kalshi_active


def matches_search(pair: MarketPair, search: str) -> bool:
    term = (search or "").strip().lower()
    if not term:
        return True
    return term in pair.poly_title.lower() or term in pair.kalshi_title.lower()


def matches_type(pair: MarketPair, match_filter: str = "ALL") -> bool:
    match_filter = (match_filter or "ALL").upper()
    if match_filter == "ALL":
        return True
    if match_filter == "INVERSE":
        return pair.match_type == INVERSE
    return pair.match_type != INVERSE


def filter_pairs(pairs: List[MarketPair], search: str = "",
                 match_filter: str = "ALL") -> List[MarketPair]:
    return [
        p for p in pairs
        if is_live(p) and matches_search(p, search) and matches_type(p, match_filter)
    ]


def sort_pairs(pairs: List[MarketPair], sort_by: str = "yield_desc") -> List[MarketPair]:
    if sort_by == "yield_desc":
        return sorted(pairs, key=lambda p: -compute_yield(p).best_yield_pct)
    if sort_by == "ending_soon":
        return sorted(pairs, key=soonest_end)
    if sort_by == "conf_desc":
        return sorted(pairs, key=lambda p: -(p.confidence_score or 0.0))
    if sort_by == "newest":
        def newest_key(p: MarketPair):
            created = _timestamp(p.created_at)
            return (created is None, -(created or 0.0))
        return sorted(pairs, key=newest_key)
    return list(pairs)


def screen_pairs(pairs: List[MarketPair], search: str = "",
                 match_filter: str = "ALL",
                 sort_by: str = "yield_desc") -> List[MarketPair]:
    """Filter then sort, as the pairs view shows them."""
    return sort_pairs(filter_pairs(pairs, search, match_filter), sort_by)
