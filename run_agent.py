#!/usr/bin/env python3
"""Standalone CLI to run a batch repair scan.

Usage:
    python run_agent.py repair
    python run_agent.py repair --platform Kalshi

Designed for cron jobs, CI, or manual CLI execution. Each run is one
pass over the markets the store still shows as active.
"""

import sys
import logging

from config import AppConfig, load_config
from clients.kalshi_client import KalshiClient
from clients.polymarket_client import PolymarketClient
from db.database import DatabaseManager
from db.queries import MarketQueries
from agents.repair_agent import RepairAgent
from reconcile.models import Platform
from reconcile.repair import RepairService
from reconcile.venues import VenueAdapter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)

AGENT_CLASSES = {
    "repair": RepairAgent,
}


def build_context(config: AppConfig) -> dict:
    """Construct the store, venue clients and repair service once per process."""
    db = DatabaseManager(db_path=config.db_path, database_url=config.database_url)
    queries = MarketQueries(db)
    adapter = VenueAdapter(
        PolymarketClient(config.polymarket),
        KalshiClient(config.kalshi),
        winner_threshold=config.reconcile.winner_price_threshold,
    )
    service = RepairService(adapter, queries, max_workers=config.reconcile.max_workers)
    return {
        "config": config,
        "db": db,
        "queries": queries,
        "repair_service": service,
    }


def main():
    args = sys.argv[1:]
    if not args:
        print("Usage: python run_agent.py <agent_name> [--platform Polymarket|Kalshi]")
        print(f"Available agents: {', '.join(AGENT_CLASSES.keys())}")
        sys.exit(1)

    platform = None
    if "--platform" in args:
        idx = args.index("--platform")
        try:
            platform = Platform.parse(args[idx + 1]).value
        except (IndexError, ValueError) as exc:
            print(f"Invalid --platform: {exc}")
            sys.exit(1)
        args = args[:idx] + args[idx + 2:]

    for name in args:
        if name not in AGENT_CLASSES:
            print(f"Unknown agent: {name}")
            print(f"Available: {', '.join(AGENT_CLASSES.keys())}")
            sys.exit(1)

    context = build_context(load_config())
    if platform:
        context["platform"] = platform

    failed = False
    for name in args:
        logger.info("Running agent: %s", name)
        result = AGENT_CLASSES[name]().run(context)
        logger.info(
            "Agent '%s' completed: %s (%d items in %.1fs) %s",
            name, result.status.value,
            result.items_processed, result.duration_seconds, result.summary,
        )
        if result.error:
            logger.error("Agent '%s' error: %s", name, result.error)
            failed = True

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
