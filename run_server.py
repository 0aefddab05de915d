#!/usr/bin/env python3
"""Serve GET /repair-status and GET /pairs with uvicorn.

Usage:
    python run_server.py

Host and port come from REPAIR_HOST / REPAIR_PORT.
"""

import logging

import uvicorn

from config import load_config
from run_agent import build_context
from server.app import create_app

logger = logging.getLogger(__name__)


def main():
    config = load_config()
    context = build_context(config)
    app = create_app(context["repair_service"], queries=context["queries"],
                     reconcile=config.reconcile)
    logger.info("Serving repair API on %s:%d", config.server.host, config.server.port)
    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
