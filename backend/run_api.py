#!/usr/bin/env python
"""
Run the Salesdesk API server.

Usage:
    python run_api.py
    python run_api.py --reload        # Development mode
    python run_api.py --workers 4     # Several processes sharing Redis windows

Rate limit windows and job state are only shared between workers when
REDIS_URL is set; with the in-process stores each worker counts alone.
"""

import argparse
import logging

import uvicorn

from shared.config import get_settings
from shared.logging_config import configure_logging

logger = logging.getLogger("salesdesk")


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run Salesdesk API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, default=settings.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to bind to")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes")
    args = parser.parse_args()

    configure_logging(settings.log_level)
    reload = args.reload or settings.reload
    if args.workers > 1 and not settings.redis_url:
        logger.warning("Running several workers without REDIS_URL: rate limits are per worker")

    uvicorn.run(
        "api.app:app",
        host=args.host,
        port=args.port,
        reload=reload,
        workers=None if reload else args.workers,
        log_config=None,
    )


if __name__ == "__main__":
    main()
