"""
Logging utilities for the FastAPI application and the helper scripts.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging and quiet the per-request httpx chatter."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
