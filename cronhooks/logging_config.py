from __future__ import annotations

import logging

logger = logging.getLogger("cronhooks")


def configure_logging(level: str = "INFO") -> None:
    """Configure logging with the requested level."""
    if logger.handlers:
        return

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
