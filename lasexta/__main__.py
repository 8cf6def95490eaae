"""
lasexta.__main__ — Entry point for ``python -m lasexta``
=========================================================

Loads ``.env`` and serves :mod:`lasexta.api.main` with uvicorn.  Tables and
seed accounts are created by the application lifespan.

Run with::

    python -m lasexta
"""

from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("lasexta")


def main() -> None:
    """Bootstrap and run the La Sexta API."""
    load_dotenv()

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "4000"))

    logger.info("Starting La Sexta API on %s:%d…", host, port)
    try:
        uvicorn.run("lasexta.api.main:app", host=host, port=port, log_config=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
