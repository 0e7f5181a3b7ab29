"""
privatepartyy.__main__ — Entry point for ``python -m privatepartyy``
====================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (infrastructure settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Serve the FastAPI app with uvicorn (blocking).

Run with::

    python -m privatepartyy
"""

from __future__ import annotations

import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv

from privatepartyy.config import load_config
from privatepartyy.database.engine import create_db_engine, init_db

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("privatepartyy")


def main() -> None:
    """Bootstrap and serve the PrivatePartyy API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    if not os.getenv("DATABASE_URL"):
        logger.critical(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )
        sys.exit(1)

    # 2. Infrastructure configuration.
    cfg = load_config(os.getenv("PRIVATEPARTYY_CONFIG", "config.yaml"))
    logger.info("Loaded config for %s (storage=%s)", cfg.app_name, cfg.storage_backend)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)
    engine.dispose()

    # 4. HTTP server.
    uvicorn.run(
        "privatepartyy.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
