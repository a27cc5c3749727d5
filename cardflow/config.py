from __future__ import annotations

import logging
import os
import sys
from typing import Optional

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cardflow.db")
GATEWAY_URL = os.getenv("CARDFLOW_GATEWAY_URL", "http://localhost:8000")
LOG_LEVEL = os.getenv("CARDFLOW_LOG_LEVEL", "INFO")

_timeout = os.getenv("CARDFLOW_GATEWAY_TIMEOUT")
# None = wait for the gateway indefinitely
GATEWAY_TIMEOUT: Optional[float] = float(_timeout) if _timeout else None

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Send cardflow logs to stdout; call once from an entry point."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger = logging.getLogger("cardflow")
    logger.handlers = [handler]
    logger.setLevel((level or LOG_LEVEL).upper())
