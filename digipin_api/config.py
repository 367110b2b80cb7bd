# digipin_api/config.py
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file for local development
load_dotenv()

LOGGER_NAME = "digipin_api"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_cors_origins(raw: Optional[str]) -> List[str]:
    """Parse a comma-separated list of origins; empty or '*' allows all."""
    raw = (raw or "").strip()
    if not raw or raw == "*":
        return ["*"]
    return [part.strip() for part in raw.split(",") if part.strip()]


# --- Configuration ---
HOST = os.getenv("DIGIPIN_HOST", "0.0.0.0")

_port = os.getenv("PORT", "3000")
try:
    PORT = int(_port)
except ValueError:
    raise RuntimeError(f"Invalid PORT value {_port!r}; must be an integer.") from None

API_PREFIX = "/" + os.getenv("DIGIPIN_API_PREFIX", "/api/digipin").strip("/")
CORS_ORIGINS = _parse_cors_origins(os.getenv("DIGIPIN_CORS_ORIGINS"))
ENABLE_DOCS = _env_flag("DIGIPIN_ENABLE_DOCS", True)
LOG_LEVEL = os.getenv("DIGIPIN_LOG_LEVEL", "INFO")

# Column names used by the CSV batch pipeline
BATCH_LAT_COL = os.getenv("DIGIPIN_BATCH_LAT_COL", "Latitude")
BATCH_LON_COL = os.getenv("DIGIPIN_BATCH_LON_COL", "Longitude")
BATCH_CODE_COL = os.getenv("DIGIPIN_BATCH_CODE_COL", "digipin")

_logging_configured = False


def configure_logging(force: bool = False) -> logging.Logger:
    """
    Initialize process-wide logging once and return the service logger.

    The level comes from DIGIPIN_LOG_LEVEL; unknown names fall back to INFO.
    """
    global _logging_configured

    if not _logging_configured or force:
        level = getattr(logging, LOG_LEVEL.strip().upper(), None)
        if not isinstance(level, int):
            level = logging.INFO
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            force=force,
        )
        logging.getLogger(LOGGER_NAME).setLevel(level)
        _logging_configured = True

    return logging.getLogger(LOGGER_NAME)
