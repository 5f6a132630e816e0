"""
Sheetflow Core - Configuration
Policy constants with optional environment overrides
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


# Column Type Detector: a bucket must exceed this share of non-empty cells.
COLUMN_TYPE_THRESHOLD = _env_float("SHEETFLOW_COLUMN_TYPE_THRESHOLD", 0.8)

# Excel serial day band (roughly 1982 to 2105).
SERIAL_DATE_MIN = _env_int("SHEETFLOW_SERIAL_DATE_MIN", 30000)
SERIAL_DATE_MAX = _env_int("SHEETFLOW_SERIAL_DATE_MAX", 75000)

# Quality Analyzer policy.
MISSING_ISSUE_RATIO = _env_float("SHEETFLOW_MISSING_ISSUE_RATIO", 0.05)
MISSING_HIGH_RATIO = _env_float("SHEETFLOW_MISSING_HIGH_RATIO", 0.20)
DUPLICATE_HIGH_RATIO = _env_float("SHEETFLOW_DUPLICATE_HIGH_RATIO", 0.10)
MIXED_TYPE_RATIO = _env_float("SHEETFLOW_MIXED_TYPE_RATIO", 0.05)
DUPLICATE_PENALTY = _env_int("SHEETFLOW_DUPLICATE_PENALTY", 10)
MISSING_PENALTY_LOW = _env_int("SHEETFLOW_MISSING_PENALTY_LOW", 2)
MISSING_PENALTY_HIGH = _env_int("SHEETFLOW_MISSING_PENALTY_HIGH", 5)

# Session history and chart output.
HISTORY_LIMIT = _env_int("SHEETFLOW_HISTORY_LIMIT", 10)
MAX_CHART_POINTS = _env_int("SHEETFLOW_MAX_CHART_POINTS", 2000)

LOG_LEVEL = os.getenv("SHEETFLOW_LOG_LEVEL", "INFO").upper()


LOGGER_NAMES = ("config", "modules", "pipeline", "storage")


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a stream handler to the core loggers (idempotent)."""
    resolved = logging.getLevelName((level or LOG_LEVEL).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    for name in LOGGER_NAMES:
        core_logger = logging.getLogger(name)
        core_logger.setLevel(resolved)
        if not core_logger.handlers:
            core_logger.addHandler(handler)
