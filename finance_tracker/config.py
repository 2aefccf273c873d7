"""Configuration management for the finance tracker.

This module centralizes all configuration values including the API
endpoint, local paths, list defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

# Base project root - assumes this file is in finance_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Remote API
API_BASE_URL = os.getenv("FINANCE_TRACKER_API_URL", "http://localhost:8080/api").rstrip("/")
REQUEST_TIMEOUT = float(os.getenv("FINANCE_TRACKER_TIMEOUT", "10"))

# Data directories
DATA_DIR = Path(os.getenv("FINANCE_TRACKER_DATA_DIR", _PROJECT_ROOT / "data"))
EXPORT_DIR = DATA_DIR / "exports"

# Durable client state (tokens, user, theme)
SESSION_PATH = Path(
    os.getenv("FINANCE_TRACKER_SESSION_PATH", DATA_DIR / "session.json")
).resolve()

# List views
DEFAULT_PAGE_SIZE = 5
PAGE_SIZE_OPTIONS = (5, 10, 20, 50)
DEFAULT_SORT_KEY = "dateDesc"

# Analytics
WEEKLY_TREND_LIMIT = 8

LOG_LEVEL = os.getenv("FINANCE_TRACKER_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, EXPORT_DIR, SESSION_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """Configure root logging once for scripts and the Streamlit app."""
    resolved = level if level is not None else LOG_LEVEL
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
