"""
Logging utilities for the back-office backend.

Provides standardized logger configuration.

SECURITY RULES:
- NEVER log API keys (OpenAI, DeepSeek, Supabase anon keys)
- NEVER log Firebase ID tokens or session contents
- NEVER log full document content or embeddings
- NEVER log service account credentials

Acceptable logging:
- High-level events (e.g., "Hybrid search started", "Sheet synced")
- Counts and identifiers (e.g., "sheet_id=...", "12 results")
- Sanitized error messages
"""

import logging
from typing import Optional

from backoffice.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with its own stream handler.

    Most modules use logging.getLogger(__name__) and rely on the root
    configuration from main.py; this helper is for modules that must log
    even when imported outside the app (scripts, health checks).

    Args:
        name: Module name (typically __name__)
        level: Level name such as "DEBUG"; defaults to settings.LOG_LEVEL

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)
        # The root handler from basicConfig would print every line twice
        logger.propagate = False

    return logger


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """Mask a secret, keeping only the last `visible` characters."""
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
