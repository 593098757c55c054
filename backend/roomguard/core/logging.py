"""Process-wide logging setup."""

from __future__ import annotations

import logging
import sys

from roomguard.core.config import get_settings

_LOGGING_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once; later calls are no-ops."""
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    resolved_level = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=resolved_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    _LOGGING_CONFIGURED = True
