"""
Settings for the Pagesmith process.

Settings come from ``PAGESMITH_*`` environment variables and are cached
for the lifetime of the process.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from pagesmith.config.schemas import AppSettings

logger = logging.getLogger(__name__)


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        service_name=os.getenv("PAGESMITH_SERVICE_NAME", "pagesmith"),
        config_path=os.getenv("PAGESMITH_CONFIG", "pagesmith.json"),
        debug=_flag("PAGESMITH_DEBUG"),
        dev_mode=_flag("PAGESMITH_DEV_MODE"),
        host=os.getenv("PAGESMITH_HOST", "0.0.0.0"),
        port=int(os.getenv("PAGESMITH_PORT", "8080")),
        log_level=os.getenv("PAGESMITH_LOG_LEVEL", "INFO").upper(),
    )
