"""
Pagesmith - template-driven HTML pages over JSON backends.

ASGI entry point. The configuration file is read from ``PAGESMITH_CONFIG``.

    uvicorn pagesmith.app.main:app
    python -m pagesmith.app.main
"""

from __future__ import annotations

import logging

from pagesmith.app.dependencies import get_settings
from pagesmith.app.factory import create_app
from pagesmith.config.loader import load_config

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = create_app(load_config(settings.config_path), settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pagesmith.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
