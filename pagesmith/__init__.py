"""
Pagesmith - HTML pages rendered from mustache templates and JSON backends.

Pagesmith serves pages described in a configuration file. Each page binds:

- **A template**, optionally wrapped in a layout, compiled once at startup
- **A data source**: a fixed payload, or JSON fetched from a backend
- **A cache lifetime** sent as the page's Cache-Control header

Templates can be recompiled while the server runs. The renderer broker
pushes new renderers to the page handlers, which keep themselves
subscribed in the background.

Quick Start:
    >>> from pagesmith.config import load_config
    >>> from pagesmith.app import create_app
    >>>
    >>> app = create_app(load_config("pagesmith.yaml"))
"""

__version__ = "0.1.0"
__license__ = "MIT"

from pagesmith.config import EngineConfig, Page
from pagesmith.engine import Engine
from pagesmith.rendering import Renderer, RendererBroker, Subscription
from pagesmith.responses import ResponseGenerator
from pagesmith.templates import TemplateCompiler

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Core
    "Engine",
    "EngineConfig",
    "Page",
    "Renderer",
    "RendererBroker",
    "ResponseGenerator",
    "Subscription",
    "TemplateCompiler",
]
