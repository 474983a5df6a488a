"""
FastAPI application for Pagesmith.

``pagesmith.app.main`` builds the application at import time; import
``create_app`` from here to build one for an explicit configuration.
"""

from .factory import create_app, route_path

__all__ = ["create_app", "route_path"]
