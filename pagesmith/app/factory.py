"""
FastAPI application factory.

Mounts one route per configured page, the static pages, the 404/500 error
pages and, in development mode, an endpoint that recompiles templates and
pushes the new renderers to the running handlers.
"""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pagesmith import __version__
from pagesmith.config.schemas import AppSettings, EngineConfig
from pagesmith.engine import Engine
from pagesmith.errors import CompilationError
from pagesmith.handlers import ErrorHandler, StaticHandler
from pagesmith.templates.defaults import DEFAULT_404_PAGE, DEFAULT_500_PAGE

logger = logging.getLogger(__name__)

RELOAD_PATH = "/__pagesmith/reload"

_COLON_PARAM = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")
_STAR_PARAM = re.compile(r"\*([A-Za-z_][A-Za-z0-9_]*)")


def route_path(url_pattern: str) -> str:
    """Translate ``/items/:id`` and ``/files/*path`` into FastAPI paths."""
    path = _COLON_PARAM.sub(r"{\1}", url_pattern)
    return _STAR_PARAM.sub(r"{\1:path}", path)


def _error_handlers(config: EngineConfig) -> dict[int, ErrorHandler]:
    not_found = (
        ErrorHandler.from_file(config.not_found_page, 404)
        if config.not_found_page
        else ErrorHandler(DEFAULT_404_PAGE.encode("utf-8"), 404)
    )
    server_error = (
        ErrorHandler.from_file(config.error_page, 500)
        if config.error_page
        else ErrorHandler(DEFAULT_500_PAGE.encode("utf-8"), 500)
    )
    return {404: not_found, 500: server_error}


def create_app(config: EngineConfig, settings: AppSettings | None = None) -> FastAPI:
    """
    Build the application for ``config``.

    Templates are compiled here, so a broken template aborts before the
    server starts. Handlers subscribe to the broker during the lifespan
    startup, and requests are served once every handler has a renderer.

    Raises:
        CompilationError: If any template or layout fails to compile
        ConfigError: If a static or error page file cannot be read
    """
    settings = settings or AppSettings()
    engine = Engine.from_config(config)
    error_handlers = _error_handlers(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Pagesmith engine...")
        try:
            await engine.start()
        except Exception as e:
            logger.error(f"Failed to start engine: {e}", exc_info=True)
            raise

        yield

        logger.info("Shutting down Pagesmith engine...")
        try:
            await engine.stop()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}", exc_info=True)

    app = FastAPI(
        title=settings.service_name,
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.engine = engine

    async def http_error(request: Request, exc: StarletteHTTPException):
        handler = error_handlers.get(exc.status_code)
        if handler is None:
            return await http_exception_handler(request, exc)
        return await handler(request, exc)

    app.add_exception_handler(StarletteHTTPException, http_error)

    for handler in engine.handlers:
        page = handler.page
        app.add_api_route(
            route_path(page.url_pattern),
            handler.serve,
            methods=["GET"],
            name=page.title,
            include_in_schema=False,
        )
        logger.info(f"[app] {page.url_pattern} -> {page.name} ({handler.topic})")

    for url, path in config.static_pages.items():
        app.add_api_route(
            url, StaticHandler.from_file(path).serve, methods=["GET"], include_in_schema=False
        )
        logger.info(f"[app] {url} -> static {path}")

    if settings.dev_mode:

        @app.post(RELOAD_PATH, include_in_schema=False)
        async def reload_templates(name: list[str] | None = Query(None)) -> Any:
            """Recompile templates (all, or the given names) and push them to handlers."""
            try:
                topics = await engine.broker.reload(name)
            except CompilationError as e:
                return JSONResponse(
                    status_code=422,
                    content={"errors": {k: str(v) for k, v in e.errors.items()}},
                )
            return {"topics": topics}

        logger.warning(f"[app] Development mode: template reload exposed at {RELOAD_PATH}")

    return app
