"""
HTTP handlers.

- Handler: serves one Page, rendering the data of its response generator
  with the latest renderer the broker delivered
- StaticHandler: echoes fixed content
- ErrorHandler: writes a fixed page for a given error status

Handler lifecycle:
    handler = Handler(HandlerConfig.from_page(page, client), broker)
    await handler.start()   # spawns the subscription loop
    await handler.ready()   # first renderer received
    response = await handler.serve(request)
"""

import asyncio
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from fastapi import HTTPException, Request
from fastapi.responses import Response

from pagesmith.client.cached import CachedClient
from pagesmith.config.schemas import Page
from pagesmith.errors import ConfigError, GenerationError, RenderError
from pagesmith.rendering.broker import Subscription, topic_for
from pagesmith.rendering.renderer import EMPTY_RENDERER, Renderer
from pagesmith.responses.generators import ResponseGenerator, create_response_generator

logger = logging.getLogger(__name__)

HTML_MEDIA_TYPE = "text/html; charset=utf-8"
DEFAULT_CACHE_TTL = 3600.0

_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> float:
    """
    Parse a duration string such as ``"1h30m"``, ``"90s"`` or ``"250ms"``.

    Returns:
        The duration in seconds

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip()
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration: {value!r}")

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return sign * total


def cache_control_for(cache_ttl: str) -> str:
    """Cache-Control value for a page lifetime, one hour when unparsable."""
    try:
        seconds = parse_duration(cache_ttl)
    except ValueError:
        logger.warning(f"[handler] Invalid cache_ttl {cache_ttl!r}, using one hour")
        seconds = DEFAULT_CACHE_TTL
    return f"public, max-age={int(seconds)}"


class Subscriber(Protocol):
    async def subscribe(self, subscription: Subscription) -> None: ...


# =============================================================================
# Page handler
# =============================================================================


@dataclass(frozen=True)
class HandlerConfig:
    """Everything a Handler needs besides the broker."""

    page: Page
    response_generator: ResponseGenerator
    cache_control: str = f"public, max-age={int(DEFAULT_CACHE_TTL)}"
    renderer: Renderer = EMPTY_RENDERER

    @classmethod
    def from_page(cls, page: Page, client: CachedClient | None = None) -> "HandlerConfig":
        return cls(
            page=page,
            response_generator=create_response_generator(page, client),
            cache_control=cache_control_for(page.cache_ttl),
        )


class Handler:
    """
    Serves one Page.

    A background task keeps the handler subscribed to its topic and swaps
    in every renderer the broker delivers. Requests read whichever renderer
    is current when they reach the render step; the loop is the only writer
    and rebinds the attribute in one step, so a request sees either the old
    or the new renderer, never a partial update.
    """

    def __init__(self, config: HandlerConfig, broker: Subscriber):
        self.page = config.page
        self.response_generator = config.response_generator
        self.cache_control = config.cache_control
        self._renderer: Renderer = config.renderer
        self._broker = broker
        self._version = 0
        self._ready = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def topic(self) -> str:
        return topic_for(self.page.template, self.page.layout)

    @property
    def renderer(self) -> Renderer:
        return self._renderer

    @property
    def version(self) -> int:
        """Version of the current renderer, 0 before the first delivery."""
        return self._version

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    async def start(self) -> None:
        """Spawn the subscription loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(
                self._update_renderer(), name=f"handler-{self.page.name}"
            )

    async def ready(self) -> None:
        """Wait for the first renderer."""
        await self._ready.wait()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _update_renderer(self) -> None:
        topic = self.topic
        while True:
            subscription = Subscription.create(topic, seen_version=self._version)
            await self._broker.subscribe(subscription)
            update = await subscription.delivery
            self._renderer = update.renderer
            self._version = update.version
            self._ready.set()
            logger.info(f"[handler] {self.page.name}: renderer for {topic} now at v{update.version}")

    async def serve(self, request: Request) -> Response:
        """Render the page for one request."""
        try:
            data = await self.response_generator.generate(request)
        except GenerationError as e:
            logger.error(f"[handler] {self.page.name}: generating response: {e}")
            raise HTTPException(status_code=500) from e

        headers = {"Cache-Control": self.cache_control}
        buffer = io.BytesIO()
        try:
            self._renderer.render(buffer, data)
        except RenderError as e:
            logger.error(f"[handler] {self.page.name}: rendering: {e}")
            raise HTTPException(status_code=500) from e

        return Response(content=buffer.getvalue(), media_type=HTML_MEDIA_TYPE, headers=headers)


# =============================================================================
# Static and error pages
# =============================================================================


def _read_content(path: str | Path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        logger.error(f"[handler] Reading {path}: {e}")
        raise ConfigError(f"Cannot read {path}: {e}") from e


class StaticHandler:
    """Writes the same content for every request."""

    def __init__(self, content: bytes, media_type: str = HTML_MEDIA_TYPE):
        self.content = content
        self.media_type = media_type

    @classmethod
    def from_file(cls, path: str | Path, media_type: str | None = None) -> "StaticHandler":
        if media_type is None:
            is_html = Path(path).suffix in (".html", ".htm")
            media_type = HTML_MEDIA_TYPE if is_html else "text/plain; charset=utf-8"
        return cls(_read_content(path), media_type)

    async def serve(self, request: Request) -> Response:
        return Response(content=self.content, media_type=self.media_type)


class ErrorHandler:
    """
    Exception handler writing a fixed page for one HTTP error status.

    Intended for aborted requests (HTTPException) but usable for unhandled
    errors as well.
    """

    def __init__(self, content: bytes, status_code: int = 500):
        self.content = content
        self.status_code = status_code

    @classmethod
    def from_file(cls, path: str | Path, status_code: int = 500) -> "ErrorHandler":
        return cls(_read_content(path), status_code)

    async def __call__(self, request: Request, exc: Exception) -> Response:
        return Response(
            content=self.content,
            status_code=self.status_code,
            media_type=HTML_MEDIA_TYPE,
        )
