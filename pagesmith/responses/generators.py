"""
Response generators.

A response generator produces the data a page template is rendered with:

- StaticResponseGenerator returns the page's fixed ``extra`` payload
- DynamicResponseGenerator fetches JSON from the page's backend

Requests are duck-typed: anything exposing ``path_params`` and
``query_params`` mappings works, which covers starlette/FastAPI requests.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from pagesmith.client.cached import FetchResponse
from pagesmith.config.schemas import Page
from pagesmith.errors import (
    BackendDecodeError,
    BackendStatusError,
    BackendTransportError,
    FetchError,
)

logger = logging.getLogger(__name__)

_PARAM = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


class RequestLike(Protocol):
    path_params: Mapping[str, Any]
    query_params: Mapping[str, Any]


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchResponse: ...


class DecodeMode(str, Enum):
    """Expected JSON shape of a backend body."""

    OBJECT = "object"
    ARRAY = "array"


class ResponseGenerator(ABC):
    """Base class for response generators."""

    @abstractmethod
    async def generate(self, request: RequestLike) -> Any:
        """
        Produce the data to render for ``request``.

        Raises:
            GenerationError: If the data cannot be produced
        """
        ...


class StaticResponseGenerator(ResponseGenerator):
    """Always returns the page's fixed payload, whatever the request."""

    def __init__(self, page: Page):
        self.page = page

    async def generate(self, request: RequestLike) -> Any:
        return self.page.extra


def build_url(pattern: str, request: RequestLike) -> str:
    """
    Fill a backend URL pattern from a request.

    ``:name`` segments are replaced by the matching path parameter and the
    request's query parameters are merged into the query string. Segments
    without a matching parameter are left untouched.
    """
    params = request.path_params or {}

    def substitute(match: re.Match) -> str:
        key = match.group(1)
        if key not in params:
            return match.group(0)
        return quote(str(params[key]), safe="")

    url = _PARAM.sub(substitute, pattern)
    query = request.query_params or {}
    # Starlette query params keep repeated keys only through multi_items()
    items = query.multi_items() if hasattr(query, "multi_items") else list(query.items())
    if items:
        url = str(httpx.URL(url).copy_merge_params(items))
    return url


class DynamicResponseGenerator(ResponseGenerator):
    """
    Fetches the page data from its backend.

    Failures are classified:
        BackendTransportError: the backend could not be reached
        BackendStatusError: the backend answered with a non-2xx status
        BackendDecodeError: the body is not JSON of the expected shape
    """

    def __init__(self, page: Page, client: Fetcher, decode_mode: DecodeMode | None = None):
        if not page.backend:
            raise ValueError(f"Page {page.name} has no backend")
        self.page = page
        self.client = client
        self.decode_mode = decode_mode or (DecodeMode.ARRAY if page.is_array else DecodeMode.OBJECT)

    async def generate(self, request: RequestLike) -> Any:
        url = build_url(self.page.backend, request)

        try:
            response = await self.client.fetch(url)
        except FetchError as e:
            logger.warning(f"[generator] {self.page.name}: backend unreachable: {e}")
            raise BackendTransportError(str(e), url=url) from e

        if not response.is_success:
            logger.warning(
                f"[generator] {self.page.name}: backend returned {response.status_code} for {url}"
            )
            raise BackendStatusError(
                "backend returned an error status",
                url=url,
                status_code=response.status_code,
            )

        return self._decode(response.body, url)

    def _decode(self, body: bytes, url: str) -> Any:
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BackendDecodeError(f"invalid JSON from backend: {e}", url=url) from e

        if self.decode_mode is DecodeMode.ARRAY:
            if not isinstance(data, list):
                raise BackendDecodeError(
                    f"expected a JSON array, got {type(data).__name__}", url=url
                )
        elif not isinstance(data, dict):
            raise BackendDecodeError(f"expected a JSON object, got {type(data).__name__}", url=url)
        return data


def create_response_generator(page: Page, client: Fetcher | None) -> ResponseGenerator:
    """Static generator for pages without a backend, dynamic otherwise."""
    if page.is_static:
        return StaticResponseGenerator(page)
    if client is None:
        raise ValueError(f"Page {page.name} needs a client for its backend")
    return DynamicResponseGenerator(page, client)
