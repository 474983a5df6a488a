"""
Engine wiring.

Builds the broker, the shared backend client and one handler per page
from an EngineConfig, and drives their lifecycle.

Startup order:
    1. compile every template and layout (fails fast on any error)
    2. start the broker task
    3. start every handler's subscription loop
    4. wait until every handler received its first renderer
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from pagesmith.client.cached import CachedClient
from pagesmith.config.schemas import EngineConfig
from pagesmith.handlers import Handler, HandlerConfig
from pagesmith.rendering.broker import RendererBroker
from pagesmith.templates.compiler import TemplateCompiler
from pagesmith.templates.partials import default_partial_provider

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """Broker, client and handlers for one configuration."""

    config: EngineConfig
    broker: RendererBroker
    client: CachedClient
    handlers: list[Handler] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: EngineConfig) -> Engine:
        """
        Compile the configured templates and create the handlers.

        Raises:
            CompilationError: If any template or layout fails to compile
        """
        compiler = TemplateCompiler(default_partial_provider(config.partials_paths))
        broker = RendererBroker(config.sources, compiler)
        broker.compile_all()

        client = CachedClient(
            timeout=config.backend_timeout,
            default_ttl=config.backend_cache_ttl,
            max_entries=config.backend_cache_size,
        )
        handlers = [Handler(HandlerConfig.from_page(page, client), broker) for page in config.pages]
        return cls(config=config, broker=broker, client=client, handlers=handlers)

    def handler(self, name: str) -> Handler:
        for handler in self.handlers:
            if handler.page.name == name:
                return handler
        raise KeyError(name)

    async def start(self) -> None:
        await self.broker.start()
        for handler in self.handlers:
            await handler.start()
        await asyncio.gather(*(handler.ready() for handler in self.handlers))
        logger.info(f"[engine] {len(self.handlers)} handlers ready")

    async def stop(self) -> None:
        for handler in self.handlers:
            await handler.stop()
        await self.broker.stop()
        await self.client.close()
        logger.info("[engine] Stopped")
