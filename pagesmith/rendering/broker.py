"""
Renderer Broker.

The broker owns every compiled template and layout and hands renderers to
the handlers that need them. It runs as a single asyncio task (an actor):
subscriptions and reload commands arrive through one inbox queue, and only
that task touches the topic -> pending-subscriptions map.

Subscription protocol (one-shot, re-arming):

    handler                                  broker
    ───────                                  ──────
    subscribe(Subscription(topic, future)) ─▶ accept
                                              │ newer renderer known?
                                              ├─ yes: resolve future now
                                              └─ no:  park until next reload
    await future  ◀────────────────────────── RendererUpdate
    swap renderer, subscribe again ...

Every publication carries a version. A subscription states the version its
owner last received, and the broker answers immediately when it already
holds something newer. A reload that happens while a handler is between
two subscriptions is therefore picked up on re-subscription instead of
being lost.

Topics:
    "<template>"                 plain template
    "<layout>-:-<template>"      template rendered inside a layout

Usage:
    broker = RendererBroker({"home": "tpl/home.mustache"}, compiler)
    broker.compile_all()
    await broker.start()

    sub = Subscription.create(topic_for("home"))
    await broker.subscribe(sub)
    update = await sub.delivery
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from pagesmith.errors import CompilationError, TemplateError
from pagesmith.rendering.renderer import LayoutRenderer, Renderer, TemplateRenderer
from pagesmith.templates.compiler import CompiledTemplate, TemplateCompiler

logger = logging.getLogger(__name__)

TOPIC_SEPARATOR = "-:-"


def topic_for(template: str, layout: str | None = None) -> str:
    """Topic key for a template, optionally rendered inside a layout."""
    if layout:
        return f"{layout}{TOPIC_SEPARATOR}{template}"
    return template


def split_topic(topic: str) -> tuple[str, str | None]:
    """Inverse of topic_for: returns (template, layout)."""
    if TOPIC_SEPARATOR in topic:
        layout, template = topic.split(TOPIC_SEPARATOR, 1)
        return template, layout
    return topic, None


# =============================================================================
# Messages
# =============================================================================


@dataclass(frozen=True, slots=True)
class RendererUpdate:
    """A renderer published on a topic."""

    topic: str
    version: int
    renderer: Renderer


@dataclass(eq=False)
class Subscription:
    """
    One-shot registration for the next renderer on ``topic``.

    The broker resolves ``delivery`` exactly once and then forgets the
    subscription. Callers that want further updates subscribe again.
    """

    topic: str
    delivery: asyncio.Future[RendererUpdate]
    seen_version: int = 0

    @classmethod
    def create(cls, topic: str, seen_version: int = 0) -> Subscription:
        loop = asyncio.get_running_loop()
        return cls(topic=topic, delivery=loop.create_future(), seen_version=seen_version)


@dataclass(eq=False)
class _Reload:
    names: tuple[str, ...] | None
    done: asyncio.Future[list[str]]


# =============================================================================
# Broker
# =============================================================================


@dataclass
class RendererBroker:
    """
    Compiles templates and broadcasts renderers by topic.

    Templates and layouts share one namespace: ``sources`` maps an artifact
    name to the file holding its source.

    Attributes:
        sources: artifact name -> template path
        compiler: compiler used for every (re)compilation
        inbox_size: registrations the inbox buffers before subscribe() blocks
    """

    sources: Mapping[str, str | Path]
    compiler: TemplateCompiler
    inbox_size: int = 1

    _compiled: dict[str, CompiledTemplate] = field(default_factory=dict, init=False)
    _published: dict[str, RendererUpdate] = field(default_factory=dict, init=False)
    _pending: dict[str, list[Subscription]] = field(default_factory=dict, init=False)
    _version: int = field(default=0, init=False)
    _inbox: asyncio.Queue | None = field(default=None, init=False)
    _task: asyncio.Task | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.sources = {name: Path(path) for name, path in self.sources.items()}

    # =========================================================================
    # Compilation
    # =========================================================================

    @property
    def compiled(self) -> list[str]:
        return sorted(self._compiled)

    def compile_all(self) -> None:
        """
        Compile every declared source.

        All sources are attempted; failures are logged and reported together.

        Raises:
            CompilationError: If any source failed to compile
        """
        errors = self._compile(self.sources)
        logger.info(f"[broker] Compiled {len(self._compiled)}/{len(self.sources)} templates")
        if errors:
            raise CompilationError(errors)

    def _compile(self, names: Iterable[str]) -> dict[str, Exception]:
        errors: dict[str, Exception] = {}
        for name in names:
            path = self.sources.get(name)
            if path is None:
                errors[name] = TemplateError(f"unknown template: {name}")
                logger.error(f"[broker] Cannot compile {name}: not declared")
                continue
            try:
                self._compiled[name] = self.compiler.compile_file(path, name)
            except (OSError, UnicodeDecodeError, TemplateError) as e:
                logger.error(f"[broker] Failed to compile {name} ({path}): {e}")
                errors[name] = e
        return errors

    def _build(self, topic: str) -> Renderer | None:
        template_name, layout_name = split_topic(topic)
        template = self._compiled.get(template_name)
        if template is None:
            return None
        if layout_name is None:
            return TemplateRenderer(template)
        layout = self._compiled.get(layout_name)
        if layout is None:
            return None
        return LayoutRenderer(template, layout)

    def _publish(self, topic: str) -> RendererUpdate | None:
        renderer = self._build(topic)
        if renderer is None:
            logger.warning(f"[broker] Nothing to publish for topic {topic}")
            return None
        self._version += 1
        update = RendererUpdate(topic=topic, version=self._version, renderer=renderer)
        self._published[topic] = update

        waiting = self._pending.pop(topic, [])
        delivered = 0
        for sub in waiting:
            if not sub.delivery.done():
                sub.delivery.set_result(update)
                delivered += 1
        logger.debug(f"[broker] Published {topic} v{update.version} to {delivered} subscriber(s)")
        return update

    def latest(self, topic: str) -> RendererUpdate | None:
        """Last renderer published on ``topic``, if any."""
        return self._published.get(topic)

    def affected_topics(self, names: Iterable[str]) -> list[str]:
        """Known topics that depend on any of the given artifacts."""
        names = set(names)
        known = set(self._published) | set(self._pending)
        affected = []
        for topic in sorted(known):
            template, layout = split_topic(topic)
            if template in names or layout in names:
                affected.append(topic)
        return affected

    # =========================================================================
    # Actor
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _get_inbox(self) -> asyncio.Queue:
        if self._inbox is None:
            self._inbox = asyncio.Queue(maxsize=self.inbox_size)
        return self._inbox

    async def start(self) -> None:
        """Start the broker task."""
        if self.is_running:
            return
        self._get_inbox()
        self._task = asyncio.create_task(self._run(), name="renderer-broker")
        logger.info(f"[broker] Started with {len(self._compiled)} compiled templates")

    async def stop(self) -> None:
        """Stop the broker task and cancel parked subscriptions."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        for waiting in self._pending.values():
            for sub in waiting:
                sub.delivery.cancel()
        self._pending.clear()
        logger.info("[broker] Stopped")

    async def subscribe(self, subscription: Subscription) -> None:
        """Hand a subscription to the broker. Blocks while the inbox is full."""
        await self._get_inbox().put(subscription)

    async def reload(self, names: Iterable[str] | None = None) -> list[str]:
        """
        Recompile artifacts and broadcast the affected topics.

        Args:
            names: Artifacts to recompile, or None for all of them

        Returns:
            The topics that received a new renderer

        Raises:
            CompilationError: If any artifact failed; successes are still published
        """
        if not self.is_running:
            raise RuntimeError("broker is not running")
        done: asyncio.Future[list[str]] = asyncio.get_running_loop().create_future()
        await self._get_inbox().put(_Reload(tuple(names) if names is not None else None, done))
        return await done

    async def _run(self) -> None:
        inbox = self._get_inbox()
        while True:
            message = await inbox.get()
            try:
                if isinstance(message, Subscription):
                    self._accept(message)
                else:
                    self._reload(message)
            finally:
                inbox.task_done()

    def _accept(self, sub: Subscription) -> None:
        if sub.delivery.done():
            return
        update = self._published.get(sub.topic) or self._publish(sub.topic)
        if update is not None and update.version > sub.seen_version:
            sub.delivery.set_result(update)
            return
        self._pending.setdefault(sub.topic, []).append(sub)

    def _reload(self, command: _Reload) -> None:
        names = list(command.names) if command.names is not None else list(self.sources)
        logger.info(f"[broker] Recompiling {len(names)} template(s)")
        errors = self._compile(names)

        refreshed = [name for name in names if name not in errors]
        published = []
        for topic in self.affected_topics(refreshed):
            if self._publish(topic) is not None:
                published.append(topic)

        if command.done.done():
            return
        if errors:
            command.done.set_exception(CompilationError(errors))
        else:
            command.done.set_result(published)
