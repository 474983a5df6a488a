"""
Renderers and the broker that keeps handlers supplied with them.
"""

from .broker import (
    TOPIC_SEPARATOR,
    RendererBroker,
    RendererUpdate,
    Subscription,
    split_topic,
    topic_for,
)
from .renderer import (
    EMPTY_RENDERER,
    LayoutRenderer,
    NoopRenderer,
    Renderer,
    StaticRenderer,
    TemplateRenderer,
)

__all__ = [
    "EMPTY_RENDERER",
    "TOPIC_SEPARATOR",
    "LayoutRenderer",
    "NoopRenderer",
    "Renderer",
    "RendererBroker",
    "RendererUpdate",
    "StaticRenderer",
    "Subscription",
    "TemplateRenderer",
    "split_topic",
    "topic_for",
]
