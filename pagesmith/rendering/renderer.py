"""
Renderers.

A renderer turns a data value into bytes written to a sink. The variants:

- TemplateRenderer: one compiled template
- LayoutRenderer: a template rendered inside a layout's ``content`` slot
- StaticRenderer: fixed bytes, data is ignored
- NoopRenderer: writes nothing

Renderers are immutable; the broker swaps whole instances when templates
change.
"""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from typing import Any, Protocol

from pagesmith.errors import RenderError
from pagesmith.templates.compiler import CompiledTemplate

CONTENT_KEY = "content"


class Sink(Protocol):
    """Anything that accepts bytes, e.g. ``io.BytesIO``."""

    def write(self, data: bytes, /) -> Any: ...


class Renderer(ABC):
    """Base class for all renderers."""

    @abstractmethod
    def render(self, sink: Sink, data: Any) -> None:
        """
        Write the rendered output for ``data`` to ``sink``.

        Raises:
            RenderError: If the output cannot be produced or written
        """
        ...

    def render_bytes(self, data: Any) -> bytes:
        """Convenience wrapper returning the output as bytes."""
        buffer = io.BytesIO()
        self.render(buffer, data)
        return buffer.getvalue()


def _write(sink: Sink, text: str, name: str) -> None:
    try:
        sink.write(text.encode("utf-8"))
    except Exception as e:
        raise RenderError(f"writing output of {name}: {e}") from e


class TemplateRenderer(Renderer):
    """Renders a single compiled template."""

    def __init__(self, template: CompiledTemplate):
        self.template = template

    def render(self, sink: Sink, data: Any) -> None:
        try:
            text = self.template.render(data)
        except Exception as e:
            raise RenderError(f"rendering {self.template.name}: {e}") from e
        _write(sink, text, self.template.name)

    def __repr__(self) -> str:
        return f"TemplateRenderer({self.template.name!r})"


class LayoutRenderer(Renderer):
    """
    Renders a template and injects the result into a layout.

    The inner template sees only ``data``. The layout sees ``data`` with a
    ``content`` entry on top holding the inner output, so layouts use
    ``{{{content}}}`` to place the page body and can still read page data.
    """

    def __init__(self, template: CompiledTemplate, layout: CompiledTemplate):
        self.template = template
        self.layout = layout

    def render(self, sink: Sink, data: Any) -> None:
        try:
            content = self.template.render(data)
        except Exception as e:
            raise RenderError(f"rendering {self.template.name}: {e}") from e
        try:
            text = self.layout.render(data, {CONTENT_KEY: content})
        except Exception as e:
            raise RenderError(
                f"rendering {self.template.name} in layout {self.layout.name}: {e}"
            ) from e
        _write(sink, text, self.layout.name)

    def __repr__(self) -> str:
        return f"LayoutRenderer({self.template.name!r}, layout={self.layout.name!r})"


class StaticRenderer(Renderer):
    """Writes the same bytes for every request."""

    def __init__(self, content: bytes):
        self.content = content

    def render(self, sink: Sink, data: Any) -> None:
        try:
            sink.write(self.content)
        except Exception as e:
            raise RenderError(f"writing static content: {e}") from e


class NoopRenderer(Renderer):
    """Writes nothing."""

    def render(self, sink: Sink, data: Any) -> None:
        return None


EMPTY_RENDERER = NoopRenderer()
