"""
Tests for renderer variants and layout composition.
"""
import io

import pytest

from pagesmith.errors import RenderError
from pagesmith.rendering import (
    EMPTY_RENDERER,
    LayoutRenderer,
    NoopRenderer,
    StaticRenderer,
    TemplateRenderer,
)
from pagesmith.templates import StaticPartialProvider, TemplateCompiler


@pytest.fixture
def templates():
    compiler = TemplateCompiler(StaticPartialProvider({}))
    return {
        "page": compiler.compile("<h1>{{title}}</h1>{{#items}}<i>{{name}}</i>{{/items}}", "page"),
        "layout": compiler.compile("<html><body>{{{content}}}</body></html>", "layout"),
        "titled": compiler.compile("<title>{{title}}</title>{{{content}}}", "titled"),
    }


class BrokenSink:
    def write(self, data: bytes) -> int:
        raise OSError("disk full")


class TestTemplateRenderer:
    def test_writes_expansion(self, templates, sample_payload):
        sink = io.BytesIO()
        TemplateRenderer(templates["page"]).render(sink, sample_payload)
        assert sink.getvalue() == b"<h1>Welcome</h1><i>first</i><i>second</i>"

    def test_output_is_utf8(self, templates):
        rendered = TemplateRenderer(templates["page"]).render_bytes({"title": "café"})
        assert rendered == "<h1>café</h1>".encode("utf-8")

    def test_sink_failure_is_render_error(self, templates):
        with pytest.raises(RenderError, match="disk full"):
            TemplateRenderer(templates["page"]).render(BrokenSink(), {})

    def test_lookup_failure_is_render_error(self, templates):
        class Exploding:
            @property
            def title(self):
                raise RuntimeError("boom")

        with pytest.raises(RenderError, match="boom"):
            TemplateRenderer(templates["page"]).render(io.BytesIO(), Exploding())


class TestLayoutRenderer:
    def test_composition_law(self, templates, sample_payload):
        page, layout = templates["page"], templates["layout"]
        composed = LayoutRenderer(page, layout).render_bytes(sample_payload)
        expected = layout.render({"content": page.render(sample_payload)})
        assert composed == expected.encode("utf-8")

    def test_content_is_not_escaped(self, templates):
        rendered = LayoutRenderer(templates["page"], templates["layout"]).render_bytes({"title": "x"})
        assert rendered == b"<html><body><h1>x</h1></body></html>"

    def test_layout_sees_page_data(self, templates):
        rendered = LayoutRenderer(templates["page"], templates["titled"]).render_bytes({"title": "T"})
        assert rendered == b"<title>T</title><h1>T</h1>"

    def test_content_slot_shadows_data(self, templates):
        rendered = LayoutRenderer(templates["page"], templates["layout"]).render_bytes(
            {"title": "x", "content": "from data"}
        )
        assert b"from data" not in rendered

    def test_inner_template_never_sees_layout(self, templates):
        compiler = TemplateCompiler(StaticPartialProvider({}))
        inner = compiler.compile("[{{content}}]", "inner")
        rendered = LayoutRenderer(inner, templates["layout"]).render_bytes({})
        assert rendered == b"<html><body>[]</body></html>"

    def test_sink_failure_is_render_error(self, templates):
        with pytest.raises(RenderError):
            LayoutRenderer(templates["page"], templates["layout"]).render(BrokenSink(), {})


class TestStaticAndNoop:
    def test_static_ignores_data(self):
        renderer = StaticRenderer(b"<p>fixed</p>")
        assert renderer.render_bytes({"anything": 1}) == b"<p>fixed</p>"
        assert renderer.render_bytes(None) == b"<p>fixed</p>"

    def test_static_sink_failure(self):
        with pytest.raises(RenderError):
            StaticRenderer(b"x").render(BrokenSink(), None)

    def test_noop_writes_nothing(self):
        assert NoopRenderer().render_bytes({"title": "x"}) == b""
        assert isinstance(EMPTY_RENDERER, NoopRenderer)

    def test_noop_never_touches_sink(self):
        NoopRenderer().render(BrokenSink(), {})
