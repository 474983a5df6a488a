"""
Tests for partial providers.
"""
import pytest

from pagesmith.errors import PartialNotFoundError
from pagesmith.templates import (
    DEBUG_PARTIAL_NAME,
    ChainPartialProvider,
    FilePartialProvider,
    PartialProvider,
    StaticPartialProvider,
    default_partial_provider,
)


class TestStaticPartialProvider:
    def test_returns_registered_partial(self):
        provider = StaticPartialProvider({"header": "<h1>{{title}}</h1>"})
        assert provider.get("header") == "<h1>{{title}}</h1>"

    def test_missing_partial_raises(self):
        provider = StaticPartialProvider({})
        with pytest.raises(PartialNotFoundError) as exc_info:
            provider.get("nope")
        assert exc_info.value.name == "nope"

    def test_is_immutable_copy(self):
        source = {"a": "one"}
        provider = StaticPartialProvider(source)
        source["a"] = "changed"
        source["b"] = "two"

        assert provider.get("a") == "one"
        with pytest.raises(PartialNotFoundError):
            provider.get("b")

    def test_satisfies_protocol(self):
        assert isinstance(StaticPartialProvider(), PartialProvider)


class TestFilePartialProvider:
    def test_finds_file_with_extension(self, tmp_path):
        (tmp_path / "footer.mustache").write_text("footer")
        provider = FilePartialProvider([tmp_path])
        assert provider.get("footer") == "footer"

    def test_exact_name_before_extensions(self, tmp_path):
        (tmp_path / "nav").write_text("plain")
        (tmp_path / "nav.mustache").write_text("mustache")
        provider = FilePartialProvider([tmp_path])
        assert provider.get("nav") == "plain"

    def test_searches_paths_in_order(self, tmp_path):
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()
        (second / "x.stache").write_text("from second")
        provider = FilePartialProvider([first, second])
        assert provider.get("x") == "from second"

    def test_nested_names(self, tmp_path):
        (tmp_path / "shared").mkdir()
        (tmp_path / "shared" / "card.mustache").write_text("card")
        provider = FilePartialProvider([tmp_path])
        assert provider.get("shared/card") == "card"

    def test_missing_file_raises(self, tmp_path):
        provider = FilePartialProvider([tmp_path])
        with pytest.raises(PartialNotFoundError):
            provider.get("missing")


class TestChainPartialProvider:
    def test_static_wins_over_dynamic(self, tmp_path):
        (tmp_path / "x.mustache").write_text("from disk")
        chain = ChainPartialProvider(
            StaticPartialProvider({"x": "compiled in"}),
            FilePartialProvider([tmp_path]),
        )
        assert chain.get("x") == "compiled in"

    def test_empty_static_falls_through(self):
        chain = ChainPartialProvider(
            StaticPartialProvider({"x": ""}),
            StaticPartialProvider({"x": "hello"}),
        )
        assert chain.get("x") == "hello"

    def test_absent_static_falls_through(self, tmp_path):
        (tmp_path / "only_on_disk.mustache").write_text("disk")
        chain = ChainPartialProvider(StaticPartialProvider({}), FilePartialProvider([tmp_path]))
        assert chain.get("only_on_disk") == "disk"

    def test_last_error_is_returned(self, tmp_path):
        chain = ChainPartialProvider(StaticPartialProvider({"x": ""}), FilePartialProvider([tmp_path]))
        with pytest.raises(PartialNotFoundError):
            chain.get("x")

    def test_last_empty_result_is_returned_unchanged(self):
        chain = ChainPartialProvider(
            StaticPartialProvider({}),
            StaticPartialProvider({"x": ""}),
        )
        assert chain.get("x") == ""

    def test_more_than_two_layers(self):
        chain = ChainPartialProvider(
            StaticPartialProvider({}),
            StaticPartialProvider({"x": ""}),
            StaticPartialProvider({"x": "third"}),
        )
        assert chain.get("x") == "third"

    def test_requires_a_provider(self):
        with pytest.raises(ValueError):
            ChainPartialProvider()


class TestDefaultPartialProvider:
    def test_has_debug_partial(self, tmp_path):
        provider = default_partial_provider([tmp_path])
        assert "pagesmith-debug" in provider.get(DEBUG_PARTIAL_NAME)

    def test_builtin_beats_file_override(self, tmp_path):
        (tmp_path / "pagesmith").mkdir()
        (tmp_path / "pagesmith" / "debug.mustache").write_text("override")
        provider = default_partial_provider([tmp_path])
        assert provider.get(DEBUG_PARTIAL_NAME) != "override"
