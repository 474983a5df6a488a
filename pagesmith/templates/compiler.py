"""
Mustache template compiler.

Parses template source into a small node tree that renders against a
stack of context values. Partials are resolved through a PartialProvider
and compiled inline while parsing, so a compiled template never touches
the provider again at render time.

Supported tags:
    {{name}}            HTML-escaped interpolation
    {{{name}}}          unescaped interpolation
    {{& name}}          unescaped interpolation
    {{#name}}...{{/name}}  section
    {{^name}}...{{/name}}  inverted section
    {{! comment}}       ignored
    {{> name}}          partial
    {{=<% %>=}}         delimiter change

Names may be dotted (``user.address.city``) and ``.`` refers to the top
of the context stack.

Section, comment, partial and delimiter tags that sit alone on a line are
"standalone": the whole line disappears from the output. A standalone
partial is indented like its tag.

Usage:
    compiler = TemplateCompiler(default_partial_provider())
    template = compiler.compile("Hello {{name}}!")
    template.render({"name": "world"})  # "Hello world!"
"""

from __future__ import annotations

import html
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pagesmith.errors import PartialNotFoundError, TemplateSyntaxError
from pagesmith.templates.partials import PartialProvider

logger = logging.getLogger(__name__)

DEFAULT_OPEN_TAG = "{{"
DEFAULT_CLOSE_TAG = "}}"

_STANDALONE_SIGILS = "#^/!>="


# =============================================================================
# Nodes
# =============================================================================


@dataclass(frozen=True, slots=True)
class _Text:
    text: str

    def render(self, stack: list[Any], out: list[str]) -> None:
        out.append(self.text)


@dataclass(frozen=True, slots=True)
class _Variable:
    name: str
    escape: bool = True

    def render(self, stack: list[Any], out: list[str]) -> None:
        text = _stringify(_lookup(stack, self.name))
        out.append(html.escape(text) if self.escape else text)


@dataclass(frozen=True, slots=True)
class _Section:
    name: str
    inverted: bool = False
    nodes: list = field(default_factory=list)

    def render(self, stack: list[Any], out: list[str]) -> None:
        value = _lookup(stack, self.name)
        if self.inverted:
            if not value:
                _render_nodes(self.nodes, stack, out)
            return
        if not value:
            return
        if isinstance(value, list | tuple):
            for item in value:
                stack.append(item)
                try:
                    _render_nodes(self.nodes, stack, out)
                finally:
                    stack.pop()
        elif isinstance(value, str | int | float | bool):
            _render_nodes(self.nodes, stack, out)
        else:
            stack.append(value)
            try:
                _render_nodes(self.nodes, stack, out)
            finally:
                stack.pop()


@dataclass(frozen=True, slots=True)
class _Partial:
    name: str
    nodes: list = field(default_factory=list)

    def render(self, stack: list[Any], out: list[str]) -> None:
        _render_nodes(self.nodes, stack, out)


def _render_nodes(nodes: list, stack: list[Any], out: list[str]) -> None:
    for node in nodes:
        node.render(stack, out)


# =============================================================================
# Context lookup
# =============================================================================

_MISSING = object()


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key, _MISSING)
    if obj is None or isinstance(obj, str | bytes | int | float | bool | list | tuple):
        return _MISSING
    return getattr(obj, key, _MISSING)


def _lookup(stack: list[Any], name: str) -> Any:
    """Resolve a (possibly dotted) name against the context stack, top first."""
    if name == ".":
        return stack[-1] if stack else None

    head, *rest = name.split(".")
    value = _MISSING
    for frame in reversed(stack):
        value = _get(frame, head)
        if value is not _MISSING:
            break
    if value is _MISSING:
        return None

    for part in rest:
        value = _get(value, part)
        if value is _MISSING:
            return None
    return value


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping | list | tuple):
        return json.dumps(value, separators=(",", ":"), default=str)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


# =============================================================================
# Compiled template
# =============================================================================


@dataclass(frozen=True)
class CompiledTemplate:
    """
    An immutable, parsed template.

    Rendering only allocates local state, so one instance can be shared by
    any number of concurrent requests.
    """

    name: str
    nodes: tuple

    def render(self, *contexts: Any) -> str:
        """
        Render against the given context values.

        Contexts are stacked in order, so names are looked up in the last
        one first.
        """
        out: list[str] = []
        _render_nodes(list(self.nodes), list(contexts), out)
        return "".join(out)

    @property
    def partials(self) -> list[str]:
        """Names of the partials inlined into this template, depth first."""
        found: list[str] = []

        def walk(nodes) -> None:
            for node in nodes:
                if isinstance(node, _Partial):
                    found.append(node.name)
                    walk(node.nodes)
                elif isinstance(node, _Section):
                    walk(node.nodes)

        walk(self.nodes)
        return found


# =============================================================================
# Compiler
# =============================================================================


class TemplateCompiler:
    """
    Compiles mustache sources, resolving partials through ``partials``.

    A failure (syntax error or unresolvable partial) raises for the
    template being compiled and leaves the compiler usable for others.
    """

    def __init__(self, partials: PartialProvider):
        self.partials = partials

    def compile(self, source: str, name: str = "<string>") -> CompiledTemplate:
        nodes = self._parse(source, name, template=name, chain=())
        return CompiledTemplate(name=name, nodes=tuple(nodes))

    def compile_file(self, path: str | Path, name: str | None = None) -> CompiledTemplate:
        path = Path(path)
        source = path.read_text(encoding="utf-8")
        return self.compile(source, name or path.stem)

    def _compile_partial(
        self, name: str, indent: str, template: str, chain: tuple[str, ...]
    ) -> list:
        # chain holds partial names only; templates live in their own namespace
        if name in chain:
            cycle = " -> ".join((*chain, name))
            raise TemplateSyntaxError(f"recursive partial reference: {cycle}", template=template)
        try:
            source = self.partials.get(name)
        except PartialNotFoundError as e:
            raise PartialNotFoundError(name, e.args[0], template=template) from e
        if indent:
            source = "".join(indent + line for line in source.splitlines(keepends=True))
        logger.debug(f"[compiler] Inlining partial {name} into {template}")
        return self._parse(source, name, template=template, chain=(*chain, name))

    def _parse(self, source: str, name: str, *, template: str, chain: tuple[str, ...]) -> list:
        otag, ctag = DEFAULT_OPEN_TAG, DEFAULT_CLOSE_TAG
        root: list = []
        sections: list[_Section] = []
        current = root
        pos = 0

        while True:
            start = source.find(otag, pos)
            if start == -1:
                if pos < len(source):
                    current.append(_Text(source[pos:]))
                break

            inner = start + len(otag)

            # Triple mustache only exists with the default delimiters
            if otag == DEFAULT_OPEN_TAG and source.startswith("{", inner):
                end = source.find("}" + ctag, inner)
                if end == -1:
                    raise TemplateSyntaxError("unclosed tag", template=name, offset=start)
                key = source[inner + 1 : end].strip()
                if not key:
                    raise TemplateSyntaxError("empty tag", template=name, offset=start)
                if start > pos:
                    current.append(_Text(source[pos:start]))
                current.append(_Variable(key, escape=False))
                pos = end + 1 + len(ctag)
                continue

            end = source.find(ctag, inner)
            if end == -1:
                raise TemplateSyntaxError("unclosed tag", template=name, offset=start)
            content = source[inner:end].strip()
            tag_end = end + len(ctag)

            if not content:
                raise TemplateSyntaxError("empty tag", template=name, offset=start)
            sigil = content[0]

            # A standalone tag owns its line: the line's indentation and
            # line break are dropped from the output.
            line_start = source.rfind("\n", 0, start) + 1
            indent = source[line_start:start]
            line_end = source.find("\n", tag_end)
            line_end = len(source) if line_end == -1 else line_end + 1
            standalone = (
                sigil in _STANDALONE_SIGILS
                and line_start >= pos
                and not indent.strip()
                and not source[tag_end:line_end].strip()
            )
            if standalone:
                if line_start > pos:
                    current.append(_Text(source[pos:line_start]))
                pos = line_end
            else:
                if start > pos:
                    current.append(_Text(source[pos:start]))
                pos = tag_end

            if sigil == "!":
                continue

            if sigil == "=":
                if len(content) < 2 or not content.endswith("="):
                    raise TemplateSyntaxError("invalid delimiter tag", template=name, offset=start)
                delimiters = content[1:-1].split()
                if len(delimiters) != 2:
                    raise TemplateSyntaxError("invalid delimiter tag", template=name, offset=start)
                otag, ctag = delimiters
                continue

            if sigil in "#^/>&{":
                key = content[1:].strip()
                if sigil == "{":
                    key = key.removesuffix("}").strip()
            else:
                key = content
            if not key:
                raise TemplateSyntaxError("empty tag", template=name, offset=start)

            if sigil in "#^":
                section = _Section(key, inverted=sigil == "^")
                current.append(section)
                sections.append(section)
                current = section.nodes
            elif sigil == "/":
                if not sections:
                    raise TemplateSyntaxError(
                        f"unexpected closing tag {key}", template=name, offset=start
                    )
                if sections[-1].name != key:
                    raise TemplateSyntaxError(
                        f"section {sections[-1].name} closed by {key}", template=name, offset=start
                    )
                sections.pop()
                current = sections[-1].nodes if sections else root
            elif sigil == ">":
                nodes = self._compile_partial(
                    key, indent if standalone else "", template, chain
                )
                current.append(_Partial(key, nodes))
            elif sigil in "&{":
                current.append(_Variable(key, escape=False))
            else:
                current.append(_Variable(key))

        if sections:
            raise TemplateSyntaxError(f"unclosed section {sections[-1].name}", template=name)
        return root
