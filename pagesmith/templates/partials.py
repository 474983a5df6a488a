"""
Partial providers.

A partial provider resolves a partial name (as used in ``{{> name}}``) to
template source text. Providers are composed into an ordered chain:

    ChainPartialProvider
    ├── StaticPartialProvider   # built-in fragments, immutable, no I/O
    └── FilePartialProvider     # on-disk fragments, looked up on demand

The first provider returning non-empty text wins. Built-in fragments
therefore take precedence over same-named files, while any other partial
can still come from disk.

Usage:
    provider = default_partial_provider(["./partials"])
    source = provider.get("header")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from pagesmith.errors import PartialNotFoundError
from pagesmith.templates.defaults import BUILTIN_PARTIALS

logger = logging.getLogger(__name__)

DEFAULT_PARTIAL_PATHS: tuple[str, ...] = (".",)
DEFAULT_PARTIAL_EXTENSIONS: tuple[str, ...] = ("", ".mustache", ".stache")


@runtime_checkable
class PartialProvider(Protocol):
    """Resolves a partial name to its source text."""

    def get(self, name: str) -> str:
        """
        Return the source of the named partial.

        Raises:
            PartialNotFoundError: If the partial cannot be resolved
        """
        ...


class StaticPartialProvider:
    """Serves partials from an immutable in-memory mapping."""

    def __init__(self, partials: Mapping[str, str] | None = None):
        self._partials: Mapping[str, str] = MappingProxyType(dict(partials or {}))

    @property
    def names(self) -> list[str]:
        return sorted(self._partials)

    def get(self, name: str) -> str:
        try:
            return self._partials[name]
        except KeyError:
            raise PartialNotFoundError(name) from None


class FilePartialProvider:
    """
    Looks partials up on the filesystem.

    For every directory in ``paths`` and every suffix in ``extensions`` the
    provider tries ``<dir>/<name><ext>`` and returns the first file found.
    Files are read on each call so edits on disk are picked up by the next
    compilation.
    """

    def __init__(
        self,
        paths: Iterable[str | Path] = DEFAULT_PARTIAL_PATHS,
        extensions: Iterable[str] = DEFAULT_PARTIAL_EXTENSIONS,
    ):
        self.paths = tuple(Path(p) for p in paths)
        self.extensions = tuple(extensions)

    def get(self, name: str) -> str:
        for directory in self.paths:
            for ext in self.extensions:
                candidate = directory / f"{name}{ext}"
                if not candidate.is_file():
                    continue
                try:
                    return candidate.read_text(encoding="utf-8")
                except OSError as e:
                    logger.warning(f"[partials] Failed to read {candidate}: {e}")
                    raise PartialNotFoundError(name, f"partial {name} unreadable: {e}") from e
        raise PartialNotFoundError(name)


class ChainPartialProvider:
    """
    Tries a sequence of providers in order.

    The first provider that returns non-empty text wins. When none does,
    the outcome of the last provider (its error or its empty text) is
    returned unchanged.
    """

    def __init__(self, *providers: PartialProvider):
        if not providers:
            raise ValueError("ChainPartialProvider needs at least one provider")
        self.providers: Sequence[PartialProvider] = tuple(providers)

    def get(self, name: str) -> str:
        for provider in self.providers[:-1]:
            try:
                text = provider.get(name)
            except PartialNotFoundError:
                continue
            if text:
                return text
        return self.providers[-1].get(name)


def default_partial_provider(
    paths: Iterable[str | Path] = DEFAULT_PARTIAL_PATHS,
    extensions: Iterable[str] = DEFAULT_PARTIAL_EXTENSIONS,
) -> ChainPartialProvider:
    """Built-in partials first, then the given directories."""
    return ChainPartialProvider(
        StaticPartialProvider(BUILTIN_PARTIALS),
        FilePartialProvider(paths, extensions),
    )
