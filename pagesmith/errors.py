"""
Exception hierarchy for Pagesmith.

Every error raised by the engine derives from PagesmithError so callers can
catch the whole family at the application boundary. The subclasses carry
enough detail to classify a failure without parsing its message:

    PagesmithError
    ├── ConfigError
    ├── TemplateError
    │   ├── TemplateSyntaxError
    │   ├── PartialNotFoundError
    │   └── CompilationError
    ├── RenderError
    ├── FetchError
    └── GenerationError
        ├── BackendTransportError
        ├── BackendStatusError
        └── BackendDecodeError
"""

from __future__ import annotations

from collections.abc import Mapping


class PagesmithError(Exception):
    """Base exception for all engine errors."""


class ConfigError(PagesmithError):
    """Raised when the engine configuration cannot be loaded or validated."""


# =============================================================================
# Templates
# =============================================================================


class TemplateError(PagesmithError):
    """Base class for template compilation failures."""


class TemplateSyntaxError(TemplateError):
    """Raised when a template source is malformed."""

    def __init__(self, message: str, *, template: str | None = None, offset: int | None = None):
        super().__init__(message)
        self.template = template
        self.offset = offset

    def __str__(self) -> str:
        details = []
        if self.template:
            details.append(f"template={self.template}")
        if self.offset is not None:
            details.append(f"offset={self.offset}")
        if not details:
            return self.args[0]
        return f"{self.args[0]} ({', '.join(details)})"


class PartialNotFoundError(TemplateError):
    """Raised when no partial provider can resolve a partial name."""

    def __init__(self, name: str, message: str | None = None, *, template: str | None = None):
        super().__init__(message or f"partial not found: {name}")
        self.name = name
        self.template = template

    def __str__(self) -> str:
        if self.template:
            return f"{self.args[0]} (template={self.template})"
        return self.args[0]


class CompilationError(TemplateError):
    """
    Raised after a compilation batch when one or more artifacts failed.

    Attributes:
        errors: artifact name -> the exception that aborted it
    """

    def __init__(self, errors: Mapping[str, Exception]):
        self.errors = dict(errors)
        names = ", ".join(sorted(self.errors))
        super().__init__(f"failed to compile {len(self.errors)} template(s): {names}")


# =============================================================================
# Rendering
# =============================================================================


class RenderError(PagesmithError):
    """Raised when a renderer cannot produce its output."""


# =============================================================================
# Data sourcing
# =============================================================================


class FetchError(PagesmithError):
    """Raised by the cached client when a request fails at the transport level."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class GenerationError(PagesmithError):
    """Base class for response generation failures."""

    def __init__(self, message: str, *, url: str | None = None):
        super().__init__(message)
        self.url = url


class BackendTransportError(GenerationError):
    """The backend could not be reached."""


class BackendStatusError(GenerationError):
    """The backend answered with a non-success status code."""

    def __init__(self, message: str, *, url: str | None = None, status_code: int):
        super().__init__(message, url=url)
        self.status_code = status_code

    def __str__(self) -> str:
        return f"{self.args[0]} (status={self.status_code})"


class BackendDecodeError(GenerationError):
    """The backend body is not JSON of the expected shape."""
