"""
Configuration Schemas for Pagesmith.

Pydantic models for the engine configuration file and the process
settings read from the environment.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Page(BaseModel):
    """
    One served endpoint.

    Pages are created once when the configuration is loaded and never
    mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique page identifier")
    url_pattern: str = Field(..., description="Route the page is mounted on, e.g. /items/:id")
    template: str = Field(..., description="Name of the page template")
    layout: str | None = Field(None, description="Name of the layout wrapping the template")
    cache_ttl: str = Field("3600s", description="Cache-Control lifetime as a duration string")
    backend: str | None = Field(None, description="Backend URL pattern; static page when empty")
    is_array: bool = Field(False, description="Backend returns a JSON array")
    extra: Any = Field(default_factory=dict, description="Fixed payload for static pages")
    display_name: str | None = Field(None, description="Human readable name")

    @field_validator("url_pattern")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("url_pattern must start with '/'")
        return value

    @field_validator("backend")
    @classmethod
    def _absolute_backend(cls, value: str | None) -> str | None:
        if not value:
            return None
        if not value.startswith(("http://", "https://")):
            raise ValueError("backend must be an absolute http(s) URL pattern")
        return value

    @property
    def title(self) -> str:
        return self.display_name or self.name

    @property
    def is_static(self) -> bool:
        return not self.backend


class EngineConfig(BaseModel):
    """
    Engine configuration file.

    Example (YAML):
        templates:
          home: templates/home.mustache
        layouts:
          main: layouts/main.mustache
        partials_paths: [partials]
        pages:
          - name: home
            url_pattern: /
            template: home
            layout: main
            extra: {title: Welcome}
    """

    pages: list[Page] = Field(default_factory=list)
    templates: dict[str, str] = Field(default_factory=dict, description="Template name -> file")
    layouts: dict[str, str] = Field(default_factory=dict, description="Layout name -> file")
    partials_paths: list[str] = Field(default_factory=lambda: ["."])
    static_pages: dict[str, str] = Field(
        default_factory=dict, description="URL -> file served verbatim"
    )
    not_found_page: str | None = Field(None, description="File served for 404 responses")
    error_page: str | None = Field(None, description="File served for 500 responses")
    backend_timeout: float = Field(30.0, gt=0)
    backend_cache_ttl: float = Field(60.0, ge=0)
    backend_cache_size: int = Field(1024, ge=1)

    @property
    def sources(self) -> dict[str, str]:
        """All compilable artifacts; a layout wins a name clash with a template."""
        return {**self.templates, **self.layouts}


class AppSettings(BaseModel):
    """
    Process settings.

    Loaded from ``PAGESMITH_*`` environment variables by
    ``pagesmith.app.dependencies.get_settings``.
    """

    service_name: str = "pagesmith"
    config_path: str = "pagesmith.json"
    debug: bool = False
    dev_mode: bool = Field(False, description="Expose the template reload endpoint")
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
