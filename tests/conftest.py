"""
Pytest configuration and fixtures for Pagesmith tests.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
# This allows `from pagesmith.rendering import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from pagesmith.templates import TemplateCompiler, default_partial_provider  # noqa: E402


@pytest.fixture
def write_template(tmp_path):
    """Write a template file into tmp_path and return its path."""

    def write(name: str, source: str, suffix: str = ".mustache") -> str:
        path = tmp_path / f"{name}{suffix}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return str(path)

    return write


@pytest.fixture
def compiler(tmp_path):
    """Compiler resolving partials from the built-ins, then tmp_path."""
    return TemplateCompiler(default_partial_provider([tmp_path]))


@pytest.fixture
def sample_payload():
    return {
        "title": "Welcome",
        "items": [{"id": 1, "name": "first"}, {"id": 2, "name": "second"}],
    }
