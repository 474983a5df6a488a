"""
Mustache templates: partial resolution and compilation.
"""

from .compiler import CompiledTemplate, TemplateCompiler
from .defaults import BUILTIN_PARTIALS, DEBUG_PARTIAL_NAME
from .partials import (
    ChainPartialProvider,
    FilePartialProvider,
    PartialProvider,
    StaticPartialProvider,
    default_partial_provider,
)

__all__ = [
    "BUILTIN_PARTIALS",
    "DEBUG_PARTIAL_NAME",
    "ChainPartialProvider",
    "CompiledTemplate",
    "FilePartialProvider",
    "PartialProvider",
    "StaticPartialProvider",
    "TemplateCompiler",
    "default_partial_provider",
]
