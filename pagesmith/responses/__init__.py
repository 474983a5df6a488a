"""
Response generation: where page data comes from.
"""

from .generators import (
    DecodeMode,
    DynamicResponseGenerator,
    ResponseGenerator,
    StaticResponseGenerator,
    build_url,
    create_response_generator,
)

__all__ = [
    "DecodeMode",
    "DynamicResponseGenerator",
    "ResponseGenerator",
    "StaticResponseGenerator",
    "build_url",
    "create_response_generator",
]
