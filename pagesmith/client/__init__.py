"""
Backend HTTP access.
"""

from .cached import CachedClient, FetchResponse, cache_lifetime

__all__ = [
    "CachedClient",
    "FetchResponse",
    "cache_lifetime",
]
