"""
Source module for Storybooker.

Handles:
- Bestdori catalog and scenario retrieval
- On-disk caching of downloaded scenario JSON
"""

from storybooker.source.protocols import HttpClient
from storybooker.source.bestdori import BestdoriClient, RequestsHttpClient, FetchError
from storybooker.source.asset_cache import AssetCache

__all__ = [
    "HttpClient",
    "BestdoriClient",
    "RequestsHttpClient",
    "FetchError",
    "AssetCache",
]
