"""
Source protocols — lightweight interfaces for HTTP access.

These allow catalog and scenario fetching to be tested without
network access.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class HttpClient(Protocol):
    """Interface for fetching a JSON document."""

    def get_json(self, url: str) -> Any: ...
