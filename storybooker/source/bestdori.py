"""
Bestdori client — catalog and scenario retrieval from the public mirror.

The HTTP transport is injected (HttpClient protocol) so the catalog
parsing can be exercised without network access.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from storybooker.models import Event, MalformedScenario, SERVER_CODES, StoryChapter
from storybooker.source.protocols import HttpClient

logger = logging.getLogger("storybooker.source")

EVENTS_URL = "https://bestdori.com/api/events/all.5.json"
EVENT_STORIES_URL = "https://bestdori.com/api/events/all.stories.json"
EVENT_ASSETS_URL = "https://bestdori.com/assets/{server}/scenario/eventstory"


class FetchError(RuntimeError):
    """A document could not be retrieved or decoded."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class RequestsHttpClient:
    """Fetches JSON over HTTP with requests. Default in production."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30.0) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    def get_json(self, url: str) -> Any:
        logger.debug(f"GET {url}")
        try:
            response = self._session.get(url, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            raise FetchError(f"HTTP {e.response.status_code} for {url}", url=url) from e
        except ValueError as e:
            # requests' JSONDecodeError subclasses ValueError
            raise FetchError(f"Invalid JSON from {url}: {e}", url=url) from e
        except requests.RequestException as e:
            raise FetchError(f"Request failed for {url}: {e}", url=url) from e


class BestdoriClient:
    """
    Reads the event catalogs and chapter scenarios.

    Example:
        client = BestdoriClient(RequestsHttpClient(), region=1)
        events = client.fetch_events()
        stories = client.fetch_event_stories()
    """

    def __init__(self, http: HttpClient, region: int = 1) -> None:
        if region not in SERVER_CODES:
            raise ValueError(f"Unknown region: {region!r}")
        self.http = http
        self.region = region

    def fetch_events(self) -> list[Event]:
        """Fetch the events catalog, in catalog order."""
        data = self.http.get_json(EVENTS_URL)
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected events catalog shape: {type(data).__name__}", url=EVENTS_URL)
        events = []
        for event_id, entry in data.items():
            try:
                events.append(Event.from_dict(event_id, entry))
            except (TypeError, MalformedScenario) as e:
                logger.warning(f"CATALOG_EVENTS_SKIP: event={event_id} error={e}")
        logger.info(f"CATALOG_EVENTS: count={len(events)}")
        return events

    def fetch_event_stories(self) -> dict[str, list[StoryChapter]]:
        """Fetch the story listing for every event, keyed by event id."""
        data = self.http.get_json(EVENT_STORIES_URL)
        if not isinstance(data, dict):
            raise FetchError(
                f"Unexpected event stories shape: {type(data).__name__}", url=EVENT_STORIES_URL
            )

        stories: dict[str, list[StoryChapter]] = {}
        for event_id, entry in data.items():
            try:
                stories[str(event_id)] = [StoryChapter.from_dict(s) for s in entry["stories"]]
            except (KeyError, TypeError, MalformedScenario) as e:
                # Left out; the build records the event as having no listing
                logger.warning(f"CATALOG_STORIES_SKIP: event={event_id} error={e}")
        logger.info(f"CATALOG_STORIES: count={len(stories)}")
        return stories

    def scenario_url(self, event_id: str, scenario_id: str) -> str:
        base = EVENT_ASSETS_URL.format(server=SERVER_CODES[self.region])
        return f"{base}/event{event_id}_rip/Scenario{scenario_id}.asset"

    def fetch_scenario_json(self, event_id: str, scenario_id: str) -> Any:
        return self.http.get_json(self.scenario_url(event_id, scenario_id))
