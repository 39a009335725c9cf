# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from gatehouse.errors import EventLookupError


class EventClient:
    """Passthrough client for the event-search API."""

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            url: Full URL of the events search endpoint
            api_key: Key sent as the ``apikey`` query parameter
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used to stub the upstream
        """
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def search(self, keyword: str, size: int = 10) -> List[Dict[str, Any]]:
        """Return at most ``size`` events matching ``keyword``.

        Raises:
            EventLookupError: on transport errors, non-2xx replies or a body
                without an ``_embedded.events`` list
        """
        params = {"apikey": self.api_key, "keyword": keyword, "size": size}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url, params=params, headers={"Accept": "application/json"})
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Event search request failed: {e}")
            raise EventLookupError("Event search request failed") from e
        except ValueError as e:
            logger.warning(f"Event search returned invalid JSON: {e}")
            raise EventLookupError("Event search returned invalid JSON") from e

        events = extract_events(body)
        return events[:size]


def extract_events(body: Any) -> List[Dict[str, Any]]:
    embedded = body.get("_embedded") if isinstance(body, dict) else None
    events = embedded.get("events") if isinstance(embedded, dict) else None
    if not isinstance(events, list):
        raise EventLookupError("Event search response has no _embedded.events list")
    if not all(isinstance(ev, dict) for ev in events):
        raise EventLookupError("Event search response holds non-object events")
    return events


def _first(value: Any) -> Dict[str, Any]:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return {}


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def summarize_event(ev: Dict[str, Any]) -> Dict[str, str]:
    """Flatten one upstream event into the string fields the discover page shows.

    Missing or oddly shaped nested values become empty strings.
    """
    start = _mapping(_mapping(ev.get("dates")).get("start"))
    venue = _first(_mapping(ev.get("_embedded")).get("venues"))
    image = _first(ev.get("images"))
    return {
        "name": str(ev.get("name") or "Untitled event"),
        "url": str(ev.get("url") or ""),
        "date": str(start.get("localDate") or ""),
        "time": str(start.get("localTime") or ""),
        "venue": str(venue.get("name") or ""),
        "image": str(image.get("url") or ""),
    }
