"""
OpenRouteService geocoder over aiohttp.

    async with OpenRouteGeocoder(api_key) as geocoder:
        point = await geocoder.geocode("Rua A, 12, Centro, Campinas, 13010-000")
"""

from __future__ import annotations

import logging
import math
from typing import Any

import aiohttp

from storefront.fee._types import Coordinates

logger = logging.getLogger(__name__)

SEARCH_URL = "https://api.openrouteservice.org/geocode/search"


class GeocodeError(Exception):
    """Provider answered with an error status or an unreadable body."""


def parse_feature_collection(data: Any) -> Coordinates | None:
    """
    First feature of a GeoJSON FeatureCollection, or None when empty.

    GeoJSON orders coordinates as [lng, lat].
    """
    if not isinstance(data, dict):
        raise GeocodeError("response is not a JSON object")
    features = data.get("features")
    if not features:
        return None
    try:
        lng, lat = features[0]["geometry"]["coordinates"][:2]
        point = Coordinates(lat=float(lat), lng=float(lng))
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise GeocodeError(f"malformed feature: {e}") from e
    if not (math.isfinite(point.lat) and math.isfinite(point.lng)):
        raise GeocodeError("non-finite coordinates")
    return point


class OpenRouteGeocoder:
    """
    Geocoder port backed by the OpenRouteService search endpoint.

    Pass ``session`` to share a ClientSession; otherwise one is opened per
    instance and closed by close() / the async context manager.
    """

    def __init__(
        self,
        api_key: str,
        *,
        session: aiohttp.ClientSession | None = None,
        base_url: str = SEARCH_URL,
        timeout: float = 10.0,
        country: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._session = session
        self._owns_session = session is None
        self._base_url = base_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._country = country

    async def geocode(self, text: str) -> Coordinates | None:
        params = {"api_key": self._api_key, "text": text, "size": "1"}
        if self._country:
            params["boundary.country"] = self._country

        session = self._ensure_session()
        async with session.get(self._base_url, params=params, timeout=self._timeout) as response:
            if response.status != 200:
                body = await response.text()
                logger.error("OpenRouteService returned %s: %s", response.status, body[:200])
                raise GeocodeError(f"geocoder returned HTTP {response.status}")
            data = await response.json(content_type=None)

        point = parse_feature_collection(data)
        if point is None:
            logger.info("No geocoding match for %r", text)
        return point

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> OpenRouteGeocoder:
        self._ensure_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session


__all__ = ("SEARCH_URL", "GeocodeError", "parse_feature_collection", "OpenRouteGeocoder")
