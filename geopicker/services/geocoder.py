from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..core.errors import GeocodeLookupError
from ..core.settings import settings
from ..schemas.location import AddressParts, ReverseResult, SearchResult

logger = logging.getLogger(__name__)


class GeocodeGateway(Protocol):
    """Forward search and reverse lookups performed over the network."""

    async def search(self, query: str, limit: int) -> List[SearchResult]:
        ...

    async def reverse(self, latitude: float, longitude: float) -> ReverseResult:
        ...


def _coerce_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            return None
    return None


def parse_address_parts(address: Optional[Dict[str, Any]]) -> AddressParts:
    if not isinstance(address, dict):
        return AddressParts()
    return AddressParts(
        road=address.get("road"),
        house_number=address.get("house_number"),
        city=address.get("city"),
        town=address.get("town"),
        village=address.get("village"),
        municipality=address.get("municipality"),
        postcode=address.get("postcode"),
        country=address.get("country"),
    )


def parse_search_hit(hit: Dict[str, Any]) -> Optional[SearchResult]:
    lat = _coerce_float(hit.get("lat"))
    lon = _coerce_float(hit.get("lon"))
    if lat is None or lon is None:
        return None
    try:
        return SearchResult(
            display_name=hit.get("display_name") or "",
            latitude=lat,
            longitude=lon,
            address_parts=parse_address_parts(hit.get("address")),
        )
    except ValueError:
        return None


def _raise_for_status(response: httpx.Response, context: str) -> None:
    if response.status_code == 429:
        logger.warning("Nominatim rate limit hit during %s", context)
    elif response.status_code >= 500:
        logger.error("Nominatim service error %s during %s", response.status_code, context)
    elif response.status_code >= 400:
        logger.error("Nominatim request error %s during %s", response.status_code, context)
    if response.is_error:
        raise GeocodeLookupError(f"{context} failed with HTTP {response.status_code}")


class NominatimGateway:
    """Geocode gateway backed by an OpenStreetMap Nominatim instance.

    A shared ``httpx.AsyncClient`` may be supplied; otherwise a short-lived
    client is opened per call. Cancelling the awaiting task aborts the
    underlying request.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        accept_language: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = (base_url or settings.NOMINATIM_BASE_URL).rstrip("/")
        self.headers = {
            "User-Agent": user_agent or settings.GEOCODER_USER_AGENT,
            "Accept-Language": accept_language or settings.GEOCODER_ACCEPT_LANGUAGE,
            "Accept": "application/json",
        }
        self.timeout = httpx.Timeout(timeout if timeout is not None else settings.GEOCODER_TIMEOUT_SECONDS)
        self._client = client

    async def _get_json(self, path: str, params: Dict[str, Any], context: str) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, headers=self.headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
                    response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            logger.warning("Nominatim %s transport error: %s", context, exc)
            raise GeocodeLookupError(f"{context} failed: {exc}") from exc

        _raise_for_status(response, context)
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Nominatim %s returned malformed JSON", context)
            raise GeocodeLookupError(f"{context} returned malformed JSON") from exc

    async def search(self, query: str, limit: int = 5) -> List[SearchResult]:
        """Return at most ``limit`` forward-search hits for ``query``."""

        if not query or not query.strip():
            return []

        params = {
            "format": "json",
            "q": query.strip(),
            "limit": limit,
            "addressdetails": 1,
        }
        data = await self._get_json("search", params, "address search")
        if not isinstance(data, list):
            raise GeocodeLookupError("address search returned an unexpected payload")

        results: List[SearchResult] = []
        for hit in data:
            if not isinstance(hit, dict):
                continue
            parsed = parse_search_hit(hit)
            if parsed is None:
                logger.info("Skipping search hit without coordinates: %s", hit.get("display_name"))
                continue
            results.append(parsed)
            if len(results) >= limit:
                break
        return results

    async def reverse(self, latitude: float, longitude: float) -> ReverseResult:
        """Resolve a coordinate pair to a human-readable address."""

        params = {
            "format": "json",
            "lat": latitude,
            "lon": longitude,
            "addressdetails": 1,
        }
        data = await self._get_json("reverse", params, "reverse geocode")
        if not isinstance(data, dict):
            raise GeocodeLookupError("reverse geocode returned an unexpected payload")
        if data.get("error"):
            raise GeocodeLookupError(f"reverse geocode error: {data.get('error')}")
        if not isinstance(data.get("address"), dict):
            raise GeocodeLookupError("reverse geocode returned no address")

        return ReverseResult(
            display_name=data.get("display_name") or "",
            address_parts=parse_address_parts(data.get("address")),
        )
