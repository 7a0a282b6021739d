"""Geocoding proxy used by the map picker in the browser.

WHAT: Forward search and reverse lookups, forwarded to the configured gateway.
WHEN: Called by the picker while the user types or clicks on the map.
WHY: Keeps provider headers and rate limits on the server side.
HOW: Search failures degrade to an empty list; reverse failures return a 502
error envelope the picker treats as "coordinates only".
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status

from ..core.errors import LookupFailure
from ..core.settings import settings
from ..deps.auth import require_api_key
from ..deps.geocoder import get_gateway
from ..services.geocoder import GeocodeGateway

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/geocode",
    tags=["geocode"],
    dependencies=[Depends(require_api_key)],
)


@router.get("/search")
async def search_address(
    q: str = Query(..., alias="query"),
    limit: int = Query(default=settings.SEARCH_RESULT_LIMIT, ge=1, le=20),
    gateway: GeocodeGateway = Depends(get_gateway),
):
    query = q.strip()
    if len(query) < settings.SEARCH_MIN_CHARS:
        return {"results": []}
    try:
        results = await gateway.search(query, limit)
    except LookupFailure as exc:
        # Search is best effort: the picker shows no matches and the user
        # can still click the map.
        logger.warning("Address search failed for %r: %s", query, exc)
        return {"results": [], "advisory": "Address search is temporarily unavailable."}
    return {"results": [result.model_dump() for result in results[:limit]]}


@router.get("/reverse")
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    gateway: GeocodeGateway = Depends(get_gateway),
):
    try:
        result = await gateway.reverse(lat, lon)
    except LookupFailure as exc:
        logger.warning("Reverse geocoding failed for %s,%s: %s", lat, lon, exc)
        raise HTTPException(
            status.HTTP_502_BAD_GATEWAY,
            detail={"code": "reverse_geocode_failed", "message": "No address found for this point"},
        ) from exc
    return {
        "result": {
            "latitude": lat,
            "longitude": lon,
            **result.candidate_fields(),
        }
    }
