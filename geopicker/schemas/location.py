"""Pydantic models shared by the resolution core, the gateway and the API.

WHAT: Candidate locations, forward/reverse geocode results and the address
projection handed to the host form.
WHEN: Built by the gateway when a provider answers and by the picker when the
user selects a point.
WHY: Every async source converges on the same candidate shape, so the store
never has to care where a point came from.
HOW: ``candidate_fields`` turns provider address parts into the flat fields
the host form stores.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class LocationSource(str, Enum):
    MAP_CLICK = "map_click"
    SEARCH = "search"
    GEOLOCATION = "geolocation"


class AddressParts(BaseModel):
    """Provider-neutral decomposition of an address."""

    road: Optional[str] = None
    house_number: Optional[str] = None
    city: Optional[str] = None
    town: Optional[str] = None
    village: Optional[str] = None
    municipality: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None

    @field_validator("*", mode="before")
    def _clean_text(cls, value):
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @property
    def locality(self) -> str:
        return self.city or self.town or self.village or self.municipality or ""


def street_line(parts: AddressParts, display_name: Optional[str]) -> str:
    if parts.road:
        if parts.house_number:
            return f"{parts.house_number} {parts.road}"
        return parts.road
    if display_name:
        return display_name.split(",")[0].strip()
    return ""


def candidate_fields(display_name: Optional[str], parts: AddressParts) -> dict:
    """Flatten provider output into the address fields of a candidate."""

    return {
        "address": street_line(parts, display_name),
        "city": parts.locality,
        "postal_code": parts.postcode or "",
        "country": parts.country or "",
        "display_name": display_name or "",
    }


def wrap_longitude(value: float) -> float:
    """Fold a longitude from a repeated world copy (e.g. 362.35) back into range."""

    if -180 <= value <= 180:
        return value
    return ((value + 180) % 360) - 180


def normalize_point(latitude, longitude) -> Optional[Tuple[float, float]]:
    """Coerce a clicked or reported point into valid coordinates, or ``None``.

    Longitudes are wrapped and latitudes clamped to the poles; values that are
    not finite numbers cannot be placed on the map at all.
    """

    try:
        latitude, longitude = float(latitude), float(longitude)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return None
    return max(-90.0, min(90.0, latitude)), wrap_longitude(longitude)


class Coordinates(BaseModel):
    latitude: float = Field(..., description="Latitude in decimal degrees")
    longitude: float = Field(..., description="Longitude in decimal degrees")

    @field_validator("latitude")
    def _validate_lat(cls, value: float) -> float:
        if not -90 <= value <= 90:
            raise ValueError("latitude must be between -90 and 90 degrees")
        return value

    @field_validator("longitude")
    def _validate_lon(cls, value: float) -> float:
        if not -180 <= value <= 180:
            raise ValueError("longitude must be between -180 and 180 degrees")
        return value


class Position(Coordinates):
    """A one-shot device fix."""


class LocationCandidate(Coordinates):
    """The in-progress or confirmed location of a picker session."""

    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    display_name: Optional[str] = None
    source: LocationSource

    @classmethod
    def at(cls, latitude: float, longitude: float, source: LocationSource) -> "LocationCandidate":
        # Address fields start empty so the candidate is usable before enrichment.
        return cls(
            latitude=latitude,
            longitude=longitude,
            address="",
            city="",
            postal_code="",
            country="",
            source=source,
        )


class SearchResult(Coordinates):
    """A forward-search hit, already carrying a full address."""

    display_name: str = ""
    address_parts: AddressParts = Field(default_factory=AddressParts)

    def to_candidate(self) -> LocationCandidate:
        return LocationCandidate(
            latitude=self.latitude,
            longitude=self.longitude,
            source=LocationSource.SEARCH,
            **candidate_fields(self.display_name, self.address_parts),
        )


class ReverseResult(BaseModel):
    """Address found for a coordinate pair."""

    display_name: str = ""
    address_parts: AddressParts = Field(default_factory=AddressParts)

    def candidate_fields(self) -> dict:
        return candidate_fields(self.display_name, self.address_parts)


class AddressFields(BaseModel):
    """Projection passed to the host form's address callback."""

    address: str = ""
    city: str = ""
    postal_code: str = ""
    country: str = ""
