from .location import (
    Coordinates,
    AddressFields,
    AddressParts,
    LocationCandidate,
    LocationSource,
    Position,
    ReverseResult,
    SearchResult,
)

__all__ = [
    "Coordinates",
    "AddressFields",
    "AddressParts",
    "LocationCandidate",
    "LocationSource",
    "Position",
    "ReverseResult",
    "SearchResult",
]
