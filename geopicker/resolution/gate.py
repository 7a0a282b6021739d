from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..schemas.location import AddressFields, LocationCandidate
from .state import LocationStore

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Optional[LocationCandidate]], None]
AddressCallback = Callable[[AddressFields], None]


def can_confirm(candidate: Optional[LocationCandidate]) -> bool:
    """A candidate is confirmable once both coordinates are known."""

    if candidate is None:
        return False
    return candidate.latitude is not None and candidate.longitude is not None


def address_fields(candidate: LocationCandidate) -> AddressFields:
    return AddressFields(
        address=candidate.address or "",
        city=candidate.city or "",
        postal_code=candidate.postal_code or "",
        country=candidate.country or "",
    )


class ConfirmationGate:
    """Hands a confirmable candidate back to the host form."""

    def __init__(
        self,
        on_change: Optional[ChangeCallback] = None,
        on_address_select: Optional[AddressCallback] = None,
    ) -> None:
        self.on_change = on_change
        self.on_address_select = on_address_select

    def confirm(self, store: LocationStore) -> Optional[LocationCandidate]:
        candidate = store.candidate
        if not can_confirm(candidate):
            logger.info("Confirm ignored, no location selected")
            return None
        snapshot = candidate.model_copy()
        fields = address_fields(snapshot)
        try:
            if self.on_change is not None:
                self.on_change(snapshot)
            if self.on_address_select is not None:
                self.on_address_select(fields)
        finally:
            # A failing host callback still closes the session.
            store.reset()
        return snapshot


@dataclass(frozen=True)
class LocationSummary:
    headline: str
    details: str
    coordinates: str


def summarize(candidate: LocationCandidate) -> LocationSummary:
    """Text shown under the map for the selected location."""

    details = ", ".join(
        part for part in (candidate.city, candidate.postal_code, candidate.country) if part
    )
    return LocationSummary(
        headline=candidate.address or "Location Selected",
        details=details or "Address details loading...",
        coordinates=f"{candidate.latitude:.6f}, {candidate.longitude:.6f}",
    )


def trigger_label(
    value: Optional[LocationCandidate], placeholder: str = "Select location on map"
) -> tuple[str, str]:
    # (title, subtitle) for the compact button that opens the picker
    if value is None:
        return placeholder, "Click to open map"
    subtitle = ", ".join(part for part in (value.city, value.country) if part)
    if not subtitle:
        subtitle = f"{value.latitude:.4f}, {value.longitude:.4f}"
    return value.address or "Selected Location", subtitle
