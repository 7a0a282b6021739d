"""One-shot device position providers."""

from __future__ import annotations

from typing import Optional, Protocol

from ..core.errors import GeolocationUnavailable
from ..core.settings import AppSettings, settings as default_settings
from ..schemas.location import Position


class GeolocationProvider(Protocol):
    async def get_current_position(self) -> Position:
        """Return the device position or raise PermissionDenied / GeolocationUnavailable."""
        ...


class StaticGeolocationProvider:
    """Always reports the same fix, e.g. a configured site location."""

    def __init__(self, latitude: float, longitude: float) -> None:
        self.position = Position(latitude=latitude, longitude=longitude)

    async def get_current_position(self) -> Position:
        return self.position


class UnsupportedGeolocationProvider:
    async def get_current_position(self) -> Position:
        raise GeolocationUnavailable("Geolocation is not supported on this device")


def provider_from_settings(config: Optional[AppSettings] = None) -> GeolocationProvider:
    config = config or default_settings
    fix = config.geolocation_fix
    if fix is None:
        return UnsupportedGeolocationProvider()
    return StaticGeolocationProvider(*fix)
