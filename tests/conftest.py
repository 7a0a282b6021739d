"""Shared fakes for the picker tests.

The gateway and the geolocation provider hand out ``PendingCall`` objects so a
test decides exactly when, and in which order, each lookup completes.
"""

import asyncio
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("API_KEY", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from geopicker.core.errors import GeocodeLookupError
from geopicker.schemas.location import AddressParts, Position, ReverseResult, SearchResult


class PendingCall:
    def __init__(self, *args):
        self.args = args
        self._released = asyncio.Event()
        self._result = None
        self._error = None

    def resolve(self, value):
        self._result = value
        self._released.set()

    def fail(self, exc):
        self._error = exc
        self._released.set()

    async def wait(self):
        await self._released.wait()
        if self._error is not None:
            raise self._error
        return self._result


class FakeGateway:
    """Geocode gateway whose answers are released by the test."""

    def __init__(self, *, search_results=None, reverse_result=None, gated=True):
        self.gated = gated
        self.search_results = search_results if search_results is not None else {}
        self.reverse_result = reverse_result
        self.search_calls = []
        self.reverse_calls = []

    async def search(self, query, limit):
        call = PendingCall(query, limit)
        self.search_calls.append(call)
        if not self.gated:
            outcome = self.search_results.get(query, [])
            if isinstance(outcome, Exception):
                raise outcome
            return outcome[:limit]
        return await call.wait()

    async def reverse(self, latitude, longitude):
        call = PendingCall(latitude, longitude)
        self.reverse_calls.append(call)
        if not self.gated:
            if isinstance(self.reverse_result, Exception):
                raise self.reverse_result
            if self.reverse_result is None:
                raise GeocodeLookupError("reverse geocode returned no address")
            return self.reverse_result
        return await call.wait()


class FakeGeolocation:
    def __init__(self):
        self.calls = []

    async def get_current_position(self):
        call = PendingCall()
        self.calls.append(call)
        return await call.wait()


async def spin(times=10):
    """Let scheduled lookup tasks run up to their next suspension point."""

    for _ in range(times):
        await asyncio.sleep(0)


def make_hit(name, latitude, longitude, **parts):
    return SearchResult(
        display_name=name,
        latitude=latitude,
        longitude=longitude,
        address_parts=AddressParts(**parts),
    )


PARIS_REVERSE = ReverseResult(
    display_name="Hôtel de Ville, Place de l'Hôtel de Ville, Paris, 75004, France",
    address_parts=AddressParts(
        road="Place de l'Hôtel de Ville", city="Paris", postcode="75004", country="France"
    ),
)

RUE_DE_LA_PAIX_HITS = [
    make_hit("10, Rue de la Paix, Saint-Étienne, France", 45.4397, 4.3872,
             house_number="10", road="Rue de la Paix", city="Saint-Étienne", postcode="42000", country="France"),
    make_hit("10, Rue de la Paix, Paris, 75002, France", 48.8686, 2.3308,
             house_number="10", road="Rue de la Paix", city="Paris", postcode="75002", country="France"),
    make_hit("Rue de la Paix, Calais, France", 50.9513, 1.8587,
             road="Rue de la Paix", town="Calais", postcode="62100", country="France"),
]


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def geolocation():
    return FakeGeolocation()


@pytest.fixture()
def device_fix():
    return Position(latitude=43.2965, longitude=5.3698)
