from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from ..core.errors import InvalidTransition
from ..schemas.location import LocationCandidate

logger = logging.getLogger(__name__)


class ResolutionPhase(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    ERROR = "error"


_ALL = frozenset(ResolutionPhase)

ALLOWED_TRANSITIONS: Dict[ResolutionPhase, FrozenSet[ResolutionPhase]] = {
    ResolutionPhase.IDLE: frozenset(
        {ResolutionPhase.IDLE, ResolutionPhase.SELECTING, ResolutionPhase.RESOLVED}
    ),
    ResolutionPhase.SELECTING: _ALL,
    ResolutionPhase.RESOLVING: frozenset(
        {
            ResolutionPhase.IDLE,
            ResolutionPhase.SELECTING,
            ResolutionPhase.RESOLVED,
            ResolutionPhase.ERROR,
        }
    ),
    ResolutionPhase.RESOLVED: frozenset({ResolutionPhase.IDLE, ResolutionPhase.SELECTING}),
    ResolutionPhase.ERROR: frozenset({ResolutionPhase.IDLE, ResolutionPhase.SELECTING}),
}


@dataclass
class MapView:
    latitude: float
    longitude: float
    zoom: int
    recenter: bool = False


class LocationStore:
    """Single active candidate plus its resolution phase."""

    def __init__(self) -> None:
        self.phase = ResolutionPhase.IDLE
        self.candidate: Optional[LocationCandidate] = None

    def _move(self, target: ResolutionPhase) -> None:
        if target not in ALLOWED_TRANSITIONS[self.phase]:
            raise InvalidTransition(f"{self.phase.value} -> {target.value}")
        logger.debug("Resolution phase %s -> %s", self.phase.value, target.value)
        self.phase = target

    def begin_selection(self) -> None:
        self._move(ResolutionPhase.SELECTING)

    def place(self, candidate: LocationCandidate) -> LocationCandidate:
        """Install a coordinates-only candidate awaiting reverse geocoding."""

        if self.phase is not ResolutionPhase.SELECTING:
            self.begin_selection()
        self._move(ResolutionPhase.RESOLVING)
        self.candidate = candidate
        return candidate

    def resolve_directly(self, candidate: LocationCandidate) -> LocationCandidate:
        """Install a candidate that already carries its full address."""

        self._move(ResolutionPhase.RESOLVED)
        self.candidate = candidate
        return candidate

    def merge_address(self, fields: dict) -> LocationCandidate:
        if self.candidate is None:
            raise InvalidTransition("no candidate to enrich")
        self._move(ResolutionPhase.RESOLVED)
        for key in ("address", "city", "postal_code", "country", "display_name"):
            if key in fields:
                setattr(self.candidate, key, fields[key])
        return self.candidate

    def mark_error(self) -> None:
        self._move(ResolutionPhase.ERROR)

    def rollback(self, phase: ResolutionPhase) -> None:
        if self.phase is not ResolutionPhase.SELECTING:
            raise InvalidTransition(f"rollback from {self.phase.value}")
        if phase is ResolutionPhase.IDLE:
            self.candidate = None
        self._move(phase)

    def reset(self) -> None:
        self._move(ResolutionPhase.IDLE)
        self.candidate = None
