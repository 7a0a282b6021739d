"""Issue-order bookkeeping for asynchronous lookups.

Responses come back in whatever order the network delivers them. The
sequencer tags every outgoing lookup with an id and, per lookup kind, only
lets the most recently issued one through: last-issued-wins, not
last-completed-wins.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

logger = logging.getLogger(__name__)


class LookupKind(str, Enum):
    SEARCH = "search"
    REVERSE = "reverse"
    GEOLOCATION = "geolocation"


@dataclass(frozen=True)
class PendingRequest:
    sequence_id: int
    kind: LookupKind
    issued_at: float = field(default_factory=time.monotonic, compare=False)


@dataclass
class _Track:
    last_issued: int = 0
    last_accepted: int = 0
    in_flight: bool = False


class LookupSequencer:
    def __init__(self) -> None:
        self._tracks: Dict[LookupKind, _Track] = {kind: _Track() for kind in LookupKind}

    def issue(self, kind: LookupKind) -> PendingRequest:
        track = self._tracks[kind]
        track.last_issued += 1
        track.in_flight = True
        return PendingRequest(sequence_id=track.last_issued, kind=kind)

    def is_current(self, request: PendingRequest) -> bool:
        return request.sequence_id == self._tracks[request.kind].last_issued

    def complete(self, request: PendingRequest) -> bool:
        """Settle ``request``; True when its outcome may be applied.

        Applies to failures as well as successes: only the latest request of a
        kind may clear that kind's in-flight flag.
        """

        track = self._tracks[request.kind]
        if request.sequence_id != track.last_issued:
            logger.debug(
                "Discarding stale %s response",
                request.kind.value,
                extra={
                    "extra_data": {
                        "sequence_id": request.sequence_id,
                        "last_issued": track.last_issued,
                        "age_ms": round((time.monotonic() - request.issued_at) * 1000, 1),
                    }
                },
            )
            return False
        track.last_accepted = request.sequence_id
        track.in_flight = False
        return True

    def invalidate(self, kind: LookupKind) -> None:
        """Make every outstanding request of ``kind`` stale."""

        track = self._tracks[kind]
        track.last_issued += 1
        track.in_flight = False

    def invalidate_all(self) -> None:
        for kind in LookupKind:
            self.invalidate(kind)

    def in_flight(self, kind: LookupKind) -> bool:
        return self._tracks[kind].in_flight

    def last_issued(self, kind: LookupKind) -> int:
        return self._tracks[kind].last_issued

    def last_accepted(self, kind: LookupKind) -> int:
        return self._tracks[kind].last_accepted
