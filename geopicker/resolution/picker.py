"""Interactive location resolution for the map-based address picker.

WHAT: One picker session coordinating free-text search, reverse geocoding and
device geolocation into a single candidate the host form can confirm.
WHEN: Created once per picker widget; ``open`` and ``cancel``/``confirm``
bracket each session.
WHY: The three lookups run concurrently and complete in any order. Only the
most recently issued lookup of each kind may touch the candidate.
HOW: Every lookup is issued through the ``LookupSequencer`` and runs as an
asyncio task; its completion handler checks ``sequencer.complete`` before
mutating the ``LocationStore``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Dict, List, Optional, Set, Union
from uuid import uuid4

from ..core.errors import GeolocationUnavailable, LookupFailure, PermissionDenied
from ..core.settings import AppSettings, settings as default_settings
from ..schemas.location import LocationCandidate, LocationSource, SearchResult, normalize_point
from ..services.geocoder import GeocodeGateway
from ..services.geolocation import GeolocationProvider, provider_from_settings
from .debounce import Debouncer
from .gate import AddressCallback, ChangeCallback, ConfirmationGate, can_confirm
from .sequencer import LookupKind, LookupSequencer, PendingRequest
from .state import LocationStore, MapView, ResolutionPhase

logger = logging.getLogger(__name__)

LOCATION_DENIED_MESSAGE = (
    "Could not get your location. Please allow location access or select manually on the map."
)
LOCATION_UNSUPPORTED_MESSAGE = "Geolocation is not supported on this device."
INVALID_POINT_MESSAGE = "That point could not be placed on the map. Please click again."


@dataclass(frozen=True)
class Advisory:
    """Dismissible, non-blocking notice shown next to the picker."""

    code: str
    message: str


class LocationPicker:
    def __init__(
        self,
        gateway: GeocodeGateway,
        geolocation: Optional[GeolocationProvider] = None,
        *,
        config: Optional[AppSettings] = None,
        on_change: Optional[ChangeCallback] = None,
        on_address_select: Optional[AddressCallback] = None,
        debounce_seconds: Optional[float] = None,
        lookup_timeout: Optional[float] = None,
        abort_stale: Optional[bool] = None,
    ) -> None:
        self.config = config or default_settings
        self.gateway = gateway
        self.geolocation = geolocation or provider_from_settings(self.config)
        self.sequencer = LookupSequencer()
        self.store = LocationStore()
        self.gate = ConfirmationGate(on_change, on_address_select)
        self.debouncer = Debouncer(
            self.request_search,
            quiet_period=self.config.debounce_seconds if debounce_seconds is None else debounce_seconds,
            min_chars=self.config.SEARCH_MIN_CHARS,
        )
        self.lookup_timeout = (
            self.config.LOOKUP_TIMEOUT_SECONDS if lookup_timeout is None else lookup_timeout
        )
        self.abort_stale = (
            self.config.ABORT_STALE_LOOKUPS if abort_stale is None else abort_stale
        )
        self.result_limit = self.config.SEARCH_RESULT_LIMIT

        self.query = ""
        self.results: List[SearchResult] = []
        self.advisories: List[Advisory] = []
        self.map_view = self._default_view()
        self.is_open = False
        self.session_id: Optional[str] = None
        self._restore_phase = ResolutionPhase.IDLE
        self._tasks: Dict[LookupKind, Set[asyncio.Task]] = {kind: set() for kind in LookupKind}

    # ---- read-only view for the host UI

    @property
    def phase(self) -> ResolutionPhase:
        return self.store.phase

    @property
    def candidate(self) -> Optional[LocationCandidate]:
        return self.store.candidate

    @property
    def can_confirm(self) -> bool:
        return can_confirm(self.store.candidate)

    @property
    def searching(self) -> bool:
        return self.sequencer.in_flight(LookupKind.SEARCH)

    @property
    def reverse_geocoding(self) -> bool:
        return self.sequencer.in_flight(LookupKind.REVERSE)

    @property
    def locating(self) -> bool:
        return self.sequencer.in_flight(LookupKind.GEOLOCATION)

    # ---- session lifecycle

    def open(self) -> None:
        self._end_session()
        self.is_open = True
        self.session_id = uuid4().hex[:12]
        self._event("picker.opened")

    def cancel(self) -> None:
        """Close without emitting; late responses from this session become inert."""

        self._end_session()

    def confirm(self) -> Optional[LocationCandidate]:
        try:
            snapshot = self.gate.confirm(self.store)
        except Exception:
            self._end_session()
            raise
        if snapshot is None:
            return None
        self._event("location.confirmed", source=snapshot.source.value, has_address=bool(snapshot.address))
        self._end_session()
        return snapshot

    def _end_session(self) -> None:
        self.sequencer.invalidate_all()
        for kind in LookupKind:
            self._abort(kind)
        self.debouncer.cancel()
        self.store.reset()
        self.query = ""
        self.results = []
        self.advisories = []
        self.map_view = self._default_view()
        self._restore_phase = ResolutionPhase.IDLE
        self.is_open = False
        self.session_id = None

    # ---- forward search

    def set_query(self, text: str) -> None:
        self.query = text or ""
        if len(self.query.strip()) < self.debouncer.min_chars:
            # Too short to search: results for a longer, abandoned text must not appear.
            self.sequencer.invalidate(LookupKind.SEARCH)
            self._abort(LookupKind.SEARCH)
            self.results = []
        self.debouncer.push(self.query)

    def request_search(self, query: str) -> asyncio.Task:
        request = self.sequencer.issue(LookupKind.SEARCH)
        return self._spawn(request, self._run_search(request, query.strip()))

    async def _run_search(self, request: PendingRequest, query: str) -> None:
        try:
            results = await asyncio.wait_for(
                self.gateway.search(query, self.result_limit), self.lookup_timeout
            )
        except Exception as exc:
            if not self.sequencer.complete(request):
                return
            self._log_failure("Address search failed", exc)
            self.results = []
            self._advise("search_failed", "Address search failed. Try again or pick a point on the map.")
            return
        if not self.sequencer.complete(request):
            return
        self.results = list(results or [])[: self.result_limit]
        self._dismiss("search_failed")

    def select_search_result(self, choice: Union[SearchResult, int]) -> Optional[LocationCandidate]:
        if isinstance(choice, int):
            if not 0 <= choice < len(self.results):
                logger.warning("Ignoring pick of result %d, %d results shown", choice, len(self.results))
                return None
            choice = self.results[choice]
        candidate = choice.to_candidate()

        # The result already carries its address: no reverse lookup, and
        # nothing still in flight may touch the new point or the closed list.
        for kind in LookupKind:
            self.sequencer.invalidate(kind)
            self._abort(kind)
        self.debouncer.cancel()

        self.store.begin_selection()
        self.store.resolve_directly(candidate)
        self.results = []
        self.query = ""
        self._dismiss("reverse_failed", "reverse_timeout")
        self.map_view = MapView(candidate.latitude, candidate.longitude, self.config.FOCUS_ZOOM, recenter=True)
        self._event("location.selected", source=LocationSource.SEARCH.value)
        return candidate

    # ---- map clicks and reverse geocoding

    def select_map_point(self, latitude: float, longitude: float) -> Optional[LocationCandidate]:
        point = normalize_point(latitude, longitude)
        if point is None:
            logger.warning("Ignoring map click at unusable coordinates %r, %r", latitude, longitude)
            self._advise("invalid_point", INVALID_POINT_MESSAGE)
            return None
        self._dismiss("invalid_point")
        candidate = LocationCandidate.at(*point, LocationSource.MAP_CLICK)
        # An explicit click wins over a device fix still on its way.
        self.sequencer.invalidate(LookupKind.GEOLOCATION)
        self._abort(LookupKind.GEOLOCATION)
        return self._place(candidate, recenter=False)

    def _place(self, candidate: LocationCandidate, *, recenter: bool) -> LocationCandidate:
        self.store.begin_selection()
        self.store.place(candidate)
        self._dismiss("reverse_failed", "reverse_timeout")
        zoom = self.config.FOCUS_ZOOM if recenter else self.map_view.zoom
        self.map_view = MapView(candidate.latitude, candidate.longitude, zoom, recenter=recenter)
        self._event("location.selected", source=candidate.source.value)

        request = self.sequencer.issue(LookupKind.REVERSE)
        self._spawn(request, self._run_reverse(request, candidate.latitude, candidate.longitude))
        return candidate

    async def _run_reverse(self, request: PendingRequest, latitude: float, longitude: float) -> None:
        try:
            result = await asyncio.wait_for(
                self.gateway.reverse(latitude, longitude), self.lookup_timeout
            )
        except asyncio.TimeoutError:
            if not self.sequencer.complete(request):
                return
            logger.warning("Reverse geocoding timed out after %.1fs", self.lookup_timeout)
            self.store.mark_error()
            self._advise("reverse_timeout", "Address lookup took too long. The coordinates are still usable.")
            return
        except Exception as exc:
            if not self.sequencer.complete(request):
                return
            self._log_failure("Reverse geocoding failed", exc)
            self.store.mark_error()
            self._advise("reverse_failed", "Could not find an address for this point. The coordinates are still usable.")
            return
        if not self.sequencer.complete(request):
            return
        self.store.merge_address(result.candidate_fields())

    # ---- device geolocation

    def request_geolocation(self) -> asyncio.Task:
        if self.store.phase is not ResolutionPhase.SELECTING:
            self._restore_phase = self.store.phase
        request = self.sequencer.issue(LookupKind.GEOLOCATION)
        self.store.begin_selection()
        self._dismiss("geolocation_denied", "geolocation_unavailable")
        return self._spawn(request, self._run_geolocation(request))

    async def _run_geolocation(self, request: PendingRequest) -> None:
        try:
            position = await asyncio.wait_for(
                self.geolocation.get_current_position(), self.lookup_timeout
            )
        except Exception as exc:
            if not self.sequencer.complete(request):
                return
            if isinstance(exc, PermissionDenied):
                self._advise("geolocation_denied", LOCATION_DENIED_MESSAGE)
            elif isinstance(exc, GeolocationUnavailable):
                self._advise("geolocation_unavailable", LOCATION_UNSUPPORTED_MESSAGE)
            else:
                self._log_failure("Geolocation failed", exc)
                self._advise("geolocation_unavailable", LOCATION_DENIED_MESSAGE)
            if self.store.phase is ResolutionPhase.SELECTING:
                self.store.rollback(self._restore_phase)
            return
        if not self.sequencer.complete(request):
            return
        point = normalize_point(position.latitude, position.longitude)
        if point is None:
            logger.warning("Device reported unusable coordinates %r, %r", position.latitude, position.longitude)
            self._advise("geolocation_unavailable", LOCATION_DENIED_MESSAGE)
            if self.store.phase is ResolutionPhase.SELECTING:
                self.store.rollback(self._restore_phase)
            return
        candidate = LocationCandidate.at(*point, LocationSource.GEOLOCATION)
        self._place(candidate, recenter=True)

    # ---- advisories

    def dismiss_advisory(self, code: Optional[str] = None) -> None:
        if code is None:
            self.advisories = []
        else:
            self._dismiss(code)

    def _advise(self, code: str, message: str) -> None:
        self.advisories = [item for item in self.advisories if item.code != code]
        self.advisories.append(Advisory(code=code, message=message))

    def _dismiss(self, *codes: str) -> None:
        self.advisories = [item for item in self.advisories if item.code not in codes]

    # ---- task bookkeeping

    def _spawn(self, request: PendingRequest, coro: Awaitable[None]) -> asyncio.Task:
        self._abort(request.kind)
        task = asyncio.ensure_future(coro)
        bucket = self._tasks[request.kind]
        bucket.add(task)
        task.add_done_callback(bucket.discard)
        return task

    def _abort(self, kind: LookupKind) -> None:
        # Stale tasks are already inert through their ids.
        if not self.abort_stale:
            return
        for task in list(self._tasks[kind]):
            task.cancel()

    async def settle(self) -> None:
        """Wait until no lookup is outstanding (a device fix may chain a reverse lookup)."""

        while True:
            pending = [task for bucket in self._tasks.values() for task in bucket if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _default_view(self) -> MapView:
        return MapView(
            self.config.DEFAULT_CENTER_LAT,
            self.config.DEFAULT_CENTER_LON,
            self.config.DEFAULT_ZOOM,
        )

    def _event(self, name: str, **data) -> None:
        logger.info(name, extra={"extra_data": {"session_id": self.session_id, **data}})

    @staticmethod
    def _log_failure(message: str, exc: BaseException) -> None:
        if isinstance(exc, LookupFailure):
            logger.warning("%s: %s", message, exc)
        else:
            logger.warning("%s: %r", message, exc, exc_info=exc)
