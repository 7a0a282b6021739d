from .debounce import Debouncer, should_fire
from .gate import ConfirmationGate, address_fields, can_confirm, summarize, trigger_label
from .picker import Advisory, LocationPicker
from .sequencer import LookupKind, LookupSequencer, PendingRequest
from .state import LocationStore, MapView, ResolutionPhase

__all__ = [
    "Advisory",
    "ConfirmationGate",
    "Debouncer",
    "LocationPicker",
    "LocationStore",
    "LookupKind",
    "LookupSequencer",
    "MapView",
    "PendingRequest",
    "ResolutionPhase",
    "address_fields",
    "can_confirm",
    "should_fire",
    "summarize",
    "trigger_label",
]
