from .sdk import OutOfOfficeResult, PeoplePickerClient, PeoplePickerError, PresenceResult
from .presence_poller import PollerState, PresencePoller, VisibilitySignal

__all__ = [
    "PeoplePickerClient",
    "PeoplePickerError",
    "PresenceResult",
    "OutOfOfficeResult",
    "PollerState",
    "PresencePoller",
    "VisibilitySignal",
]
