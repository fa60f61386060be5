"""Domain models for presence lookups and the presence cache."""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


MIN_TTL = 30
MAX_TTL = 300
DEFAULT_TTL = 300

CACHE_KEY_PREFIX = "presence:"


class Availability(str, Enum):
    """Availability values reported by Microsoft Graph."""
    AVAILABLE = "Available"
    AVAILABLE_IDLE = "AvailableIdle"
    AWAY = "Away"
    BE_RIGHT_BACK = "BeRightBack"
    BUSY = "Busy"
    BUSY_IDLE = "BusyIdle"
    DO_NOT_DISTURB = "DoNotDisturb"
    OFFLINE = "Offline"
    PRESENCE_UNKNOWN = "PresenceUnknown"


_ACTIVITY_LABELS = {
    "InAMeeting": "In a Meeting",
    "InACall": "On a Call",
    "OutOfOffice": "Out of Office",
    "BeRightBack": "Be Right Back",
    "DoNotDisturb": "Do Not Disturb",
}


def format_presence_activity(activity: Optional[str]) -> Optional[str]:
    """Human-readable label for a Graph activity value."""
    if activity is None:
        return None
    return _ACTIVITY_LABELS.get(activity, activity)


def is_known_availability(value: Optional[str]) -> bool:
    """Whether ``value`` is one of the Graph availability values."""
    return value in {a.value for a in Availability}


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address for use as a cache key."""
    return (email or "").strip().lower()


def cache_key_for(email: str) -> str:
    return f"{CACHE_KEY_PREFIX}{normalize_email(email)}"


def clamp_ttl(value: Any) -> int:
    """
    Clamp a requested TTL into ``[MIN_TTL, MAX_TTL]``.

    Missing or non-numeric values (including NaN) fall back to ``DEFAULT_TTL``.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_TTL
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return DEFAULT_TTL
    if math.isnan(numeric):
        return DEFAULT_TTL
    if numeric < MIN_TTL:
        return MIN_TTL
    if numeric > MAX_TTL:
        return MAX_TTL
    return int(numeric)


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class UpstreamPresence:
    """Raw presence values returned by the upstream provider."""
    activity: Optional[str] = None
    availability: Optional[str] = None


@dataclass(frozen=True)
class PresenceCacheEntry:
    """
    Cached presence snapshot for a single mailbox.

    Attributes:
        activity: Graph activity (e.g. ``InAMeeting``) or None
        availability: Graph availability (e.g. ``Busy``) or None
        fetched_at: When the upstream fetch completed (UTC)
        ttl: TTL in seconds that was in effect when the entry was written
    """
    activity: Optional[str]
    availability: Optional[str]
    fetched_at: datetime
    ttl: int = DEFAULT_TTL

    def age_seconds(self, now: datetime) -> float:
        return (now - self.fetched_at).total_seconds()

    def is_fresh(self, effective_ttl: int, now: datetime) -> bool:
        """An entry is fresh while its age does not exceed ``effective_ttl``."""
        return self.age_seconds(now) <= effective_ttl

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activity": self.activity,
            "availability": self.availability,
            "fetchedAt": format_timestamp(self.fetched_at),
            "ttl": self.ttl,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], now: datetime) -> "PresenceCacheEntry":
        # Entries written before fetchedAt was recorded are treated as fetched now.
        fetched_at = parse_timestamp(data.get("fetchedAt")) or now
        return cls(
            activity=data.get("activity"),
            availability=data.get("availability"),
            fetched_at=fetched_at,
            ttl=clamp_ttl(data.get("ttl")),
        )


@dataclass(frozen=True)
class PresenceSnapshot:
    """Presence returned to callers, tagged with whether it came from cache."""
    activity: Optional[str]
    availability: Optional[str]
    fetched_at: datetime
    ttl: int
    cached: bool

    @classmethod
    def from_entry(cls, entry: PresenceCacheEntry, cached: bool) -> "PresenceSnapshot":
        return cls(
            activity=entry.activity,
            availability=entry.availability,
            fetched_at=entry.fetched_at,
            ttl=entry.ttl,
            cached=cached,
        )

    @property
    def activity_label(self) -> Optional[str]:
        return format_presence_activity(self.activity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activity": self.activity,
            "availability": self.availability,
            "fetchedAt": format_timestamp(self.fetched_at),
            "ttl": self.ttl,
            "cached": self.cached,
        }
