"""Domain models for out-of-office (automatic replies) lookups."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from src.domain.models.presence_models import normalize_email

OOO_CACHE_KEY_PREFIX = "ooo:"

# Automatic replies change rarely; cached for 30 minutes.
OOO_TTL_SECONDS = 1800


class AutoReplyStatus(str, Enum):
    """``automaticRepliesSetting.status`` values reported by Microsoft Graph."""
    DISABLED = "disabled"
    ALWAYS_ENABLED = "alwaysEnabled"
    SCHEDULED = "scheduled"


ACTIVE_AUTO_REPLY_STATUSES = {AutoReplyStatus.ALWAYS_ENABLED.value, AutoReplyStatus.SCHEDULED.value}


def ooo_cache_key_for(email: str) -> str:
    return f"{OOO_CACHE_KEY_PREFIX}{normalize_email(email)}"


@dataclass(frozen=True)
class AutomaticReplies:
    """Mailbox automatic-replies setting as read from the directory."""
    status: Optional[str] = None
    internal_reply_message: Optional[str] = None
    external_reply_message: Optional[str] = None
    scheduled_start: Optional[str] = None
    scheduled_end: Optional[str] = None


@dataclass(frozen=True)
class OutOfOfficeStatus:
    """
    Out-of-office state of a mailbox.

    Attributes:
        is_ooo: Automatic replies are on (always, or scheduled)
        message: Internal reply, falling back to the external one; None
            when not out of office
        start_time: Scheduled start, when set
        end_time: Scheduled end, when set
        cached: Served from the cache
    """
    is_ooo: bool
    message: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    cached: bool = False

    @classmethod
    def from_automatic_replies(cls, replies: AutomaticReplies) -> "OutOfOfficeStatus":
        is_ooo = replies.status in ACTIVE_AUTO_REPLY_STATUSES
        message = None
        if is_ooo:
            message = replies.internal_reply_message or replies.external_reply_message or None
        return cls(
            is_ooo=is_ooo,
            message=message,
            start_time=replies.scheduled_start or None,
            end_time=replies.scheduled_end or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isOOO": self.is_ooo,
            "message": self.message,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], cached: bool = False) -> "OutOfOfficeStatus":
        if not isinstance(data.get("isOOO"), bool):
            raise ValueError("isOOO missing from cached out-of-office entry")
        return cls(
            is_ooo=data["isOOO"],
            message=data.get("message"),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            cached=cached,
        )
