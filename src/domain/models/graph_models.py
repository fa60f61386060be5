"""Domain models for Microsoft Graph directory checks."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class GraphCredentials:
    """App registration credentials for one Azure AD tenant."""
    tenant_id: str
    client_id: str
    client_secret: str


@dataclass(frozen=True)
class ConnectionTestResult:
    """Outcome of probing Graph with a set of credentials."""
    success: bool
    message: str


@dataclass(frozen=True)
class GroupSendPermission:
    """
    Whether a user can send mail to a group.

    Attributes:
        can_send: Final decision
        reason: Human-readable explanation
        membership_checked: Whether group membership could be verified
        group_name: Display name (or address) of the group
        group_details: Send-related group settings
    """
    can_send: bool
    reason: str
    membership_checked: bool = False
    group_name: Optional[str] = None
    group_details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GroupSendCheck:
    """
    Answer to a group send-permission request.

    ``available`` is False when the check could not be performed for the
    sender (unknown domain, feature off, Graph refused). ``failed`` marks an
    unexpected upstream error.
    """
    available: bool
    reason: str
    permission: Optional[GroupSendPermission] = None
    failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"available": self.available, "reason": self.reason}
        if self.permission is not None:
            data.update(
                canSend=self.permission.can_send,
                groupName=self.permission.group_name,
                membershipChecked=self.permission.membership_checked,
                groupDetails=self.permission.group_details or None,
            )
        return data
