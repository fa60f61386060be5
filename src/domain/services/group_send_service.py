"""Group send-permission checks routed through the sender's tenancy."""

import logging
from typing import Any, Dict, Optional

from src.domain.models.audit_models import AuditAction, RequestContext
from src.domain.models.errors import NotFoundOrForbidden, TenancyValidationError
from src.domain.models.graph_models import GraphCredentials, GroupSendCheck, GroupSendPermission
from src.domain.models.tenancy_models import DomainNotFound
from src.domain.ports.audit_repository import AuditLogRepository
from src.domain.ports.graph_directory import GraphDirectory
from src.domain.services.domain_router import SmtpDomainRouter, domain_of
from src.domain.services.validation import is_email, is_uuid
from src.services.secret_cipher import SecretCipher

logger = logging.getLogger(__name__)


class GroupSendService:
    """Decides whether a sender may mail a group, using its tenancy's Graph app."""

    def __init__(
        self,
        router: SmtpDomainRouter,
        directory: GraphDirectory,
        cipher: SecretCipher,
        audit_repository: AuditLogRepository
    ):
        self.router = router
        self.directory = directory
        self.cipher = cipher
        self.audit_repository = audit_repository

    async def check_send_permission(
        self,
        ctx: RequestContext,
        group_id: str,
        user_email: str
    ) -> GroupSendCheck:
        """
        Check whether ``user_email`` can send mail to ``group_id``.

        Args:
            ctx: Caller context (for auditing)
            group_id: Entra ID group GUID
            user_email: Sender address; its domain selects the tenancy

        Returns:
            GroupSendCheck describing the outcome

        Raises:
            TenancyValidationError: Missing or malformed input
        """
        if not group_id or not user_email:
            raise TenancyValidationError(
                {"request": "Missing required fields: groupId and userEmail"}
            )
        if not is_uuid(group_id):
            raise TenancyValidationError({"groupId": "Invalid group ID format"})
        if not is_email(user_email):
            raise TenancyValidationError({"userEmail": "Invalid email format"})

        email_domain = domain_of(user_email)
        route = await self.router.resolve_tenancy_for_domain(email_domain)
        if isinstance(route, DomainNotFound):
            return GroupSendCheck(
                available=False,
                reason=(
                    "Domain not configured in system. "
                    "Contact IT to enable permission checking for your domain."
                ),
            )

        audit_meta: Dict[str, Any] = {
            "groupId": group_id,
            "domain": email_domain,
            "tenancyId": route.tenancy.id,
            "tenancyName": route.tenancy.name,
        }

        if not route.allows("enable_group_send_check"):
            await self._audit(ctx, user_email, {**audit_meta, "featureEnabled": False})
            return GroupSendCheck(
                available=False,
                reason="Permission checking is not enabled for your domain",
            )

        try:
            credentials = GraphCredentials(
                tenant_id=route.tenancy.tenant_id,
                client_id=route.tenancy.client_id,
                client_secret=self.cipher.decrypt(route.tenancy.client_secret),
            )
            permission = await self.directory.check_group_send_permission(
                credentials, group_id, user_email
            )
        except NotFoundOrForbidden as e:
            await self._audit(ctx, user_email, {**audit_meta, "error": str(e)})
            if e.status_code == 404:
                return GroupSendCheck(
                    available=True,
                    reason="Group not found or you do not have permission to view it",
                    permission=GroupSendPermission(
                        can_send=False,
                        reason="Group not found or you do not have permission to view it",
                    ),
                )
            return GroupSendCheck(
                available=False,
                reason="Insufficient permissions to check group details. Contact IT for assistance.",
            )
        except Exception as e:
            logger.error(f"Graph error during permission check for group {group_id}: {e}")
            await self._audit(ctx, user_email, {**audit_meta, "error": str(e) or "Unknown Graph API error"})
            return GroupSendCheck(
                available=False,
                reason="Unable to check permissions at this time. Please try again later.",
                failed=True,
            )

        await self._audit(
            ctx,
            user_email,
            {
                **audit_meta,
                "groupName": permission.group_name,
                "canSend": permission.can_send,
                "reason": permission.reason,
                "membershipChecked": permission.membership_checked,
                "groupDetails": permission.group_details,
            },
        )
        return GroupSendCheck(available=True, reason=permission.reason, permission=permission)

    async def _audit(
        self,
        ctx: RequestContext,
        target_email: str,
        metadata: Optional[Dict[str, Any]]
    ) -> None:
        try:
            await self.audit_repository.append(
                action=AuditAction.CHECK_GROUP_SEND_PERMISSION,
                admin_email=ctx.admin_email,
                target_email=target_email,
                ip_address=ctx.ip_address,
                user_agent=ctx.user_agent,
                metadata=metadata,
            )
        except Exception as e:
            logger.error(f"Failed to write audit log for group send check: {e}")
