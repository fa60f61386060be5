"""Microsoft Graph implementation of GraphDirectory."""

import asyncio
import logging
from typing import Callable

from azure.core.exceptions import ClientAuthenticationError
from kiota_abstractions.base_request_configuration import RequestConfiguration
from msgraph import GraphServiceClient
from msgraph.generated.groups.item.group_item_request_builder import GroupItemRequestBuilder
from msgraph.generated.groups.item.members.members_request_builder import MembersRequestBuilder
from msgraph.generated.models.o_data_errors.o_data_error import ODataError
from msgraph.generated.organization.organization_request_builder import OrganizationRequestBuilder

from src.domain.models.errors import NotFoundOrForbidden, UpstreamUnavailable
from src.domain.models.graph_models import (
    ConnectionTestResult,
    GraphCredentials,
    GroupSendPermission,
)
from src.domain.ports.graph_directory import GraphDirectory
from src.infrastructure.adapters.graph.graph_client import GRAPH_TIMEOUT_SECONDS, create_graph_client

logger = logging.getLogger(__name__)

GROUP_FIELDS = [
    "id",
    "displayName",
    "mail",
    "visibility",
    "mailEnabled",
    "securityEnabled",
    "allowExternalSenders",
    "requireSenderAuthenticationEnabled",
]


class MsGraphDirectory(GraphDirectory):
    """Graph directory calls made with per-tenancy credentials."""

    def __init__(
        self,
        client_factory: Callable[[GraphCredentials], GraphServiceClient] = create_graph_client,
        timeout: float = GRAPH_TIMEOUT_SECONDS
    ):
        self.client_factory = client_factory
        self.timeout = timeout

    async def test_connection(self, credentials: GraphCredentials) -> ConnectionTestResult:
        """Read ``/organization`` to validate credentials and permissions."""
        try:
            client = self.client_factory(credentials)
            query_params = OrganizationRequestBuilder.OrganizationRequestBuilderGetQueryParameters(
                select=["id", "displayName"]
            )
            await asyncio.wait_for(
                client.organization.get(
                    request_configuration=RequestConfiguration(query_parameters=query_params)
                ),
                timeout=self.timeout
            )
        except ClientAuthenticationError as e:
            return ConnectionTestResult(
                success=False,
                message=f"Authentication failed: {e.message or 'Invalid credentials'}"
            )
        except ODataError as ode:
            if ode.response_status_code == 403:
                return ConnectionTestResult(
                    success=False,
                    message=(
                        "Authentication succeeded, but missing required permissions. "
                        "Please ensure the app has Organization.Read.All or "
                        "Directory.Read.All permissions."
                    )
                )
            if ode.response_status_code == 401:
                return ConnectionTestResult(
                    success=False,
                    message="Unauthorized: Invalid or expired credentials"
                )
            detail = ode.error.message if ode.error and ode.error.message else "Unknown error"
            return ConnectionTestResult(success=False, message=f"Graph API error: {detail}")
        except asyncio.TimeoutError:
            return ConnectionTestResult(success=False, message="Graph API error: request timed out")
        except Exception as e:
            logger.error(f"❌ Error testing Graph connection for tenant {credentials.tenant_id}: {e}")
            return ConnectionTestResult(success=False, message=str(e) or "Unknown error occurred")

        logger.info(f"✅ Graph connection verified for tenant {credentials.tenant_id}")
        return ConnectionTestResult(
            success=True,
            message="Successfully connected to Microsoft Graph API"
        )

    async def check_group_send_permission(
        self,
        credentials: GraphCredentials,
        group_id: str,
        user_email: str
    ) -> GroupSendPermission:
        """
        Decide from group settings and membership whether a user can send.

        A user can send when they are a member, when the group accepts
        external senders, or when it does not require sender authentication.
        """
        client = self.client_factory(credentials)
        group_builder = client.groups.by_group_id(group_id)

        try:
            group_params = GroupItemRequestBuilder.GroupItemRequestBuilderGetQueryParameters(
                select=GROUP_FIELDS
            )
            group = await asyncio.wait_for(
                group_builder.get(
                    request_configuration=RequestConfiguration(query_parameters=group_params)
                ),
                timeout=self.timeout
            )
        except ODataError as ode:
            status = ode.response_status_code
            if status in (403, 404):
                raise NotFoundOrForbidden(status) from ode
            raise UpstreamUnavailable(
                ode.error.message if ode.error and ode.error.message else "Graph API error",
                status_code=status
            ) from ode
        except asyncio.TimeoutError as e:
            raise UpstreamUnavailable("Graph group lookup timed out") from e

        if group is None:
            raise NotFoundOrForbidden(404)

        group_name = group.display_name or group.mail or "Unknown Group"
        group_details = {
            "visibility": group.visibility,
            "allowExternalSenders": group.allow_external_senders,
            "requireSenderAuthenticationEnabled": group.require_sender_authentication_enabled,
            "mailEnabled": group.mail_enabled,
            "mail": group.mail,
        }

        if group.mail_enabled is False or not group.mail:
            return GroupSendPermission(
                can_send=False,
                reason="This group is not mail-enabled or does not have a delivery address.",
                membership_checked=False,
                group_name=group_name,
                group_details=group_details
            )

        is_member = False
        membership_checked = False
        try:
            escaped = user_email.replace("'", "''")
            member_params = MembersRequestBuilder.MembersRequestBuilderGetQueryParameters(
                select=["id", "mail", "userPrincipalName"],
                filter=f"mail eq '{escaped}' or userPrincipalName eq '{escaped}'",
                top=1
            )
            config = RequestConfiguration(query_parameters=member_params)
            config.headers.add("ConsistencyLevel", "eventual")
            members = await asyncio.wait_for(
                group_builder.members.get(request_configuration=config),
                timeout=self.timeout
            )
            membership_checked = True
            is_member = bool(members and members.value)
        except (ODataError, asyncio.TimeoutError) as e:
            # Decision falls back to the group's sender settings.
            logger.warning(f"⚠️ Could not check membership of {user_email} in group {group_id}: {e}")

        if is_member:
            reason = "You are a member of this group"
            can_send = True
        elif group.allow_external_senders is True:
            reason = "Group allows external senders"
            can_send = True
        elif group.require_sender_authentication_enabled is False:
            reason = "Group does not require sender authentication"
            can_send = True
        else:
            can_send = False
            reason = (
                "You are not a member and the group restricts external senders"
                if membership_checked
                else "Group restricts external senders and your membership could not be verified"
            )

        return GroupSendPermission(
            can_send=can_send,
            reason=reason,
            membership_checked=membership_checked,
            group_name=group_name,
            group_details=group_details
        )
