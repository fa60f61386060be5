"""Microsoft Graph implementation of OutOfOfficeProvider."""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from kiota_abstractions.base_request_configuration import RequestConfiguration
from msgraph import GraphServiceClient
from msgraph.generated.models.o_data_errors.o_data_error import ODataError
from msgraph.generated.users.item.mailbox_settings.mailbox_settings_request_builder import (
    MailboxSettingsRequestBuilder,
)

from src.domain.models.errors import NotFoundOrForbidden, PresenceError, UpstreamUnavailable
from src.domain.models.ooo_models import AutomaticReplies
from src.domain.ports.out_of_office_provider import OutOfOfficeProvider
from src.infrastructure.adapters.graph.graph_client import GRAPH_TIMEOUT_SECONDS, resolve_user_id

logger = logging.getLogger(__name__)


def _date_time(value: Any) -> Optional[str]:
    # DateTimeTimeZone; Graph omits it when no schedule is set
    return getattr(value, "date_time", None) if value is not None else None


class GraphOutOfOfficeProvider(OutOfOfficeProvider):
    """Resolves the user ID for an email, then reads ``/users/{id}/mailboxSettings``."""

    def __init__(
        self,
        graph_client: Optional[GraphServiceClient],
        timeout: float = GRAPH_TIMEOUT_SECONDS
    ):
        self.graph_client = graph_client
        self.timeout = timeout

    async def _lookup(self, email: str):
        user_id = await resolve_user_id(self.graph_client, email)
        query_params = MailboxSettingsRequestBuilder.MailboxSettingsRequestBuilderGetQueryParameters(
            select=["automaticRepliesSetting"]
        )
        return await self.graph_client.users.by_user_id(user_id).mailbox_settings.get(
            request_configuration=RequestConfiguration(query_parameters=query_params)
        )

    async def fetch_automatic_replies(self, email: str) -> AutomaticReplies:
        if self.graph_client is None:
            raise UpstreamUnavailable("Microsoft Graph client not configured")

        try:
            settings = await asyncio.wait_for(self._lookup(email), timeout=self.timeout)
        except ODataError as ode:
            status = ode.response_status_code
            if status in (403, 404):
                raise NotFoundOrForbidden(status) from ode
            code = ode.error.code if ode.error else 'Unknown'
            logger.error(f"❌ Graph mailbox settings error for {email}: {code} (status {status})")
            raise UpstreamUnavailable(f"Graph error {code}", status_code=status) from ode
        except asyncio.TimeoutError as e:
            logger.warning(f"⚠️ Graph mailbox settings lookup for {email} timed out after {self.timeout}s")
            raise UpstreamUnavailable("Graph mailbox settings lookup timed out") from e
        except PresenceError:
            raise
        except Exception as e:
            logger.error(f"❌ Error fetching mailbox settings for {email}: {e}")
            raise UpstreamUnavailable(str(e)) from e

        setting = getattr(settings, "automatic_replies_setting", None)
        if setting is None:
            return AutomaticReplies(status=None)

        status = setting.status
        if isinstance(status, Enum):
            status = status.value

        return AutomaticReplies(
            status=status,
            internal_reply_message=setting.internal_reply_message,
            external_reply_message=setting.external_reply_message,
            scheduled_start=_date_time(setting.scheduled_start_date_time),
            scheduled_end=_date_time(setting.scheduled_end_date_time),
        )
