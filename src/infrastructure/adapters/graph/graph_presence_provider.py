"""Microsoft Graph implementation of PresenceProvider."""

import asyncio
import logging
from typing import Optional

from msgraph import GraphServiceClient
from msgraph.generated.models.o_data_errors.o_data_error import ODataError

from src.domain.models.errors import NotFoundOrForbidden, PresenceError, UpstreamUnavailable
from src.domain.models.presence_models import UpstreamPresence
from src.domain.ports.presence_provider import PresenceProvider
from src.infrastructure.adapters.graph.graph_client import GRAPH_TIMEOUT_SECONDS, resolve_user_id

logger = logging.getLogger(__name__)


class GraphPresenceProvider(PresenceProvider):
    """Resolves the user ID for an email, then reads ``/users/{id}/presence``."""

    def __init__(
        self,
        graph_client: Optional[GraphServiceClient],
        timeout: float = GRAPH_TIMEOUT_SECONDS
    ):
        """
        Initialize provider.

        Args:
            graph_client: Authenticated Graph client, None when not configured
            timeout: Seconds before a lookup counts as unavailable
        """
        self.graph_client = graph_client
        self.timeout = timeout

    async def _lookup(self, email: str):
        user_id = await resolve_user_id(self.graph_client, email)
        return await self.graph_client.users.by_user_id(user_id).presence.get()

    async def fetch_presence(self, email: str) -> UpstreamPresence:
        if self.graph_client is None:
            raise UpstreamUnavailable("Microsoft Graph client not configured")

        try:
            presence = await asyncio.wait_for(self._lookup(email), timeout=self.timeout)
        except ODataError as ode:
            status = ode.response_status_code
            if status in (403, 404):
                raise NotFoundOrForbidden(status) from ode
            code = ode.error.code if ode.error else 'Unknown'
            logger.error(f"❌ Graph presence error for {email}: {code} (status {status})")
            raise UpstreamUnavailable(f"Graph error {code}", status_code=status) from ode
        except asyncio.TimeoutError as e:
            logger.warning(f"⚠️ Graph presence lookup for {email} timed out after {self.timeout}s")
            raise UpstreamUnavailable("Graph presence lookup timed out") from e
        except PresenceError:
            raise
        except Exception as e:
            logger.error(f"❌ Error fetching presence for {email}: {e}")
            raise UpstreamUnavailable(str(e)) from e

        if presence is None:
            raise UpstreamUnavailable("Graph returned an empty presence response")

        return UpstreamPresence(
            activity=presence.activity,
            availability=presence.availability
        )
