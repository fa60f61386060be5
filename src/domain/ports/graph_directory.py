"""Port interface for per-tenancy Microsoft Graph directory operations."""

from abc import ABC, abstractmethod

from src.domain.models.graph_models import (
    ConnectionTestResult,
    GraphCredentials,
    GroupSendPermission,
)


class GraphDirectory(ABC):
    """Graph operations performed with a specific tenancy's credentials."""

    @abstractmethod
    async def test_connection(self, credentials: GraphCredentials) -> ConnectionTestResult:
        """
        Acquire a token and read the organization to validate credentials.

        Never raises; failures are reported in the result.
        """
        pass

    @abstractmethod
    async def check_group_send_permission(
        self,
        credentials: GraphCredentials,
        group_id: str,
        user_email: str
    ) -> GroupSendPermission:
        """
        Decide whether ``user_email`` can send to group ``group_id``.

        Raises:
            NotFoundOrForbidden: Graph answered 403/404 for the group
            UpstreamUnavailable: Any other Graph failure
        """
        pass
