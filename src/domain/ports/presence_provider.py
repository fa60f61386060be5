"""Port interface for the upstream presence provider."""

from abc import ABC, abstractmethod

from src.domain.models.presence_models import UpstreamPresence


class PresenceProvider(ABC):
    """Fetches live presence for a mailbox from the directory."""

    @abstractmethod
    async def fetch_presence(self, email: str) -> UpstreamPresence:
        """
        Resolve the user behind ``email`` and fetch their presence.

        Args:
            email: Normalized email address

        Returns:
            Upstream presence values

        Raises:
            NotFoundOrForbidden: Upstream answered 403 or 404
            UpstreamUnavailable: Timeout, 5xx, or transport failure
        """
        pass
