"""Port interface for the upstream automatic-replies provider."""

from abc import ABC, abstractmethod

from src.domain.models.ooo_models import AutomaticReplies


class OutOfOfficeProvider(ABC):
    """Reads a mailbox's automatic-replies setting from the directory."""

    @abstractmethod
    async def fetch_automatic_replies(self, email: str) -> AutomaticReplies:
        """
        Resolve the user behind ``email`` and read their automatic replies.

        Args:
            email: Normalized email address

        Returns:
            Automatic-replies setting

        Raises:
            NotFoundOrForbidden: Upstream answered 403 or 404
            UpstreamUnavailable: Timeout, 5xx, or transport failure
        """
        pass
