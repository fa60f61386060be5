"""
Add-in SDK for the People Picker API.

Thin async client over httpx used by the Outlook add-in and by the
presence poller.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
PRESENCE_TIMEOUT = 12.0
API_PREFIX = "/api/v1"


class PeoplePickerError(Exception):
    """Request to the People Picker API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class PresenceResult:
    """Presence as seen by the add-in. All fields None when unavailable."""
    activity: Optional[str] = None
    availability: Optional[str] = None
    fetched_at: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.availability is None and self.activity is None


EMPTY_PRESENCE = PresenceResult()


@dataclass(frozen=True)
class OutOfOfficeResult:
    is_ooo: bool
    message: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class PeoplePickerClient:
    """Async client for the People Picker API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize client.

        Args:
            base_url: Service root, e.g. https://people.example.com
            token: Bearer token sent with every request
            timeout: Default request timeout in seconds
            transport: Custom httpx transport
        """
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "PeoplePickerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request_json(
        self,
        method: str,
        path: str,
        timeout: Optional[float] = None,
        **kwargs: Any
    ) -> Dict[str, Any]:
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = await self._client.request(method, f"{API_PREFIX}{path}", **kwargs)
        except httpx.TimeoutException as e:
            raise PeoplePickerError("Request timed out") from e
        except httpx.HTTPError as e:
            raise PeoplePickerError(f"Request failed: {e}") from e

        if response.is_error:
            raise PeoplePickerError(
                f"Request failed with status {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise PeoplePickerError("Response is not valid JSON") from e

    async def get_presence(
        self,
        email: str,
        no_cache: bool = False,
        ttl: Optional[int] = None,
        raise_errors: bool = False
    ) -> PresenceResult:
        """
        Get presence for a mailbox.

        Args:
            email: Mailbox address
            no_cache: Ask for an entry no older than ``ttl``
            ttl: Freshness in seconds (the server clamps it to 30..300)
            raise_errors: Raise PeoplePickerError instead of returning an
                empty result when the request itself fails

        Returns:
            PresenceResult; empty when presence is not available
        """
        params: Dict[str, str] = {}
        if no_cache:
            params["noCache"] = "1"
        if ttl is not None:
            params["ttl"] = str(ttl)

        try:
            payload = await self._request_json(
                "GET",
                f"/presence/{quote(email, safe='')}",
                timeout=PRESENCE_TIMEOUT,
                params=params,
            )
        except PeoplePickerError as e:
            if raise_errors:
                raise
            logger.debug(f"Presence request for {email} failed: {e}")
            return EMPTY_PRESENCE

        if not isinstance(payload, dict):
            return EMPTY_PRESENCE
        data = payload.get("data")
        if not payload.get("ok") or not data:
            if raise_errors and payload.get("error"):
                raise PeoplePickerError(str(payload["error"]))
            return EMPTY_PRESENCE

        return PresenceResult(
            activity=data.get("activity"),
            availability=data.get("availability"),
            fetched_at=data.get("fetchedAt"),
        )

    async def get_ooo(self, email: str, raise_errors: bool = False) -> Optional[OutOfOfficeResult]:
        """
        Get the out-of-office state of a mailbox.

        Returns:
            OutOfOfficeResult, or None when the state is not available
        """
        try:
            payload = await self._request_json("GET", f"/ooo/{quote(email, safe='')}")
        except PeoplePickerError as e:
            if raise_errors:
                raise
            logger.debug(f"Out-of-office request for {email} failed: {e}")
            return None

        if not isinstance(payload, dict):
            return None
        data = payload.get("data")
        if not payload.get("ok") or not data:
            if raise_errors and payload.get("error"):
                raise PeoplePickerError(str(payload["error"]))
            return None

        return OutOfOfficeResult(
            is_ooo=bool(data.get("isOOO")),
            message=data.get("message"),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
        )

    async def check_send_permission(self, group_id: str, user_email: str) -> Dict[str, Any]:
        """
        Ask whether ``user_email`` can send to ``group_id``.

        Returns:
            Server answer (``available``, ``reason``, and when available
            ``canSend``/``groupName``/``membershipChecked``)
        """
        try:
            return await self._request_json(
                "POST",
                "/groups/check-send-permission",
                json={"groupId": group_id, "userEmail": user_email},
            )
        except PeoplePickerError as e:
            logger.debug(f"Send-permission check for {group_id} failed: {e}")
            return {"available": False, "reason": str(e)}
