"""
Presence poller for an open person detail view.

Refreshes presence on a fixed interval measured from the completion of the
previous fetch, pauses while the view is hidden, and cancels everything on
teardown. One poller instance serves one selected person.
"""
import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from src.client.sdk import PeoplePickerClient, PresenceResult

logger = logging.getLogger(__name__)

PRESENCE_POLL_SECONDS = 60
PRESENCE_ERROR_MESSAGE = "Presence unavailable"

PresenceFetcher = Callable[[str], Awaitable[PresenceResult]]
VisibilityListener = Callable[[bool], None]


class PollerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    PAUSED = "paused"
    TORN_DOWN = "torn_down"


class VisibilitySignal:
    """
    Document visibility as an observable value.

    The host UI calls ``set_visible`` on visibility changes; pollers
    subscribe to be notified.
    """

    def __init__(self, visible: bool = True):
        self._visible = visible
        self._listeners: List[VisibilityListener] = []

    def is_visible(self) -> bool:
        return self._visible

    def set_visible(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        for listener in list(self._listeners):
            listener(visible)

    def subscribe(self, listener: VisibilityListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


class PresencePoller:
    """
    State machine: IDLE -> POLLING <-> PAUSED -> TORN_DOWN.

    At most one presence request is in flight. ``refresh_now`` cancels the
    current cycle and starts a new one instead of stacking requests.
    """

    def __init__(
        self,
        email: str,
        fetch: PresenceFetcher,
        visibility: VisibilitySignal,
        interval: float = PRESENCE_POLL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_update: Optional[Callable[[PresenceResult], None]] = None,
        on_error: Optional[Callable[[str], None]] = None
    ):
        """
        Initialize poller.

        Args:
            email: Mailbox of the selected person
            fetch: Performs one forced presence request; raises on failure
            visibility: Visibility of the hosting document
            interval: Seconds between the end of one fetch and the next
            sleep: Awaitable delay (injectable for tests)
            on_update: Called with each successful result
            on_error: Called with the error indicator after a failed fetch
        """
        self.email = email
        self.interval = interval
        self.state = PollerState.IDLE
        self.result: Optional[PresenceResult] = None
        self.error: Optional[str] = None
        self.refreshing = False

        self._fetch = fetch
        self._visibility = visibility
        self._sleep = sleep
        self._on_update = on_update
        self._on_error = on_error
        self._cycle: Optional[asyncio.Task] = None
        self._waiting = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @classmethod
    def for_client(
        cls,
        client: PeoplePickerClient,
        email: str,
        visibility: VisibilitySignal,
        **kwargs
    ) -> "PresencePoller":
        """Poller that refreshes through the SDK with noCache and the poll TTL."""
        interval = kwargs.get("interval", PRESENCE_POLL_SECONDS)

        async def fetch(address: str) -> PresenceResult:
            return await client.get_presence(
                address, no_cache=True, ttl=int(interval), raise_errors=True
            )

        return cls(email, fetch, visibility, **kwargs)

    def start(self) -> None:
        """Leave IDLE: poll now if visible, otherwise wait paused."""
        if self.state is not PollerState.IDLE:
            return
        self._unsubscribe = self._visibility.subscribe(self._on_visibility_change)
        if self._visibility.is_visible():
            self.state = PollerState.POLLING
            self._start_cycle()
        else:
            self.state = PollerState.PAUSED

    async def refresh_now(self) -> None:
        """
        Manual refresh: restart the cycle with an immediate fetch.

        Ignored unless POLLING; a hidden view refreshes when it is shown again.
        """
        if self.state is not PollerState.POLLING:
            return
        await self._cancel_cycle()
        if self.state is not PollerState.TORN_DOWN:
            self._start_cycle()

    async def teardown(self) -> None:
        """Cancel the in-flight request and pending timer. Final."""
        if self.state is PollerState.TORN_DOWN:
            return
        self.state = PollerState.TORN_DOWN
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        await self._cancel_cycle()
        logger.debug(f"Presence poller for {self.email} torn down")

    def _on_visibility_change(self, visible: bool) -> None:
        if self.state is PollerState.TORN_DOWN:
            return
        if visible:
            if self.state is PollerState.PAUSED:
                self.state = PollerState.POLLING
                if self._cycle is None or self._cycle.done():
                    self._start_cycle()
        elif self.state is PollerState.POLLING:
            self.state = PollerState.PAUSED
            # Only the timer is cancelled; an in-flight fetch completes.
            if self._waiting and self._cycle is not None:
                self._cycle.cancel()
                self._cycle = None
                self._waiting = False

    def _start_cycle(self) -> None:
        self._cycle = asyncio.get_running_loop().create_task(self._run_cycle())

    async def _cancel_cycle(self) -> None:
        cycle, self._cycle = self._cycle, None
        if cycle is None or cycle.done():
            return
        cycle.cancel()
        try:
            await cycle
        except asyncio.CancelledError:
            pass

    async def _run_cycle(self) -> None:
        while True:
            await self._refresh_once()
            if self.state is not PollerState.POLLING:
                return
            self._waiting = True
            try:
                await self._sleep(self.interval)
            finally:
                self._waiting = False
            if self.state is not PollerState.POLLING:
                return

    async def _refresh_once(self) -> None:
        self.refreshing = True
        self.error = None
        try:
            result = await self._fetch(self.email)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Presence refresh for {self.email} failed: {e}")
            self.error = PRESENCE_ERROR_MESSAGE
            self._notify(self._on_error, self.error)
        else:
            self.result = result
            self._notify(self._on_update, result)
        finally:
            self.refreshing = False

    def _notify(self, callback: Optional[Callable], value) -> None:
        # Host callbacks must not stop the polling cycle.
        if callback is None:
            return
        try:
            callback(value)
        except Exception as e:
            logger.error(f"❌ Presence callback for {self.email} failed: {e}")
