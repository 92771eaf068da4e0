"""PollLoop: long-polling driver with a monotonic cursor."""

import asyncio
from typing import Awaitable, Callable, Protocol

from ..errors import TransportError
from ..logging_config import get_logger
from ..messages import UNAUTHORIZED
from ..models import InboundEvent
from ..tracker import ITracker
from ..transport import ITransport

logger = get_logger(__name__)


EventHandler = Callable[[InboundEvent], Awaitable[None]]


class IPollLoop(Protocol):
    """Top-level driver: polls the transport and dispatches events."""

    @property
    def cursor(self) -> int:
        """Id of the next unseen event."""
        ...

    async def run(self) -> None:
        """Poll forever."""
        ...

    def stop(self) -> None:
        """Finish the current iteration and return from run()."""
        ...


class PollLoop:
    """
    Polls the transport and dispatches each event in delivery order.

    The cursor is advanced to `update_id + 1` before the event is handled,
    so a crash mid-turn never replays that event. Transport errors leave the
    cursor untouched and are retried every `interval` seconds, forever.
    """

    def __init__(
        self,
        transport: ITransport,
        on_event: EventHandler,
        cursor: int = 0,
        batch_limit: int = 5,
        interval: float = 1.0,
        poll_timeout: int = 0,
        admin_id: int | None = None,
        tracker: ITracker | None = None,
    ):
        self._transport = transport
        self._on_event = on_event
        self._cursor = cursor
        self._batch_limit = batch_limit
        self._interval = interval
        self._poll_timeout = poll_timeout
        self._admin_id = admin_id
        self._tracker = tracker
        self._running = False

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Poll forever, sleeping `interval` seconds between iterations."""
        self._running = True
        logger.info("Polling started at cursor %s", self._cursor)
        while self._running:
            try:
                await self.poll_once()
            except Exception as e:
                logger.error("Polling iteration failed: %s", e, exc_info=True)
            await asyncio.sleep(self._interval)
        logger.info("Polling stopped at cursor %s", self._cursor)

    def stop(self) -> None:
        self._running = False

    async def poll_once(self) -> int:
        """
        Run one polling iteration.

        Returns:
            Number of events read (dispatched or not).
        """
        try:
            events = await self._transport.get_updates(
                self._cursor, self._batch_limit, self._poll_timeout
            )
        except TransportError as e:
            logger.error("Error getting updates at cursor %s: %s", self._cursor, e)
            if self._tracker:
                await self._tracker.track(
                    "poll_failed", "poll_loop", {"cursor": self._cursor, "error": str(e)}
                )
            return 0

        for event in events:
            if event.update_id < self._cursor:
                # Already seen; the transport re-sent it
                continue
            self._cursor = event.update_id + 1
            await self._process(event)

        return len(events)

    async def _process(self, event: InboundEvent) -> None:
        sender_id = event.sender_id

        if self._admin_id is not None and sender_id is not None and sender_id != self._admin_id:
            logger.warning("Unauthorized message from client %s", sender_id)
            try:
                await self._transport.send_text(sender_id, UNAUTHORIZED)
            except TransportError as e:
                logger.error("Failed to reject %s: %s", sender_id, e)
            return

        if not event.text:
            return

        logger.debug("Update %s, message: %s", event.update_id, event.text)

        try:
            await self._on_event(event)
        except Exception:
            logger.exception(
                "Error handling update %s",
                event.update_id,
                extra={"context": {"sender_id": sender_id}},
            )
