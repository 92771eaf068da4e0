"""Application bootstrap and lifecycle management."""

import asyncio
from typing import Protocol

import httpx

from .aggregator import Aggregator, IAggregator
from .config import Settings
from .conversation import ConversationEngine
from .errors import SourceError, TransportError
from .logging_config import get_logger
from .models import BranchAnnouncement, InboundEvent, OutboundMessage
from .poller import PollLoop
from .sources import (
    BankiruBestRates,
    BankiruBranchDirectory,
    CbrReferenceSource,
    CityDirectory,
    MoexMarketQuote,
)
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .transport import ITransport, TelegramTransport

logger = get_logger(__name__)

USER_AGENT = "ratebot/0.1 (+https://core.telegram.org/bots)"


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order and start polling."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def dispatch(self, event: InboundEvent) -> None:
        """Run one conversation turn and deliver its output."""
        ...


class Application:
    """Main application bootstrap.

    Components can be injected (tests do); anything missing is built in
    start() from settings.
    """

    def __init__(
        self,
        settings: Settings,
        storage: IStorage | None = None,
        transport: ITransport | None = None,
        aggregator: IAggregator | None = None,
        cities: CityDirectory | None = None,
    ):
        self._settings = settings

        self._storage = storage
        self._transport = transport
        self._aggregator = aggregator
        self._cities = cities

        # Components (will be initialized in start())
        self._http: httpx.AsyncClient | None = None
        self._tracker: ITracker | None = None
        self._engine: ConversationEngine | None = None
        self._poll_loop: PollLoop | None = None
        self._poll_task: asyncio.Task | None = None
        self._announcements: set[asyncio.Task] = set()

    async def start(self) -> None:
        """Initialize components in dependency order and start polling."""
        logger.info("Starting application")
        settings = self._settings

        # 1. Storage (no dependencies)
        if self._storage is None:
            self._storage = Storage(settings.database_url)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Tracker (depends on Storage)
        self._tracker = Tracker(self._storage)

        # 3. Shared HTTP client for the transport and the sources
        self._http = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

        # 4. Transport
        if self._transport is None:
            self._transport = TelegramTransport(
                settings.api_token,
                self._http,
                api_url=settings.api_url,
                timeout=settings.http_timeout,
            )

        # 5. City lookup table
        if self._cities is None:
            try:
                self._cities = await CityDirectory.load(
                    self._http, timeout=settings.http_timeout
                )
            except SourceError as e:
                logger.error("Could not init city list: %s", e)
                self._cities = CityDirectory()

        # 6. Aggregator (depends on the sources)
        if self._aggregator is None:
            timeout = settings.http_timeout
            self._aggregator = Aggregator(
                reference=CbrReferenceSource(self._http, timeout=timeout),
                best_rates=BankiruBestRates(self._http, timeout=timeout),
                market=MoexMarketQuote(self._http, timeout=timeout),
                branches=BankiruBranchDirectory(self._http, timeout=timeout),
                announce_delay=settings.announce_delay,
                max_branches=settings.max_branches,
                enrich=settings.enrich_branches,
            )
        logger.info("Aggregator initialized")

        # 7. ConversationEngine (depends on Storage, Aggregator, cities)
        self._engine = ConversationEngine(
            sessions=self._storage,
            aggregator=self._aggregator,
            cities=self._cities,
        )

        # 8. PollLoop (depends on everything above)
        self._poll_loop = PollLoop(
            transport=self._transport,
            on_event=self.dispatch,
            batch_limit=settings.poll_limit,
            interval=settings.poll_interval_ms / 1000,
            poll_timeout=settings.poll_timeout,
            admin_id=settings.admin_id,
            tracker=self._tracker,
        )
        self._poll_task = asyncio.create_task(self._poll_loop.run())
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._poll_loop:
            self._poll_loop.stop()
        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        for task in list(self._announcements):
            task.cancel()
        if self._announcements:
            await asyncio.gather(*self._announcements, return_exceptions=True)
        self._announcements.clear()

        if self._http:
            await self._http.aclose()
            self._http = None
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def dispatch(self, event: InboundEvent) -> None:
        """Run one conversation turn and deliver its output in order."""
        if not self._engine:
            raise RuntimeError("Application not started")

        turn = await self._engine.handle(event)

        sent = 0
        for message in turn.outbound:
            if await self._send(message):
                sent += 1

        await self._tracker.track(
            "turn_handled",
            "conversation_engine",
            {
                "sender_id": event.sender_id,
                "text": event.text,
                "city": turn.resolved_city,
                "intent": turn.resolved_intent.value if turn.resolved_intent else None,
                "outbound": len(turn.outbound),
                "sent": sent,
            },
        )

        if turn.announcement:
            self._schedule_announcement(turn.announcement)

    async def _send(self, message: OutboundMessage) -> bool:
        """Deliver one message; a transport failure is logged, not raised."""
        try:
            await self._transport.send(message)
            return True
        except TransportError as e:
            logger.error("Failed to send %s: %s", type(message).__name__, e)
            return False

    def _schedule_announcement(self, announcement: BranchAnnouncement) -> None:
        task = asyncio.create_task(self._announce(announcement))
        self._announcements.add(task)
        task.add_done_callback(self._announcements.discard)

    async def _announce(self, announcement: BranchAnnouncement) -> None:
        try:
            count = await self._aggregator.announce_branches(
                announcement.region_id,
                announcement.bank_id,
                announcement.chat_id,
                self._transport.send,
            )
        except SourceError as e:
            logger.error(
                "Branch announcement failed for %s: %s", announcement.bank_id, e
            )
            return
        except Exception as e:
            # Background task: nobody awaits it, so report here
            logger.error("Branch announcement error: %s", e, exc_info=True)
            return

        await self._tracker.track(
            "branches_announced",
            "aggregator",
            {
                "chat_id": announcement.chat_id,
                "region_id": announcement.region_id,
                "bank_id": announcement.bank_id,
                "count": count,
            },
        )

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._engine:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def poll_loop(self) -> PollLoop:
        """Get poll loop instance."""
        if not self._poll_loop:
            raise RuntimeError("Application not started")
        return self._poll_loop

    @property
    def pending_announcements(self) -> int:
        return len(self._announcements)
