"""Aggregator: concurrent rate fetch and throttled branch announcement."""

import asyncio
from typing import Awaitable, Callable, Protocol

from ..errors import RateBotError, SourceError
from ..logging_config import get_logger
from ..messages import branch_text
from ..models import (
    BranchRecord,
    ChatAction,
    ChatActionKind,
    LocationMessage,
    OutboundMessage,
    RateBundle,
    TextMessage,
)
from ..sources import (
    IBestRateSource,
    IBranchDirectory,
    IMarketQuoteSource,
    IReferenceRateSource,
)

logger = get_logger(__name__)


Deliver = Callable[[OutboundMessage], Awaitable[None]]


class IAggregator(Protocol):
    """Consolidates rate sources and discloses branches."""

    async def get_rates(self, city_code: str) -> RateBundle:
        """Fetch all sources concurrently; any failure fails the whole call."""
        ...

    async def announce_branches(
        self, region_id: str, bank_id: str, chat_id: int, deliver: Deliver
    ) -> int:
        """Deliver branches serially after the announcement delay."""
        ...


class Aggregator:
    """Fan-out/fan-in over the rate sources plus the branch announcement sequence."""

    def __init__(
        self,
        reference: IReferenceRateSource,
        best_rates: IBestRateSource,
        market: IMarketQuoteSource,
        branches: IBranchDirectory,
        announce_delay: float = 5.0,
        max_branches: int = 10,
        enrich: bool = True,
        enrich_chunk_size: int = 5,
    ):
        self._reference = reference
        self._best_rates = best_rates
        self._market = market
        self._branches = branches
        self._announce_delay = announce_delay
        self._max_branches = max_branches
        self._enrich = enrich
        self._enrich_chunk_size = enrich_chunk_size

    async def get_rates(self, city_code: str) -> RateBundle:
        """Fetch all sources concurrently; any failure fails the whole call."""
        tasks = [
            asyncio.create_task(self._reference.fetch_reference()),
            asyncio.create_task(self._best_rates.fetch_best_rates(city_code)),
            asyncio.create_task(self._market.fetch_market_quote()),
        ]

        try:
            reference, best, market = await asyncio.gather(*tasks)
        except BaseException as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if isinstance(e, SourceError) or not isinstance(e, Exception):
                raise
            raise SourceError(f"Rate source failed for {city_code}: {e}") from e

        return RateBundle(
            reference_rate=reference,
            best_buy=best.buy,
            best_sell=best.sell,
            market_quote=market,
        )

    async def announce_branches(
        self, region_id: str, bank_id: str, chat_id: int, deliver: Deliver
    ) -> int:
        """
        Disclose the offices of a bank, one text + one location per office.

        The list is delivered no earlier than `announce_delay` seconds after
        the call, serially and in directory order. A failed delivery is logged
        and skipped.

        Returns:
            Number of branches announced.

        Raises:
            SourceError: the branch directory failed.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()

        await self._deliver_safely(
            deliver, ChatAction(chat_id=chat_id, action=ChatActionKind.FIND_LOCATION)
        )

        branches = await self._branches.find_branches(region_id, bank_id)
        branches = branches[: self._max_branches]
        if self._enrich and branches:
            branches = await self._enrich_branches(branches)

        remaining = self._announce_delay - (loop.time() - started)
        if remaining > 0:
            await asyncio.sleep(remaining)

        logger.info(
            "Announcing %s branches of %s in %s", len(branches), bank_id, region_id
        )
        for branch in branches:
            await self._deliver_safely(
                deliver, TextMessage(chat_id=chat_id, text=branch_text(branch))
            )
            if branch.has_location:
                await self._deliver_safely(
                    deliver,
                    LocationMessage(
                        chat_id=chat_id,
                        latitude=branch.latitude,
                        longitude=branch.longitude,
                        address=branch.address,
                        title=branch.name or None,
                    ),
                )

        return len(branches)

    async def _enrich_branches(self, branches: list[BranchRecord]) -> list[BranchRecord]:
        """Replace records with enriched ones; chunks are fetched concurrently."""
        ids = [branch.id for branch in branches]
        size = self._enrich_chunk_size
        chunks = [ids[i : i + size] for i in range(0, len(ids), size)]

        tasks = [asyncio.create_task(self._branches.enrich(chunk)) for chunk in chunks]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if not isinstance(e, SourceError):
                raise
            logger.warning("Branch enrichment failed, using plain list: %s", e)
            return branches

        enriched = {record.id: record for chunk in results for record in chunk}
        return [enriched.get(branch.id, branch) for branch in branches]

    @staticmethod
    async def _deliver_safely(deliver: Deliver, message: OutboundMessage) -> None:
        try:
            await deliver(message)
        except RateBotError as e:
            logger.error("Failed to deliver %s: %s", type(message).__name__, e)
