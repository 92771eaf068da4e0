"""Tests for Aggregator."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

from ratebot.aggregator import Aggregator
from ratebot.errors import SourceError, TransportError
from ratebot.models import (
    BestRates,
    BranchRecord,
    ChatAction,
    ChatActionKind,
    LocationMessage,
    RateQuote,
    TextMessage,
)


BUY = RateQuote(rate=Decimal("93.10"), description="Alfa-Bank", bank_id="alfabank")
SELL = RateQuote(rate=Decimal("91.40"), description="Sberbank", bank_id="sberbank")


def _branch(n, located=True):
    return BranchRecord(
        id=f"B{n}",
        name=f"Office {n}",
        address=f"Street {n}",
        latitude=55.0 + n if located else None,
        longitude=37.0 + n if located else None,
    )


@pytest.fixture
def reference():
    source = Mock()
    source.fetch_reference = AsyncMock(return_value=Decimal("92.5012"))
    return source


@pytest.fixture
def best_rates():
    source = Mock()
    source.fetch_best_rates = AsyncMock(return_value=BestRates(buy=BUY, sell=SELL))
    return source


@pytest.fixture
def market():
    source = Mock()
    source.fetch_market_quote = AsyncMock(return_value=Decimal("92.31"))
    return source


@pytest.fixture
def branches():
    directory = Mock()
    directory.find_branches = AsyncMock(return_value=[_branch(1), _branch(2), _branch(3)])
    directory.enrich = AsyncMock(side_effect=lambda ids: [])
    return directory


@pytest.fixture
def aggregator(reference, best_rates, market, branches):
    return Aggregator(
        reference=reference,
        best_rates=best_rates,
        market=market,
        branches=branches,
        announce_delay=0,
        enrich=False,
    )


@pytest.fixture
def delivered():
    return []


@pytest.fixture
def deliver(delivered):
    async def _deliver(message):
        delivered.append(message)

    return _deliver


class TestAggregatorGetRates:
    """Tests for Aggregator.get_rates()."""

    @pytest.mark.asyncio
    async def test_bundle_from_all_sources(self, aggregator, best_rates):
        """Test that all three sources end up in the bundle."""
        bundle = await aggregator.get_rates("4")

        assert bundle.reference_rate == Decimal("92.5012")
        assert bundle.best_buy == BUY
        assert bundle.best_sell == SELL
        assert bundle.market_quote == Decimal("92.31")
        best_rates.fetch_best_rates.assert_awaited_once_with("4")

    @pytest.mark.asyncio
    async def test_market_quote_may_be_missing(self, aggregator, market):
        """Test that a missing exchange quote still yields a bundle."""
        market.fetch_market_quote.return_value = None

        bundle = await aggregator.get_rates("4")

        assert bundle.market_quote is None

    @pytest.mark.asyncio
    async def test_sources_run_concurrently(self, aggregator, reference, best_rates, market):
        """Test that the sources are awaited together, not one after another."""
        started = []
        gate = asyncio.Event()

        async def _slow(value, name):
            started.append(name)
            if len(started) == 3:
                gate.set()
            await asyncio.wait_for(gate.wait(), timeout=1)
            return value

        reference.fetch_reference = Mock(side_effect=lambda: _slow(Decimal("92.5"), "cbr"))
        best_rates.fetch_best_rates = Mock(
            side_effect=lambda code: _slow(BestRates(buy=BUY, sell=SELL), "banki")
        )
        market.fetch_market_quote = Mock(side_effect=lambda: _slow(None, "moex"))

        bundle = await aggregator.get_rates("4")

        assert sorted(started) == ["banki", "cbr", "moex"]
        assert bundle.reference_rate == Decimal("92.5")

    @pytest.mark.asyncio
    async def test_failure_fails_whole_call(self, aggregator, reference):
        """Test that one failing source fails the bundle."""
        reference.fetch_reference.side_effect = SourceError("cbr.ru down")

        with pytest.raises(SourceError, match="cbr.ru down"):
            await aggregator.get_rates("4")

    @pytest.mark.asyncio
    async def test_failure_cancels_pending_sources(self, aggregator, reference, market):
        """Test that sibling fetches still running are cancelled."""
        cancelled = asyncio.Event()

        async def _hang():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        market.fetch_market_quote = Mock(side_effect=_hang)
        reference.fetch_reference.side_effect = SourceError("cbr.ru down")

        with pytest.raises(SourceError):
            await aggregator.get_rates("4")

        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_source_error(self, aggregator, best_rates):
        """Test that non-source errors are reported as SourceError."""
        best_rates.fetch_best_rates.side_effect = ValueError("bad page")

        with pytest.raises(SourceError, match="bad page"):
            await aggregator.get_rates("4")


class TestAggregatorAnnounceBranches:
    """Tests for Aggregator.announce_branches()."""

    @pytest.mark.asyncio
    async def test_status_then_text_and_location_in_order(
        self, aggregator, deliver, delivered
    ):
        """Test the delivery order: status, then text + location per branch."""
        count = await aggregator.announce_branches("4", "sberbank", 100, deliver)

        assert count == 3
        assert delivered[0] == ChatAction(chat_id=100, action=ChatActionKind.FIND_LOCATION)
        kinds = [type(m).__name__ for m in delivered[1:]]
        assert kinds == ["TextMessage", "LocationMessage"] * 3
        texts = [m.text for m in delivered if isinstance(m, TextMessage)]
        assert texts == [
            "Office 1\nStreet 1",
            "Office 2\nStreet 2",
            "Office 3\nStreet 3",
        ]
        locations = [m for m in delivered if isinstance(m, LocationMessage)]
        assert [m.latitude for m in locations] == [56.0, 57.0, 58.0]

    @pytest.mark.asyncio
    async def test_branch_without_coordinates_gets_text_only(
        self, aggregator, branches, deliver, delivered
    ):
        """Test that a branch with no coordinates is sent as text only."""
        branches.find_branches.return_value = [_branch(1, located=False)]

        await aggregator.announce_branches("4", "sberbank", 100, deliver)

        assert [type(m).__name__ for m in delivered] == ["ChatAction", "TextMessage"]

    @pytest.mark.asyncio
    async def test_failed_delivery_is_skipped(self, aggregator):
        """Test that one failed send does not stop the rest."""
        sent = []

        async def _deliver(message):
            if isinstance(message, TextMessage) and message.text.startswith("Office 2"):
                raise TransportError("blocked")
            sent.append(message)

        count = await aggregator.announce_branches("4", "sberbank", 100, _deliver)

        assert count == 3
        texts = [m.text for m in sent if isinstance(m, TextMessage)]
        assert texts == ["Office 1\nStreet 1", "Office 3\nStreet 3"]
        assert len([m for m in sent if isinstance(m, LocationMessage)]) == 3

    @pytest.mark.asyncio
    async def test_no_branches(self, aggregator, branches, deliver, delivered):
        """Test that an empty directory answer sends only the status."""
        branches.find_branches.return_value = []

        count = await aggregator.announce_branches("4", "sberbank", 100, deliver)

        assert count == 0
        assert len(delivered) == 1

    @pytest.mark.asyncio
    async def test_directory_failure_propagates(self, aggregator, branches, deliver):
        """Test that a directory failure is raised to the caller."""
        branches.find_branches.side_effect = SourceError("offices down")

        with pytest.raises(SourceError):
            await aggregator.announce_branches("4", "sberbank", 100, deliver)

    @pytest.mark.asyncio
    async def test_max_branches(self, reference, best_rates, market, branches, deliver):
        """Test that the branch list is capped."""
        aggregator = Aggregator(
            reference, best_rates, market, branches,
            announce_delay=0, max_branches=2, enrich=False,
        )

        count = await aggregator.announce_branches("4", "sberbank", 100, deliver)

        assert count == 2

    @pytest.mark.asyncio
    async def test_delay_before_first_branch(
        self, reference, best_rates, market, branches, deliver, delivered
    ):
        """Test that branches are not sent before the delay elapses."""
        aggregator = Aggregator(
            reference, best_rates, market, branches,
            announce_delay=0.2, enrich=False,
        )
        loop = asyncio.get_running_loop()
        started = loop.time()

        await aggregator.announce_branches("4", "sberbank", 100, deliver)

        assert loop.time() - started >= 0.19
        assert isinstance(delivered[0], ChatAction)

    @pytest.mark.asyncio
    async def test_enrichment_keeps_directory_order(
        self, reference, best_rates, market, branches, deliver, delivered
    ):
        """Test that enriched records replace the plain ones in order."""
        branches.find_branches.return_value = [_branch(n, located=False) for n in (1, 2, 3)]

        async def _enrich(ids):
            return [
                BranchRecord(id=i, name=f"Rich {i}", address="Addr", phone="+7 495")
                for i in reversed(ids)
            ]

        branches.enrich = AsyncMock(side_effect=_enrich)
        aggregator = Aggregator(
            reference, best_rates, market, branches,
            announce_delay=0, enrich=True, enrich_chunk_size=2,
        )

        await aggregator.announce_branches("4", "sberbank", 100, deliver)

        assert branches.enrich.await_count == 2
        texts = [m.text for m in delivered if isinstance(m, TextMessage)]
        assert texts == [
            "Rich B1\nAddr\n+7 495",
            "Rich B2\nAddr\n+7 495",
            "Rich B3\nAddr\n+7 495",
        ]

    @pytest.mark.asyncio
    async def test_enrichment_failure_uses_plain_list(
        self, reference, best_rates, market, branches, deliver, delivered
    ):
        """Test that an enrichment failure falls back to the directory records."""
        branches.enrich = AsyncMock(side_effect=SourceError("objects down"))
        aggregator = Aggregator(
            reference, best_rates, market, branches, announce_delay=0, enrich=True,
        )

        count = await aggregator.announce_branches("4", "sberbank", 100, deliver)

        assert count == 3
        texts = [m.text for m in delivered if isinstance(m, TextMessage)]
        assert texts[0] == "Office 1\nStreet 1"

    @pytest.mark.asyncio
    async def test_enrichment_failure_cancels_other_chunks(
        self, reference, best_rates, market, branches, deliver, delivered
    ):
        """Test that chunks still running are cancelled when one chunk fails."""
        cancelled = asyncio.Event()

        async def _enrich(ids):
            if ids == ["B1"]:
                raise SourceError("objects down")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        branches.enrich = AsyncMock(side_effect=_enrich)
        aggregator = Aggregator(
            reference, best_rates, market, branches,
            announce_delay=0, enrich=True, enrich_chunk_size=1,
        )

        count = await asyncio.wait_for(
            aggregator.announce_branches("4", "sberbank", 100, deliver), timeout=1
        )

        assert count == 3
        assert cancelled.is_set()
        texts = [m.text for m in delivered if isinstance(m, TextMessage)]
        assert texts == ["Office 1\nStreet 1", "Office 2\nStreet 2", "Office 3\nStreet 3"]
