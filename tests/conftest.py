"""Pytest configuration and fixtures."""

import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from ratebot.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def tracker(storage):
    """Create Tracker with storage."""
    from ratebot.tracker import Tracker

    return Tracker(storage=storage)


@pytest.fixture
def settings():
    """Settings with no delays."""
    from ratebot.config import Settings

    return Settings(
        api_token="test-token",
        api_url="https://telegram.test",
        poll_interval_ms=0,
        announce_delay=0,
        database_url=":memory:",
    )


@pytest.fixture
def cities():
    """Small city directory."""
    from ratebot.sources import CityDirectory

    return CityDirectory(
        {"moscow": "4", "saint petersburg": "211", "нижний новгород": "52"}
    )


@pytest.fixture
def rate_bundle():
    """A deterministic rate bundle."""
    from ratebot.models import RateBundle, RateQuote

    return RateBundle(
        reference_rate=Decimal("92.5012"),
        best_buy=RateQuote(rate=Decimal("93.10"), description="Alfa-Bank", bank_id="alfabank"),
        best_sell=RateQuote(rate=Decimal("91.40"), description="Sberbank", bank_id="sberbank"),
        market_quote=Decimal("92.31"),
    )


@pytest.fixture
def mock_aggregator(rate_bundle):
    """Create mock aggregator returning rate_bundle."""
    aggregator = Mock()
    aggregator.get_rates = AsyncMock(return_value=rate_bundle)
    aggregator.announce_branches = AsyncMock(return_value=0)
    return aggregator


@pytest.fixture
def mock_transport():
    """Create mock transport with no pending updates."""
    transport = Mock()
    transport.get_updates = AsyncMock(return_value=[])
    transport.send = AsyncMock()
    transport.send_text = AsyncMock()
    return transport


@pytest.fixture
def engine(storage, mock_aggregator, cities):
    """Create ConversationEngine over in-memory storage."""
    from ratebot.conversation import ConversationEngine

    return ConversationEngine(
        sessions=storage, aggregator=mock_aggregator, cities=cities
    )


@pytest.fixture
def make_message():
    """Factory for RegularMessage events."""
    from ratebot.models import RegularMessage

    def _make(text, update_id=1, sender_id=100):
        return RegularMessage(
            update_id=update_id, sender_id=sender_id, chat_id=sender_id, text=text
        )

    return _make
