"""Tests for Tracker."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from ratebot.errors import StoreError
from ratebot.tracker import Tracker


class TestTrackerTrack:
    """Tests for Tracker.track() method."""

    @pytest.mark.asyncio
    async def test_track_creates_event(self, tracker, storage):
        """Test that track() creates a TraceEvent."""
        await tracker.track(
            event_type="turn_handled",
            actor="conversation_engine",
            data={"city": "moscow"},
        )

        events = await storage.get_trace_events()
        assert len(events) == 1
        assert events[0].event_type == "turn_handled"
        assert events[0].actor == "conversation_engine"
        assert events[0].data == {"city": "moscow"}

    @pytest.mark.asyncio
    async def test_track_generates_id(self, tracker, storage):
        """Test that track() generates an ID."""
        await tracker.track(event_type="poll_failed", actor="poll_loop", data={})

        events = await storage.get_trace_events()
        assert events[0].id

    @pytest.mark.asyncio
    async def test_track_generates_timestamp(self, tracker, storage):
        """Test that track() stamps the event with the current time."""
        before = datetime.now(timezone.utc)
        await tracker.track(event_type="poll_failed", actor="poll_loop", data={})
        after = datetime.now(timezone.utc)

        events = await storage.get_trace_events()
        assert before <= events[0].timestamp <= after

    @pytest.mark.asyncio
    async def test_track_multiple_events(self, tracker, storage):
        """Test tracking multiple events."""
        await tracker.track(event_type="event1", actor="actor1", data={})
        await tracker.track(event_type="event2", actor="actor2", data={})
        await tracker.track(event_type="event3", actor="actor3", data={})

        events = await storage.get_trace_events()
        assert len(events) == 3

    @pytest.mark.asyncio
    async def test_track_store_failure_is_not_raised(self):
        """Test that a failing store does not break the caller."""
        storage = Mock()
        storage.save_trace_event = AsyncMock(side_effect=StoreError("disk full"))
        tracker = Tracker(storage)

        await tracker.track(event_type="turn_handled", actor="test", data={})

        storage.save_trace_event.assert_awaited_once()
