"""Observability API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException, Query

from ...app import Application
from ...errors import StoreError
from ...models import TraceEvent


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str
    polling: bool
    cursor: int
    pending_announcements: int


class TraceEventResponse(BaseModel):
    """Response model for trace event."""

    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/status", response_model=StatusResponse)
    async def get_status() -> dict:
        """Poll loop position and background work."""
        try:
            poll_loop = app.poll_loop
        except RuntimeError:
            raise HTTPException(status_code=503, detail="Application not started")

        return {
            "status": "ok",
            "polling": poll_loop.running,
            "cursor": poll_loop.cursor,
            "pending_announcements": app.pending_announcements,
        }

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp filter"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(None, description="e.g. turn_handled, poll_failed"),
        actor: str | None = Query(None, description="e.g. poll_loop, aggregator"),
    ) -> list[TraceEvent]:
        """Newest trace events first, optionally filtered."""
        after_dt = None
        if after:
            try:
                after_dt = datetime.fromisoformat(after)
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid after timestamp format")

        try:
            return await app.storage.get_trace_events(
                after=after_dt,
                event_types=[event_type] if event_type else None,
                actor=actor,
                limit=limit,
            )
        except RuntimeError:
            raise HTTPException(status_code=503, detail="Application not started")
        except StoreError as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
