"""Session inspection routes."""

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...errors import StoreError


class SessionResponse(BaseModel):
    """Response model for a stored session."""

    user_id: int
    last_city: str | None
    version: int


def create_sessions_router(app: Application) -> APIRouter:
    """Create sessions router."""
    router = APIRouter(prefix="/api", tags=["sessions"])

    @router.get("/sessions/{user_id}", response_model=SessionResponse)
    async def get_session(user_id: int) -> dict:
        """Stored session of a user; 404 when absent or outdated."""
        try:
            record = await app.storage.get_session(user_id)
        except StoreError as e:
            raise HTTPException(status_code=500, detail=str(e))

        if record is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return record.to_dict()

    return router
