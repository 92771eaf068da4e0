"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..app import Application
from .routes import observability, sessions


def create_fastapi_app(application: Application) -> FastAPI:
    """Create the observability API; its lifespan runs the bot."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        await application.start()
        yield
        # Shutdown
        await application.stop()

    fastapi_app = FastAPI(
        title="Exchange Rate Bot API",
        description="Status and observability for the exchange-rate bot",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.include_router(observability.create_observability_router(application))
    fastapi_app.include_router(sessions.create_sessions_router(application))

    return fastapi_app
