"""Main entry point for the exchange-rate bot."""

import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from ratebot.api import create_fastapi_app
from ratebot.app import Application
from ratebot.config import load_settings
from ratebot.errors import ConfigError
from ratebot.logging_config import setup_logging


def main():
    """Run the bot and its observability API."""
    project_root = Path(__file__).resolve().parent
    load_dotenv(project_root / ".env")

    try:
        settings = load_settings()
    except ConfigError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    setup_logging()

    application = Application(settings)
    app = create_fastapi_app(application)

    # Polling runs as a background task inside the server's event loop
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
