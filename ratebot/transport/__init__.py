"""Transport module."""

from .telegram import ITransport, TelegramTransport, classify_update

__all__ = ["ITransport", "TelegramTransport", "classify_update"]
