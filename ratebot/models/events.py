"""Inbound event models."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class RegularMessage:
    """A chat message sent to the bot."""

    update_id: int
    sender_id: int
    chat_id: int
    text: str | None = None


@dataclass(frozen=True)
class InlineQuery:
    """An inline query typed in another chat (@bot ...)."""

    update_id: int
    sender_id: int
    query_id: str
    text: str | None = None


@dataclass(frozen=True)
class UnsupportedUpdate:
    """Any other update kind. Carries no text; only advances the cursor."""

    update_id: int
    sender_id: int | None = None
    text: None = None


InboundEvent = Union[RegularMessage, InlineQuery, UnsupportedUpdate]
