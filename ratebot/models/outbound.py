"""Outbound message models."""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class ChatActionKind(str, Enum):
    """Status shown to the user while the bot works."""

    FIND_LOCATION = "find_location"


@dataclass(frozen=True)
class TextMessage:
    """Plain text message, optionally with a reply keyboard."""

    chat_id: int
    text: str
    keyboard: tuple[tuple[str, ...], ...] | None = None


@dataclass(frozen=True)
class LocationMessage:
    """A map pin; sent as a venue when a title is given."""

    chat_id: int
    latitude: float
    longitude: float
    address: str
    title: str | None = None


@dataclass(frozen=True)
class InlineAnswer:
    """Single-article answer to an inline query."""

    query_id: str
    title: str
    text: str


@dataclass(frozen=True)
class ChatAction:
    """Short-lived status indicator in the chat."""

    chat_id: int
    action: ChatActionKind


OutboundMessage = Union[TextMessage, LocationMessage, InlineAnswer, ChatAction]


@dataclass(frozen=True)
class BranchAnnouncement:
    """Deferred follow-up: disclose branches of the bank with the chosen offer."""

    chat_id: int
    region_id: str
    bank_id: str
