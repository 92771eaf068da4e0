"""Core data models for the exchange-rate bot."""

from .branches import BranchRecord
from .events import InboundEvent, InlineQuery, RegularMessage, UnsupportedUpdate
from .outbound import (
    BranchAnnouncement,
    ChatAction,
    ChatActionKind,
    InlineAnswer,
    LocationMessage,
    OutboundMessage,
    TextMessage,
)
from .rates import BestRates, Intent, RateBundle, RateQuote
from .session import SESSION_SCHEMA_VERSION, SessionRecord
from .tracing import TraceEvent
from .turn import ConversationTurn

__all__ = [
    # Events
    "InboundEvent",
    "RegularMessage",
    "InlineQuery",
    "UnsupportedUpdate",
    # Outbound
    "OutboundMessage",
    "TextMessage",
    "LocationMessage",
    "InlineAnswer",
    "ChatAction",
    "ChatActionKind",
    "BranchAnnouncement",
    # Rates
    "Intent",
    "RateQuote",
    "BestRates",
    "RateBundle",
    # Branches
    "BranchRecord",
    # Session
    "SessionRecord",
    "SESSION_SCHEMA_VERSION",
    # Turn
    "ConversationTurn",
    # Tracing
    "TraceEvent",
]
