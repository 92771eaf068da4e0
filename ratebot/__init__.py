"""Exchange-rate bot core."""

from .aggregator import Aggregator, IAggregator
from .app import Application, IApplication
from .config import Settings, load_settings
from .conversation import ConversationEngine, IConversationEngine
from .errors import ConfigError, RateBotError, SourceError, StoreError, TransportError
from .models import (
    BranchRecord,
    ConversationTurn,
    InboundEvent,
    InlineQuery,
    Intent,
    RateBundle,
    RegularMessage,
    SessionRecord,
    TraceEvent,
)
from .poller import IPollLoop, PollLoop
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker
from .transport import ITransport, TelegramTransport

__all__ = [
    # Application
    "Application",
    "IApplication",
    "Settings",
    "load_settings",
    # Errors
    "RateBotError",
    "ConfigError",
    "TransportError",
    "SourceError",
    "StoreError",
    # Models
    "InboundEvent",
    "RegularMessage",
    "InlineQuery",
    "SessionRecord",
    "Intent",
    "RateBundle",
    "BranchRecord",
    "ConversationTurn",
    "TraceEvent",
    # Components
    "IStorage",
    "Storage",
    "ITracker",
    "Tracker",
    "ITransport",
    "TelegramTransport",
    "IAggregator",
    "Aggregator",
    "IConversationEngine",
    "ConversationEngine",
    "IPollLoop",
    "PollLoop",
]
