"""Per-turn context threaded through the conversation state machine."""

from dataclasses import dataclass, field

from .events import InboundEvent
from .outbound import BranchAnnouncement, OutboundMessage
from .rates import Intent
from .session import SessionRecord


@dataclass
class ConversationTurn:
    """Processing of exactly one inbound event. Lives for one dispatch call."""

    event: InboundEvent
    session_before: SessionRecord | None = None
    session_after: SessionRecord | None = None
    resolved_city: str | None = None
    resolved_intent: Intent | None = None
    outbound: list[OutboundMessage] = field(default_factory=list)
    announcement: BranchAnnouncement | None = None
