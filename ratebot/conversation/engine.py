"""ConversationEngine: the per-user state machine."""

from typing import Protocol

from ..aggregator import IAggregator
from ..errors import SourceError, StoreError
from ..logging_config import get_logger
from ..messages import (
    CITY_PROMPT,
    INTENT_KEYBOARD,
    INTENT_TOKENS,
    PONG,
    RATES_TITLE,
    SPECIFY_CITY,
    help_text,
    intent_prompt,
    rate_message,
)
from ..models import (
    BranchAnnouncement,
    ConversationTurn,
    InboundEvent,
    InlineAnswer,
    InlineQuery,
    Intent,
    RegularMessage,
    SessionRecord,
    TextMessage,
)
from ..sources import CityDirectory
from ..storage import ISessionStore

logger = get_logger(__name__)


class IConversationEngine(Protocol):
    """Decides the next action for one inbound event."""

    async def handle(self, event: InboundEvent) -> ConversationTurn:
        """Process one event; the turn carries outbound messages and follow-ups."""
        ...


def parse_command(text: str | None) -> tuple[str | None, list[str]]:
    """Split '/Start@bot a b' into ('start', ['a', 'b'])."""
    if not text:
        return None, []
    text = text.strip()
    if text.startswith("/"):
        text = text[1:]
    tokens = text.split()
    if not tokens:
        return None, []
    command = tokens[0].lower().split("@", 1)[0]
    return command or None, tokens[1:]


class ConversationEngine:
    """Maps (event, stored session, aggregator answers) to outbound messages."""

    def __init__(
        self,
        sessions: ISessionStore,
        aggregator: IAggregator,
        cities: CityDirectory,
    ):
        self._sessions = sessions
        self._aggregator = aggregator
        self._cities = cities

    async def handle(self, event: InboundEvent) -> ConversationTurn:
        """Process one event; the turn carries outbound messages and follow-ups."""
        turn = ConversationTurn(event=event)
        command, args = parse_command(event.text)
        if command is None:
            return turn

        turn.session_before = await self._load_session(event.sender_id)
        turn.session_after = turn.session_before
        stored_city = self._stored_city(turn.session_before)

        if command == "start":
            if stored_city:
                self._await_intent(turn, stored_city)
            else:
                self._reply(turn, CITY_PROMPT)
            return turn

        if command == "ping":
            self._reply(turn, PONG)
            return turn

        if command == "help":
            self._reply(turn, help_text(stored_city))
            return turn

        city, rest = self._match_city(command, args)
        if city:
            await self._remember_city(turn, city)
            intent = INTENT_TOKENS.get(rest[0].lower()) if rest else None
            if intent:
                await self._fetch(turn, city, intent)
            else:
                self._await_intent(turn, city)
            return turn

        if not stored_city:
            self._reply(turn, SPECIFY_CITY)
            return turn

        intent = INTENT_TOKENS.get(command)
        if intent:
            await self._fetch(turn, stored_city, intent)
        else:
            self._reply(turn, help_text(stored_city))
        return turn

    async def _load_session(self, user_id: int) -> SessionRecord | None:
        try:
            return await self._sessions.get_session(user_id)
        except StoreError as e:
            logger.error("Session read failed for %s: %s", user_id, e)
            return None

    def _stored_city(self, session: SessionRecord | None) -> str | None:
        """Stored city, provided the directory still knows it."""
        if session and session.last_city and session.last_city in self._cities:
            return session.last_city
        return None

    def _match_city(self, command: str, args: list[str]) -> tuple[str | None, list[str]]:
        """Longest known city name made of the command and leading arguments."""
        tokens = [command] + [arg.lower() for arg in args]
        for size in range(len(tokens), 0, -1):
            name = " ".join(tokens[:size])
            if name in self._cities:
                return name, args[size - 1 :]
        return None, args

    async def _remember_city(self, turn: ConversationTurn, city: str) -> None:
        turn.resolved_city = city
        before = turn.session_before
        if before and before.last_city == city:
            return

        record = SessionRecord(user_id=turn.event.sender_id, last_city=city)
        turn.session_after = record
        try:
            await self._sessions.save_session(record)
        except StoreError as e:
            # The in-memory record still drives the rest of this turn
            logger.error("Session write failed for %s: %s", record.user_id, e)

    def _await_intent(self, turn: ConversationTurn, city: str) -> None:
        turn.resolved_city = city
        self._reply(turn, intent_prompt(city), keyboard=INTENT_KEYBOARD)

    async def _fetch(self, turn: ConversationTurn, city: str, intent: Intent) -> None:
        turn.resolved_city = city
        turn.resolved_intent = intent
        city_code = self._cities.code_for(city)

        try:
            bundle = await self._aggregator.get_rates(city_code)
        except SourceError as e:
            logger.error(
                "Rates unavailable for %s: %s",
                city,
                e,
                extra={"context": {"user_id": turn.event.sender_id, "city": city}},
            )
            return

        self._reply(turn, rate_message(city, intent, bundle))

        event = turn.event
        if isinstance(event, RegularMessage):
            turn.announcement = BranchAnnouncement(
                chat_id=event.chat_id,
                region_id=city_code,
                bank_id=bundle.quote_for(intent).bank_id,
            )

    @staticmethod
    def _reply(
        turn: ConversationTurn,
        text: str,
        keyboard: tuple[tuple[str, ...], ...] | None = None,
    ) -> None:
        event = turn.event
        if isinstance(event, InlineQuery):
            turn.outbound.append(
                InlineAnswer(query_id=event.query_id, title=RATES_TITLE, text=text)
            )
        elif isinstance(event, RegularMessage):
            turn.outbound.append(
                TextMessage(chat_id=event.chat_id, text=text, keyboard=keyboard)
            )
