"""Telegram Bot API transport client."""

from typing import Protocol

import httpx

from ..errors import TransportError
from ..logging_config import get_logger
from ..models import (
    ChatAction,
    ChatActionKind,
    InboundEvent,
    InlineAnswer,
    InlineQuery,
    LocationMessage,
    OutboundMessage,
    RegularMessage,
    TextMessage,
    UnsupportedUpdate,
)

logger = get_logger(__name__)


class ITransport(Protocol):
    """Inbound polling plus the send primitives the bot uses."""

    async def get_updates(
        self, offset: int, limit: int, timeout: int = 0
    ) -> list[InboundEvent]:
        """Fetch up to `limit` events with id >= offset, in ascending id order."""
        ...

    async def send_text(
        self,
        chat_id: int,
        text: str,
        keyboard: tuple[tuple[str, ...], ...] | None = None,
    ) -> None:
        """Send a text message, optionally with a reply keyboard."""
        ...

    async def send_location(
        self,
        chat_id: int,
        latitude: float,
        longitude: float,
        address: str,
        title: str | None = None,
    ) -> None:
        """Send a map pin (venue when a title is given)."""
        ...

    async def answer_inline(self, query_id: str, title: str, text: str) -> None:
        """Answer an inline query with a single article."""
        ...

    async def send_chat_action(self, chat_id: int, action: ChatActionKind) -> None:
        """Show a status indicator in the chat."""
        ...

    async def send(self, message: OutboundMessage) -> None:
        """Route any outbound message to the matching primitive."""
        ...


def classify_update(update: dict) -> InboundEvent:
    """
    Turn a raw getUpdates entry into an InboundEvent.

    An update whose body cannot be read is logged and returned as
    UnsupportedUpdate, so the cursor still moves past it.

    Raises:
        TransportError: the update has no readable update_id.
    """
    try:
        update_id = int(update["update_id"])
    except (KeyError, TypeError, ValueError) as e:
        raise TransportError(f"Update without id {update!r}") from e

    try:
        return _classify(update, update_id)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning("Malformed update %s skipped: %s", update_id, e)
        return UnsupportedUpdate(update_id=update_id)


def _classify(update: dict, update_id: int) -> InboundEvent:
    message = update.get("message")
    if isinstance(message, dict):
        sender = message.get("from") or {}
        chat = message.get("chat") or {}
        sender_id = sender.get("id")
        chat_id = chat.get("id", sender_id)
        if sender_id is None or chat_id is None:
            return UnsupportedUpdate(update_id=update_id)
        text = message.get("text")
        return RegularMessage(
            update_id=update_id,
            sender_id=int(sender_id),
            chat_id=int(chat_id),
            text=text if isinstance(text, str) else None,
        )

    query = update.get("inline_query")
    if isinstance(query, dict) and "id" in query:
        sender_id = (query.get("from") or {}).get("id")
        if sender_id is None:
            return UnsupportedUpdate(update_id=update_id)
        text = query.get("query")
        return InlineQuery(
            update_id=update_id,
            sender_id=int(sender_id),
            query_id=str(query["id"]),
            text=text if isinstance(text, str) else None,
        )

    # Edited messages, callbacks and the rest are not handled
    for value in update.values():
        if isinstance(value, dict) and isinstance(value.get("from"), dict):
            sender_id = value["from"].get("id")
            return UnsupportedUpdate(
                update_id=update_id,
                sender_id=int(sender_id) if sender_id is not None else None,
            )
    return UnsupportedUpdate(update_id=update_id)


class TelegramTransport:
    """Thin async client for the Telegram Bot API over a shared httpx client."""

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient,
        api_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
    ):
        if not token:
            raise ValueError("API token required.")
        self._base_url = f"{api_url.rstrip('/')}/bot{token}"
        self._timeout = timeout
        self._client = client

    async def _call(
        self,
        method: str,
        payload: dict,
        timeout: float | None = None,
    ):
        """Call a Bot API method and return its `result` field."""
        try:
            response = await self._client.post(
                f"{self._base_url}/{method}",
                json=payload,
                timeout=timeout or self._timeout,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Error calling {method}: {e}") from e

        if response.status_code != 200:
            raise TransportError(
                f"Invalid status code for {method}: {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {method}") from e

        if not isinstance(body, dict) or body.get("ok") is not True:
            raise TransportError(f"Expected ok from {method}: {body}")

        return body.get("result")

    async def get_updates(
        self, offset: int, limit: int, timeout: int = 0
    ) -> list[InboundEvent]:
        """Fetch up to `limit` events with id >= offset, in ascending id order."""
        logger.debug("Checking updates for offset %s", offset)
        result = await self._call(
            "getUpdates",
            {"offset": offset, "limit": limit, "timeout": timeout},
            timeout=self._timeout + timeout,
        )
        if not isinstance(result, list):
            raise TransportError(f"Unexpected getUpdates result: {result!r}")

        events = [classify_update(update) for update in result]
        return sorted(events, key=lambda event: event.update_id)

    async def send_text(
        self,
        chat_id: int,
        text: str,
        keyboard: tuple[tuple[str, ...], ...] | None = None,
    ) -> None:
        """Send a text message, optionally with a reply keyboard."""
        logger.debug("Sending to %s message: %s", chat_id, text)
        payload: dict = {"chat_id": chat_id, "text": text}
        if keyboard:
            payload["reply_markup"] = {
                "keyboard": [[{"text": label} for label in row] for row in keyboard],
                "resize_keyboard": True,
                "one_time_keyboard": True,
            }
        await self._call("sendMessage", payload)

    async def send_location(
        self,
        chat_id: int,
        latitude: float,
        longitude: float,
        address: str,
        title: str | None = None,
    ) -> None:
        """Send a map pin (venue when a title is given)."""
        if title:
            await self._call(
                "sendVenue",
                {
                    "chat_id": chat_id,
                    "latitude": latitude,
                    "longitude": longitude,
                    "title": title,
                    "address": address,
                },
            )
        else:
            await self._call(
                "sendLocation",
                {"chat_id": chat_id, "latitude": latitude, "longitude": longitude},
            )

    async def answer_inline(self, query_id: str, title: str, text: str) -> None:
        """Answer an inline query with a single article."""
        await self._call(
            "answerInlineQuery",
            {
                "inline_query_id": query_id,
                "results": [
                    {
                        "type": "article",
                        "id": query_id,
                        "title": title,
                        "input_message_content": {"message_text": text},
                    }
                ],
            },
        )

    async def send_chat_action(self, chat_id: int, action: ChatActionKind) -> None:
        """Show a status indicator in the chat."""
        await self._call(
            "sendChatAction", {"chat_id": chat_id, "action": action.value}
        )

    async def send(self, message: OutboundMessage) -> None:
        """Route any outbound message to the matching primitive."""
        if isinstance(message, TextMessage):
            await self.send_text(message.chat_id, message.text, message.keyboard)
        elif isinstance(message, LocationMessage):
            await self.send_location(
                message.chat_id,
                message.latitude,
                message.longitude,
                message.address,
                message.title,
            )
        elif isinstance(message, InlineAnswer):
            await self.answer_inline(message.query_id, message.title, message.text)
        elif isinstance(message, ChatAction):
            await self.send_chat_action(message.chat_id, message.action)
        else:
            raise TypeError(f"Unsupported outbound message: {message!r}")
