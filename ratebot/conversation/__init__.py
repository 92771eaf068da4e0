"""Conversation module."""

from .engine import ConversationEngine, IConversationEngine, parse_command

__all__ = ["ConversationEngine", "IConversationEngine", "parse_command"]
