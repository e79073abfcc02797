"""Conversation state."""

from nova.session.history import ConversationHistory

__all__ = ["ConversationHistory"]
