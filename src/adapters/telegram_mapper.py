"""Telegram-to-core message mapping adapter.

This keeps Telethon and Bot API payload details out of the core pipeline.
"""

from __future__ import annotations

from typing import Any, Optional

from core.models import InboundMessage


def message_from_event(event: Any) -> Optional[InboundMessage]:
    """Build an InboundMessage from a Telethon NewMessage event."""

    text = getattr(event, "raw_text", None)
    sender_id = getattr(event, "sender_id", None)
    chat_id = getattr(event, "chat_id", None)
    if not isinstance(text, str) or sender_id is None or chat_id is None:
        return None
    return InboundMessage(user_id=int(sender_id), chat_id=int(chat_id), text=text)


def message_from_update(update: Any) -> Optional[InboundMessage]:
    """Build an InboundMessage from a Bot API webhook update.

    Only plain ``message`` updates with text are handled; edits, callbacks
    and media without text return None.
    """

    if not isinstance(update, dict):
        return None
    message = update.get("message")
    if not isinstance(message, dict):
        return None

    text = message.get("text")
    chat = message.get("chat") or {}
    sender = message.get("from") or {}
    chat_id = chat.get("id") if isinstance(chat, dict) else None
    # Channel posts have no sender; fall back to the chat itself.
    user_id = sender.get("id", chat_id) if isinstance(sender, dict) else chat_id
    if not isinstance(text, str) or chat_id is None or user_id is None:
        return None

    try:
        return InboundMessage(user_id=int(user_id), chat_id=int(chat_id), text=text)
    except (TypeError, ValueError):
        return None
