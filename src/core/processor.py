"""Core message processing.

This module is integration-agnostic. It only relies on ports for storage,
resolution and replies, so the same processor serves the long-polling bot
and the webhook handler.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.converter import LinkConverter
from core.errors import TAG_EXAMPLE, ConversionError, InvalidTagFormat
from core.models import InboundMessage
from core.ports import PendingStatePort, ReplyPort, TagStorePort
from core.tags import is_valid_tag

LOGGER = logging.getLogger(__name__)

WELCOME_NEW = (
    "Hello! Welcome to the Amazon Affiliate Link Converter Bot. To get started, "
    "please send me your Amazon Associate Tag by using the /settag command."
)
WELCOME_BACK = (
    "Welcome back! Send me an Amazon link (long or short) and I'll convert it for you. "
    "Your current Amazon Associate Tag is: {tag}. You can change it with /settag."
)
SETTAG_PROMPT = (
    "Please send me your Amazon Associate Tag now. This will overwrite your previous tag. "
    f"Example: {TAG_EXAMPLE}"
)
TAG_SAVED = (
    "Thank you! Your Amazon Associate Tag has been set to: {tag}. Now, send me any Amazon "
    "product link (long or short), and I will convert it into an affiliate link."
)
CURRENT_TAG = "Your current Amazon Associate Tag is: {tag}."
NO_TAG = "You have not set an Amazon Associate Tag yet. Use /settag to register one."
HELP_TEXT = (
    "Send me an Amazon product link (amazon.com/dp/... or amzn.to/...) and I will reply "
    "with your affiliate link.\n\n"
    "/settag - register or change your Amazon Associate Tag\n"
    f"/settag {TAG_EXAMPLE} - register it in one message\n"
    "/mytag - show your current tag\n"
    "/start - reset and show your status"
)
UNKNOWN_COMMAND = "Sorry, I don't recognize that command. Please use /start or /settag."
AFFILIATE_REPLY = "Here's your affiliate link:\n\n{url}"
GENERIC_FAILURE = "Sorry, something went wrong while handling your message. Please try again."


def parse_command(text: str) -> Optional[tuple[str, str]]:
    """Split ``/cmd@botname args`` into (``cmd``, ``args``); None for plain text."""

    if not text.startswith("/"):
        return None
    head, _, args = text.partition(" ")
    command = head[1:].split("@", 1)[0].lower()
    return command, args.strip()


class MessageProcessor:
    """Orchestrates commands, the tag-entry flow and link conversion."""

    def __init__(
        self,
        converter: LinkConverter,
        tags: TagStorePort,
        pending: PendingStatePort,
        replier: ReplyPort,
    ) -> None:
        self._converter = converter
        self._tags = tags
        self._pending = pending
        self._replier = replier

    async def handle(self, message: InboundMessage) -> None:
        """Process one inbound message; never raises to the transport."""

        text = message.text.strip()
        if not text:
            return

        try:
            command = parse_command(text)
            if command is not None:
                await self._handle_command(message, *command)
            elif self._pending.is_pending(message.user_id):
                await self._capture_tag(message, text)
            else:
                await self._convert(message, text)
        except Exception:
            LOGGER.exception("Error while processing message from user %s", message.user_id)
            try:
                await self._replier.send(message.chat_id, GENERIC_FAILURE)
            except Exception:
                LOGGER.exception("Could not send failure reply to chat %s", message.chat_id)

    async def _handle_command(self, message: InboundMessage, command: str, args: str) -> None:
        user_id = message.user_id
        if command == "start":
            self._pending.clear_pending(user_id)
            tag = self._tags.get_tag(user_id)
            reply = WELCOME_BACK.format(tag=tag) if tag else WELCOME_NEW
            await self._replier.send(message.chat_id, reply)
            return

        if command == "settag":
            if args:
                # Inline form works even when pending state does not survive
                # between webhook invocations.
                await self._capture_tag(message, args)
                return
            self._pending.set_pending(user_id)
            await self._replier.send(message.chat_id, SETTAG_PROMPT)
            return

        if command == "mytag":
            tag = self._tags.get_tag(user_id)
            reply = CURRENT_TAG.format(tag=tag) if tag else NO_TAG
            await self._replier.send(message.chat_id, reply)
            return

        if command == "help":
            await self._replier.send(message.chat_id, HELP_TEXT)
            return

        await self._replier.send(message.chat_id, UNKNOWN_COMMAND)

    async def _capture_tag(self, message: InboundMessage, candidate: str) -> None:
        tag = candidate.strip()
        if not is_valid_tag(tag):
            # Pending state stays set so the user can simply retry.
            await self._replier.send(message.chat_id, InvalidTagFormat.user_message)
            return

        self._tags.set_tag(message.user_id, tag)
        self._pending.clear_pending(message.user_id)
        LOGGER.info("Tag registered for user %s", message.user_id)
        await self._replier.send(message.chat_id, TAG_SAVED.format(tag=tag))

    async def _convert(self, message: InboundMessage, text: str) -> None:
        async def on_status(status: str) -> None:
            await self._replier.send(message.chat_id, status)

        try:
            conversion = await self._converter.convert(message.user_id, text, on_status=on_status)
        except ConversionError as exc:
            LOGGER.info("Rejected message from user %s: %s", message.user_id, type(exc).__name__)
            await self._replier.send(message.chat_id, exc.user_message)
            return

        await self._replier.send(message.chat_id, AFFILIATE_REPLY.format(url=conversion.affiliate_url))
