"""Telethon reply adapter used by the long-polling bot."""

from __future__ import annotations


class TelethonReplier:
    """Reply adapter that sends plain-text messages through a Telethon client."""

    def __init__(self, client) -> None:
        self._client = client

    async def send(self, chat_id: int, text: str) -> None:
        await self._client.send_message(chat_id, text, parse_mode=None, link_preview=False)
