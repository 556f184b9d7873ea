"""Telegram Bot API reply adapter.

Used in webhook mode, where no MTProto client is running and replies go
straight to the Bot API ``sendMessage`` method. Sending is async so replies
never stall the webhook's event loop.
"""

from __future__ import annotations

from typing import Optional

import httpx


class TelegramBotApiReplier:
    """Reply adapter that sends messages via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._bot_token = bot_token
        self._timeout = timeout
        self._transport = transport

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    async def send(self, chat_id: int, text: str) -> None:
        """Send a plain-text reply via the Bot API."""

        payload = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(self._endpoint(), json=payload)
        if not response.is_success:
            raise RuntimeError(f"Bot API error {response.status_code}: {response.text}")
