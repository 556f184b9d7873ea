"""FastAPI webhook adapter.

Telegram treats any non-200 answer as a failed delivery and retries it, so
every update is acknowledged with HTTP 200 whatever happened while
processing it.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import FastAPI, Request

from adapters.telegram_mapper import message_from_update
from core.processor import MessageProcessor

LOGGER = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def create_app(
    processor: MessageProcessor,
    path: str = "/",
    secret_token: Optional[str] = None,
) -> FastAPI:
    """Create the webhook application around a ready processor."""

    app = FastAPI(title="affibot webhook", docs_url=None, redoc_url=None)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.post(path)
    async def receive_update(request: Request) -> dict:
        if secret_token:
            received = request.headers.get(SECRET_HEADER, "")
            if not hmac.compare_digest(received, secret_token):
                LOGGER.warning("Rejected webhook update with a bad secret token")
                return {"ok": True}

        try:
            update = await request.json()
        except ValueError:
            LOGGER.warning("Ignoring webhook update with an invalid JSON body")
            return {"ok": True}

        message = message_from_update(update)
        if message is None:
            return {"ok": True}

        try:
            await processor.handle(message)
        except Exception:
            LOGGER.exception("Error while processing message")
        return {"ok": True}

    return app
