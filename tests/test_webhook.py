from __future__ import annotations

import asyncio
from typing import Optional

import httpx

from adapters.webhook import SECRET_HEADER, create_app
from core.models import InboundMessage

UPDATE = {
    "update_id": 10,
    "message": {
        "message_id": 1,
        "from": {"id": 5},
        "chat": {"id": 6, "type": "private"},
        "text": "/start",
    },
}


class FakeProcessor:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.handled: list[InboundMessage] = []
        self.error = error

    async def handle(self, message: InboundMessage) -> None:
        self.handled.append(message)
        if self.error is not None:
            raise self.error


def _post(app, **kwargs) -> httpx.Response:
    async def _send() -> httpx.Response:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            return await client.post("/", **kwargs)

    return asyncio.run(_send())


def test_update_is_processed_and_acknowledged() -> None:
    processor = FakeProcessor()
    response = _post(create_app(processor), json=UPDATE)
    assert response.status_code == 200
    assert processor.handled == [InboundMessage(user_id=5, chat_id=6, text="/start")]


def test_update_without_message_is_acknowledged() -> None:
    processor = FakeProcessor()
    response = _post(create_app(processor), json={"update_id": 11})
    assert response.status_code == 200
    assert processor.handled == []


def test_invalid_json_is_acknowledged() -> None:
    processor = FakeProcessor()
    response = _post(create_app(processor), content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 200
    assert processor.handled == []


def test_processing_errors_still_return_200() -> None:
    processor = FakeProcessor(error=RuntimeError("boom"))
    response = _post(create_app(processor), json=UPDATE)
    assert response.status_code == 200
    assert len(processor.handled) == 1


def test_secret_token_mismatch_is_ignored() -> None:
    processor = FakeProcessor()
    app = create_app(processor, secret_token="s3cret")

    rejected = _post(app, json=UPDATE, headers={SECRET_HEADER: "wrong"})
    accepted = _post(app, json=UPDATE, headers={SECRET_HEADER: "s3cret"})

    assert rejected.status_code == 200
    assert accepted.status_code == 200
    assert len(processor.handled) == 1


def test_health() -> None:
    async def _get() -> httpx.Response:
        transport = httpx.ASGITransport(app=create_app(FakeProcessor()))
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            return await client.get("/health")

    response = asyncio.run(_get())
    assert response.json() == {"status": "ok"}
