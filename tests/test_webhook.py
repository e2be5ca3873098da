"""Webhook-приложение вызывается напрямую как ASGI, без внешних HTTP-клиентов."""

from __future__ import annotations

import asyncio
import json
import os
import unittest

os.environ.setdefault("BOT_TOKEN", "123456:test-bot-token")
os.environ["WEBHOOK_SECRET"] = "s3cret"

from webhook import app  # noqa: E402


async def _call_app(
    method: str,
    path: str,
    body: bytes = b"",
    headers: list[tuple[bytes, bytes]] | None = None,
) -> tuple[int, bytes]:
    response_body = bytearray()
    status: int | None = None

    async def receive() -> dict[str, object]:
        return {"type": "http.request", "body": body, "more_body": False}

    async def send(message: dict[str, object]) -> None:
        nonlocal status, response_body
        if message["type"] == "http.response.start":
            status = int(message["status"])
        elif message["type"] == "http.response.body":
            response_body += message.get("body", b"")

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [(b"content-type", b"application/json"), *(headers or [])],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
        "scheme": "http",
    }

    await app(scope, receive, send)
    return status or 500, bytes(response_body)


def _update_payload() -> bytes:
    return json.dumps(
        {
            "update_id": 1,
            "message": {
                "message_id": 10,
                "date": 1700000000,
                "chat": {"id": 77, "type": "private"},
                "from": {"id": 77, "is_bot": False, "first_name": "Иван"},
                "text": "просто текст",
            },
        }
    ).encode()


class WebhookTestCase(unittest.TestCase):
    def test_healthcheck(self) -> None:
        status, body = asyncio.run(_call_app("GET", "/"))
        self.assertEqual(status, 200)
        self.assertEqual(json.loads(body), {"ok": True})

    def test_rejects_update_without_secret(self) -> None:
        status, body = asyncio.run(_call_app("POST", "/webhook", _update_payload()))
        self.assertEqual(status, 403)
        self.assertEqual(json.loads(body)["detail"], "invalid_secret")

    def test_accepts_update_with_secret(self) -> None:
        status, body = asyncio.run(
            _call_app(
                "POST",
                "/webhook",
                _update_payload(),
                headers=[(b"x-telegram-bot-api-secret-token", b"s3cret")],
            )
        )
        self.assertEqual(status, 200)
        self.assertEqual(json.loads(body), {"ok": True})


if __name__ == "__main__":
    unittest.main()
