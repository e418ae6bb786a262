"""Tests for Telegram Notifier."""

import asyncio
import json
import httpx
import pytest
from ftbot.services.telegram_notifier import TelegramNotifier


def make_notifier(handler, bot_token="123:abc", user_id=42):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TelegramNotifier(bot_token, user_id, client=client)


class TestTelegramNotifier:
    """Test cases for TelegramNotifier."""

    def test_send_posts_markdown_message(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"ok": True, "result": {}})

        notifier = make_notifier(handler)
        assert asyncio.run(notifier.send("hello \\*world\\*")) is True

        assert len(requests) == 1
        assert requests[0].url.path == "/bot123:abc/sendMessage"
        body = json.loads(requests[0].content)
        assert body["chat_id"] == 42
        assert body["text"] == "hello \\*world\\*"
        assert body["parse_mode"] == "MarkdownV2"

    def test_http_error_returns_false(self):
        notifier = make_notifier(lambda request: httpx.Response(400, json={"ok": False}))
        assert asyncio.run(notifier.send("hi")) is False

    def test_rejected_message_returns_false(self):
        notifier = make_notifier(
            lambda request: httpx.Response(200, json={"ok": False, "description": "can't parse entities"})
        )
        assert asyncio.run(notifier.send("hi")) is False

    def test_non_json_response_returns_false(self):
        notifier = make_notifier(lambda request: httpx.Response(200, text="<html>Bad Gateway</html>"))
        assert asyncio.run(notifier.send("hi")) is False

    def test_network_error_returns_false(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        notifier = make_notifier(handler)
        assert asyncio.run(notifier.send("hi")) is False

    def test_disabled_without_user(self):
        calls = []
        notifier = make_notifier(lambda request: calls.append(request), user_id=None)

        assert notifier.enabled is False
        assert asyncio.run(notifier.send("hi")) is False
        assert calls == []

    def test_disabled_without_token(self):
        notifier = TelegramNotifier("", 42)
        assert notifier.enabled is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
