"""
tests/test_completion_client.py — Completion Client & Broadcast Dispatcher
============================================================================

Both wrap outbound HTTP; the SDK / transport is replaced with mocks.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from commonroom.config import CommonRoomConfig
from commonroom.errors import UpstreamUnavailable
from commonroom.services.broadcast_dispatcher import (
    BroadcastRequest,
    LoggingDispatcher,
    WebhookDispatcher,
    dispatcher_from_env,
)
from commonroom.services.completion_client import CompletionClient


def _reply(text: str | None):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class TestCompletionClient:
    @pytest.fixture
    def client(self) -> CompletionClient:
        c = CompletionClient(api_key="test-key", model="gemini-2.0-flash-exp", timeout=12)
        c._client = MagicMock()
        return c

    def test_without_key_is_unavailable(self):
        c = CompletionClient(api_key=None, model="m")
        assert c.is_available is False
        with pytest.raises(UpstreamUnavailable, match="AI service not available"):
            c.complete("hi")

    def test_sends_single_user_message(self, client):
        client._client.chat.completions.create.return_value = _reply('{"title": "x"}')
        assert client.complete("prompt text", timeout=5) == '{"title": "x"}'
        kwargs = client._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash-exp"
        assert kwargs["messages"] == [{"role": "user", "content": "prompt text"}]
        assert kwargs["timeout"] == 5

    def test_default_timeout(self, client):
        client._client.chat.completions.create.return_value = _reply("ok")
        client.complete("p")
        assert client._client.chat.completions.create.call_args.kwargs["timeout"] == 12

    def test_empty_reply_is_empty_string(self, client):
        client._client.chat.completions.create.return_value = _reply(None)
        assert client.complete("p") == ""
        client._client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        assert client.complete("p") == ""

    @pytest.mark.parametrize(
        "exc",
        [
            openai.APITimeoutError(request=httpx.Request("POST", "https://ai.example")),
            openai.APIConnectionError(request=httpx.Request("POST", "https://ai.example")),
        ],
    )
    def test_sdk_errors_become_upstream_unavailable(self, client, exc):
        client._client.chat.completions.create.side_effect = exc
        with pytest.raises(UpstreamUnavailable):
            client.complete("p")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("COMPLETION_API_KEY", "k")
        monkeypatch.setenv("COMPLETION_BASE_URL", "https://ai.example/v1/")
        c = CompletionClient.from_env(CommonRoomConfig(completion_model="gpt-4o-mini"))
        assert c.is_available
        assert c.model == "gpt-4o-mini"

    def test_from_env_without_key(self, monkeypatch):
        monkeypatch.delenv("COMPLETION_API_KEY", raising=False)
        assert CompletionClient.from_env(CommonRoomConfig()).is_available is False


def _request() -> BroadcastRequest:
    return BroadcastRequest(
        broadcast_id="broadcast_abc",
        community_id="c1",
        suggestion_id="s1",
        recipient_ids=("r1", "r2"),
        message="🎉 New Event Suggestion: Movie Night",
        channels=("email", "push"),
        scheduled_for="2025-07-20T12:00:00+00:00",
    )


class TestBroadcastDispatcher:
    def test_webhook_posts_json(self):
        dispatcher = WebhookDispatcher("https://messaging.example/broadcasts")
        with patch("commonroom.services.broadcast_dispatcher.httpx.post") as post:
            post.return_value = httpx.Response(
                202, request=httpx.Request("POST", "https://messaging.example/broadcasts")
            )
            dispatcher.dispatch(_request()).result(timeout=5)
        dispatcher.shutdown()
        url = post.call_args.args[0]
        payload = post.call_args.kwargs["json"]
        assert url == "https://messaging.example/broadcasts"
        assert payload["recipient_ids"] == ["r1", "r2"]
        assert payload["channels"] == ["email", "push"]
        assert payload["broadcast_id"] == "broadcast_abc"

    def test_webhook_failure_stays_in_the_future(self):
        dispatcher = WebhookDispatcher("https://messaging.example/broadcasts")
        with patch(
            "commonroom.services.broadcast_dispatcher.httpx.post",
            side_effect=httpx.ConnectError("refused"),
        ):
            future = dispatcher.dispatch(_request())
            assert isinstance(future.exception(timeout=5), httpx.ConnectError)
        dispatcher.shutdown()

    def test_logging_dispatcher_never_raises(self):
        LoggingDispatcher().dispatch(_request())

    def test_dispatcher_from_env(self, monkeypatch):
        monkeypatch.delenv("BROADCAST_WEBHOOK_URL", raising=False)
        assert isinstance(dispatcher_from_env(), LoggingDispatcher)
        monkeypatch.setenv("BROADCAST_WEBHOOK_URL", "https://messaging.example/b")
        hook = dispatcher_from_env()
        assert isinstance(hook, WebhookDispatcher)
        hook.shutdown()
