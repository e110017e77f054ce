from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from senko_bot.integrations.chat.conversation_store import ConversationTurn
from senko_bot.integrations.completions.client import CompletionClient
from senko_bot.integrations.completions.errors import (
    COMPLETION_FAILED_MESSAGE,
    CompletionAPIError,
    CompletionError,
    CompletionTransportError,
)

HISTORY = [
    ConversationTurn("system", "You are an assistant."),
    ConversationTurn("user", "hello"),
]


async def _configure_mock_client(
    client: CompletionClient, transport: httpx.MockTransport
) -> None:
    await client._client.aclose()
    client._client = httpx.AsyncClient(
        base_url="https://openai.test/v1",
        transport=transport,
        timeout=10.0,
    )


def _success(content: str = "Hi!") -> dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7},
    }


@pytest.mark.anyio
async def test_complete_posts_history_with_bearer_auth() -> None:
    observed: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        observed["path"] = request.url.path
        observed["authorization"] = request.headers.get("Authorization")
        observed["body"] = json.loads(request.content)
        return httpx.Response(200, json=_success())

    client = CompletionClient(api_key="sk-test", model="gpt-4-turbo")
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        turn = await client.complete(HISTORY, 0.5)
    finally:
        await client.close()

    assert turn == ConversationTurn("assistant", "Hi!")
    assert observed["path"] == "/v1/chat/completions"
    assert observed["authorization"] == "Bearer sk-test"
    assert observed["body"] == {
        "model": "gpt-4-turbo",
        "messages": [
            {"role": "system", "content": "You are an assistant."},
            {"role": "user", "content": "hello"},
        ],
        "temperature": 0.5,
    }


def test_build_request_omits_temperature_when_unset() -> None:
    client = CompletionClient(api_key="sk-test", model="m")
    body = client.build_request(HISTORY, None)
    assert "temperature" not in body
    assert body["model"] == "m"


@pytest.mark.anyio
async def test_api_error_carries_upstream_message() -> None:
    calls = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(
            429, json={"error": {"message": "Rate limit reached", "type": "requests"}}
        )

    client = CompletionClient(api_key="sk-test")
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(CompletionAPIError) as excinfo:
            await client.complete(HISTORY)
    finally:
        await client.close()

    assert calls["count"] == 1
    assert excinfo.value.status_code == 429
    assert excinfo.value.api_message == "Rate limit reached"
    assert excinfo.value.user_message == COMPLETION_FAILED_MESSAGE


@pytest.mark.anyio
async def test_non_json_error_status_is_api_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad gateway</html>\n")

    client = CompletionClient(api_key="sk-test")
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(CompletionAPIError) as excinfo:
            await client.complete(HISTORY)
    finally:
        await client.close()

    assert excinfo.value.status_code == 502
    assert excinfo.value.api_message == "<html>Bad gateway</html>"


@pytest.mark.anyio
async def test_non_json_success_body_is_transport_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    client = CompletionClient(api_key="sk-test")
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(CompletionTransportError):
            await client.complete(HISTORY)
    finally:
        await client.close()


@pytest.mark.anyio
async def test_network_failure_is_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = CompletionClient(api_key="sk-test")
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(CompletionTransportError) as excinfo:
            await client.complete(HISTORY)
    finally:
        await client.close()

    assert isinstance(excinfo.value, CompletionError)
    assert excinfo.value.user_message == COMPLETION_FAILED_MESSAGE


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload",
    [
        {"choices": []},
        {"choices": [{"message": {"role": "assistant"}}]},
        {"object": "chat.completion"},
        [],
    ],
)
async def test_malformed_success_body_is_api_error(payload: Any) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    client = CompletionClient(api_key="sk-test")
    await _configure_mock_client(client, httpx.MockTransport(handler))
    try:
        with pytest.raises(CompletionAPIError):
            await client.complete(HISTORY)
    finally:
        await client.close()
