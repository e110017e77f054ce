from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from ...core.config import DEFAULT_OPENAI_BASE_URL, DEFAULT_OPENAI_MODEL
from ...core.logging_utils import log_event
from ..chat.conversation_store import ROLE_ASSISTANT, ConversationTurn
from .errors import CompletionAPIError, CompletionTransportError

DEFAULT_TIMEOUT_SECONDS = 120.0
_BODY_PREVIEW_CHARS = 200


class CompletionClient:
    """Single-shot chat-completion requests. Failures are raised, never retried."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        base_url: str = DEFAULT_OPENAI_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)
        self._authorization_header = f"Bearer {api_key}"
        self._model = model
        self._logger = logger or logging.getLogger(__name__)

    @property
    def model(self) -> str:
        return self._model

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    def build_request(
        self, history: Sequence[ConversationTurn], temperature: Optional[float]
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self._model,
            "messages": [turn.to_payload() for turn in history],
        }
        if temperature is not None:
            body["temperature"] = temperature
        return body

    async def complete(
        self,
        history: Sequence[ConversationTurn],
        temperature: Optional[float] = None,
    ) -> ConversationTurn:
        body = self.build_request(history, temperature)
        try:
            response = await self._client.post(
                "/chat/completions",
                json=body,
                headers={"Authorization": self._authorization_header},
            )
        except httpx.HTTPError as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "completion.request.transport_failed",
                model=self._model,
                exc=exc,
            )
            raise CompletionTransportError(
                f"Completion request failed: {type(exc).__name__}: {exc}"
            ) from exc

        if not response.is_success:
            try:
                api_message = _extract_error_message(response.json())
            except ValueError:
                api_message = None
            if api_message is None:
                api_message = _body_preview(response)
            log_event(
                self._logger,
                logging.ERROR,
                "completion.response.api_error",
                status_code=response.status_code,
                api_message=api_message,
            )
            raise CompletionAPIError(
                f"Completion API returned status {response.status_code}: {api_message}",
                status_code=response.status_code,
                api_message=api_message,
            )

        try:
            data = response.json()
        except ValueError as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "completion.response.invalid_json",
                status_code=response.status_code,
                exc=exc,
            )
            raise CompletionTransportError(
                f"Completion response was not JSON (status={response.status_code})"
            ) from exc

        turn = _extract_first_choice(data)
        if turn is None:
            raise CompletionAPIError(
                "Completion response did not contain an assistant message",
                status_code=response.status_code,
            )
        log_event(
            self._logger,
            logging.DEBUG,
            "completion.response.ok",
            model=self._model,
            message_count=len(body["messages"]),
            usage=data.get("usage") if isinstance(data, dict) else None,
        )
        return turn


def _extract_error_message(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        return message if isinstance(message, str) else None
    if isinstance(error, str):
        return error
    return None


def _extract_first_choice(data: Any) -> Optional[ConversationTurn]:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str):
        return None
    return ConversationTurn(role=ROLE_ASSISTANT, content=content)


def _body_preview(response: httpx.Response) -> str:
    return (response.text or "").strip().replace("\n", " ")[:_BODY_PREVIEW_CHARS]
