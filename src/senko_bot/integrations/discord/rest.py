from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Optional

import httpx

from ...core.logging_utils import log_event
from .constants import DISCORD_API_BASE_URL
from .errors import DiscordAPIError, DiscordPermanentError, DiscordTransientError

logger = logging.getLogger(__name__)

_RETRYABLE_NETWORK_ERRORS = (
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
)
_BODY_PREVIEW_CHARS = 200


def _body_preview(response: httpx.Response) -> str:
    return (response.text or "").strip().replace("\n", " ")[:_BODY_PREVIEW_CHARS]


def retry_after_seconds(response: httpx.Response) -> Optional[float]:
    """Delay Discord asks for on a 429, from the header or the JSON body."""
    raw: Any = response.headers.get("Retry-After")
    if raw is None:
        try:
            body = response.json()
        except ValueError:
            return None
        raw = body.get("retry_after") if isinstance(body, dict) else None
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except (TypeError, ValueError):
        return 0.0


def error_for_response(
    method: str, path: str, response: httpx.Response
) -> DiscordAPIError:
    """Map a non-2xx response onto the transient/permanent error split."""
    status_code = response.status_code
    route = f"{method} {path}"
    if status_code == 429:
        return DiscordTransientError(
            f"Discord API rate limit exceeded for {route}",
            status_code=status_code,
            retry_after=retry_after_seconds(response),
        )
    detail = f"status={status_code} body={_body_preview(response)!r}"
    if status_code >= 500:
        return DiscordTransientError(
            f"Discord API server error for {route}: {detail}",
            status_code=status_code,
        )
    if status_code in {401, 403}:
        return DiscordPermanentError(
            f"Discord API authentication failure for {route}: {detail}",
            status_code=status_code,
        )
    return DiscordAPIError(
        f"Discord API request failed for {route}: {detail}",
        status_code=status_code,
    )


class DiscordRestClient:
    """Bot-authenticated calls against Discord REST v10.

    Rate limits are retried after the delay Discord asks for; server errors and
    network failures are retried with jittered exponential backoff. Both are
    bounded by ``max_retries`` and surface as ``DiscordTransientError``.
    """

    def __init__(
        self,
        *,
        bot_token: str,
        timeout_seconds: float = 10.0,
        base_url: str = DISCORD_API_BASE_URL,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 30.0,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)
        self._authorization_header = f"Bot {bot_token}"
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "DiscordRestClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    def _backoff_delay(self, attempt: int) -> float:
        delay = self._retry_base_delay * (2**attempt) + random.uniform(0, 1)
        return float(min(delay, self._retry_max_delay))

    async def _send(
        self,
        method: str,
        path: str,
        *,
        payload: Any,
        params: Optional[dict[str, str]],
    ) -> httpx.Response:
        attempt = 0
        rate_limited = 0
        while True:
            try:
                response = await self._client.request(
                    method,
                    path,
                    json=payload,
                    params=params,
                    headers={"Authorization": self._authorization_header},
                )
            except _RETRYABLE_NETWORK_ERRORS as exc:
                if attempt >= self._max_retries:
                    raise DiscordTransientError(
                        f"Discord API network error for {method} {path}: {exc}"
                    ) from exc
                attempt += 1
                delay = self._backoff_delay(attempt)
                log_event(
                    logger,
                    logging.WARNING,
                    "discord.rest.network_retry",
                    method=method,
                    path=path,
                    error=type(exc).__name__,
                    delay_seconds=round(delay, 2),
                    attempt=attempt,
                )
                await asyncio.sleep(delay)
                continue
            except httpx.HTTPError as exc:
                raise DiscordTransientError(
                    f"Discord API network error for {method} {path}: {exc}"
                ) from exc

            if response.is_success:
                return response
            error = error_for_response(method, path, response)
            if response.status_code == 429:
                if error.retry_after is None or rate_limited >= self._max_retries:
                    raise error
                rate_limited += 1
                log_event(
                    logger,
                    logging.INFO,
                    "discord.rest.rate_limited",
                    method=method,
                    path=path,
                    retry_after=error.retry_after,
                    attempt=rate_limited,
                )
                await asyncio.sleep(error.retry_after)
                continue
            if not isinstance(error, DiscordTransientError):
                raise error
            if attempt >= self._max_retries:
                raise error
            attempt += 1
            delay = self._backoff_delay(attempt)
            log_event(
                logger,
                logging.WARNING,
                "discord.rest.server_retry",
                method=method,
                path=path,
                status=response.status_code,
                delay_seconds=round(delay, 2),
                attempt=attempt,
            )
            await asyncio.sleep(delay)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Any = None,
        params: Optional[dict[str, str]] = None,
        expect_json: bool = True,
    ) -> Any:
        response = await self._send(method, path, payload=payload, params=params)
        if not expect_json:
            return None
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise DiscordAPIError(
                f"Discord API returned non-JSON success response for {method} {path}"
            ) from exc

    async def get_gateway_bot(self) -> dict[str, Any]:
        payload = await self._request("GET", "/gateway/bot")
        return payload if isinstance(payload, dict) else {}

    async def bulk_overwrite_application_commands(
        self,
        *,
        application_id: str,
        commands: list[dict[str, Any]],
        guild_id: str | None = None,
    ) -> list[dict[str, Any]]:
        scope = "" if guild_id is None else f"/guilds/{guild_id}"
        payload = await self._request(
            "PUT", f"/applications/{application_id}{scope}/commands", payload=commands
        )
        if not isinstance(payload, list):
            return []
        return [item for item in payload if isinstance(item, dict)]

    async def create_interaction_response(
        self,
        *,
        interaction_id: str,
        interaction_token: str,
        payload: dict[str, Any],
    ) -> None:
        await self._request(
            "POST",
            f"/interactions/{interaction_id}/{interaction_token}/callback",
            payload=payload,
            expect_json=False,
        )

    async def create_followup_message(
        self,
        *,
        application_id: str,
        interaction_token: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        # wait=true makes Discord return the created message (and its id).
        message = await self._request(
            "POST",
            f"/webhooks/{application_id}/{interaction_token}",
            payload=payload,
            params={"wait": "true"},
        )
        return message if isinstance(message, dict) else {}

    async def edit_interaction_message(
        self,
        *,
        application_id: str,
        interaction_token: str,
        message_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        message = await self._request(
            "PATCH",
            f"/webhooks/{application_id}/{interaction_token}/messages/{message_id}",
            payload=payload,
        )
        return message if isinstance(message, dict) else {}
