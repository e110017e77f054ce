from __future__ import annotations

import asyncio
import json
import logging
import platform
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from ...core.logging_utils import log_event
from .constants import (
    DISCORD_GATEWAY_URL,
    GATEWAY_OP_DISPATCH,
    GATEWAY_OP_HEARTBEAT,
    GATEWAY_OP_HEARTBEAT_ACK,
    GATEWAY_OP_HELLO,
    GATEWAY_OP_IDENTIFY,
    GATEWAY_OP_INVALID_SESSION,
    GATEWAY_OP_RECONNECT,
)
from .errors import DiscordAPIError, DiscordPermanentError
from .rest import DiscordRestClient

# Authentication failed, bad intents, or intents the app is not approved for.
FATAL_GATEWAY_CLOSE_CODES = frozenset({4004, 4010, 4011, 4012, 4013, 4014})
FATAL_RETRY_DELAY_SECONDS = 60.0
# Past this many doublings every delay is clamped to the maximum anyway.
_MAX_BACKOFF_DOUBLINGS = 32

DispatchCallback = Callable[[str, dict[str, Any]], Awaitable[None]]


class ConnectionOutcome(str, Enum):
    DROPPED = "dropped"
    SESSION_ENDED = "session_ended"
    FATAL = "fatal"


@dataclass(frozen=True)
class GatewayFrame:
    op: int
    data: Any = None
    sequence: Optional[int] = None
    event_type: Optional[str] = None


def parse_gateway_frame(raw: str | bytes | dict[str, Any]) -> GatewayFrame:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    payload = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(payload, dict):
        raise DiscordAPIError("Discord gateway frame must be a JSON object")
    op = payload.get("op")
    if isinstance(op, bool) or not isinstance(op, int):
        raise DiscordAPIError(f"Discord gateway frame missing numeric op: {payload!r}")
    sequence = payload.get("s")
    event_type = payload.get("t")
    return GatewayFrame(
        op=op,
        data=payload.get("d"),
        sequence=sequence if isinstance(sequence, int) else None,
        event_type=event_type if isinstance(event_type, str) else None,
    )


def build_identify_payload(*, bot_token: str, intents: int) -> dict[str, Any]:
    return {
        "op": GATEWAY_OP_IDENTIFY,
        "d": {
            "token": bot_token,
            "intents": intents,
            "properties": {
                "os": platform.system().lower() or "unknown",
                "browser": "senko-bot",
                "device": "senko-bot",
            },
        },
    }


def build_heartbeat_payload(sequence: Optional[int]) -> dict[str, Any]:
    return {"op": GATEWAY_OP_HEARTBEAT, "d": sequence}


def heartbeat_interval_seconds(hello: GatewayFrame) -> float:
    if hello.op != GATEWAY_OP_HELLO:
        raise DiscordAPIError(
            f"Discord gateway expected HELLO before IDENTIFY, got op={hello.op}"
        )
    data = hello.data if isinstance(hello.data, dict) else {}
    interval_ms = data.get("heartbeat_interval")
    if isinstance(interval_ms, bool) or not isinstance(interval_ms, (int, float)):
        raise DiscordAPIError("Discord gateway HELLO missing heartbeat_interval")
    if interval_ms <= 0:
        raise DiscordAPIError("Discord gateway HELLO has non-positive heartbeat")
    return float(interval_ms) / 1000.0


def calculate_reconnect_backoff(
    attempt: int,
    *,
    base_seconds: float = 1.0,
    max_seconds: float = 30.0,
    rand_float: Callable[[], float] = random.random,
) -> float:
    """Exponential delay with +/-20% jitter, clamped to ``max_seconds``."""
    if base_seconds <= 0.0 or max_seconds <= 0.0:
        return 0.0
    attempt = max(attempt, 0)
    if attempt >= _MAX_BACKOFF_DOUBLINGS:
        return max_seconds
    jitter = 0.8 + 0.4 * min(max(rand_float(), 0.0), 1.0)
    return float(min(max_seconds, base_seconds * (2**attempt) * jitter))


def gateway_close_code(exc: BaseException) -> Optional[int]:
    for source in (exc, getattr(exc, "rcvd", None)):
        code = getattr(source, "code", None)
        if isinstance(code, int):
            return code
    return None


class DiscordGatewayClient:
    """Keeps one gateway session alive and forwards dispatch events.

    Ordinary disconnects are retried with jittered backoff (reset once a
    connection reaches READY). Bad credentials or intents are not going to fix
    themselves, so those retry on a slow fixed delay instead.
    """

    def __init__(
        self,
        *,
        bot_token: str,
        intents: int,
        logger: logging.Logger,
        gateway_url: Optional[str] = None,
    ) -> None:
        self._bot_token = bot_token
        self._intents = intents
        self._logger = logger
        self._gateway_url = gateway_url
        self._sequence: Optional[int] = None
        self._heartbeat_sent_at: Optional[float] = None
        self._latency: Optional[float] = None
        self._session_ready = False
        self._stopping = asyncio.Event()
        self._heartbeat_task: Optional[asyncio.Task[None]] = None
        self._websocket: Any = None

    @property
    def latency(self) -> Optional[float]:
        """Round-trip time of the last acknowledged heartbeat, in seconds."""
        return self._latency

    async def stop(self) -> None:
        self._stopping.set()
        await self._cancel_heartbeat()
        websocket = self._websocket
        if websocket is None:
            return
        try:
            await websocket.close()
        except Exception as exc:
            log_event(
                self._logger, logging.DEBUG, "discord.gateway.close_failed", exc=exc
            )

    async def run(self, on_dispatch: DispatchCallback) -> None:
        failures = 0
        while not self._stopping.is_set():
            outcome = await self._connect_once(on_dispatch)
            if self._stopping.is_set():
                break
            if outcome is ConnectionOutcome.FATAL:
                log_event(
                    self._logger,
                    logging.ERROR,
                    "discord.gateway.fatal_backoff",
                    delay_seconds=FATAL_RETRY_DELAY_SECONDS,
                    hint="check the bot token and intents",
                )
                await asyncio.sleep(FATAL_RETRY_DELAY_SECONDS)
                continue
            if outcome is ConnectionOutcome.SESSION_ENDED:
                failures = 0
            delay = calculate_reconnect_backoff(failures)
            failures += 1
            log_event(
                self._logger,
                logging.DEBUG,
                "discord.gateway.reconnecting",
                outcome=outcome.value,
                delay_seconds=round(delay, 2),
                attempt=failures,
            )
            await asyncio.sleep(delay)

    async def _connect_once(self, on_dispatch: DispatchCallback) -> ConnectionOutcome:
        self._session_ready = False
        try:
            gateway_url = await self._resolve_gateway_url()
            async with websockets.connect(gateway_url) as websocket:
                self._websocket = websocket
                await self._serve(websocket, on_dispatch)
        except asyncio.CancelledError:
            raise
        except DiscordPermanentError as exc:
            log_event(
                self._logger, logging.ERROR, "discord.gateway.permanent_failure", exc=exc
            )
            return ConnectionOutcome.FATAL
        except ConnectionClosed as exc:
            close_code = gateway_close_code(exc)
            if close_code in FATAL_GATEWAY_CLOSE_CODES:
                log_event(
                    self._logger,
                    logging.ERROR,
                    "discord.gateway.fatal_close",
                    close_code=close_code,
                )
                return ConnectionOutcome.FATAL
            log_event(
                self._logger,
                logging.INFO,
                "discord.gateway.closed",
                close_code=close_code,
            )
        except Exception as exc:
            log_event(self._logger, logging.WARNING, "discord.gateway.error", exc=exc)
        finally:
            self._websocket = None
            self._latency = None
            await self._cancel_heartbeat()
        if self._session_ready:
            return ConnectionOutcome.SESSION_ENDED
        return ConnectionOutcome.DROPPED

    async def _resolve_gateway_url(self) -> str:
        if self._gateway_url:
            return self._gateway_url
        async with DiscordRestClient(bot_token=self._bot_token) as rest:
            payload = await rest.get_gateway_bot()
        url = payload.get("url")
        if not isinstance(url, str) or not url:
            return DISCORD_GATEWAY_URL
        return url if "?" in url else f"{url}?v=10&encoding=json"

    async def _serve(self, websocket: Any, on_dispatch: DispatchCallback) -> None:
        hello = parse_gateway_frame(await websocket.recv())
        interval = heartbeat_interval_seconds(hello)
        self._heartbeat_task = asyncio.create_task(
            self._heartbeat_loop(websocket, interval)
        )
        identify = build_identify_payload(
            bot_token=self._bot_token, intents=self._intents
        )
        await websocket.send(json.dumps(identify))
        async for raw in websocket:
            keep_open = await self._handle_frame(
                websocket, parse_gateway_frame(raw), on_dispatch
            )
            if not keep_open:
                return

    async def _handle_frame(
        self,
        websocket: Any,
        frame: GatewayFrame,
        on_dispatch: DispatchCallback,
    ) -> bool:
        """Apply one frame; returns False when Discord asks for a new connection."""
        if frame.sequence is not None:
            self._sequence = frame.sequence
        if frame.op == GATEWAY_OP_DISPATCH:
            if frame.event_type == "READY":
                self._session_ready = True
            if frame.event_type and isinstance(frame.data, dict):
                await on_dispatch(frame.event_type, frame.data)
        elif frame.op == GATEWAY_OP_HEARTBEAT:
            await self._send_heartbeat(websocket)
        elif frame.op == GATEWAY_OP_HEARTBEAT_ACK:
            self._record_heartbeat_ack()
        elif frame.op in (GATEWAY_OP_RECONNECT, GATEWAY_OP_INVALID_SESSION):
            log_event(
                self._logger,
                logging.INFO,
                "discord.gateway.session_reset",
                op=frame.op,
            )
            return False
        return True

    async def _send_heartbeat(self, websocket: Any) -> None:
        self._heartbeat_sent_at = asyncio.get_running_loop().time()
        await websocket.send(json.dumps(build_heartbeat_payload(self._sequence)))

    def _record_heartbeat_ack(self) -> None:
        if self._heartbeat_sent_at is None:
            return
        elapsed = asyncio.get_running_loop().time() - self._heartbeat_sent_at
        self._latency = max(elapsed, 0.0)

    async def _heartbeat_loop(self, websocket: Any, interval_seconds: float) -> None:
        # The first beat is jittered so reconnect storms spread out.
        await asyncio.sleep(interval_seconds * random.random())
        while not self._stopping.is_set():
            await self._send_heartbeat(websocket)
            await asyncio.sleep(interval_seconds)

    async def _cancel_heartbeat(self) -> None:
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            # The socket usually closed under the heartbeat; the run loop handles it.
            log_event(
                self._logger, logging.DEBUG, "discord.gateway.heartbeat_ended", exc=exc
            )
