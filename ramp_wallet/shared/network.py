"""JSON-RPC over WebSocket transport for talking to a ledger node.

The websocket runs in a daemon thread (``websocket-client``); every response
and subscription notification is handed back to the asyncio loop that
created the client, so callers only ever see callbacks on that loop.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import websocket

logger = logging.getLogger(__name__)


class NetworkErrorType(Enum):
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    RPC_ERROR = "rpc_error"
    UNKNOWN = "unknown"


@dataclass
class NetworkError(Exception):
    error_type: NetworkErrorType
    message: str
    original_error: Exception | None = None
    code: int | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class TimeoutConfig:
    connect_timeout: float = 5.0
    read_timeout: float = 15.0
    # Longest wait between two status updates of a watched extrinsic.
    operation_timeout: float = 60.0


@dataclass
class ReconnectConfig:
    reconnect_delay: float = 5.0
    max_reconnect_delay: float = 60.0
    auto_reconnect: bool = True

    def next_delay(self, current: float) -> float:
        return min(current * 2, self.max_reconnect_delay)


@dataclass
class _Subscription:
    method: str
    params: list[Any]
    unsubscribe_method: str
    callback: Callable[[Any], None]
    # One-shot streams (extrinsic watches) end on disconnect instead of
    # being re-sent to the node.
    resubscribe: bool = True
    on_closed: Callable[[NetworkError], None] | None = None
    remote_id: str | None = None


def rpc_error_from_payload(error: dict[str, Any], context: str = "") -> NetworkError:
    context_prefix = f"{context}: " if context else ""
    code = error.get("code")
    message = error.get("message", "Unknown error")
    data = error.get("data")
    detail = f"{message} ({data})" if data else message
    return NetworkError(
        error_type=NetworkErrorType.RPC_ERROR,
        message=f"{context_prefix}RPC error {code}: {detail}",
        code=code,
    )


class LedgerRpcClient:
    def __init__(
        self,
        node_url: str,
        loop: asyncio.AbstractEventLoop | None = None,
        timeout_config: TimeoutConfig | None = None,
        reconnect_config: ReconnectConfig | None = None,
        on_connected: Callable[[], None] | None = None,
        on_disconnected: Callable[[], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        ws_factory: Callable[..., Any] = websocket.WebSocketApp,
    ):
        self.node_url = node_url.rstrip("/")
        self.timeout_config = timeout_config or TimeoutConfig()
        self.reconnect_config = reconnect_config or ReconnectConfig()
        self.on_connected = on_connected
        self.on_disconnected = on_disconnected
        self.on_error = on_error
        self._ws_factory = ws_factory
        self._loop = loop

        self._ids = itertools.count(1)
        self._pending: dict[int, tuple[asyncio.Future[Any], str]] = {}
        self._pending_subscriptions: dict[int, _Subscription] = {}
        # Setups that timed out; a late ack is unsubscribed right away.
        self._abandoned_subscriptions: dict[int, _Subscription] = {}
        self._subscriptions: dict[str, _Subscription] = {}
        self._active: list[_Subscription] = []
        self._ws: Any = None
        self._ws_thread: threading.Thread | None = None
        self._running = False
        self._connected = False
        self._connected_event: asyncio.Event | None = None
        self._reconnect_delay = self.reconnect_config.reconnect_delay

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    async def connect(self) -> None:
        self._get_loop()
        if self._connected_event is None:
            self._connected_event = asyncio.Event()

        if not self._running:
            self._running = True
            self._ws_thread = threading.Thread(target=self._run_forever, daemon=True)
            self._ws_thread.start()
            logger.info("Ledger RPC client started for %s", self.node_url)

        try:
            await asyncio.wait_for(
                self._connected_event.wait(), self.timeout_config.connect_timeout
            )
        except asyncio.TimeoutError as e:
            raise NetworkError(
                error_type=NetworkErrorType.TIMEOUT,
                message=f"Connection timeout. Node may be unavailable: {self.node_url}",
                original_error=e,
            ) from e

    def close(self) -> None:
        self._running = False
        if self._ws is not None:
            try:
                self._ws.close()
            except Exception as e:
                logger.debug("Error closing websocket: %s", e)
        self._mark_disconnected()
        logger.info("Ledger RPC client stopped")

    def _run_forever(self) -> None:
        while self._running:
            try:
                self._ws = self._ws_factory(
                    self.node_url,
                    on_message=self._on_ws_message,
                    on_error=self._on_ws_error,
                    on_close=self._on_ws_close,
                    on_open=self._on_ws_open,
                )
                self._ws.run_forever()
            except Exception as e:
                logger.error("WebSocket connection failed: %s", e)

            if not (self._running and self.reconnect_config.auto_reconnect):
                break

            logger.info("Scheduling reconnect in %.1f seconds", self._reconnect_delay)
            time.sleep(self._reconnect_delay)
            self._reconnect_delay = self.reconnect_config.next_delay(
                self._reconnect_delay
            )

    def _on_ws_open(self, ws) -> None:
        logger.info("WebSocket connection opened to %s", self.node_url)
        self._get_loop().call_soon_threadsafe(self._handle_open)

    def _on_ws_message(self, ws, message: str) -> None:
        try:
            data = json.loads(message)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse WebSocket message: %s", e)
            return
        self._get_loop().call_soon_threadsafe(self._dispatch, data)

    def _on_ws_error(self, ws, error) -> None:
        logger.error("WebSocket error: %s", error)
        if self.on_error is not None:
            self._get_loop().call_soon_threadsafe(self.on_error, error)

    def _on_ws_close(self, ws, close_status_code, close_msg) -> None:
        logger.info("WebSocket closed: code=%s, msg=%s", close_status_code, close_msg)
        self._get_loop().call_soon_threadsafe(self._mark_disconnected)

    def _handle_open(self) -> None:
        self._connected = True
        self._reconnect_delay = self.reconnect_config.reconnect_delay
        if self._connected_event is not None:
            self._connected_event.set()
        for sub in list(self._active):
            self._send_subscribe(sub)
        if self.on_connected is not None:
            self.on_connected()

    def _mark_disconnected(self) -> None:
        was_connected = self._connected
        self._connected = False
        if self._connected_event is not None:
            self._connected_event.clear()

        for future, method in self._pending.values():
            if not future.done():
                future.set_exception(
                    NetworkError(
                        error_type=NetworkErrorType.CONNECTION_ERROR,
                        message=f"{method}: connection closed before a response arrived",
                    )
                )
        self._pending.clear()
        self._pending_subscriptions.clear()
        # Node-side subscriptions die with the connection.
        self._abandoned_subscriptions.clear()
        self._subscriptions.clear()
        for sub in list(self._active):
            sub.remote_id = None
            if not sub.resubscribe:
                self._active.remove(sub)
                self._notify_closed(sub)

        if was_connected and self.on_disconnected is not None:
            self.on_disconnected()

    def _dispatch(self, data: dict[str, Any]) -> None:
        if "id" in data and data["id"] is not None:
            self._handle_response(data)
            return

        params = data.get("params")
        if not isinstance(params, dict) or "subscription" not in params:
            logger.debug("Ignoring unexpected message: %s", data.get("method"))
            return

        sub = self._subscriptions.get(str(params["subscription"]))
        if sub is None:
            logger.debug("Notification for unknown subscription %s", params["subscription"])
            return
        try:
            sub.callback(params.get("result"))
        except Exception as e:
            logger.error("Error in subscription callback for %s: %s", sub.method, e)

    def _notify_closed(self, sub: _Subscription) -> None:
        if sub.on_closed is None:
            return
        error = NetworkError(
            error_type=NetworkErrorType.CONNECTION_ERROR,
            message=f"{sub.method}: connection closed before the stream finished",
        )
        try:
            sub.on_closed(error)
        except Exception as e:
            logger.error("Error in close callback for %s: %s", sub.method, e)

    def _drop_late_subscription(self, sub: _Subscription, data: dict[str, Any]) -> None:
        if "result" not in data:
            return
        remote_id = str(data["result"])
        logger.info("Late ack for %s (id=%s), unsubscribing", sub.method, remote_id)
        try:
            self._send(sub.unsubscribe_method, [remote_id])
        except NetworkError as e:
            logger.warning("Failed to unsubscribe %s: %s", remote_id, e)

    def _handle_response(self, data: dict[str, Any]) -> None:
        request_id = data["id"]
        abandoned = self._abandoned_subscriptions.pop(request_id, None)
        if abandoned is not None:
            self._drop_late_subscription(abandoned, data)
            return

        sub = self._pending_subscriptions.pop(request_id, None)
        if sub is not None and "result" in data:
            # Register before waking the caller so that notifications queued
            # right behind this response are not lost.
            sub.remote_id = str(data["result"])
            self._subscriptions[sub.remote_id] = sub

        pending = self._pending.pop(request_id, None)
        if pending is None:
            if sub is not None and "error" in data:
                logger.warning(
                    "Resubscribe to %s failed: %s", sub.method, data["error"]
                )
            return

        future, method = pending
        if future.done():
            return
        if "error" in data:
            future.set_exception(rpc_error_from_payload(data["error"], method))
        else:
            future.set_result(data.get("result"))

    def _send(self, method: str, params: list[Any]) -> int:
        if not self._connected or self._ws is None:
            raise NetworkError(
                error_type=NetworkErrorType.CONNECTION_ERROR,
                message=f"{method}: not connected to {self.node_url}",
            )
        request_id = next(self._ids)
        message = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        self._ws.send(json.dumps(message))
        return request_id

    def _send_subscribe(self, sub: _Subscription) -> int:
        request_id = self._send(sub.method, sub.params)
        self._pending_subscriptions[request_id] = sub
        return request_id

    async def subscribe(
        self,
        method: str,
        params: list[Any],
        unsubscribe_method: str,
        callback: Callable[[Any], None],
        resubscribe: bool = True,
        on_closed: Callable[[NetworkError], None] | None = None,
    ) -> Callable[[], None]:
        """Open a pub/sub stream and return its unsubscribe callable.

        ``resubscribe=False`` marks a one-shot stream: on disconnect it is
        dropped and ``on_closed`` receives the connection error.
        """
        loop = self._get_loop()
        sub = _Subscription(
            method, params, unsubscribe_method, callback, resubscribe, on_closed
        )
        request_id = self._send_subscribe(sub)
        future: asyncio.Future[Any] = loop.create_future()
        self._pending[request_id] = (future, method)
        try:
            await asyncio.wait_for(future, self.timeout_config.read_timeout)
        except asyncio.TimeoutError as e:
            self._pending.pop(request_id, None)
            if self._pending_subscriptions.pop(request_id, None) is not None:
                self._abandoned_subscriptions[request_id] = sub
            elif sub.remote_id is not None:
                self._release(sub)
            raise NetworkError(
                error_type=NetworkErrorType.TIMEOUT,
                message=f"{method}: subscription not acknowledged",
                original_error=e,
            ) from e

        if not self._connected:
            # Acked, then the socket dropped before this coroutine resumed.
            raise NetworkError(
                error_type=NetworkErrorType.CONNECTION_ERROR,
                message=f"{method}: connection closed during setup",
            )
        self._active.append(sub)
        logger.debug("Subscribed via %s (id=%s)", method, sub.remote_id)

        def unsubscribe() -> None:
            self._release(sub)

        return unsubscribe

    def _release(self, sub: _Subscription) -> None:
        if sub in self._active:
            self._active.remove(sub)
        remote_id = sub.remote_id
        sub.remote_id = None
        if remote_id is None:
            return
        self._subscriptions.pop(remote_id, None)
        if not self._connected:
            return
        try:
            self._send(sub.unsubscribe_method, [remote_id])
        except NetworkError as e:
            logger.warning("Failed to unsubscribe %s: %s", remote_id, e)
