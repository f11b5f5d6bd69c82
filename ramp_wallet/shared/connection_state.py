"""Readiness tracking for Ramp Wallet.

The wallet core is only mounted once both the ledger API and the keyring
report ready. This module tracks the two states and checks node health.
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

import requests

logger = logging.getLogger(__name__)


class ApiState(Enum):
    CONNECTING = "connecting"
    ERROR = "error"
    READY = "ready"


class KeyringState(Enum):
    LOADING = "loading"
    READY = "ready"


@dataclass
class ReadinessStatus:
    api_state: ApiState = ApiState.CONNECTING
    keyring_state: KeyringState = KeyringState.LOADING
    last_check_time: float = 0.0
    last_ready_time: float = 0.0
    error_message: str = ""
    consecutive_failures: int = 0

    @property
    def is_ready(self) -> bool:
        return (
            self.api_state is ApiState.READY
            and self.keyring_state is KeyringState.READY
        )


@dataclass
class ReadinessMonitorConfig:
    check_interval_seconds: float = 30.0
    node_check_timeout: float = 5.0
    failure_threshold: int = 3


StateChangeCallback = Callable[[ReadinessStatus, ReadinessStatus], None]


def check_node_health(health_url: str, timeout: float = 5.0) -> tuple[bool, str]:
    """POST a JSON-RPC ``system_health`` request to the node's HTTP endpoint."""
    payload = {"jsonrpc": "2.0", "id": 1, "method": "system_health", "params": []}
    try:
        response = requests.post(health_url, json=payload, timeout=timeout)
        if response.status_code != 200:
            return False, f"HTTP {response.status_code}"
        data = response.json()
        if "error" in data:
            error = data["error"] or {}
            return False, error.get("message", "RPC error")
        health = data.get("result") or {}
        if health.get("shouldHavePeers") and health.get("peers", 0) == 0:
            logger.warning("Node at %s reports no peers", health_url)
        return True, ""
    except requests.exceptions.Timeout:
        return False, "Health check timed out"
    except requests.exceptions.RequestException as e:
        return False, str(e)
    except ValueError as e:
        return False, f"Invalid health response: {e}"


class ReadinessMonitor:
    def __init__(
        self,
        health_url: str | None,
        config: ReadinessMonitorConfig | None = None,
        on_state_change: StateChangeCallback | None = None,
    ):
        self.health_url = health_url
        self.config = config or ReadinessMonitorConfig()
        self.on_state_change = on_state_change
        self._status = ReadinessStatus()
        self._running = False
        self._monitor_thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def status(self) -> ReadinessStatus:
        with self._lock:
            return replace(self._status)

    @property
    def is_ready(self) -> bool:
        with self._lock:
            return self._status.is_ready

    def _update(self, **changes) -> ReadinessStatus:
        with self._lock:
            old = replace(self._status)
            for name, value in changes.items():
                setattr(self._status, name, value)
            if self._status.is_ready and not old.is_ready:
                self._status.last_ready_time = time.time()
            new = replace(self._status)

        if (old.api_state, old.keyring_state) != (new.api_state, new.keyring_state):
            logger.info(
                "Readiness changed: api=%s keyring=%s",
                new.api_state.value,
                new.keyring_state.value,
            )
            if self.on_state_change:
                try:
                    self.on_state_change(old, new)
                except Exception as e:
                    logger.error("Error in state change callback: %s", e)
        return new

    def set_api_state(self, state: ApiState, error_message: str = "") -> ReadinessStatus:
        return self._update(api_state=state, error_message=error_message)

    def set_keyring_state(self, state: KeyringState) -> ReadinessStatus:
        return self._update(keyring_state=state)

    def check_connection(self) -> ReadinessStatus:
        if not self.health_url:
            return self.status

        healthy, error_msg = check_node_health(
            self.health_url, timeout=self.config.node_check_timeout
        )
        with self._lock:
            failures = 0 if healthy else self._status.consecutive_failures + 1
            previous = self._status.api_state

        if healthy:
            api_state = ApiState.READY
        elif previous is ApiState.READY or failures >= self.config.failure_threshold:
            api_state = ApiState.ERROR
        else:
            api_state = previous

        return self._update(
            api_state=api_state,
            error_message=error_msg,
            consecutive_failures=failures,
            last_check_time=time.time(),
        )

    def start(self) -> None:
        if self._running:
            return

        self._running = True
        self._monitor_thread = threading.Thread(target=self._monitor_loop, daemon=True)
        self._monitor_thread.start()
        logger.info("Readiness monitor started")

    def stop(self) -> None:
        self._running = False
        if self._monitor_thread:
            self._monitor_thread.join(timeout=2.0)
            self._monitor_thread = None
        logger.info("Readiness monitor stopped")

    def _monitor_loop(self) -> None:
        self.check_connection()

        while self._running:
            try:
                time.sleep(self.config.check_interval_seconds)
                if self._running:
                    self.check_connection()
            except Exception as e:
                logger.error("Error in readiness monitor loop: %s", e)


def get_readiness_message(status: ReadinessStatus) -> tuple[str, str]:
    if status.api_state is ApiState.ERROR:
        detail = status.error_message or "The node did not respond."
        return "Connection error", f"Cannot reach the ledger node. {detail}"
    if status.api_state is ApiState.CONNECTING:
        return "Connecting to Substrate", "Waiting for the ledger node to respond."
    if status.keyring_state is KeyringState.LOADING:
        return "Loading accounts", "Loading accounts (please review any extension's authorization)."
    return "Ready", "Connected to the ledger node."
