"""Keyed live subscriptions to remote ledger state.

``SubscriptionManager`` opens one stream per (query kind, address) and wraps
the ledger's unsubscribe callable in a ``SubscriptionHandle``.
``KeyedSubscription`` is the owning scope: it follows a single "current key",
releases the previous handle on every key change and drops any update that
was requested for a key that is no longer current.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from ramp_wallet.shared.protocols import LedgerQueryService, QueryKind, Unsubscribe

logger = logging.getLogger(__name__)


class SubscriptionSetupError(Exception):
    def __init__(self, query_kind: QueryKind, key: str, cause: Exception):
        super().__init__(f"Failed to subscribe to {query_kind.value}({key}): {cause}")
        self.query_kind = query_kind
        self.key = key
        self.cause = cause


@dataclass(frozen=True)
class SubscriptionUpdate:
    query_kind: QueryKind
    key: str
    value: Any


class SubscriptionHandle:
    """Cancellable live query. ``close()`` unsubscribes exactly once."""

    def __init__(self, query_kind: QueryKind, key: str, unsubscribe: Unsubscribe):
        self.query_kind = query_kind
        self.key = key
        self._unsubscribe: Unsubscribe | None = unsubscribe

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def close(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is None:
            return
        try:
            unsubscribe()
        except Exception as e:
            logger.error(
                "Error while unsubscribing %s(%s): %s", self.query_kind.value, self.key, e
            )
        else:
            logger.debug("Unsubscribed %s(%s)", self.query_kind.value, self.key)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<SubscriptionHandle {self.query_kind.value}({self.key}) {state}>"


class SubscriptionManager:
    def __init__(self, query_service: LedgerQueryService):
        self._query_service = query_service

    async def subscribe(
        self,
        query_kind: QueryKind,
        key: str | None,
        on_update: Callable[[SubscriptionUpdate], None],
    ) -> SubscriptionHandle | None:
        if not key:
            return None

        def deliver(value: Any) -> None:
            on_update(SubscriptionUpdate(query_kind, key, value))

        try:
            unsubscribe = await self._query_service.subscribe(query_kind, key, deliver)
        except Exception as e:
            raise SubscriptionSetupError(query_kind, key, e) from e

        logger.debug("Subscribed to %s(%s)", query_kind.value, key)
        return SubscriptionHandle(query_kind, key, unsubscribe)


class KeyedSubscription:
    def __init__(
        self,
        manager: SubscriptionManager,
        query_kind: QueryKind,
        on_update: Callable[[SubscriptionUpdate], None],
        on_error: Callable[[SubscriptionSetupError], None] | None = None,
    ):
        self._manager = manager
        self.query_kind = query_kind
        self._on_update = on_update
        self._on_error = on_error
        self._key: str | None = None
        self._handle: SubscriptionHandle | None = None
        self._generation = 0
        self._pending_generation: int | None = None
        self._closed = False
        self.discarded_updates = 0

    @property
    def current_key(self) -> str | None:
        return self._key

    @property
    def handle(self) -> SubscriptionHandle | None:
        return self._handle

    @property
    def closed(self) -> bool:
        return self._closed

    def _is_live(self, generation: int, key: str) -> bool:
        return not self._closed and generation == self._generation and key == self._key

    async def set_key(self, key: str | None) -> None:
        if self._closed:
            raise RuntimeError("Subscription scope is already closed")

        if key == self._key and (
            self._handle is not None or self._pending_generation == self._generation
        ):
            return

        self._release()
        self._key = key
        self._generation += 1
        generation = self._generation
        if not key:
            return

        def deliver(update: SubscriptionUpdate) -> None:
            if not self._is_live(generation, update.key):
                self.discarded_updates += 1
                logger.debug(
                    "Discarding stale %s update for %s", update.query_kind.value, update.key
                )
                return
            self._on_update(update)

        self._pending_generation = generation
        try:
            handle = await self._manager.subscribe(self.query_kind, key, deliver)
        except SubscriptionSetupError as e:
            logger.warning("%s", e)
            if self._on_error is not None:
                self._on_error(e)
            return
        finally:
            if self._pending_generation == generation:
                self._pending_generation = None

        if handle is None:
            return
        if not self._is_live(generation, key):
            logger.debug("Releasing late subscription for %s", key)
            handle.close()
            return
        self._handle = handle

    def _release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        self._release()

    async def __aenter__(self) -> "KeyedSubscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
