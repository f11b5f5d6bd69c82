"""Tests for keyed ledger subscriptions."""

import asyncio
from unittest.mock import MagicMock

import pytest

from ramp_wallet.features.subscriptions.service import (
    KeyedSubscription,
    SubscriptionHandle,
    SubscriptionManager,
    SubscriptionSetupError,
    SubscriptionUpdate,
)
from ramp_wallet.shared.protocols import QueryKind

BALANCE = QueryKind.SYSTEM_ACCOUNT


class TestSubscriptionHandle:
    def test_close_unsubscribes_once(self):
        unsubscribe = MagicMock()
        handle = SubscriptionHandle(BALANCE, "K1", unsubscribe)

        handle.close()
        handle.close()

        unsubscribe.assert_called_once_with()
        assert handle.closed is True

    def test_close_logs_unsubscribe_errors(self):
        unsubscribe = MagicMock(side_effect=RuntimeError("socket gone"))
        handle = SubscriptionHandle(BALANCE, "K1", unsubscribe)

        handle.close()

        assert handle.closed is True

    def test_repr_shows_state(self):
        handle = SubscriptionHandle(BALANCE, "K1", MagicMock())
        assert "open" in repr(handle)
        handle.close()
        assert "closed" in repr(handle)


class TestSubscriptionManager:
    def test_empty_key_opens_nothing(self, query_service):
        manager = SubscriptionManager(query_service)

        assert asyncio.run(manager.subscribe(BALANCE, "", MagicMock())) is None
        assert asyncio.run(manager.subscribe(BALANCE, None, MagicMock())) is None
        assert query_service.calls == []

    def test_updates_are_tagged_with_key(self, query_service):
        manager = SubscriptionManager(query_service)
        received = []

        async def scenario():
            handle = await manager.subscribe(BALANCE, "K1", received.append)
            query_service.push(BALANCE, "K1", {"data": {"free": 5}})
            return handle

        handle = asyncio.run(scenario())

        assert handle.key == "K1"
        assert received == [SubscriptionUpdate(BALANCE, "K1", {"data": {"free": 5}})]

    def test_setup_failure_is_wrapped(self, query_service):
        query_service.failures["K1"] = ConnectionError("refused")
        manager = SubscriptionManager(query_service)

        with pytest.raises(SubscriptionSetupError) as exc_info:
            asyncio.run(manager.subscribe(BALANCE, "K1", MagicMock()))

        assert exc_info.value.key == "K1"
        assert isinstance(exc_info.value.cause, ConnectionError)


class TestKeyedSubscription:
    def test_key_change_releases_previous_handle(self, query_service):
        received = []
        keyed = KeyedSubscription(SubscriptionManager(query_service), BALANCE, received.append)

        async def scenario():
            await keyed.set_key("K1")
            await keyed.set_key("K2")
            query_service.push(BALANCE, "K1", "old")
            query_service.push(BALANCE, "K2", "new")

        asyncio.run(scenario())

        assert query_service.unsubscribed == [(BALANCE, "K1")]
        assert keyed.current_key == "K2"
        assert [update.value for update in received] == ["new"]
        assert keyed.discarded_updates == 1

    def test_late_setup_for_previous_key_is_closed(self, query_service):
        received = []
        keyed = KeyedSubscription(SubscriptionManager(query_service), BALANCE, received.append)

        async def scenario():
            gate = asyncio.Event()
            query_service.gates["K1"] = gate
            first = asyncio.create_task(keyed.set_key("K1"))
            await asyncio.sleep(0)

            await keyed.set_key("K2")
            gate.set()
            await first

            query_service.push(BALANCE, "K1", "stale")
            query_service.push(BALANCE, "K2", "fresh")

        asyncio.run(scenario())

        assert (BALANCE, "K1") in query_service.unsubscribed
        assert keyed.handle is not None
        assert keyed.handle.key == "K2"
        assert received == [SubscriptionUpdate(BALANCE, "K2", "fresh")]
        assert keyed.discarded_updates == 1

    def test_same_key_does_not_resubscribe(self, query_service):
        keyed = KeyedSubscription(SubscriptionManager(query_service), BALANCE, MagicMock())

        async def scenario():
            await keyed.set_key("K1")
            await keyed.set_key("K1")

        asyncio.run(scenario())

        assert query_service.calls == [(BALANCE, "K1")]

    def test_clearing_key_releases_handle(self, query_service):
        keyed = KeyedSubscription(SubscriptionManager(query_service), BALANCE, MagicMock())

        async def scenario():
            await keyed.set_key("K1")
            await keyed.set_key(None)

        asyncio.run(scenario())

        assert keyed.handle is None
        assert query_service.unsubscribed == [(BALANCE, "K1")]

    def test_setup_failure_reports_error_and_keeps_state(self, query_service):
        query_service.failures["K1"] = ConnectionError("refused")
        on_update = MagicMock()
        on_error = MagicMock()
        keyed = KeyedSubscription(
            SubscriptionManager(query_service), BALANCE, on_update, on_error
        )

        asyncio.run(keyed.set_key("K1"))

        on_error.assert_called_once()
        assert isinstance(on_error.call_args[0][0], SubscriptionSetupError)
        on_update.assert_not_called()
        assert keyed.handle is None

    def test_close_discards_further_updates(self, query_service):
        received = []
        keyed = KeyedSubscription(SubscriptionManager(query_service), BALANCE, received.append)

        async def scenario():
            async with keyed:
                await keyed.set_key("K1")
            query_service.push(BALANCE, "K1", "after close")

        asyncio.run(scenario())

        assert keyed.closed is True
        assert received == []
        assert query_service.unsubscribed == [(BALANCE, "K1")]

    def test_set_key_after_close_raises(self, query_service):
        keyed = KeyedSubscription(SubscriptionManager(query_service), BALANCE, MagicMock())
        keyed.close()

        with pytest.raises(RuntimeError):
            asyncio.run(keyed.set_key("K1"))
