import tempfile
from pathlib import Path

import pytest

from ramp_wallet.shared.config import RecipientDescriptor
from ramp_wallet.shared.protocols import TxProgress

ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"
CHARLIE = "5FLSigC9HGRKVhB9FiEo4Y3koPsNmBmLJbpXg2mp1hXcS59Y"


class FakeQueryService:
    """Records subscriptions and lets tests push values or hold setup open."""

    def __init__(self):
        self.calls = []
        self.callbacks = {}
        self.unsubscribed = []
        self.gates = {}
        self.failures = {}

    async def subscribe(self, query_kind, key, on_value):
        self.calls.append((query_kind, key))
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.failures:
            raise self.failures[key]
        self.callbacks.setdefault((query_kind, key), []).append(on_value)

        def unsubscribe():
            self.unsubscribed.append((query_kind, key))

        return unsubscribe

    def push(self, query_kind, key, value):
        # Delivers to every callback ever registered, like a notification
        # already in flight when the unsubscribe was sent.
        for callback in list(self.callbacks.get((query_kind, key), [])):
            callback(value)


class FakeSubmitter:
    """Yields a scripted list of ``TxProgress`` items."""

    def __init__(self, progress=None, error=None):
        self.progress = list(
            progress
            if progress is not None
            else [
                TxProgress("Ready"),
                TxProgress("InBlock", block_hash="0xabc"),
                TxProgress("Finalized", block_hash="0xabc"),
            ]
        )
        self.error = error
        self.calls = []
        self.gate = None

    async def submit(self, pallet, call, params, signer):
        self.calls.append((pallet, call, params, signer))
        for item in self.progress:
            if self.gate is not None:
                await self.gate.wait()
            yield item
        if self.error is not None:
            raise self.error


@pytest.fixture
def recipient():
    return RecipientDescriptor(name="Alice", address=ALICE, iban="DE89370400440532013000")


@pytest.fixture
def query_service():
    return FakeQueryService()


@pytest.fixture
def submitter():
    return FakeSubmitter()


@pytest.fixture(autouse=True)
def isolate_wallet_storage(monkeypatch):
    """Keep config and logs out of the real home directory."""
    with tempfile.TemporaryDirectory(prefix="ramp-wallet-test-") as tmp_dir:
        monkeypatch.setenv("RAMP_WALLET_DIR", str(Path(tmp_dir)))
        monkeypatch.delenv("RAMP_WALLET_NODE_URL", raising=False)
        yield


@pytest.fixture
def make_submitter():
    return FakeSubmitter
