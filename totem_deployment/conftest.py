"""Shared fixtures: an in-memory network layer and verifier that record every call"""

import pytest

from .errors import RemoteCallError
from .network import NetworkContext

LOCAL_CHAIN_ID = 31337
PUBLIC_CHAIN_ID = 11155111
DEPLOYER_ADDRESS = "0x00000000000000000000000000000000000000d0"


class FakeHandle:
    def __init__(self, contract, address):
        self.contract = contract
        self.address = address


class RecordingNetwork:
    """
    Confirms every operation immediately and appends it to `events`

    `fail_at` makes the n-th remote operation (1-based, counting creations,
    reads and transactions) raise the given exception instead.
    """

    def __init__(self, events, fail_at=None, error=None):
        self.events = events
        self.fail_at = fail_at
        self.error = error or RemoteCallError("execution reverted")
        self.operations = 0
        self.deployed = 0

    def _tick(self):
        self.operations += 1
        if self.fail_at is not None and self.operations == self.fail_at:
            raise self.error

    def create(self, contract, args):
        self._tick()
        self.deployed += 1
        handle = FakeHandle(contract, f"0x{self.deployed:040x}")
        self.events.append(("create", contract, tuple(args)))
        return handle

    def attach(self, contract, address):
        self.events.append(("attach", contract, address))
        return FakeHandle(contract, address)

    def call(self, handle, method, args=()):
        self._tick()
        self.events.append(("call", handle.contract, method, tuple(args)))
        return f"{method}-id"

    def transact(self, handle, method, args=()):
        self._tick()
        self.events.append(("transact", handle.contract, method, tuple(args)))
        return {"status": 1}


class RecordingVerifier:
    def __init__(self, events, error=None):
        self.events = events
        self.error = error

    def verify(self, instance, args, context):
        self.events.append(("verify", instance.contract, instance.address, tuple(args)))
        if self.error is not None:
            raise self.error


@pytest.fixture
def events():
    return []


@pytest.fixture
def local_context():
    return NetworkContext(chain_id=LOCAL_CHAIN_ID, account=DEPLOYER_ADDRESS, name="hardhat")


@pytest.fixture
def public_context():
    return NetworkContext(chain_id=PUBLIC_CHAIN_ID, account=DEPLOYER_ADDRESS, name="sepolia")


@pytest.fixture
def network(events):
    return RecordingNetwork(events)


@pytest.fixture
def verifier(events):
    return RecordingVerifier(events)
