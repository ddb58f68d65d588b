"""
Shared pytest fixtures for the ballot engine tests.

Engines get a controllable clock so the voting deadline can be crossed
without sleeping; wallets use small RSA keys to keep key generation fast.
"""

import pytest

from ballot_client.connection import BallotClient, LocalTransport
from ballot_client.wallet import Wallet
from ballot_server.engine import BallotEngine
from ballot_server.handler import Session

ADMIN = "0xadmin"
START_TIME = 1_700_000_000.0
TEST_KEY_SIZE = 1024


class FakeClock:
    def __init__(self, now=START_TIME):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    return BallotEngine(ADMIN, clock=clock)


@pytest.fixture
def election(engine):
    """Alice, Bob and Charlie registered, voting not yet open."""
    for name in ("Alice", "Bob", "Charlie"):
        engine.register_candidate(name, ADMIN)
    return engine


@pytest.fixture
def open_election(election):
    election.open_voting(600, ADMIN)
    for voter in ("v1", "v2", "v3"):
        election.register_voter(voter)
    return election


def make_wallet(path):
    return Wallet(str(path)).init(key_size=TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def wallet_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("wallets")


@pytest.fixture(scope="session")
def admin_wallet(wallet_dir):
    return make_wallet(wallet_dir / "admin.json")


@pytest.fixture(scope="session")
def voter_wallets(wallet_dir):
    return [make_wallet(wallet_dir / f"voter{i}.json") for i in range(1, 6)]


@pytest.fixture
def connect_to():
    """Returns ``connect(engine, wallet)`` giving an authenticated in-process client."""
    def connect(engine, wallet):
        client = BallotClient(LocalTransport(Session(engine)), wallet)
        client.authenticate()
        return client
    return connect


def pytest_configure(config):
    config.addinivalue_line("markers", "concurrency: tests that hammer the engine from threads")
