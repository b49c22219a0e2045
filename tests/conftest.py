"""
Pytest Configuration
Shared identities, metadata and deterministic nonces for the signing tests.
"""

import os
import pytest

from eth_account import Account

from hlsign.hl_meta import AssetIndexResolver, StaticMetaSource
from hlsign.identity import LocalKeyIdentity

# Throwaway key used only by the test suite
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_NONCE = 1700000000000

TEST_UNIVERSE = {
    "BTC": 0,
    "ETH": 4,
    "SOL": 5,
    "PURR/USDC": 10000,
}


class CountingMetaSource(StaticMetaSource):
    """Static snapshot that records how often it was read."""

    def __init__(self, mapping):
        super().__init__(mapping)
        self.calls = 0

    async def snapshot(self):
        self.calls += 1
        return await super().snapshot()


@pytest.fixture
def test_account():
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def identity():
    return LocalKeyIdentity.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def meta_source():
    return CountingMetaSource(TEST_UNIVERSE)


@pytest.fixture
def resolver(meta_source):
    return AssetIndexResolver(meta_source)


@pytest.fixture
def fixed_nonce():
    """Nonce factory that always returns TEST_NONCE."""
    return lambda: TEST_NONCE


@pytest.fixture(autouse=True)
def setup_test_env():
    """Keep config tests independent of the developer's .env."""
    keys = ["HL_NETWORK", "HL_PRIVATE_KEY", "HL_ACCOUNT_ADDRESS", "HL_VAULT_ADDRESS",
            "HL_REST_URL", "HL_META_TTL_S", "HL_SIGNATURE_CHAIN_ID"]
    saved = {k: os.environ.pop(k) for k in keys if k in os.environ}

    yield

    for k in keys:
        os.environ.pop(k, None)
    os.environ.update(saved)


def pytest_configure(config):
    """Configure pytest with deterministic settings."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "deterministic: marks tests as deterministic")
