"""Shared pytest fixtures for relay8x8 tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from relay8x8.config import AdapterConfig  # noqa: E402
from relay8x8.infra.session_store import InMemorySessionStore  # noqa: E402

_ADAPTER_ENV_VARS = (
    "EIGHTX8_API_KEY",
    "EIGHTX8_SUBACCOUNT_ID",
    "EIGHTX8_BASE_URL",
    "EIGHTX8_HTTP_TIMEOUT",
    "SESSION_TIMEOUT_SECONDS",
    "HIDE_USER_ID",
    "HIDE_SESSION_ID",
    "HASH_ALGORITHM",
    "STRICT_INTERACTIVE",
    "COGNIGY_ENDPOINT_URL",
    "SESSION_STORE_BACKEND",
    "EIGHTX8_WEBHOOK_SECRET",
)


@pytest.fixture(autouse=True)
def _isolate_adapter_env(monkeypatch):
    """Keep developer shell settings out of the tests."""
    for name in _ADAPTER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_webhook_singletons():
    """Drop the lazily built transformer/executor between tests."""
    import relay8x8.api.routes.webhooks_8x8 as webhook_module

    webhook_module._config = None
    webhook_module._transformer = None
    webhook_module._executor = None
    yield
    webhook_module._config = None
    webhook_module._transformer = None
    webhook_module._executor = None


@pytest.fixture
def config() -> AdapterConfig:
    """Fixture credentials; hashing on, default timeout."""
    return AdapterConfig(
        api_key="test-api-key",
        sub_account_id="test-subaccount",
        base_url="https://chatapps.example.test/api/v1/subaccounts",
        cognigy_endpoint_url="https://endpoint.example.test/rest/abc",
    )


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()
