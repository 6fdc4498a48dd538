import logging
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
import httpx
from httpx import ASGITransport, AsyncClient

from walletauth.api import create_app
from walletauth.config import Settings
from walletauth.keys import KeyEncoding, generate_keypair
from walletauth.registry import InMemoryAuthConfigStore, WalletOwnershipRegistry

logger = logging.getLogger(__name__)

WALLET_ID = "w1"
APP_ID = "app123"


def _rpc_payload_json(**transaction_overrides) -> dict:
    transaction = {"to": "0xabc0000000000000000000000000000000000001", "data": "0x", "value": "0"}
    transaction.update(transaction_overrides)
    return {
        "version": 1,
        "method": "POST",
        "url": f"https://api.example.com/v1/wallets/{WALLET_ID}/rpc",
        "body": {
            "method": "eth_sendTransaction",
            "caip2": "eip155:84532",
            "chain_type": "ethereum",
            "sponsor": True,
            "params": {"transaction": transaction},
        },
        "headers": {"privy-app-id": APP_ID},
    }


@pytest.fixture
def auth_key():
    return generate_keypair(KeyEncoding.PKCS8)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        host="127.0.0.1",
        port=8002,
        log_level="info",
        reload=False,
        privy_app_id=APP_ID,
        privy_app_secret="secret",
        privy_api_url="https://api.example.com",
        default_caip2="eip155:84532",
        key_encoding=KeyEncoding.PKCS8,
        temp_key_ttl_seconds=900,
    )


@pytest.fixture
def auth_store() -> InMemoryAuthConfigStore:
    return InMemoryAuthConfigStore()


class FakeWalletApi:
    """Records wallet API requests and answers with a fixed response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: dict = {"data": {"hash": "0xdead"}}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture
def wallet_api() -> FakeWalletApi:
    return FakeWalletApi()


@pytest_asyncio.fixture
async def api_client(test_settings, auth_store, wallet_api) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(
        settings=test_settings,
        auth_store=auth_store,
        ownership=WalletOwnershipRegistry(),
        wallet_transport=httpx.MockTransport(wallet_api.handler),
    )
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client


@pytest.fixture
def make_rpc_payload():
    """Factory for the wallet RPC signing payload as plain JSON; kwargs override transaction fields."""
    return _rpc_payload_json
