"""Pytest configuration and fixtures."""

import json
import os
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["EXPLORER_API_KEY"] = ""
os.environ["ALCHEMY_API_KEY"] = ""
os.environ["COINGECKO_API_KEY"] = ""

from chainfolio.chains import DEFAULT_CHAIN_CONFIGS, ChainCatalog, ChainConfig, NetworkTier
from chainfolio.config import Settings, get_settings

ADDRESS = "0x742d35cc6634c0532925a3b844bc454e4438f44e"


def rpc_result(request: httpx.Request, result) -> httpx.Response:
    """JSON-RPC success response echoing the request id."""
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def rpc_body(request: httpx.Request) -> dict:
    return json.loads(request.content)


def query_params(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.url.query.decode()).items()}


def default_chain(chain_id: str, network: NetworkTier = NetworkTier.MAINNET) -> ChainConfig:
    for config in DEFAULT_CHAIN_CONFIGS:
        if config.chain.id == chain_id and config.network == network:
            return config
    raise KeyError(chain_id)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Fresh settings for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any .env file."""
    return Settings(_env_file=None, explorer_api_key="", coingecko_api_key="", alchemy_api_key="")


@pytest.fixture
def catalog() -> ChainCatalog:
    return ChainCatalog()


@pytest.fixture
def ethereum() -> ChainConfig:
    return default_chain("ethereum")


@pytest.fixture
def polygon() -> ChainConfig:
    return default_chain("polygon")


@pytest.fixture
def bitcoin() -> ChainConfig:
    return default_chain("bitcoin")


@pytest_asyncio.fixture
async def http_factory():
    """Build AsyncClients whose requests are answered by a handler function."""
    clients: list[httpx.AsyncClient] = []

    def factory(handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
