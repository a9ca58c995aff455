"""Tests for market prices and NFT lookups."""

from decimal import Decimal

import httpx
import pytest

from conftest import ADDRESS, query_params
from chainfolio.config import Settings
from chainfolio.errors import (
    MissingCredentialError,
    RateLimitedError,
    UnsupportedOperationError,
    UpstreamUnavailableError,
)
from chainfolio.fetchers.nfts import NftFetcher
from chainfolio.fetchers.prices import PriceFetcher


def coin(coin_id: str, price, image: str = None) -> dict:
    return {
        "id": coin_id,
        "symbol": coin_id[:3],
        "name": coin_id.title(),
        "image": image or f"https://img.example/{coin_id}.png",
        "current_price": price,
    }


class TestPriceFetcher:
    """Tests for batched price lookups."""

    @pytest.mark.asyncio
    async def test_empty_ids_short_circuit(self, http_factory, settings):
        """No ids means no request."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        fetcher = PriceFetcher(http_factory(handler), settings)

        assert await fetcher.fetch_prices_and_icons([]) == {}
        assert await fetcher.fetch_prices_and_icons(["", "  "]) == {}
        assert seen == []

    @pytest.mark.asyncio
    async def test_batched_lookup(self, http_factory, settings):
        """Duplicates collapse into one request; prices and icons are mapped."""
        seen = []

        def handler(request):
            seen.append(query_params(request))
            return httpx.Response(200, json=[coin("ethereum", 3000.5), coin("bitcoin", 65000)])

        fetcher = PriceFetcher(http_factory(handler), settings)
        quotes = await fetcher.fetch_prices_and_icons(["ethereum", "bitcoin", "ethereum"])

        assert len(seen) == 1
        assert seen[0]["ids"] == "bitcoin,ethereum"
        assert seen[0]["vs_currency"] == "usd"
        assert seen[0]["per_page"] == "250"
        assert seen[0]["sparkline"] == "false"
        assert quotes["ethereum"].price == Decimal("3000.5")
        assert quotes["bitcoin"].price == Decimal(65000)
        assert quotes["bitcoin"].icon_url == "https://img.example/bitcoin.png"

    @pytest.mark.asyncio
    async def test_paging(self, http_factory):
        """Ids are split into pages of price_page_size."""
        seen = []

        def handler(request):
            ids = query_params(request)["ids"].split(",")
            seen.append(ids)
            return httpx.Response(200, json=[coin(i, 1) for i in ids])

        settings = Settings(_env_file=None, price_page_size=2)
        fetcher = PriceFetcher(http_factory(handler), settings)
        quotes = await fetcher.fetch_prices_and_icons(["a", "b", "c", "d", "e"])

        assert [len(ids) for ids in seen] == [2, 2, 1]
        assert set(quotes) == {"a", "b", "c", "d", "e"}

    @pytest.mark.asyncio
    async def test_null_price_is_skipped(self, http_factory, settings):
        """Coins without a current price are left out."""
        fetcher = PriceFetcher(
            http_factory(lambda r: httpx.Response(200, json=[coin("dead-coin", None)])), settings
        )

        assert await fetcher.fetch_prices_and_icons(["dead-coin"]) == {}

    @pytest.mark.asyncio
    async def test_demo_key_header(self, http_factory):
        """The demo API key is sent as a header when configured."""
        seen = []

        def handler(request):
            seen.append(request.headers.get("x-cg-demo-api-key"))
            return httpx.Response(200, json=[])

        settings = Settings(_env_file=None, coingecko_api_key="demo")
        await PriceFetcher(http_factory(handler), settings).fetch_prices_and_icons(["ethereum"])

        assert seen == ["demo"]

    @pytest.mark.asyncio
    async def test_rate_limited(self, http_factory, settings):
        """HTTP 429 maps to RateLimitedError."""
        fetcher = PriceFetcher(http_factory(lambda r: httpx.Response(429)), settings)

        with pytest.raises(RateLimitedError) as exc_info:
            await fetcher.fetch_prices_and_icons(["ethereum"])

        assert exc_info.value.upstream == "coingecko"

    @pytest.mark.asyncio
    async def test_server_error(self, http_factory, settings):
        """Other non-2xx maps to UpstreamUnavailableError."""
        fetcher = PriceFetcher(http_factory(lambda r: httpx.Response(500)), settings)

        with pytest.raises(UpstreamUnavailableError):
            await fetcher.fetch_prices_and_icons(["ethereum"])

    @pytest.mark.asyncio
    async def test_token_prices_by_symbol(self, http_factory, settings):
        """Symbols are mapped to market ids and back."""
        def handler(request):
            return httpx.Response(200, json=[coin("usd-coin", 1), coin("tether", "0.999")])

        fetcher = PriceFetcher(http_factory(handler), settings)
        prices = await fetcher.fetch_token_prices(["usdc", "USDT", "NOPE"])

        assert prices == {"USDC": Decimal(1), "USDT": Decimal("0.999")}


class TestNftFetcher:
    """Tests for Alchemy NFT lookups."""

    @pytest.mark.asyncio
    async def test_fetch_nfts(self, http_factory, ethereum):
        """NFTs are mapped with image, name and collection fallbacks."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ownedNfts": [
                {
                    "contract": {"address": "0xbc4c", "name": "Bored Ape Yacht Club", "symbol": "BAYC"},
                    "tokenId": "1234",
                    "name": "Bored Ape #1234",
                    "description": "Rare",
                    "image": {"thumbnailUrl": "https://thumb", "cachedUrl": "https://cached"},
                },
                {
                    "contract": {"address": "0xdead", "name": None, "symbol": "XYZ"},
                    "tokenId": "7",
                    "title": "Titled",
                    "image": {"originalUrl": "https://original"},
                },
                {
                    "contract": {"address": "0xbeef"},
                    "tokenId": "9",
                },
            ]})

        settings = Settings(_env_file=None, alchemy_api_key="alchemy-key")
        nfts = await NftFetcher(http_factory(handler), settings).fetch_nfts(ADDRESS, ethereum)

        request = seen[0]
        assert request.url.path.endswith("/alchemy-key/getNFTsForOwner")
        assert query_params(request) == {"owner": ADDRESS, "withMetadata": "true", "pageSize": "100"}

        assert [n.name for n in nfts] == ["Bored Ape #1234", "Titled", "NFT #9"]
        assert [n.image_url for n in nfts] == ["https://thumb", "https://original", None]
        assert [n.collection_name for n in nfts] == ["Bored Ape Yacht Club", "XYZ", "Unknown Collection"]
        assert all(n.owner_address == ADDRESS for n in nfts)

    @pytest.mark.asyncio
    async def test_missing_key(self, http_factory, settings, ethereum):
        """No Alchemy key is a missing credential."""
        fetcher = NftFetcher(http_factory(lambda r: httpx.Response(500)), settings)

        with pytest.raises(MissingCredentialError) as exc_info:
            await fetcher.fetch_nfts(ADDRESS, ethereum)

        assert exc_info.value.name == "ALCHEMY_API_KEY"

    @pytest.mark.asyncio
    async def test_other_chains_unsupported(self, http_factory, polygon):
        """Only Ethereum mainnet is supported."""
        settings = Settings(_env_file=None, alchemy_api_key="alchemy-key")
        fetcher = NftFetcher(http_factory(lambda r: httpx.Response(500)), settings)

        with pytest.raises(UnsupportedOperationError):
            await fetcher.fetch_nfts(ADDRESS, polygon)
