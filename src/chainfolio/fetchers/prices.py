"""USD prices and icons from the CoinGecko markets endpoint.

API Docs: https://docs.coingecko.com/reference/coins-markets
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

import httpx

from chainfolio.chains import market_id_for_symbol
from chainfolio.config import Settings, get_settings
from chainfolio.http import request_json
from chainfolio.models import PriceQuote

logger = logging.getLogger(__name__)


def _parse_price(value) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price < 0:
        return None
    return price


class PriceFetcher:
    """Batched market-data lookups.

    One request per page of up to ``price_page_size`` ids; an empty id set
    never touches the network.
    """

    def __init__(self, http: httpx.AsyncClient, settings: Optional[Settings] = None):
        self.http = http
        self.settings = settings or get_settings()

    @property
    def _headers(self) -> dict[str, str]:
        if self.settings.coingecko_api_key:
            return {"x-cg-demo-api-key": self.settings.coingecko_api_key}
        return {}

    async def fetch_prices_and_icons(self, market_ids: Iterable[str]) -> dict[str, PriceQuote]:
        """Resolve USD price and icon URL for each market id.

        Args:
            market_ids: Market ids (duplicates and blanks are ignored)

        Returns:
            Lookup of market id to quote; ids without a price are absent

        Raises:
            RateLimitedError: HTTP 429
            UpstreamUnavailableError: Any other failure to reach the API
        """
        unique_ids = sorted({mid.strip() for mid in market_ids if mid and mid.strip()})
        if not unique_ids:
            return {}

        page_size = self.settings.price_page_size
        url = f"{self.settings.coingecko_api_url.rstrip('/')}/coins/markets"
        quotes: dict[str, PriceQuote] = {}

        for start in range(0, len(unique_ids), page_size):
            chunk = unique_ids[start:start + page_size]
            params = {
                "vs_currency": "usd",
                "ids": ",".join(chunk),
                "order": "market_cap_desc",
                "per_page": str(page_size),
                "page": "1",
                "sparkline": "false",
            }
            coins = await request_json(
                self.http,
                "GET",
                url,
                params=params,
                headers=self._headers,
                upstream="coingecko",
                expect=list,
            )

            for coin in coins:
                if not isinstance(coin, dict) or not coin.get("id"):
                    continue
                price = _parse_price(coin.get("current_price"))
                if price is None:
                    continue
                quotes[coin["id"]] = PriceQuote(price=price, icon_url=coin.get("image") or None)

        logger.debug(f"Resolved {len(quotes)}/{len(unique_ids)} market prices")
        return quotes

    async def fetch_token_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """Get USD prices keyed by upper-cased symbol."""
        ids_by_symbol = {s.upper(): market_id_for_symbol(s) for s in symbols if s}
        quotes = await self.fetch_prices_and_icons(ids_by_symbol.values())
        return {
            symbol: quotes[market_id].price
            for symbol, market_id in ids_by_symbol.items()
            if market_id in quotes
        }
