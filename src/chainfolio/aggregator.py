"""Portfolio aggregation across chains.

The aggregator fans out to the per-chain fetchers concurrently, joins every
branch, then merges the independent results:

- balances: one price lookup for the whole batch, a zero-balance asset for
  any request that fails, output sorted by display name
- transactions: native and token streams from every enabled mainnet EVM
  chain, deduplicated and newest first; an error is raised only when no
  chain produced anything
"""

import asyncio
import logging
from decimal import Decimal
from typing import Iterable, Mapping, Optional

import httpx

from chainfolio.chains import ChainCatalog, ChainConfig, ChainFamily
from chainfolio.config import Settings, get_settings
from chainfolio.errors import AggregationError, MissingCredentialError, UnsupportedOperationError
from chainfolio.fetchers.base import ChainBackend
from chainfolio.fetchers.factory import create_backends
from chainfolio.fetchers.nfts import NftFetcher
from chainfolio.fetchers.prices import PriceFetcher
from chainfolio.fetchers.tokens import DEFAULT_TOKEN_DECIMALS, TokenFetcher
from chainfolio.models import Asset, BalanceRequest, Nft, PriceQuote, TokenMetadata, Transaction
from chainfolio.numeric import ZERO
from chainfolio.rpc import EvmRpcClient

logger = logging.getLogger(__name__)


class PortfolioAggregator:
    """Multi-chain balance, history and NFT aggregation.

    All collaborators share the injected HTTP client; any of them can be
    replaced (tests pass fakes).
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: Optional[Settings] = None,
        catalog: Optional[ChainCatalog] = None,
        backends: Optional[Mapping[ChainFamily, ChainBackend]] = None,
        tokens: Optional[TokenFetcher] = None,
        prices: Optional[PriceFetcher] = None,
        nfts: Optional[NftFetcher] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog or ChainCatalog.from_settings(self.settings)
        self.rpc = EvmRpcClient(http)
        self.backends = dict(backends or create_backends(http, self.settings, self.rpc, environ))
        self.tokens = tokens or TokenFetcher(self.rpc)
        self.prices = prices or PriceFetcher(http, self.settings)
        self.nfts = nfts or NftFetcher(http, self.settings)

    def backend_for(self, chain: ChainConfig) -> ChainBackend:
        return self.backends[chain.family]

    def native_requests(
        self, address: str, chains: Optional[Iterable[ChainConfig]] = None
    ) -> list[BalanceRequest]:
        """One native-balance request per chain (enabled catalog entries by default)."""
        chains = self.catalog.enabled() if chains is None else chains
        return [BalanceRequest(chain=chain, address=address.strip()) for chain in chains]

    # ======================
    # Balances
    # ======================

    async def aggregate_balances(self, requests: Iterable[BalanceRequest]) -> list[Asset]:
        """Fetch every requested balance and price it.

        Args:
            requests: Native or token balance requests

        Returns:
            Assets sorted by display name; failed requests report balance 0
        """
        requests = list(requests)
        if not requests:
            return []

        market_ids = {r.market_id for r in requests if r.market_id}
        quotes, *assets = await asyncio.gather(
            self._fetch_quotes(market_ids),
            *(self._fetch_asset(request) for request in requests),
        )

        priced = []
        for request, asset in zip(requests, assets):
            quote = quotes.get(request.market_id) if request.market_id else None
            if quote is not None:
                asset = asset.model_copy(
                    update={"price": quote.price, "icon_url": quote.icon_url or asset.icon_url}
                )
            priced.append(asset)

        priced.sort(key=lambda a: a.name)

        total = sum((a.total_value for a in priced), ZERO)
        logger.info(f"Aggregated {len(priced)} balances with {len(quotes)} prices, total ${total:.2f}")
        return priced

    async def _fetch_quotes(self, market_ids: set[str]) -> dict[str, PriceQuote]:
        try:
            return await self.prices.fetch_prices_and_icons(market_ids)
        except AggregationError as e:
            logger.warning(f"Price lookup failed, pricing at 0: {e}")
            return {}

    async def _fetch_asset(self, request: BalanceRequest) -> Asset:
        if request.is_native:
            return await self._fetch_native_asset(request)
        return await self._fetch_token_asset(request)

    async def _fetch_native_asset(self, request: BalanceRequest) -> Asset:
        chain = request.chain
        address = request.address.strip()
        asset = Asset(
            name=chain.chain.name,
            symbol=chain.chain.native_symbol,
            decimals=chain.chain.native_decimals,
            chain=chain.chain.id,
            is_native=True,
            receiving_address=address,
        )

        try:
            balance = await self.backend_for(chain).fetch_native(
                address, chain, chain.chain.native_decimals
            )
        except AggregationError as e:
            logger.warning(f"Native balance failed on {chain.display_name} for {address}: {e}")
            return asset

        return asset.model_copy(update={"balance": balance})

    async def _fetch_token_asset(self, request: BalanceRequest) -> Asset:
        chain = request.chain
        token = request.token
        address = request.address.strip()

        metadata = TokenMetadata(
            name=token.name or token.symbol or token.contract_address,
            symbol=token.symbol or "UNKNOWN",
            decimals=token.decimals if token.decimals is not None else DEFAULT_TOKEN_DECIMALS,
        )
        balance = ZERO

        try:
            if token.name is None or token.symbol is None or token.decimals is None:
                fetched = await self.tokens.fetch_token_metadata(token.contract_address, chain)
                metadata = TokenMetadata(
                    name=token.name or fetched.name,
                    symbol=token.symbol or fetched.symbol,
                    decimals=token.decimals if token.decimals is not None else fetched.decimals,
                )
            balance = await self.tokens.fetch_token_balance(
                address, token.contract_address, chain, metadata.decimals
            )
        except AggregationError as e:
            logger.warning(
                f"Token balance failed for {token.contract_address} on {chain.display_name}: {e}"
            )

        return Asset(
            contract_address=token.contract_address,
            name=metadata.name,
            symbol=metadata.symbol,
            decimals=metadata.decimals,
            balance=balance,
            icon_url=token.icon_url,
            chain=chain.chain.id,
            is_native=False,
            receiving_address=address,
        )

    # ======================
    # Transactions
    # ======================

    async def aggregate_transactions(
        self, address: str, chains: Optional[Iterable[ChainConfig]] = None
    ) -> list[Transaction]:
        """Fetch, deduplicate and order history across chains.

        Only enabled mainnet EVM chains are queried. Chains without a
        resolvable explorer key are skipped.

        Raises:
            AggregationError: The first per-chain error, when no chain
                succeeded and nothing was collected
        """
        address = address.strip()
        chains = self.catalog.enabled() if chains is None else list(chains)
        eligible = [c for c in chains if c.enabled and c.is_mainnet and c.is_evm]

        results = await asyncio.gather(*(self._fetch_history(address, c) for c in eligible))

        merged: dict[tuple[str, str, str], Transaction] = {}
        errors: list[AggregationError] = []
        succeeded = 0
        for transactions, error in results:
            if error is not None:
                errors.append(error)
                continue
            if transactions is not None:
                succeeded += 1
                for tx in transactions:
                    merged.setdefault(tx.dedup_key, tx)

        ordered = sorted(merged.values(), key=lambda tx: tx.timestamp, reverse=True)

        if not ordered and errors and succeeded == 0:
            logger.error(f"Transaction history failed on every chain for {address}: {errors[0]}")
            raise errors[0]

        logger.info(
            f"Aggregated {len(ordered)} transactions for {address} "
            f"({succeeded}/{len(eligible)} chains, {len(errors)} failed)"
        )
        return ordered

    async def _fetch_history(
        self, address: str, chain: ChainConfig
    ) -> tuple[Optional[list[Transaction]], Optional[AggregationError]]:
        try:
            return await self.backend_for(chain).fetch_history(address, chain), None
        except MissingCredentialError as e:
            logger.warning(f"Skipping {chain.display_name} history: {e}")
            return None, None
        except AggregationError as e:
            logger.warning(f"History failed on {chain.display_name}: {e}")
            return None, e

    # ======================
    # NFTs and gas
    # ======================

    async def aggregate_nfts(self, owner: str, chain: Optional[ChainConfig] = None) -> list[Nft]:
        """NFTs held by ``owner``; any failure degrades to an empty list."""
        chain = chain or self.catalog.get("ethereum")
        if chain is None:
            return []
        try:
            return await self.nfts.fetch_nfts(owner.strip(), chain)
        except AggregationError as e:
            logger.warning(f"NFT lookup failed for {owner}: {e}")
            return []

    async def fetch_gas_price(self, chain: ChainConfig) -> Decimal:
        """Current gas price in gwei."""
        if not chain.is_evm:
            raise UnsupportedOperationError(
                f"{chain.chain.name} has no gas price", chain=chain.chain.id
            )
        return await self.rpc.gas_price(chain.rpc_url, chain=chain.chain.id)
