"""Portfolio endpoints: chains, balances, transactions, NFTs and gas."""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from chainfolio.aggregator import PortfolioAggregator
from chainfolio.api.app import get_aggregator
from chainfolio.chains import ChainConfig, NetworkTier
from chainfolio.errors import AggregationError, RateLimitedError, UnsupportedOperationError
from chainfolio.models import Asset, BalanceRequest, Nft, TokenSpec, Transaction

router = APIRouter()


class TokenQuery(BaseModel):
    """ERC-20 token to include in a balance query."""

    chain: str = Field(..., description="Chain type id (ethereum, polygon, etc.)")
    contract_address: str = Field(..., min_length=3, max_length=100, description="Token contract")
    name: Optional[str] = Field(None, description="Known display name")
    symbol: Optional[str] = Field(None, description="Known symbol")
    decimals: Optional[int] = Field(None, ge=0, le=77, description="Known decimals")
    market_id: Optional[str] = Field(None, description="Market id for pricing")
    icon_url: Optional[str] = Field(None, description="Known icon URL")


class BalancesQuery(BaseModel):
    """Balance query for one address."""

    address: str = Field(..., min_length=3, max_length=128, description="Address to query")
    chains: Optional[list[str]] = Field(
        None, description="Chain type ids for native balances (all enabled if omitted)"
    )
    tokens: list[TokenQuery] = Field(default_factory=list, description="Tokens to include")

    @field_validator("address")
    @classmethod
    def strip_address(cls, v: str) -> str:
        return v.strip()


class TransactionsQuery(BaseModel):
    """History query for one address."""

    address: str = Field(..., min_length=3, max_length=128, description="Address to query")
    chains: Optional[list[str]] = Field(
        None, description="Chain type ids (all enabled if omitted)"
    )

    @field_validator("address")
    @classmethod
    def strip_address(cls, v: str) -> str:
        return v.strip()


class ChainInfo(BaseModel):
    """Catalog entry as exposed over the API."""

    id: str
    name: str
    network: NetworkTier
    family: str
    native_symbol: str
    chain_id: Optional[int] = None
    explorer_url: str
    enabled: bool
    is_custom: bool


class GasPriceResponse(BaseModel):
    chain: str
    gas_price_gwei: Decimal


def _resolve_chains(
    aggregator: PortfolioAggregator, chain_ids: Optional[list[str]]
) -> list[ChainConfig]:
    if chain_ids is None:
        return aggregator.catalog.enabled()

    chains = []
    for chain_id in chain_ids:
        chain = aggregator.catalog.get(chain_id)
        if chain is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown chain: {chain_id}",
            )
        chains.append(chain)
    return chains


def _error_response(error: AggregationError) -> JSONResponse:
    if isinstance(error, RateLimitedError):
        status_code = status.HTTP_429_TOO_MANY_REQUESTS
    elif isinstance(error, UnsupportedOperationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_502_BAD_GATEWAY
    return JSONResponse(status_code=status_code, content={"kind": error.kind, "detail": str(error)})


@router.get("/chains", response_model=list[ChainInfo])
async def list_chains(aggregator: PortfolioAggregator = Depends(get_aggregator)):
    """List the chain catalog."""
    return [
        ChainInfo(
            id=config.chain.id,
            name=config.display_name,
            network=config.network,
            family=config.family.value,
            native_symbol=config.chain.native_symbol,
            chain_id=config.chain_id,
            explorer_url=config.explorer_url,
            enabled=config.enabled,
            is_custom=config.is_custom,
        )
        for config in aggregator.catalog.configs
    ]


@router.post("/balances", response_model=list[Asset])
async def get_balances(
    query: BalancesQuery,
    aggregator: PortfolioAggregator = Depends(get_aggregator),
):
    """Native and token balances for an address, priced in USD."""
    requests = aggregator.native_requests(query.address, _resolve_chains(aggregator, query.chains))

    for token in query.tokens:
        chain = _resolve_chains(aggregator, [token.chain])[0]
        requests.append(
            BalanceRequest(
                chain=chain,
                address=query.address,
                token=TokenSpec(
                    contract_address=token.contract_address,
                    name=token.name,
                    symbol=token.symbol,
                    decimals=token.decimals,
                    market_id=token.market_id,
                    icon_url=token.icon_url,
                ),
            )
        )

    return await aggregator.aggregate_balances(requests)


@router.post("/transactions", response_model=list[Transaction])
async def get_transactions(
    query: TransactionsQuery,
    aggregator: PortfolioAggregator = Depends(get_aggregator),
):
    """Deduplicated transaction history, newest first."""
    chains = _resolve_chains(aggregator, query.chains)
    try:
        return await aggregator.aggregate_transactions(query.address, chains)
    except AggregationError as e:
        return _error_response(e)


@router.get("/nfts/{address}", response_model=list[Nft])
async def get_nfts(address: str, aggregator: PortfolioAggregator = Depends(get_aggregator)):
    """NFTs held on Ethereum mainnet."""
    return await aggregator.aggregate_nfts(address)


@router.get("/gas-price/{chain_id}", response_model=GasPriceResponse)
async def get_gas_price(chain_id: str, aggregator: PortfolioAggregator = Depends(get_aggregator)):
    """Current gas price in gwei for an EVM chain."""
    chain = _resolve_chains(aggregator, [chain_id])[0]
    try:
        gas_price = await aggregator.fetch_gas_price(chain)
    except AggregationError as e:
        return _error_response(e)
    return GasPriceResponse(chain=chain.chain.id, gas_price_gwei=gas_price)
