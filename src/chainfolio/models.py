"""Canonical records produced by the aggregation engine.

Asset, Transaction and Nft are pydantic models because they cross the API
boundary. Request and lookup values that stay internal are dataclasses.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from chainfolio.chains import ChainConfig, market_id_for_symbol


class TransactionDirection(str, Enum):
    """Direction of a transaction relative to the queried address."""

    SEND = "send"
    RECEIVE = "receive"
    SWAP = "swap"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


class TransactionStatus(str, Enum):
    """Settlement status of a transaction."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


def derive_direction(from_address: str, query_address: str) -> TransactionDirection:
    """``send`` iff the sender is the queried address (case-insensitive)."""
    if (from_address or "").strip().lower() == (query_address or "").strip().lower():
        return TransactionDirection.SEND
    return TransactionDirection.RECEIVE


def derive_status(receipt_status: Optional[str], is_error: Optional[str]) -> TransactionStatus:
    """Derive settlement status from explorer flags.

    The receipt status field wins over the legacy error flag; with neither
    present the transaction is pending.
    """
    if receipt_status == "1":
        return TransactionStatus.CONFIRMED
    if receipt_status == "0":
        return TransactionStatus.FAILED
    if is_error == "0":
        return TransactionStatus.CONFIRMED
    if is_error == "1":
        return TransactionStatus.FAILED
    return TransactionStatus.PENDING


class Asset(BaseModel):
    """Balance of one asset on one chain."""

    contract_address: Optional[str] = Field(
        None, description="Token contract address (None for native)"
    )
    name: str = Field(..., description="Display name")
    symbol: str = Field(..., description="Token symbol (ETH, USDT, etc.)")
    decimals: int = Field(..., ge=0, description="Decimal exponent")
    balance: Decimal = Field(default=Decimal("0"), ge=0, description="Balance in human units")
    price: Decimal = Field(default=Decimal("0"), ge=0, description="Unit price in USD")
    icon_url: Optional[str] = Field(None, description="Token icon URL")
    chain: str = Field(..., description="Chain type id (ethereum, bitcoin, etc.)")
    is_native: bool = Field(default=False, description="Native asset of the chain")
    receiving_address: Optional[str] = Field(None, description="Address holding the balance")

    @property
    def total_value(self) -> Decimal:
        return self.balance * self.price


class Transaction(BaseModel):
    """One ledger entry from an explorer, normalized."""

    hash: str = Field(..., description="Transaction hash")
    from_address: str = Field(..., description="Sender")
    to_address: str = Field(..., description="Recipient")
    amount: Decimal = Field(..., description="Amount in human units")
    symbol: str = Field(..., description="Asset symbol")
    direction: TransactionDirection = Field(..., description="Relative to the queried address")
    status: TransactionStatus = Field(..., description="Settlement status")
    timestamp: datetime = Field(..., description="Block time (UTC)")
    gas_used: Decimal = Field(default=Decimal("0"), description="Gas units consumed")
    gas_fee: Decimal = Field(default=Decimal("0"), description="Fee paid in the native asset")
    block_number: Optional[str] = Field(None, description="Block number")
    explorer_url: Optional[str] = Field(None, description="Explorer deep link")
    chain: Optional[str] = Field(None, description="Chain type id")

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.hash.lower(), self.symbol.upper(), self.direction.value)


class Nft(BaseModel):
    """NFT held by an address."""

    contract_address: str = Field(..., description="Collection contract")
    token_id: str = Field(..., description="Token id within the collection")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="Token description")
    image_url: Optional[str] = Field(None, description="Best available image URL")
    collection_name: str = Field(..., description="Collection name")
    chain: str = Field(..., description="Chain type id")
    owner_address: str = Field(..., description="Owner")


@dataclass(frozen=True)
class TokenSpec:
    """ERC-20 contract to query, with whatever metadata is already known."""

    contract_address: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Optional[int] = None
    market_id: Optional[str] = None
    icon_url: Optional[str] = None


@dataclass(frozen=True)
class BalanceRequest:
    """One balance lookup: a chain, an address, and optionally a token."""

    chain: ChainConfig
    address: str
    token: Optional[TokenSpec] = None

    @property
    def is_native(self) -> bool:
        return self.token is None

    @property
    def market_id(self) -> Optional[str]:
        if self.is_native:
            return self.chain.chain.market_id
        if self.token.market_id:
            return self.token.market_id
        if self.token.symbol:
            return market_id_for_symbol(self.token.symbol)
        return None


@dataclass(frozen=True)
class PriceQuote:
    """USD price and icon for one market id."""

    price: Decimal
    icon_url: Optional[str] = None


@dataclass(frozen=True)
class TokenMetadata:
    name: str
    symbol: str
    decimals: int


def utc_from_timestamp(seconds: int) -> Optional[datetime]:
    """UTC datetime for unix seconds, or None outside the representable range."""
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
