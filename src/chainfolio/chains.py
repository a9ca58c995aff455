"""Chain types and network configurations.

Supports EVM chains (Ethereum, Polygon, BNB Smart Chain, Arbitrum, Optimism,
Avalanche, Base, ...), UTXO chains (Bitcoin, Litecoin) and Solana.

A ChainType describes a blockchain (native asset, decimals, market id);
a ChainConfig pins one chain type to one network tier and its endpoints.
"""

import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field, ValidationError

from chainfolio.config import Settings

logger = logging.getLogger(__name__)


class ChainFamily(str, Enum):
    """Protocol family; selects the backend used for a chain."""

    EVM = "evm"
    UTXO = "utxo"
    SOLANA = "solana"


class NetworkTier(str, Enum):
    """Network environment of a chain configuration."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class ChainType:
    """A blockchain and its native asset."""

    id: str
    name: str
    native_symbol: str
    native_decimals: int
    family: ChainFamily
    market_id: Optional[str] = None

    @property
    def is_evm(self) -> bool:
        return self.family == ChainFamily.EVM


# ======================
# Chain Types
# ======================

CHAIN_TYPES: dict[str, ChainType] = {
    chain.id: chain
    for chain in (
        ChainType("ethereum", "Ethereum", "ETH", 18, ChainFamily.EVM, "ethereum"),
        ChainType("bitcoin", "Bitcoin", "BTC", 8, ChainFamily.UTXO, "bitcoin"),
        ChainType("litecoin", "Litecoin", "LTC", 8, ChainFamily.UTXO, "litecoin"),
        ChainType("solana", "Solana", "SOL", 9, ChainFamily.SOLANA, "solana"),
        ChainType("polygon", "Polygon", "MATIC", 18, ChainFamily.EVM, "matic-network"),
        ChainType(
            "binance-smart-chain", "Binance Smart Chain", "BNB", 18, ChainFamily.EVM, "binancecoin"
        ),
        ChainType("arbitrum", "Arbitrum", "ETH", 18, ChainFamily.EVM, "arbitrum"),
        ChainType("optimism", "Optimism", "ETH", 18, ChainFamily.EVM, "optimism"),
        ChainType("avalanche", "Avalanche", "AVAX", 18, ChainFamily.EVM, "avalanche-2"),
        ChainType("base", "Base", "ETH", 18, ChainFamily.EVM, "base"),
        ChainType("gnosis", "Gnosis", "xDAI", 18, ChainFamily.EVM, "gnosis"),
        ChainType("zksync", "zkSync Era", "ETH", 18, ChainFamily.EVM, "zksync"),
        ChainType("fantom", "Fantom", "FTM", 18, ChainFamily.EVM, "fantom"),
    )
}


def get_chain_type(chain_id: str) -> Optional[ChainType]:
    """Get a chain type by id (``ethereum``, ``bitcoin``, ...)."""
    return CHAIN_TYPES.get(chain_id.lower())


# Market ids for well-known symbols, used when a token request carries no id
SYMBOL_MARKET_IDS: dict[str, str] = {
    "ETH": "ethereum",
    "BTC": "bitcoin",
    "USDC": "usd-coin",
    "USDT": "tether",
    "BNB": "binancecoin",
    "MATIC": "polygon-ecosystem-token",
    "POL": "polygon-ecosystem-token",
    "AVAX": "avalanche-2",
    "ADA": "cardano",
    "SOL": "solana",
    "DOT": "polkadot",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "ATOM": "cosmos",
    "NEAR": "near",
    "FTM": "fantom",
    "ALGO": "algorand",
    "ARB": "arbitrum",
    "OP": "optimism",
}


def market_id_for_symbol(symbol: str) -> str:
    """Map a token symbol to its market id, defaulting to the lower-cased symbol."""
    return SYMBOL_MARKET_IDS.get(symbol.upper(), symbol.lower())


@dataclass(frozen=True)
class ChainConfig:
    """One chain on one network tier."""

    chain: ChainType
    network: NetworkTier
    rpc_url: str
    explorer_url: str
    chain_id: Optional[int] = None  # EVM chains only
    enabled: bool = True
    is_custom: bool = False

    @property
    def family(self) -> ChainFamily:
        return self.chain.family

    @property
    def is_evm(self) -> bool:
        return self.chain.is_evm

    @property
    def is_mainnet(self) -> bool:
        return self.network == NetworkTier.MAINNET

    @property
    def display_name(self) -> str:
        return f"{self.chain.name} {self.network.display_name}"


def _config(
    chain_id: str,
    network: NetworkTier,
    rpc_url: str,
    explorer_url: str,
    numeric_id: Optional[int],
    enabled: bool,
) -> ChainConfig:
    return ChainConfig(
        chain=CHAIN_TYPES[chain_id],
        network=network,
        rpc_url=rpc_url,
        explorer_url=explorer_url,
        chain_id=numeric_id,
        enabled=enabled,
    )


# ======================
# Default Catalog
# ======================

DEFAULT_CHAIN_CONFIGS: tuple[ChainConfig, ...] = (
    _config(
        "ethereum", NetworkTier.MAINNET,
        "https://eth.llamarpc.com", "https://etherscan.io", 1, True,
    ),
    _config(
        "ethereum", NetworkTier.TESTNET,
        "https://ethereum-sepolia-rpc.publicnode.com", "https://sepolia.etherscan.io",
        11155111, False,
    ),
    _config(
        "bitcoin", NetworkTier.MAINNET,
        "https://blockstream.info/api", "https://blockstream.info", None, True,
    ),
    _config(
        "bitcoin", NetworkTier.TESTNET,
        "https://blockstream.info/testnet/api", "https://blockstream.info/testnet", None, False,
    ),
    _config(
        "solana", NetworkTier.MAINNET,
        "https://api.mainnet-beta.solana.com", "https://explorer.solana.com", None, False,
    ),
    _config(
        "polygon", NetworkTier.MAINNET,
        "https://polygon-rpc.com", "https://polygonscan.com", 137, True,
    ),
    _config(
        "binance-smart-chain", NetworkTier.MAINNET,
        "https://bsc-dataseed.binance.org", "https://bscscan.com", 56, True,
    ),
    _config(
        "arbitrum", NetworkTier.MAINNET,
        "https://arb1.arbitrum.io/rpc", "https://arbiscan.io", 42161, True,
    ),
    _config(
        "optimism", NetworkTier.MAINNET,
        "https://mainnet.optimism.io", "https://optimistic.etherscan.io", 10, False,
    ),
    _config(
        "avalanche", NetworkTier.MAINNET,
        "https://api.avax.network/ext/bc/C/rpc", "https://snowtrace.io", 43114, False,
    ),
    _config(
        "base", NetworkTier.MAINNET,
        "https://mainnet.base.org", "https://basescan.org", 8453, False,
    ),
)


def explorer_link(base: str, tx_hash: str) -> Optional[str]:
    """Build the explorer deep link for a transaction hash."""
    if not base or not tx_hash:
        return None
    return f"{base.rstrip('/')}/tx/{tx_hash}"


class CustomChainEntry(BaseModel):
    """User-added network as persisted by the wallet."""

    chain: str = Field(..., description="Chain type id (ethereum, polygon, ...)")
    network: NetworkTier = Field(default=NetworkTier.MAINNET, description="Network tier")
    rpc_url: str = Field(..., description="RPC endpoint")
    explorer_url: str = Field(default="", description="Block explorer base URL")
    chain_id: Optional[int] = Field(None, description="EVM chain ID")
    enabled: bool = Field(default=True, description="Include in aggregation")

    def to_config(self) -> ChainConfig:
        chain_type = get_chain_type(self.chain)
        if chain_type is None:
            raise ValueError(f"Unknown chain type: {self.chain}")
        return ChainConfig(
            chain=chain_type,
            network=self.network,
            rpc_url=self.rpc_url,
            explorer_url=self.explorer_url,
            chain_id=self.chain_id,
            enabled=self.enabled,
            is_custom=True,
        )


class ChainCatalog:
    """Default chain configurations plus user-added custom entries.

    The catalog is built once at startup and treated as read-only while a
    fetch cycle runs.
    """

    def __init__(
        self,
        defaults: Iterable[ChainConfig] = DEFAULT_CHAIN_CONFIGS,
        custom: Iterable[ChainConfig] = (),
    ):
        self._configs: list[ChainConfig] = list(defaults)
        for config in custom:
            self.add_custom(config)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChainCatalog":
        """Build the catalog with RPC overrides and the custom chains file applied."""
        defaults = []
        for config in DEFAULT_CHAIN_CONFIGS:
            override = settings.get_rpc_url(config.chain.id) if config.is_mainnet else None
            defaults.append(replace(config, rpc_url=override) if override else config)

        catalog = cls(defaults)
        if settings.custom_chains_file:
            for config in load_custom_chains(Path(settings.custom_chains_file)):
                catalog.add_custom(config)
        return catalog

    @property
    def configs(self) -> list[ChainConfig]:
        return list(self._configs)

    def add_custom(self, config: ChainConfig) -> ChainConfig:
        """Append a user-added network (always flagged custom)."""
        custom = config if config.is_custom else replace(config, is_custom=True)
        self._configs.append(custom)
        return custom

    def remove_custom(self, config: ChainConfig) -> bool:
        """Remove a custom network. Default networks cannot be removed."""
        if not config.is_custom or config not in self._configs:
            return False
        self._configs.remove(config)
        return True

    def get(
        self, chain_id: str, network: NetworkTier = NetworkTier.MAINNET
    ) -> Optional[ChainConfig]:
        """First configuration for a chain type on a network tier."""
        for config in self._configs:
            if config.chain.id == chain_id.lower() and config.network == network:
                return config
        return None

    def enabled(self) -> list[ChainConfig]:
        return [c for c in self._configs if c.enabled]


def load_custom_chains(path: Path) -> list[ChainConfig]:
    """Load custom chain entries from a JSON list.

    A missing or malformed file is logged and yields no entries; a single
    bad entry is skipped.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read custom chains from {path}: {e}")
        return []

    if not isinstance(raw, list):
        logger.warning(f"Custom chains file {path} must contain a JSON list")
        return []

    configs = []
    for entry in raw:
        try:
            configs.append(CustomChainEntry.model_validate(entry).to_config())
        except (ValidationError, ValueError) as e:
            logger.warning(f"Skipping invalid custom chain entry {entry!r}: {e}")
    return configs
