"""Factory for chain-family backends.

Supported backends:
- EVM chains: JSON-RPC node + Etherscan-family explorer
- BTC-like chains: Esplora REST API
- Anything else: UnsupportedBackend (zero balance, no history)
"""

import logging
from decimal import Decimal
from typing import Mapping, Optional

import httpx

from chainfolio.chains import ChainConfig, ChainFamily
from chainfolio.config import Settings
from chainfolio.fetchers.base import ChainBackend
from chainfolio.fetchers.evm import EvmBackend
from chainfolio.fetchers.explorer import ExplorerClient
from chainfolio.fetchers.utxo import UtxoBackend
from chainfolio.models import Transaction
from chainfolio.numeric import ZERO
from chainfolio.rpc import EvmRpcClient

logger = logging.getLogger(__name__)


class UnsupportedBackend(ChainBackend):
    """Fallback for chain families without a fetcher."""

    def __init__(self, family: ChainFamily):
        self.family = family

    async def fetch_native(self, address: str, chain: ChainConfig, decimals: int) -> Decimal:
        logger.warning(f"No native balance support for {chain.display_name}, reporting 0")
        return ZERO

    async def fetch_history(self, address: str, chain: ChainConfig) -> list[Transaction]:
        return []


def create_backends(
    http: httpx.AsyncClient,
    settings: Settings,
    rpc: Optional[EvmRpcClient] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> dict[ChainFamily, ChainBackend]:
    """Build one backend per chain family.

    Args:
        http: Shared HTTP client
        settings: Application settings
        rpc: RPC client to reuse (created from ``http`` if omitted)
        environ: Credential source for explorers (process env if omitted)

    Returns:
        Mapping of every ChainFamily to its backend
    """
    rpc = rpc or EvmRpcClient(http)
    backends: dict[ChainFamily, ChainBackend] = {
        ChainFamily.EVM: EvmBackend(rpc, ExplorerClient(http, settings, environ)),
        ChainFamily.UTXO: UtxoBackend(http),
    }
    for family in ChainFamily:
        backends.setdefault(family, UnsupportedBackend(family))
    return backends
