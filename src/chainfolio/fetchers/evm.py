"""EVM chain backend: native balance over JSON-RPC, history from the explorer."""

import logging
from decimal import Decimal

from chainfolio.chains import ChainConfig, ChainFamily
from chainfolio.fetchers.base import ChainBackend
from chainfolio.fetchers.explorer import ExplorerClient
from chainfolio.models import Transaction
from chainfolio.numeric import from_minor_units
from chainfolio.rpc import EvmRpcClient

logger = logging.getLogger(__name__)


class EvmBackend(ChainBackend):
    """Backend for Ethereum-like chains."""

    family = ChainFamily.EVM

    def __init__(self, rpc: EvmRpcClient, explorer: ExplorerClient):
        self.rpc = rpc
        self.explorer = explorer

    async def fetch_native(self, address: str, chain: ChainConfig, decimals: int) -> Decimal:
        wei = await self.rpc.get_balance(chain.rpc_url, address, chain=chain.chain.id)
        return from_minor_units(wei, decimals)

    async def fetch_history(self, address: str, chain: ChainConfig) -> list[Transaction]:
        return await self.explorer.fetch_history(address, chain)
