"""UTXO chain backend using an Esplora-compatible REST API.

Works against Blockstream.info and other Esplora deployments.
Docs: https://github.com/Blockstream/esplora/blob/master/API.md
"""

import logging
from decimal import Decimal

import httpx

from chainfolio.chains import ChainConfig, ChainFamily
from chainfolio.errors import MalformedResponseError
from chainfolio.fetchers.base import ChainBackend
from chainfolio.http import request_json
from chainfolio.models import Transaction
from chainfolio.numeric import ZERO, from_minor_units

logger = logging.getLogger(__name__)


class UtxoBackend(ChainBackend):
    """Backend for Bitcoin-like chains.

    The chain's ``rpc_url`` is the Esplora API base
    (e.g. ``https://blockstream.info/api``). No authentication required.
    """

    family = ChainFamily.UTXO

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def fetch_native(self, address: str, chain: ChainConfig, decimals: int) -> Decimal:
        """Get the confirmed balance: funded minus spent outputs, in satoshis, scaled."""
        url = f"{chain.rpc_url.rstrip('/')}/address/{address}"
        data = await request_json(
            self.http, "GET", url, upstream="blockstream", chain=chain.chain.id
        )

        stats = data.get("chain_stats")
        if not isinstance(stats, dict):
            raise MalformedResponseError(
                "address response has no chain_stats", chain=chain.chain.id, upstream="blockstream"
            )

        try:
            funded = int(stats.get("funded_txo_sum", 0))
            spent = int(stats.get("spent_txo_sum", 0))
        except (TypeError, ValueError) as e:
            raise MalformedResponseError(
                f"invalid txo sums: {e}", chain=chain.chain.id, upstream="blockstream"
            )

        satoshis = funded - spent
        if satoshis < 0:
            logger.warning(f"Negative UTXO balance for {address} on {chain.chain.id}, using 0")
            return ZERO
        return from_minor_units(satoshis, decimals)

    async def fetch_history(self, address: str, chain: ChainConfig) -> list[Transaction]:
        # History is only indexed for EVM explorers
        return []
