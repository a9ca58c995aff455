"""ERC-20 balances and metadata via ``eth_call``."""

import asyncio
import logging
from decimal import Decimal

from chainfolio.abi import (
    BALANCE_OF_SELECTOR,
    DECIMALS_SELECTOR,
    NAME_SELECTOR,
    SYMBOL_SELECTOR,
    decode_dynamic_string,
    decode_unsigned,
    encode_call,
)
from chainfolio.chains import ChainConfig
from chainfolio.errors import UnsupportedOperationError
from chainfolio.models import TokenMetadata
from chainfolio.numeric import from_minor_units, hex_to_unsigned_integer
from chainfolio.rpc import EvmRpcClient

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_DECIMALS = 18


class TokenFetcher:
    """Reads ERC-20 state from an EVM node."""

    def __init__(self, rpc: EvmRpcClient):
        self.rpc = rpc

    @staticmethod
    def _require_evm(chain: ChainConfig) -> None:
        if not chain.is_evm:
            raise UnsupportedOperationError(
                f"{chain.chain.name} has no ERC-20 contracts", chain=chain.chain.id
            )

    async def fetch_token_balance(
        self,
        owner: str,
        contract: str,
        chain: ChainConfig,
        decimals: int = DEFAULT_TOKEN_DECIMALS,
    ) -> Decimal:
        """Get ``balanceOf(owner)`` scaled by the token's decimals.

        Args:
            owner: Holder address
            contract: Token contract address
            chain: EVM chain configuration
            decimals: Token decimal exponent

        Returns:
            Balance in human units
        """
        self._require_evm(chain)
        data = encode_call(BALANCE_OF_SELECTOR, owner)
        result = await self.rpc.eth_call(chain.rpc_url, contract, data, chain=chain.chain.id)
        return from_minor_units(hex_to_unsigned_integer(result), decimals)

    async def fetch_token_metadata(self, contract: str, chain: ChainConfig) -> TokenMetadata:
        """Get name, symbol and decimals with three concurrent calls.

        Any single failure fails the whole lookup: without decimals the
        balance cannot be scaled.
        """
        self._require_evm(chain)
        chain_id = chain.chain.id

        name_hex, symbol_hex, decimals_hex = await asyncio.gather(
            self.rpc.eth_call(chain.rpc_url, contract, NAME_SELECTOR, chain=chain_id),
            self.rpc.eth_call(chain.rpc_url, contract, SYMBOL_SELECTOR, chain=chain_id),
            self.rpc.eth_call(chain.rpc_url, contract, DECIMALS_SELECTOR, chain=chain_id),
        )

        metadata = TokenMetadata(
            name=decode_dynamic_string(name_hex),
            symbol=decode_dynamic_string(symbol_hex),
            decimals=decode_unsigned(decimals_hex),
        )
        logger.debug(f"Token {contract} on {chain_id}: {metadata.symbol} ({metadata.decimals})")
        return metadata
