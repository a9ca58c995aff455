"""EVM JSON-RPC client.

Thin async wrapper over ``eth_getBalance``, ``eth_call`` and ``eth_gasPrice``.
Every request gets a random id; node-level error objects are raised as
RpcError with the node's code and message.
"""

import logging
import random
from decimal import Decimal
from typing import Any, Optional

import httpx

from chainfolio.errors import MalformedResponseError, RpcError
from chainfolio.http import request_json
from chainfolio.numeric import from_minor_units, hex_to_unsigned_integer

logger = logging.getLogger(__name__)

GWEI_DECIMALS = 9


class EvmRpcClient:
    """JSON-RPC client for EVM nodes.

    The HTTP client is injected so one connection pool serves every chain.
    """

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def request(
        self,
        rpc_url: str,
        method: str,
        params: list[Any],
        chain: Optional[str] = None,
    ) -> Any:
        """Send a JSON-RPC request and return its ``result`` field.

        Args:
            rpc_url: Node endpoint
            method: RPC method name
            params: Positional parameters
            chain: Chain id used for error context

        Returns:
            The raw ``result`` value

        Raises:
            RpcError: The node answered with an error object
            MalformedResponseError: Neither ``result`` nor ``error`` present
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": random.randint(1, 2**31 - 1),
        }
        data = await request_json(
            self.http, "POST", rpc_url, json=payload, upstream="rpc", chain=chain
        )

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                code = error.get("code", 0)
                message = error.get("message", "unknown error")
            else:
                code, message = 0, str(error)
            logger.debug(f"{method} on {chain or rpc_url} failed: {code} {message}")
            raise RpcError(code, message, chain=chain, upstream="rpc")

        if "result" not in data:
            raise MalformedResponseError(
                f"{method}: response has no result", chain=chain, upstream="rpc"
            )
        return data["result"]

    async def get_balance(self, rpc_url: str, address: str, chain: Optional[str] = None) -> Decimal:
        """Get the raw native balance in wei."""
        result = await self.request(rpc_url, "eth_getBalance", [address, "latest"], chain)
        return hex_to_unsigned_integer(result)

    async def eth_call(
        self, rpc_url: str, to: str, data: str, chain: Optional[str] = None
    ) -> str:
        """Execute a read-only contract call at the latest block."""
        result = await self.request(rpc_url, "eth_call", [{"to": to, "data": data}, "latest"], chain)
        if not isinstance(result, str):
            raise MalformedResponseError(
                "eth_call: result is not a hex string", chain=chain, upstream="rpc"
            )
        return result

    async def gas_price(self, rpc_url: str, chain: Optional[str] = None) -> Decimal:
        """Get the current gas price in gwei."""
        result = await self.request(rpc_url, "eth_gasPrice", [], chain)
        return from_minor_units(hex_to_unsigned_integer(result), GWEI_DECIMALS)
