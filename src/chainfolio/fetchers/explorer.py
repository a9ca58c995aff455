"""Etherscan-family explorer client for transaction history.

Queries the ``txlist`` (normal transactions) and ``tokentx`` (token
transfers) actions of the account module and maps each record to a
canonical Transaction.
API Docs: https://docs.etherscan.io/
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional

import httpx

from chainfolio.chains import ChainConfig, explorer_link
from chainfolio.config import Settings, get_settings
from chainfolio.errors import MalformedResponseError, MissingCredentialError, UpstreamUnavailableError
from chainfolio.fetchers.tokens import DEFAULT_TOKEN_DECIMALS
from chainfolio.http import request_json
from chainfolio.models import (
    Transaction,
    derive_direction,
    derive_status,
    utc_from_timestamp,
)
from chainfolio.numeric import MAX_DECIMALS, multiply_minor_units, parse_quantity, to_decimal
from chainfolio.registry import ExplorerEndpoint, resolve_credential, resolve_explorer

logger = logging.getLogger(__name__)


class ExplorerAction(str, Enum):
    """Account-module actions used for history."""

    NORMAL = "txlist"
    TOKEN_TRANSFERS = "tokentx"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    try:
        seconds = int(Decimal(str(value).strip()))
    except (InvalidOperation, OverflowError, ValueError, TypeError):
        return None
    return utc_from_timestamp(seconds)


class ExplorerClient:
    """Transaction history from an Etherscan-compatible explorer."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: Optional[Settings] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.http = http
        self.settings = settings or get_settings()
        self.environ = environ

    async def fetch_history(self, address: str, chain: ChainConfig) -> list[Transaction]:
        """Get normal and token-transfer transactions for an address.

        Args:
            address: EVM address (0x... format)
            chain: Mainnet EVM chain configuration

        Returns:
            Normal transactions followed by token transfers, or an empty
            list for chains without an explorer

        Raises:
            MissingCredentialError: No API key resolvable for the explorer
        """
        endpoint = resolve_explorer(chain.chain.id)
        if endpoint is None:
            logger.debug(f"No explorer configured for {chain.chain.id}")
            return []

        api_key = resolve_credential(endpoint, environ=self.environ, settings=self.settings)
        if api_key is None:
            raise MissingCredentialError(
                endpoint.credential_names[0], chain=chain.chain.id, upstream="explorer"
            )

        transactions = await self._fetch_action(
            address, chain, endpoint, api_key, ExplorerAction.NORMAL
        )
        if endpoint.supports_token_transfers:
            transactions += await self._fetch_action(
                address, chain, endpoint, api_key, ExplorerAction.TOKEN_TRANSFERS
            )
        return transactions

    def build_params(
        self,
        address: str,
        endpoint: ExplorerEndpoint,
        api_key: str,
        action: ExplorerAction,
    ) -> dict[str, str]:
        params = {
            "module": "account",
            "action": action.value,
            "address": address,
            "page": "1",
            "offset": str(self.settings.explorer_page_size),
            "sort": "desc",
            "apikey": api_key,
        }
        if endpoint.sends_chain_id and endpoint.chain_id is not None:
            params["chainid"] = str(endpoint.chain_id)
        return params

    async def _fetch_action(
        self,
        address: str,
        chain: ChainConfig,
        endpoint: ExplorerEndpoint,
        api_key: str,
        action: ExplorerAction,
    ) -> list[Transaction]:
        data = await request_json(
            self.http,
            "GET",
            endpoint.api_base,
            params=self.build_params(address, endpoint, api_key, action),
            upstream="explorer",
            chain=chain.chain.id,
        )
        records = self.parse_result(data, chain.chain.id)

        mapper = self.map_normal if action == ExplorerAction.NORMAL else self.map_token_transfer
        transactions = []
        for record in records:
            if not isinstance(record, dict):
                continue
            tx = mapper(record, address, chain)
            if tx is not None:
                transactions.append(tx)

        dropped = len(records) - len(transactions)
        if dropped:
            logger.debug(f"Dropped {dropped} unparsable {action.value} records on {chain.chain.id}")
        return transactions

    @staticmethod
    def parse_result(data: dict, chain: Optional[str] = None) -> list:
        """Extract the record list from an explorer envelope.

        A ``"0"`` status means "no results" when the result is empty or the
        message mentions no transactions; otherwise it is an upstream error.
        """
        status = str(data.get("status", ""))
        message = str(data.get("message", ""))
        result = data.get("result")

        if status == "0":
            if not result or "no transactions" in message.lower():
                return []
            detail = result if isinstance(result, str) else message
            raise UpstreamUnavailableError(
                f"Explorer error: {detail or 'status 0'}", chain=chain, upstream="explorer"
            )

        if not isinstance(result, list):
            raise MalformedResponseError(
                "Explorer result is not a list", chain=chain, upstream="explorer"
            )
        return result

    def map_normal(
        self, record: dict, address: str, chain: ChainConfig
    ) -> Optional[Transaction]:
        """Map a ``txlist`` record; None if its timestamp is unparsable."""
        timestamp = _parse_timestamp(record.get("timeStamp"))
        if timestamp is None:
            return None

        decimals = chain.chain.native_decimals
        tx_hash = str(record.get("hash", ""))
        to_address = record.get("to") or record.get("contractAddress") or ""

        return Transaction(
            hash=tx_hash,
            from_address=str(record.get("from", "")),
            to_address=str(to_address),
            amount=to_decimal(str(record.get("value", "0")), decimals),
            symbol=chain.chain.native_symbol,
            direction=derive_direction(str(record.get("from", "")), address),
            status=derive_status(record.get("txreceipt_status") or None, record.get("isError") or None),
            timestamp=timestamp,
            gas_used=parse_quantity(record.get("gasUsed")),
            gas_fee=multiply_minor_units(record.get("gasUsed"), record.get("gasPrice"), decimals),
            block_number=record.get("blockNumber") or None,
            explorer_url=explorer_link(chain.explorer_url, tx_hash),
            chain=chain.chain.id,
        )

    def map_token_transfer(
        self, record: dict, address: str, chain: ChainConfig
    ) -> Optional[Transaction]:
        """Map a ``tokentx`` record; amount uses the transfer's own decimals."""
        timestamp = _parse_timestamp(record.get("timeStamp"))
        if timestamp is None:
            return None

        try:
            decimals = int(record.get("tokenDecimal"))
        except (TypeError, ValueError):
            decimals = DEFAULT_TOKEN_DECIMALS
        if not 0 <= decimals <= MAX_DECIMALS:
            logger.debug(f"Out-of-range tokenDecimal {decimals} in {record.get('hash')}, using default")
            decimals = DEFAULT_TOKEN_DECIMALS

        tx_hash = str(record.get("hash", ""))
        symbol = record.get("tokenSymbol") or record.get("tokenName") or ""

        return Transaction(
            hash=tx_hash,
            from_address=str(record.get("from", "")),
            to_address=str(record.get("to", "")),
            amount=to_decimal(str(record.get("value", "0")), decimals),
            symbol=str(symbol),
            direction=derive_direction(str(record.get("from", "")), address),
            status=derive_status(record.get("txreceipt_status") or None, None),
            timestamp=timestamp,
            gas_used=parse_quantity(record.get("gasUsed")),
            gas_fee=multiply_minor_units(
                record.get("gasUsed"), record.get("gasPrice"), chain.chain.native_decimals
            ),
            block_number=record.get("blockNumber") or None,
            explorer_url=explorer_link(chain.explorer_url, tx_hash),
            chain=chain.chain.id,
        )
