"""Base interface for chain backends.

A backend implements the two capabilities every chain family exposes to the
aggregator: the native balance of an address and its transaction history.
One backend is selected per chain family when the aggregator is built.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal

from chainfolio.chains import ChainConfig, ChainFamily
from chainfolio.models import Transaction

logger = logging.getLogger(__name__)


class ChainBackend(ABC):
    """Abstract base class for chain-family backends."""

    family: ChainFamily

    @abstractmethod
    async def fetch_native(self, address: str, chain: ChainConfig, decimals: int) -> Decimal:
        """Get the native-asset balance of an address.

        Args:
            address: Address to query
            chain: Chain configuration to query against
            decimals: Decimal exponent of the native asset

        Returns:
            Balance in human units
        """
        pass

    @abstractmethod
    async def fetch_history(self, address: str, chain: ChainConfig) -> list[Transaction]:
        """Get recent transactions of an address.

        Args:
            address: Address to query
            chain: Chain configuration to query against

        Returns:
            Canonical transactions, in upstream order
        """
        pass
