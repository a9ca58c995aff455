"""Block-explorer endpoints and credential resolution.

Etherscan-family explorers share one REST API. The unified v2 API takes a
``chainid`` query parameter; legacy v1 hosts do not. Which one an endpoint
speaks is declared explicitly per endpoint.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from chainfolio.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExplorerEndpoint:
    """Explorer API for one chain type."""

    chain: str
    api_base: str
    credential_names: tuple[str, ...]
    chain_id: Optional[int] = None
    sends_chain_id: bool = False  # v2 unified API
    supports_token_transfers: bool = True


# ======================
# Explorer Endpoints
# ======================

EXPLORER_ENDPOINTS: dict[str, ExplorerEndpoint] = {
    "ethereum": ExplorerEndpoint(
        chain="ethereum",
        api_base="https://api.etherscan.io/v2/api",
        credential_names=("ETHERSCAN_API_KEY",),
        chain_id=1,
        sends_chain_id=True,
    ),
    "polygon": ExplorerEndpoint(
        chain="polygon",
        api_base="https://api.polygonscan.com/v2/api",
        credential_names=("POLYGONSCAN_API_KEY",),
        chain_id=137,
        sends_chain_id=True,
    ),
    "binance-smart-chain": ExplorerEndpoint(
        chain="binance-smart-chain",
        api_base="https://api.bscscan.com/v2/api",
        credential_names=("BSCSCAN_API_KEY",),
        chain_id=56,
        sends_chain_id=True,
    ),
    "arbitrum": ExplorerEndpoint(
        chain="arbitrum",
        api_base="https://api.arbiscan.io/v2/api",
        credential_names=("ARBISCAN_API_KEY",),
        chain_id=42161,
        sends_chain_id=True,
    ),
    "optimism": ExplorerEndpoint(
        chain="optimism",
        api_base="https://api-optimistic.etherscan.io/api",
        credential_names=("OPTIMISMSCAN_API_KEY",),
        chain_id=10,
    ),
    "avalanche": ExplorerEndpoint(
        chain="avalanche",
        api_base="https://api.snowtrace.io/api",
        credential_names=("SNOWTRACE_API_KEY",),
        chain_id=43114,
    ),
    "base": ExplorerEndpoint(
        chain="base",
        api_base="https://api.basescan.org/api",
        credential_names=("BASESCAN_API_KEY",),
        chain_id=8453,
    ),
}


def resolve_explorer(chain: str) -> Optional[ExplorerEndpoint]:
    """Get the explorer endpoint for a chain type id.

    Returns None for chains without an explorer; those are simply left out
    of transaction-history fetching.
    """
    return EXPLORER_ENDPOINTS.get(chain.lower())


def resolve_credential(
    endpoint: ExplorerEndpoint,
    environ: Optional[Mapping[str, str]] = None,
    settings: Optional[Settings] = None,
) -> Optional[str]:
    """Resolve the API key for an explorer endpoint.

    Checks the endpoint's credential names in order, then the shared
    application-level key. Returns None when nothing is configured.
    """
    environ = os.environ if environ is None else environ
    for name in endpoint.credential_names:
        value = environ.get(name, "").strip()
        if value:
            return value

    settings = settings or get_settings()
    shared = settings.explorer_api_key.strip()
    if shared:
        return shared

    logger.debug(f"No explorer credential for {endpoint.chain} ({', '.join(endpoint.credential_names)})")
    return None
