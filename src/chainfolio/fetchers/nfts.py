"""NFT holdings via the Alchemy NFT API (v3).

Only Ethereum mainnet is supported.
API Docs: https://docs.alchemy.com/reference/getnftsforowner-v3
"""

import logging
from typing import Optional

import httpx

from chainfolio.chains import ChainConfig
from chainfolio.config import Settings, get_settings
from chainfolio.errors import MissingCredentialError, UnsupportedOperationError
from chainfolio.http import request_json
from chainfolio.models import Nft

logger = logging.getLogger(__name__)

NFT_PAGE_SIZE = 100


def _first(*values) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value:
            return value
    return None


class NftFetcher:
    """Fetches NFTs owned by an address."""

    def __init__(self, http: httpx.AsyncClient, settings: Optional[Settings] = None):
        self.http = http
        self.settings = settings or get_settings()

    async def fetch_nfts(self, owner: str, chain: ChainConfig) -> list[Nft]:
        """Get the first page of NFTs owned by ``owner``.

        Raises:
            UnsupportedOperationError: Chain is not Ethereum mainnet
            MissingCredentialError: ALCHEMY_API_KEY is not configured
        """
        if chain.chain.id != "ethereum" or not chain.is_mainnet:
            raise UnsupportedOperationError(
                f"NFT lookup is not supported on {chain.display_name}",
                chain=chain.chain.id,
                upstream="alchemy",
            )

        api_key = self.settings.alchemy_api_key
        if not api_key:
            raise MissingCredentialError("ALCHEMY_API_KEY", chain=chain.chain.id, upstream="alchemy")

        url = f"{self.settings.alchemy_nft_url.rstrip('/')}/{api_key}/getNFTsForOwner"
        data = await request_json(
            self.http,
            "GET",
            url,
            params={"owner": owner, "withMetadata": "true", "pageSize": str(NFT_PAGE_SIZE)},
            timeout=self.settings.nft_timeout,
            upstream="alchemy",
            chain=chain.chain.id,
        )

        nfts = []
        for item in data.get("ownedNfts") or []:
            nft = self._map_nft(item, owner, chain.chain.id)
            if nft is not None:
                nfts.append(nft)

        logger.info(f"Found {len(nfts)} NFTs for {owner}")
        return nfts

    @staticmethod
    def _map_nft(item: dict, owner: str, chain_id: str) -> Optional[Nft]:
        if not isinstance(item, dict):
            return None
        contract = item.get("contract") or {}
        token_id = item.get("tokenId")
        if not contract.get("address") or token_id is None:
            return None

        image = item.get("image") or {}
        return Nft(
            contract_address=contract["address"],
            token_id=str(token_id),
            name=_first(item.get("name"), item.get("title")) or f"NFT #{token_id}",
            description=item.get("description") or "",
            image_url=_first(image.get("thumbnailUrl"), image.get("cachedUrl"), image.get("originalUrl")),
            collection_name=_first(contract.get("name"), contract.get("symbol")) or "Unknown Collection",
            chain=chain_id,
            owner_address=owner,
        )
