"""Upstream fetchers: native balances, tokens, history, prices and NFTs."""

from chainfolio.fetchers.base import ChainBackend
from chainfolio.fetchers.explorer import ExplorerClient
from chainfolio.fetchers.factory import UnsupportedBackend, create_backends
from chainfolio.fetchers.nfts import NftFetcher
from chainfolio.fetchers.prices import PriceFetcher
from chainfolio.fetchers.tokens import TokenFetcher

__all__ = [
    "ChainBackend",
    "ExplorerClient",
    "NftFetcher",
    "PriceFetcher",
    "TokenFetcher",
    "UnsupportedBackend",
    "create_backends",
]
