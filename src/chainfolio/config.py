"""Application configuration using pydantic-settings.

Explorer credentials are deliberately not declared here: each explorer
endpoint resolves its own ordered list of environment variables at call
time (see chainfolio.registry), falling back to ``explorer_api_key``.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Log level when debug is off")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # HTTP
    # ======================
    http_timeout: float = Field(default=30.0, description="Default upstream timeout (seconds)")
    nft_timeout: float = Field(default=30.0, description="NFT metadata timeout (seconds)")

    # ======================
    # Chain RPC Endpoints (mainnet overrides)
    # ======================
    eth_rpc_url: Optional[str] = Field(default=None, description="Ethereum RPC URL")
    bsc_rpc_url: Optional[str] = Field(default=None, description="BNB Smart Chain RPC URL")
    polygon_rpc_url: Optional[str] = Field(default=None, description="Polygon RPC URL")
    arbitrum_rpc_url: Optional[str] = Field(default=None, description="Arbitrum RPC URL")
    optimism_rpc_url: Optional[str] = Field(default=None, description="Optimism RPC URL")
    avalanche_rpc_url: Optional[str] = Field(default=None, description="Avalanche RPC URL")
    base_rpc_url: Optional[str] = Field(default=None, description="Base RPC URL")
    btc_api_url: Optional[str] = Field(default=None, description="Esplora REST base for Bitcoin")

    # ======================
    # Block Explorers
    # ======================
    explorer_api_key: str = Field(
        default="", description="Shared explorer API key used when no per-chain key is set"
    )
    explorer_page_size: int = Field(
        default=50, ge=1, le=10000, description="Records requested per explorer page"
    )

    # ======================
    # Market Data
    # ======================
    coingecko_api_url: str = Field(
        default="https://api.coingecko.com/api/v3", description="CoinGecko API base URL"
    )
    coingecko_api_key: str = Field(default="", description="CoinGecko demo API key")
    price_page_size: int = Field(
        default=250, ge=1, le=250, description="Market ids per CoinGecko markets request"
    )

    # ======================
    # NFTs
    # ======================
    alchemy_api_key: str = Field(default="", description="Alchemy API key for NFT lookups")
    alchemy_nft_url: str = Field(
        default="https://eth-mainnet.g.alchemy.com/nft/v3",
        description="Alchemy NFT API base URL",
    )

    # ======================
    # Custom networks
    # ======================
    custom_chains_file: Optional[str] = Field(
        default=None, description="JSON file with user-added chain configurations"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_rpc_url(self, chain: str) -> Optional[str]:
        """Get the RPC override for a chain type id, if any."""
        rpc_map = {
            "ethereum": self.eth_rpc_url,
            "binance-smart-chain": self.bsc_rpc_url,
            "polygon": self.polygon_rpc_url,
            "arbitrum": self.arbitrum_rpc_url,
            "optimism": self.optimism_rpc_url,
            "avalanche": self.avalanche_rpc_url,
            "base": self.base_rpc_url,
            "bitcoin": self.btc_api_url,
        }
        return rpc_map.get(chain.lower()) or None

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "http_timeout": self.http_timeout,
            "explorer": {
                "shared_api_key": "***" if self.explorer_api_key else "(not set)",
                "page_size": self.explorer_page_size,
            },
            "prices": {
                "url": self.coingecko_api_url,
                "api_key": "***" if self.coingecko_api_key else "(not set)",
            },
            "nfts": {
                "api_key": "***" if self.alchemy_api_key else "(not set)",
            },
            "custom_chains_file": self.custom_chains_file or "(none)",
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
