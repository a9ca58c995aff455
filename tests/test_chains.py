"""Tests for the chain catalog."""

import json
from dataclasses import replace

from chainfolio.chains import (
    DEFAULT_CHAIN_CONFIGS,
    ChainCatalog,
    ChainFamily,
    NetworkTier,
    explorer_link,
    get_chain_type,
    load_custom_chains,
    market_id_for_symbol,
)
from chainfolio.config import Settings


class TestChainTypes:
    """Tests for chain type metadata."""

    def test_native_decimals(self):
        """Native decimals per family."""
        assert get_chain_type("ethereum").native_decimals == 18
        assert get_chain_type("bitcoin").native_decimals == 8
        assert get_chain_type("solana").native_decimals == 9

    def test_families(self):
        """Each chain type belongs to one family."""
        assert get_chain_type("polygon").family == ChainFamily.EVM
        assert get_chain_type("litecoin").family == ChainFamily.UTXO
        assert get_chain_type("unknown") is None

    def test_market_id_for_symbol(self):
        """Known symbols map to market ids, others lower-case."""
        assert market_id_for_symbol("usdc") == "usd-coin"
        assert market_id_for_symbol("POL") == "polygon-ecosystem-token"
        assert market_id_for_symbol("PEPE") == "pepe"


class TestChainCatalog:
    """Tests for default and custom catalog entries."""

    def test_defaults(self):
        """Ethereum mainnet is enabled with chain id 1; testnet is not."""
        catalog = ChainCatalog()

        mainnet = catalog.get("ethereum")
        testnet = catalog.get("ethereum", NetworkTier.TESTNET)

        assert mainnet.chain_id == 1
        assert mainnet.enabled is True
        assert testnet.chain_id == 11155111
        assert testnet.enabled is False

    def test_non_evm_has_no_chain_id(self):
        """Bitcoin carries no numeric chain id."""
        assert ChainCatalog().get("bitcoin").chain_id is None

    def test_enabled_filter(self):
        """Only enabled entries are returned."""
        assert all(c.enabled for c in ChainCatalog().enabled())

    def test_add_and_remove_custom(self):
        """Custom entries are flagged and removable."""
        catalog = ChainCatalog()
        base = catalog.get("base")
        custom = catalog.add_custom(replace(base, rpc_url="https://my-node.example", enabled=True))

        assert custom.is_custom is True
        assert custom in catalog.configs
        assert catalog.remove_custom(custom) is True
        assert custom not in catalog.configs

    def test_default_entries_cannot_be_removed(self):
        """Removing a default entry is refused."""
        catalog = ChainCatalog()
        assert catalog.remove_custom(catalog.get("ethereum")) is False
        assert len(catalog.configs) == len(DEFAULT_CHAIN_CONFIGS)

    def test_from_settings_applies_rpc_override(self):
        """Mainnet RPC overrides replace catalog URLs."""
        settings = Settings(_env_file=None, eth_rpc_url="https://eth.example/rpc")

        catalog = ChainCatalog.from_settings(settings)

        assert catalog.get("ethereum").rpc_url == "https://eth.example/rpc"
        assert catalog.get("ethereum", NetworkTier.TESTNET).rpc_url != "https://eth.example/rpc"

    def test_from_settings_loads_custom_file(self, tmp_path):
        """Custom chains file entries are appended."""
        path = tmp_path / "chains.json"
        path.write_text(json.dumps([
            {"chain": "gnosis", "rpc_url": "https://rpc.gnosischain.com", "chain_id": 100},
            {"chain": "not-a-chain", "rpc_url": "https://x"},
        ]))
        settings = Settings(_env_file=None, custom_chains_file=str(path))

        catalog = ChainCatalog.from_settings(settings)
        gnosis = catalog.get("gnosis")

        assert gnosis is not None
        assert gnosis.is_custom is True
        assert gnosis.chain_id == 100
        assert len(catalog.configs) == len(DEFAULT_CHAIN_CONFIGS) + 1


class TestCustomChainsFile:
    """Tests for loading user-added networks."""

    def test_missing_file(self, tmp_path):
        """A missing file yields nothing."""
        assert load_custom_chains(tmp_path / "absent.json") == []

    def test_not_a_list(self, tmp_path):
        """A non-list document yields nothing."""
        path = tmp_path / "chains.json"
        path.write_text('{"chain": "ethereum"}')
        assert load_custom_chains(path) == []


class TestExplorerLink:
    """Tests for transaction deep links."""

    def test_trailing_slash(self):
        """A trailing slash on the base is trimmed."""
        assert explorer_link("https://etherscan.io/", "0xabc") == "https://etherscan.io/tx/0xabc"

    def test_missing_parts(self):
        """No base or no hash gives no link."""
        assert explorer_link("", "0xabc") is None
        assert explorer_link("https://etherscan.io", "") is None
