"""Multi-chain balance and transaction aggregation."""

__version__ = "0.1.0"
