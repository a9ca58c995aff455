"""HTTP API for the aggregation engine."""
