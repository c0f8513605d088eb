"""Cross-chain quote aggregation and route planning service."""

__version__ = "0.1.0"
