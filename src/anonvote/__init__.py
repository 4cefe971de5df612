"""Anonymous content-rating ledger: server ledger plus client vote cache."""

__version__ = "0.1.0"
