"""Transaction completion, dispute ledger and rating aggregation service."""
__version__ = "0.1.0"
