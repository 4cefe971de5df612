"""HTTP API for the anonvote ledger."""
