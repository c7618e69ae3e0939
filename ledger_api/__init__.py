"""HTTP API over the broker lead ledger."""
