"""Core (UI-agnostic) broker lead ledger logic.

This package contains:
- the broker/entry data model and input validation
- the ledger store with its persistence adapter
- balance projection, monthly summaries and cross-broker ranking
- CSV / JSON exports and chart helpers (Altair -> Vega-Lite spec dict)
"""
