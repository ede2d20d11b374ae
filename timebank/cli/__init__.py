"""Command-line interface for the timebank ledger."""
