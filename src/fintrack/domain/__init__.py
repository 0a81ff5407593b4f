"""Domain layer for fintrack: entities, ledger rules and services."""
