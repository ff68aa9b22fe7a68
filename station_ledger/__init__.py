"""Fuel station ledger computations: balances, aging and filtered report views."""
