"""
Ledger audit: transaction history sync, replay and reconciliation.
"""
__version__ = "0.1.0"
