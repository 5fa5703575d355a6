"""
Stockledger
Multi-warehouse inventory ledger and replenishment engine
"""
__version__ = "1.0.0"
