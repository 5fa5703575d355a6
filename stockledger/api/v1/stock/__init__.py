"""Stock ledger API endpoints"""

from . import records, movements, transfers, withdrawals

__all__ = ["records", "movements", "transfers", "withdrawals"]
