"""Stock ledger services"""
