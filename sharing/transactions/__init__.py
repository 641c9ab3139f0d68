"""
Atomic Transaction Handlers for appointment sharing.

Transaction handlers encapsulate multi-step writes that must commit together
or not at all:
- ShareTransaction: propose / accept / reject / cancel shares, and share
  selected dates of a recurring template (clone + propose per date)
- SettlementTransaction: write the invoice and walker earning for a
  completed walk

Key design principles:
1. SELECT FOR UPDATE on the appointment row before any state transition
2. Storage constraints back every uniqueness rule (no check-then-act races)
3. Complete rollback on any failure; typed results with error codes
"""

from sharing.transactions.settlement_transaction import SettlementResult, SettlementTransaction
from sharing.transactions.share_transaction import (
    RecurringShareResult,
    ShareResult,
    ShareTransaction,
)

__all__ = [
    "RecurringShareResult",
    "SettlementResult",
    "SettlementTransaction",
    "ShareResult",
    "ShareTransaction",
]
