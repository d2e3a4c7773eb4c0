"""
Withdrawal services package.

This package provides modular withdrawal management functionality:
- withdrawal_request_handler: request creation with live balance check
- withdrawal_lifecycle_handler: approval, rejection, completion
- withdrawal_debit_engine: FIFO consumption of approved commissions
- withdrawal_query_service: history, details and admin listing

All components are re-exported for easy importing.
"""

from app.services.withdrawal.withdrawal_debit_engine import (
    DebitReport,
    DeductionLine,
    WithdrawalDebitEngine,
    plan_fifo_debit,
)
from app.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
)
from app.services.withdrawal.withdrawal_query_service import (
    WithdrawalQueryService,
    withdrawal_to_dict,
)
from app.services.withdrawal.withdrawal_request_handler import (
    WithdrawalRequestHandler,
)


__all__ = [
    "DebitReport",
    "DeductionLine",
    "WithdrawalDebitEngine",
    "WithdrawalLifecycleHandler",
    "WithdrawalQueryService",
    "WithdrawalRequestHandler",
    "plan_fifo_debit",
    "withdrawal_to_dict",
]
