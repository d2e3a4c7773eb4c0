"""
Services.

Business logic layer.
"""

# Balance
from app.services.balance import BalanceAggregator, BalanceSnapshot

# Commission ledger
from app.services.commission import (
    AdminApprovalWorkflow,
    CommissionFanoutEngine,
    CommissionLedger,
    CommissionSchedule,
    CommissionStatisticsService,
    FanoutResult,
)

# Referral graph
from app.services.referral import (
    AffiliateGraphStore,
    ReferralChainWalker,
    ReferralNetworkService,
)

# Withdrawals
from app.services.withdrawal import (
    DebitReport,
    WithdrawalDebitEngine,
    WithdrawalLifecycleHandler,
    WithdrawalQueryService,
    WithdrawalRequestHandler,
)


__all__ = [
    # Referral graph
    "AffiliateGraphStore",
    "ReferralChainWalker",
    "ReferralNetworkService",
    # Commission ledger
    "CommissionSchedule",
    "CommissionFanoutEngine",
    "FanoutResult",
    "CommissionLedger",
    "AdminApprovalWorkflow",
    "CommissionStatisticsService",
    # Balance
    "BalanceAggregator",
    "BalanceSnapshot",
    # Withdrawals
    "WithdrawalRequestHandler",
    "WithdrawalLifecycleHandler",
    "WithdrawalDebitEngine",
    "DebitReport",
    "WithdrawalQueryService",
]
