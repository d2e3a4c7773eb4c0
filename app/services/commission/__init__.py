"""
Commission services package.

Contains modular services for the commission ledger:
- config: per-level commission schedule
- fanout_engine: purchase -> PENDING rows for every eligible level
- ledger: approve / reject state transitions
- approval_workflow: admin operations over the ledger
- platform_mirror: external affiliate platform mirroring
- statistics: summaries, level breakdown, dashboard
"""

from app.services.commission.approval_workflow import (
    AdminApprovalWorkflow,
    BatchApprovalResult,
)
from app.services.commission.config import CommissionSchedule
from app.services.commission.fanout_engine import (
    CommissionFanoutEngine,
    FanoutResult,
    SkippedCommission,
    unit_reference,
)
from app.services.commission.ledger import CommissionLedger, GroupApprovalResult
from app.services.commission.platform_mirror import (
    AffiliatePlatformClient,
    CommissionMirror,
    NullCommissionMirror,
    build_mirror_payload,
)
from app.services.commission.statistics import CommissionStatisticsService


__all__ = [
    # Configuration
    "CommissionSchedule",
    # Fan-out
    "CommissionFanoutEngine",
    "FanoutResult",
    "SkippedCommission",
    "unit_reference",
    # Ledger
    "CommissionLedger",
    "GroupApprovalResult",
    "AdminApprovalWorkflow",
    "BatchApprovalResult",
    # Mirroring
    "AffiliatePlatformClient",
    "CommissionMirror",
    "NullCommissionMirror",
    "build_mirror_payload",
    # Statistics
    "CommissionStatisticsService",
]
