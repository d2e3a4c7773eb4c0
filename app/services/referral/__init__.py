"""
Referral services package.

Contains modular services for the referral graph:
- graph_store: node registration, upline assignment, status changes
- activation: activation fee check used before activation and fan-out
- chain_walker: upline walk with hard-break eligibility
- network: downline statistics and hierarchy tree
"""

from app.services.referral.activation import (
    ActivationPaymentChecker,
    DatabaseActivationPaymentChecker,
)
from app.services.referral.chain_walker import (
    ChainLink,
    ChainTermination,
    ChainWalk,
    ReferralChainWalker,
)
from app.services.referral.graph_store import AffiliateGraphStore
from app.services.referral.network import ReferralNetworkService


__all__ = [
    # Graph
    "AffiliateGraphStore",
    "ActivationPaymentChecker",
    "DatabaseActivationPaymentChecker",
    # Chain walk
    "ChainLink",
    "ChainTermination",
    "ChainWalk",
    "ReferralChainWalker",
    # Statistics
    "ReferralNetworkService",
]
