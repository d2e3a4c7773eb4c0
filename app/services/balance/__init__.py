"""
Balance services package.

- aggregator: balance snapshots derived from the ledger
"""

from app.services.balance.aggregator import BalanceAggregator, BalanceSnapshot


__all__ = [
    "BalanceAggregator",
    "BalanceSnapshot",
]
