"""
Datetime utilities.

Timezone-aware timestamps for ledger rows.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC datetime with timezone info."""
    return datetime.now(UTC)
