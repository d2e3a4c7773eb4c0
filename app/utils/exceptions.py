"""
Exception handling utilities.

Defines the ledger error taxonomy and categorized external failures.
"""

from typing import Any

from aiohttp import ClientError
from dramatiq.errors import DramatiqError
from redis.exceptions import RedisError


class LedgerError(Exception):
    """Base class for errors surfaced to callers of ledger operations."""

    code = "LEDGER_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Payload for surrounding layers (API, CLI)."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(LedgerError):
    """Malformed input, rejected before any write."""

    code = "VALIDATION_ERROR"


class InvalidPurchaseError(ValidationError):
    """Purchase event fails fan-out preconditions."""

    code = "INVALID_PURCHASE"


class ReferralCycleError(ValidationError):
    """Upline assignment would create a cycle or re-parent a node."""

    code = "REFERRAL_CYCLE"


class NotFoundError(LedgerError):
    """Referenced affiliate, commission or withdrawal does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity} {entity_id} not found",
            entity=entity,
            id=entity_id,
        )
        self.entity = entity
        self.entity_id = entity_id


class StateConflictError(LedgerError):
    """Requested transition is not legal from the current state."""

    code = "STATE_CONFLICT"

    def __init__(
        self,
        entity: str,
        current: str,
        requested: str,
        entity_id: Any = None,
    ) -> None:
        label = entity if entity_id is None else f"{entity} {entity_id}"
        super().__init__(
            f"{label} is {current}, cannot move to {requested}",
            entity=entity,
            id=entity_id,
            current_state=str(current),
            requested_state=str(requested),
        )
        self.current = current
        self.requested = requested


class InsufficientBalanceError(LedgerError):
    """Withdrawal amount exceeds spendable balance."""

    code = "INSUFFICIENT_BALANCE"

    def __init__(self, requested: int, available: int) -> None:
        shortfall = max(0, requested - available)
        super().__init__(
            f"Requested {requested} exceeds available {available} "
            f"(shortfall {shortfall})",
            requested=requested,
            available=available,
            shortfall=shortfall,
        )
        self.requested = requested
        self.available = available
        self.shortfall = shortfall


# Exception categories based on handling strategy

# External dependencies: log and continue, never fail the ledger write
EXTERNAL_FAILURES = (
    ClientError,  # Affiliate platform HTTP
    RedisError,  # Dashboard cache
    DramatiqError,  # Task broker
    TimeoutError,
    ConnectionError,
)


def is_external_failure(exc: Exception) -> bool:
    """
    Check if exception comes from an external dependency.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be logged and swallowed
    """
    return isinstance(exc, EXTERNAL_FAILURES)
