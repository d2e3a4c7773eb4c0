"""
Database decorators for automatic rollback.

Ledger services own an AsyncSession (``self.session``) and commit at the end
of each operation. These decorators make sure a failed operation leaves
nothing half-written in that session.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


def _find_session(args: tuple[Any, ...], kwargs: dict[str, Any]) -> AsyncSession | None:
    """Locate the session: kwarg, first positional, or owner's attribute."""
    session = kwargs.get("session")
    if session is not None:
        return session
    if args:
        first = args[0]
        if isinstance(first, AsyncSession):
            return first
        owned = getattr(first, "session", None)
        if isinstance(owned, AsyncSession):
            return owned
    return None


def with_rollback_on_error(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """
    Roll back the session on any exception, then re-raise.

    Works on service methods (session taken from ``self.session``) and on
    plain functions receiving the session as first argument or ``session=``.

    Example:
        class CommissionLedger:
            @with_rollback_on_error
            async def approve(self, commission_id: int) -> AffiliateCommission:
                ...
                await self.session.commit()
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)

        if session is None:
            logger.warning(
                f"Function {func.__name__} decorated with @with_rollback_on_error "
                f"but no session found. Rollback will not be performed."
            )
            return await func(*args, **kwargs)

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            try:
                await session.rollback()
                logger.debug(
                    f"Rollback performed in {func.__name__} due to error: {type(e).__name__}"
                )
            except Exception as rollback_error:
                logger.error(
                    f"Failed to rollback in {func.__name__}: {rollback_error}",
                    exc_info=True
                )
            raise

    return wrapper
