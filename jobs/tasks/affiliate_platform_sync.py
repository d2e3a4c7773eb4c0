"""
Affiliate platform sync task.

Mirrors created commissions to the external affiliate platform. Runs on
the Dramatiq queue so the ledger write never waits on the platform.
"""

from typing import Any

import dramatiq
from aiohttp import ClientError
from dramatiq.middleware import CurrentMessage
from loguru import logger

from app.config.settings import settings
from app.models.commission import AffiliateCommission
from app.services.commission.platform_mirror import (
    AffiliatePlatformClient,
    build_mirror_payload,
)
from jobs.async_runner import run_async
from jobs.broker import MIRROR_MAX_RETRIES


@dramatiq.actor(
    queue_name="affiliate_platform",
    max_retries=MIRROR_MAX_RETRIES,
    time_limit=60_000,  # 1 min
)
def mirror_commission(payload: dict[str, Any]) -> None:
    """
    Post one commission to the affiliate platform.

    Transport errors are re-raised so the Retries middleware backs off
    and tries again; the ledger row is unaffected either way.
    """
    message = CurrentMessage.get_current_message()
    attempt = (message.options.get("retries", 0) if message else 0) + 1
    try:
        run_async(_mirror_commission_async(payload))
    except (ClientError, TimeoutError) as e:
        logger.warning(
            f"Affiliate platform sync failed (attempt {attempt}): {e}",
            extra={"order_id": payload.get("order_id"), "attempt": attempt},
        )
        raise


async def _mirror_commission_async(payload: dict[str, Any]) -> None:
    """Async implementation of commission mirroring."""
    async with AffiliatePlatformClient() as client:
        await client.create_commission(payload)


class DramatiqCommissionMirror:
    """CommissionMirror that enqueues mirror_commission messages."""

    def __init__(
        self, order_total: int | None = None, enabled: bool | None = None
    ) -> None:
        """
        Initialize mirror.

        Args:
            order_total: Order total reported to the platform (defaults to
                the qualifying product price)
            enabled: Override settings.affiliate_platform_enabled
        """
        self.order_total = (
            order_total
            if order_total is not None
            else settings.commission_required_product_amount
        )
        self.enabled = (
            settings.affiliate_platform_enabled if enabled is None else enabled
        )

    def schedule(self, commission: AffiliateCommission) -> None:
        """Enqueue mirroring for a commission with a platform id."""
        if not self.enabled:
            return
        payload = build_mirror_payload(commission, self.order_total)
        if payload is None:
            logger.debug(
                "Beneficiary has no platform id, mirroring skipped",
                extra={"commission_id": commission.id},
            )
            return
        mirror_commission.send(payload)
