"""
Affiliate platform mirroring.

Every created commission is copied to the external affiliate-marketing
platform. Mirroring is fire-and-forget: the ledger write never waits on
it and never fails because of it.
"""

from typing import Any, Protocol

import aiohttp
from loguru import logger

from app.config.constants import AFFILIATE_PLATFORM_COMMISSION_PATH
from app.config.settings import settings
from app.models.commission import AffiliateCommission
from app.utils.exceptions import is_external_failure


class CommissionMirror(Protocol):
    """Schedules a created commission for external mirroring."""

    def schedule(self, commission: AffiliateCommission) -> None:
        ...


class NullCommissionMirror:
    """Mirror used when the platform is disabled."""

    def schedule(self, commission: AffiliateCommission) -> None:
        return None


def build_mirror_payload(
    commission: AffiliateCommission, order_total: int
) -> dict[str, Any] | None:
    """
    Platform payload for a commission row.

    Returns None when the beneficiary has no platform id. The order id
    keeps the ledger reference and level so the platform can dedupe.
    """
    if not commission.platform_affiliate_id:
        return None
    return {
        "affiliate_id": commission.platform_affiliate_id,
        "order_id": f"{commission.transaction_id}-L{commission.level}",
        "amount": commission.amount,
        "order_total": order_total,
        "level": commission.level,
    }


def safe_schedule(
    mirror: CommissionMirror, commission: AffiliateCommission
) -> None:
    """Schedule mirroring; any failure is logged and dropped."""
    context = {
        "commission_id": commission.id,
        "transaction_id": commission.transaction_id,
    }
    try:
        mirror.schedule(commission)
    except Exception as e:
        if is_external_failure(e):
            logger.warning(
                f"Commission mirroring not scheduled: {e}", extra=context
            )
        else:
            logger.opt(exception=e).warning(
                f"Commission mirroring failed unexpectedly: {e}",
                extra=context,
            )


class AffiliatePlatformClient:
    """
    HTTP client for the external affiliate platform.

    Posts commission payloads with basic auth and a bounded timeout.
    """

    def __init__(
        self,
        base_url: str | None = None,
        user: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.affiliate_platform_url or "").rstrip("/")
        self.auth = aiohttp.BasicAuth(
            user if user is not None else settings.affiliate_platform_user,
            password if password is not None else settings.affiliate_platform_password,
        )
        self.timeout = aiohttp.ClientTimeout(
            total=timeout or settings.affiliate_platform_timeout
        )
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=self.auth, timeout=self.timeout
            )
        return self._session

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "AffiliatePlatformClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def create_commission(self, payload: dict[str, Any]) -> dict | None:
        """
        Mirror one commission.

        Args:
            payload: Body built by build_mirror_payload

        Returns:
            Platform response body

        Raises:
            aiohttp.ClientError: transport failure or non-2xx status
        """
        if not self.base_url:
            raise ValueError("Affiliate platform URL is not configured")

        session = await self._get_session()
        url = f"{self.base_url}{AFFILIATE_PLATFORM_COMMISSION_PATH}"
        async with session.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json"},
        ) as response:
            response.raise_for_status()
            data = await response.json(content_type=None)

        logger.info(
            "Commission mirrored to affiliate platform",
            extra={
                "order_id": payload.get("order_id"),
                "platform_affiliate_id": payload.get("affiliate_id"),
                "amount": str(payload.get("amount")),
            },
        )
        return data
