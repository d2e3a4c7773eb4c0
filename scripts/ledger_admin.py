#!/usr/bin/env python3
"""
Commission ledger operator tool.

Runs ledger operations from the command line: purchase fan-out, admin
approval, withdrawals, balance and network lookups.

Usage:
    python scripts/ledger_admin.py distribute --purchaser 12 --transaction ORD-1 --amount 500000 [--quantity 2]
    python scripts/ledger_admin.py approve 345
    python scripts/ledger_admin.py approve-adjusted 345 --amount 15000
    python scripts/ledger_admin.py approve-batch 345 346 347
    python scripts/ledger_admin.py approve-group --affiliate 12 [--total 100000]
    python scripts/ledger_admin.py reject 345 --reason "duplicate order"
    python scripts/ledger_admin.py request-withdrawal --user 7 --amount 70000 --bank BCA --account 1234567890 --holder "Jane Doe"
    python scripts/ledger_admin.py approve-withdrawal 9 [--notes "..."]
    python scripts/ledger_admin.py reject-withdrawal 9 --notes "wrong account"
    python scripts/ledger_admin.py complete-withdrawal 9 [--notes "..."]
    python scripts/ledger_admin.py balance --user 7
    python scripts/ledger_admin.py network --affiliate 12 [--depth 5] [--tree]
    python scripts/ledger_admin.py pending [--search AFF]
    python scripts/ledger_admin.py stats
    python scripts/ledger_admin.py register --user 7 --code AFF007 [--parent 12]
    python scripts/ledger_admin.py set-status --affiliate 12 --status SUSPENDED
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from app.config.logging import setup_logging  # noqa: E402
from app.config.settings import settings  # noqa: E402
from app.models.enums import AffiliateStatus  # noqa: E402
from app.services.balance import BalanceAggregator  # noqa: E402
from app.services.commission import (  # noqa: E402
    AdminApprovalWorkflow,
    CommissionFanoutEngine,
    CommissionMirror,
)
from app.services.commission.statistics import commission_to_dict  # noqa: E402
from app.services.referral import (  # noqa: E402
    AffiliateGraphStore,
    ReferralNetworkService,
)
from app.services.withdrawal import (  # noqa: E402
    WithdrawalLifecycleHandler,
    WithdrawalRequestHandler,
    withdrawal_to_dict,
)
from app.utils.cache import LedgerCache  # noqa: E402
from app.utils.exceptions import LedgerError  # noqa: E402


APPROVAL_COMMANDS = (
    "approve",
    "approve-adjusted",
    "approve-batch",
    "approve-group",
    "reject",
    "pending",
    "stats",
)
WITHDRAWAL_ADMIN_COMMANDS = (
    "approve-withdrawal",
    "reject-withdrawal",
    "complete-withdrawal",
)


def build_parser() -> argparse.ArgumentParser:
    """Command line definition."""
    parser = argparse.ArgumentParser(
        description="Commission ledger operator tool"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("distribute", help="Fan out commissions for a purchase")
    p.add_argument("--purchaser", type=int, required=True, help="Purchasing affiliate ID")
    p.add_argument("--transaction", required=True, help="Purchase reference")
    p.add_argument("--amount", type=int, required=True, help="Unit price")
    p.add_argument("--quantity", type=int, default=1)

    p = sub.add_parser("approve", help="Approve one commission")
    p.add_argument("commission_id", type=int)

    p = sub.add_parser("approve-adjusted", help="Approve with a replacement amount")
    p.add_argument("commission_id", type=int)
    p.add_argument("--amount", type=int, required=True)

    p = sub.add_parser("approve-batch", help="Approve several commissions")
    p.add_argument("commission_ids", type=int, nargs="+")

    p = sub.add_parser("approve-group", help="Approve all pending rows of an affiliate")
    p.add_argument("--affiliate", type=int, required=True)
    p.add_argument("--total", type=int, default=None, help="Override credited total")

    p = sub.add_parser("reject", help="Reject one commission")
    p.add_argument("commission_id", type=int)
    p.add_argument("--reason", required=True)

    p = sub.add_parser("request-withdrawal", help="Create a withdrawal request")
    p.add_argument("--user", type=int, required=True)
    p.add_argument("--amount", type=int, required=True)
    p.add_argument("--bank", required=True)
    p.add_argument("--account", required=True)
    p.add_argument("--holder", required=True)

    p = sub.add_parser("approve-withdrawal", help="Approve a withdrawal")
    p.add_argument("withdrawal_id", type=int)
    p.add_argument("--notes", default=None)

    p = sub.add_parser("reject-withdrawal", help="Reject a withdrawal")
    p.add_argument("withdrawal_id", type=int)
    p.add_argument("--notes", required=True)

    p = sub.add_parser("complete-withdrawal", help="Complete a withdrawal (FIFO debit)")
    p.add_argument("withdrawal_id", type=int)
    p.add_argument("--notes", default=None)

    p = sub.add_parser("balance", help="Show live balance of a user")
    p.add_argument("--user", type=int, required=True)

    p = sub.add_parser("network", help="Show downline statistics")
    p.add_argument("--affiliate", type=int, required=True)
    p.add_argument("--depth", type=int, default=None)
    p.add_argument("--tree", action="store_true", help="Print hierarchy tree")

    p = sub.add_parser("pending", help="Pending commissions grouped by affiliate")
    p.add_argument("--search", default=None)

    sub.add_parser("stats", help="Global commission and affiliate counts")

    p = sub.add_parser("register", help="Register an affiliate node")
    p.add_argument("--user", type=int, required=True)
    p.add_argument("--code", required=True)
    p.add_argument("--parent", type=int, default=None)

    p = sub.add_parser("set-status", help="Change affiliate status")
    p.add_argument("--affiliate", type=int, required=True)
    p.add_argument(
        "--status",
        required=True,
        choices=[s.value for s in AffiliateStatus if s != AffiliateStatus.PENDING],
    )

    return parser


def _default_mirror() -> CommissionMirror | None:
    """Dramatiq mirror when the platform is enabled."""
    if not settings.affiliate_platform_enabled:
        return None
    from jobs.tasks.affiliate_platform_sync import DramatiqCommissionMirror

    return DramatiqCommissionMirror()


async def run_command(
    args: argparse.Namespace,
    session: AsyncSession,
    cache: LedgerCache,
    mirror: CommissionMirror | None = None,
) -> Any:
    """
    Execute one parsed command.

    Returns:
        JSON-serializable result
    """
    command = args.command

    if command == "distribute":
        engine = CommissionFanoutEngine(session, mirror=mirror, cache=cache)
        result = await engine.distribute(
            args.purchaser, args.transaction, args.amount, args.quantity
        )
        return {
            "transaction_id": result.transaction_id,
            "created": [commission_to_dict(c) for c in result.created],
            "skipped": len(result.skipped),
            "total_amount": result.total_amount,
            "termination": result.termination.value,
        }

    if command in APPROVAL_COMMANDS:
        workflow = AdminApprovalWorkflow(session, cache)
        if command == "approve":
            return commission_to_dict(await workflow.approve(args.commission_id))
        if command == "approve-adjusted":
            return commission_to_dict(
                await workflow.approve_with_adjusted_amount(
                    args.commission_id, args.amount
                )
            )
        if command == "approve-batch":
            batch = await workflow.approve_batch(args.commission_ids)
            return {"approved": batch.approved_ids, "failed": batch.failed}
        if command == "approve-group":
            group = await workflow.approve_affiliate_group(
                args.affiliate, total_override=args.total
            )
            return {
                "affiliate_id": group.affiliate_id,
                "approved": [c.id for c in group.approved],
                "rows_total": group.rows_total,
                "credited_amount": group.credited_amount,
            }
        if command == "reject":
            return commission_to_dict(
                await workflow.reject(args.commission_id, args.reason)
            )
        if command == "stats":
            return await workflow.get_global_stats()
        return await workflow.list_pending_grouped(search=args.search)

    if command == "request-withdrawal":
        handler = WithdrawalRequestHandler(session, cache)
        withdrawal = await handler.request_withdrawal(
            user_id=args.user,
            amount=args.amount,
            bank_name=args.bank,
            account_number=args.account,
            account_holder=args.holder,
        )
        return withdrawal_to_dict(withdrawal)

    if command in WITHDRAWAL_ADMIN_COMMANDS:
        lifecycle = WithdrawalLifecycleHandler(session, cache)
        if command == "approve-withdrawal":
            withdrawal = await lifecycle.approve_withdrawal(
                args.withdrawal_id, notes=args.notes
            )
            return withdrawal_to_dict(withdrawal, admin=True)
        if command == "reject-withdrawal":
            withdrawal = await lifecycle.reject_withdrawal(
                args.withdrawal_id, args.notes
            )
            return withdrawal_to_dict(withdrawal, admin=True)
        report = await lifecycle.complete_withdrawal(
            args.withdrawal_id, notes=args.notes
        )
        return {
            "withdrawal": withdrawal_to_dict(report.withdrawal, admin=True),
            "deductions": [vars(line) for line in report.deductions],
            "total_debited": report.total_debited,
        }

    if command == "balance":
        snapshot = await BalanceAggregator(session, cache).balance(args.user)
        return snapshot.to_dict()

    if command == "network":
        network = ReferralNetworkService(session, cache)
        if args.tree:
            return await network.get_hierarchy(args.affiliate, args.depth)
        return await network.get_network_stats(args.affiliate, args.depth)

    if command in ("register", "set-status"):
        store = AffiliateGraphStore(session, cache=cache)
        if command == "register":
            affiliate = await store.register(
                args.user, args.code, parent_id=args.parent
            )
        else:
            affiliate = await store.set_status(
                args.affiliate, AffiliateStatus(args.status)
            )
        return {
            "id": affiliate.id,
            "user_id": affiliate.user_id,
            "code": affiliate.code,
            "referred_by_id": affiliate.referred_by_id,
            "status": affiliate.status,
        }

    raise ValueError(f"Unknown command {command}")


async def main(argv: list[str] | None = None) -> int:
    """Entry point, returns process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging()

    from app.config.database import (
        create_engine,
        create_session_maker,
        session_scope,
    )
    from app.utils.redis_utils import get_ledger_cache

    engine = create_engine()
    session_maker: async_sessionmaker[AsyncSession] = create_session_maker(engine)
    cache = await get_ledger_cache()

    try:
        async with session_scope(session_maker) as session:
            result = await run_command(args, session, cache, _default_mirror())
    except LedgerError as e:
        print(json.dumps({"error": e.to_dict()}, default=str, indent=2), file=sys.stderr)
        return 1
    finally:
        if cache.redis_client is not None:
            await cache.redis_client.aclose()
        await engine.dispose()

    print(json.dumps(result, default=str, indent=2))
    logger.debug(f"Command {args.command} finished")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
