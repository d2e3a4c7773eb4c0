"""
Formatters utility.

Formatting helpers for ledger output.
"""

from app.config.constants import ACCOUNT_MASK_VISIBLE_DIGITS


def mask_account_number(account_number: str | None) -> str:
    """
    Mask a bank account number for non-admin output.

    Args:
        account_number: Raw account number

    Returns:
        "****" followed by the last digits, or "" when missing
    """
    if not account_number:
        return ""
    return "****" + account_number[-ACCOUNT_MASK_VISIBLE_DIGITS:]
