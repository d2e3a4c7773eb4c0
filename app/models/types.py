"""
Standard type definitions for database models.

Provides consistent types for monetary fields across all models.
"""

from sqlalchemy import BigInteger

# Standard money type for commission and withdrawal amounts.
# Single currency, whole units (no minor units), so amounts are integers.
# Range: up to 9,223,372,036,854,775,807
MoneyType = BigInteger
