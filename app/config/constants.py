"""
Application constants.

Centralized constants for the commission ledger.
"""

# ========================================================================
# REFERRAL NETWORK CONSTANTS
# ========================================================================

# Hard upper bound for commission levels, independent of configuration
ABSOLUTE_MAX_LEVEL = 10

# Upper bound for downline traversal (network counts, hierarchy tree)
NETWORK_ABSOLUTE_MAX_DEPTH = 10

# Safety bound for cycle checks when walking up an existing chain
CYCLE_CHECK_MAX_HOPS = 10_000

# ========================================================================
# LEDGER CONSTANTS
# ========================================================================

# Ledger reference suffix for units n >= 2 of a multi-quantity purchase
UNIT_REFERENCE_TEMPLATE = "{transaction_id}-U{unit}"

# Visible digits when masking bank account numbers
ACCOUNT_MASK_VISIBLE_DIGITS = 4

# ========================================================================
# CACHE CONSTANTS
# ========================================================================

CACHE_KEY_BALANCE = "balance:{user_id}"
CACHE_KEY_DASHBOARD = "dashboard:{user_id}"
CACHE_KEY_COMMISSION_STATS = "commissions:{affiliate_id}"
CACHE_KEY_REFERRAL_TREE = "referrals:{affiliate_id}"

# ========================================================================
# PAGINATION
# ========================================================================

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
RECENT_COMMISSIONS_LIMIT = 10
DIRECT_REFERRALS_LIMIT = 50

# ========================================================================
# AFFILIATE PLATFORM
# ========================================================================

AFFILIATE_PLATFORM_COMMISSION_PATH = "/sgs/v1/create-commission"
