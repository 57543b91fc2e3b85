"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

SUPER_ADMIN_ROLES = ("Super Admin", "Administrator")

DEFAULT_PTO_COLOR = "#3B82F6"
PTO_TYPE_CODE_MAX_LENGTH = 10
PTO_TYPE_SORT_STEP = 10

MIN_REQUEST_DAYS = Decimal("0.5")
HALF_DAY = Decimal("0.5")
HOURS_PER_PTO_DAY = 8
CANCEL_NOTICE_HOURS = 24

BALANCE_YEAR_MIN = 2000
BALANCE_YEAR_MAX = 2100

WEEKLY_OVERTIME_THRESHOLD_HOURS = Decimal("40")

DEFAULT_LIST_LIMIT = 200
DEFAULT_HISTORY_LIMIT = 50
