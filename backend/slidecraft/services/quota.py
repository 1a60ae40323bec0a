"""
Plan limits.
"""

from datetime import datetime, timezone
from typing import Optional

PLAN_LIMITS = {
    "free": {"exportsPerMonth": 5, "paid": False},
    "pro": {"exportsPerMonth": 100, "paid": True},
    "tester": {"exportsPerMonth": 200, "paid": True},
}
DEFAULT_PLAN = "free"


def get_plan_limits(plan: Optional[str]) -> dict:
    return PLAN_LIMITS.get(plan or DEFAULT_PLAN, PLAN_LIMITS[DEFAULT_PLAN])


def is_paid_plan(plan: Optional[str]) -> bool:
    return get_plan_limits(plan)["paid"]


def month_start(now: Optional[datetime] = None) -> datetime:
    """First instant of the current calendar month (UTC)."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def exports_remaining(plan: Optional[str], used_this_month: int) -> int:
    return max(0, get_plan_limits(plan)["exportsPerMonth"] - used_this_month)
