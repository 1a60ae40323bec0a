"""Tests for plan limits."""

from datetime import datetime, timedelta, timezone

from slidecraft.services.quota import exports_remaining, get_plan_limits, is_paid_plan, month_start


def test_plan_limits() -> None:
    assert get_plan_limits("free")["exportsPerMonth"] == 5
    assert get_plan_limits("pro")["exportsPerMonth"] == 100
    assert get_plan_limits("mystery") == get_plan_limits("free")
    assert get_plan_limits(None) == get_plan_limits("free")


def test_paid_plans() -> None:
    assert not is_paid_plan("free")
    assert is_paid_plan("pro")
    assert is_paid_plan("tester")


def test_month_start_is_utc() -> None:
    local = datetime(2024, 3, 1, 1, 30, tzinfo=timezone(timedelta(hours=3)))
    # 01:30 at UTC+3 is still February in UTC
    assert month_start(local) == datetime(2024, 2, 1, tzinfo=timezone.utc)


def test_exports_remaining_never_negative() -> None:
    assert exports_remaining("free", 2) == 3
    assert exports_remaining("free", 9) == 0
