"""Plan catalog seeding and the user plan ledger."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from resumezen.core.errors import NotFoundError
from resumezen.features.plans.service import (
    DEFAULT_PLANS,
    get_plan,
    get_user_plan,
    list_plans,
    list_user_plans,
    purchase_plan,
    seed_plans,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_catalog_seeded_cheapest_first():
    plans = list_plans()
    assert [p.plan_id for p in plans] == ["one-time-check", "boost-pack", "unlimited-pack"]
    assert [p.credits for p in plans] == [1, 5, 999]
    assert plans[0].price == Decimal("19")
    assert plans[2].is_unlimited and plans[2].duration_days == 90


def test_seed_is_idempotent():
    assert seed_plans() == 0
    assert len(list_plans()) == len(DEFAULT_PLANS)


def test_force_seed_rewrites_rows():
    assert seed_plans(force=True) == len(DEFAULT_PLANS)
    assert get_plan("boost-pack").is_popular is True


def test_get_unknown_plan_returns_none():
    assert get_plan("platinum") is None


def test_purchase_creates_ledger_entry(user_id):
    up = purchase_plan(user_id, "boost-pack", now=NOW)
    assert up.credits_left == 5
    assert up.original_credits == 5
    assert up.expires_at is None
    assert up.is_usable(NOW)

    stored = get_user_plan(up.user_plan_id)
    assert stored == up


def test_unlimited_purchase_expires_after_duration(user_id):
    up = purchase_plan(user_id, "unlimited-pack", now=NOW)
    assert up.is_unlimited
    assert up.expires_at == NOW + timedelta(days=90)
    assert up.is_usable(NOW + timedelta(days=89))
    assert not up.is_usable(NOW + timedelta(days=90))
    assert up.status(NOW + timedelta(days=91)) == "expired"


def test_purchase_unknown_plan_raises(user_id):
    with pytest.raises(NotFoundError):
        purchase_plan(user_id, "platinum")


def test_ledger_most_recent_first(user_id):
    first = purchase_plan(user_id, "one-time-check", now=NOW)
    second = purchase_plan(user_id, "boost-pack", now=NOW + timedelta(hours=1))
    assert [up.user_plan_id for up in list_user_plans(user_id)] == [second.user_plan_id, first.user_plan_id]


def test_usable_only_filters_expired(user_id):
    purchase_plan(user_id, "unlimited-pack", now=NOW - timedelta(days=120))
    fresh = purchase_plan(user_id, "one-time-check", now=NOW)
    usable = list_user_plans(user_id, usable_only=True, now=NOW)
    assert [up.user_plan_id for up in usable] == [fresh.user_plan_id]
