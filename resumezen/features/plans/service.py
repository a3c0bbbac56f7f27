"""
resumezen/features/plans/service.py

Plan catalog and user plan ledger.

Handles:
- Plan seeding (one-time-check, boost-pack, unlimited-pack)
- Catalog reads
- Plan purchase (creates a ledger entry)
- Ledger reads
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import select, insert, update

from resumezen.core.database import get_db_session, plans, user_plans
from resumezen.core.errors import NotFoundError
from resumezen.models.base import ensure_utc, utc_now
from resumezen.models.plan import Plan
from resumezen.models.user_plan import UserPlan

logger = logging.getLogger("resumezen")


# Default catalog
DEFAULT_PLANS = {
    "one-time-check": {
        "name": "One-Time Check",
        "price": Decimal("19"),
        "period": "one-time",
        "credits": 1,
        "duration_days": None,
        "is_unlimited": False,
        "features": [
            "1 resume ATS check",
            "Personalized improvement tips",
            "Basic AI analysis",
            "24/7 email support",
            "Export to PDF",
        ],
    },
    "boost-pack": {
        "name": "Boost Pack",
        "price": Decimal("70"),
        "period": "one-time",
        "credits": 5,
        "duration_days": None,
        "is_unlimited": False,
        "is_popular": True,
        "features": [
            "5 resume checks",
            "Track improvement history",
            "Advanced AI analysis",
            "Priority email support",
            "Export to multiple formats",
            "LinkedIn profile optimization",
            "Industry-specific keywords",
        ],
    },
    "unlimited-pack": {
        "name": "Unlimited Pack",
        "price": Decimal("500"),
        "period": "3 months",
        "credits": 999,
        "duration_days": 90,
        "is_unlimited": True,
        "is_special": True,
        "features": [
            "Unlimited resume checks",
            "Real-time ATS scoring",
            "Premium AI suggestions",
            "24/7 priority support",
            "All export formats",
            "LinkedIn & GitHub optimization",
            "Custom branding options",
            "Interview preparation tips",
            "Job market insights",
        ],
    },
}


def _plan_values(plan_id: str, config: dict) -> dict:
    return {
        "plan_id": plan_id,
        "name": config["name"],
        "price": config["price"],
        "currency": config.get("currency", "INR"),
        "period": config.get("period", "one-time"),
        "credits": config["credits"],
        "duration_days": config.get("duration_days"),
        "is_unlimited": config.get("is_unlimited", False),
        "is_popular": config.get("is_popular", False),
        "is_special": config.get("is_special", False),
        "features": list(config.get("features", [])),
    }


def _row_to_plan(row) -> Plan:
    return Plan(
        plan_id=row.plan_id,
        name=row.name,
        price=Decimal(str(row.price)),
        currency=row.currency,
        period=row.period,
        credits=row.credits,
        duration_days=row.duration_days,
        is_unlimited=row.is_unlimited,
        is_popular=row.is_popular,
        is_special=row.is_special,
        features=list(row.features or []),
        created_at=ensure_utc(row.created_at),
    )


def row_to_user_plan(row) -> UserPlan:
    return UserPlan(
        user_plan_id=row.user_plan_id,
        user_id=row.user_id,
        plan_id=row.plan_id,
        credits_left=row.credits_left,
        original_credits=row.original_credits,
        is_unlimited=row.is_unlimited,
        is_active=row.is_active,
        purchased_at=ensure_utc(row.purchased_at),
        expires_at=ensure_utc(row.expires_at),
    )


def seed_plans(force: bool = False) -> int:
    """
    Seed the default catalog (idempotent).

    Existing plans are left untouched unless force=True, in which case
    every catalog field is overwritten. Plans are never deleted because
    ledger rows reference them.

    Returns:
        Number of plans inserted or updated
    """
    now = utc_now()
    changed = 0

    with get_db_session() as session:
        for plan_id, config in DEFAULT_PLANS.items():
            existing = session.execute(
                select(plans.c.plan_id).where(plans.c.plan_id == plan_id)
            ).first()

            values = _plan_values(plan_id, config)
            if not existing:
                session.execute(insert(plans).values(created_at=now, **values))
                changed += 1
            elif force:
                values.pop("plan_id")
                session.execute(update(plans).where(plans.c.plan_id == plan_id).values(**values))
                changed += 1

    if changed:
        logger.info(f"[plans] seeded {changed} plan(s) (force={force})")
    return changed


def list_plans() -> List[Plan]:
    """All purchasable plans, cheapest first."""
    with get_db_session() as session:
        rows = session.execute(select(plans).order_by(plans.c.price.asc(), plans.c.plan_id.asc())).all()
        return [_row_to_plan(row) for row in rows]


def get_plan(plan_id: str) -> Optional[Plan]:
    """Get plan by ID."""
    with get_db_session() as session:
        row = session.execute(
            select(plans).where(plans.c.plan_id == plan_id)
        ).first()

        if not row:
            return None

        return _row_to_plan(row)


def purchase_plan(user_id: str, plan_id: str, now: Optional[datetime] = None) -> UserPlan:
    """
    Record a plan purchase for a user.

    Each purchase creates a new ledger entry; earlier purchases stay on
    the ledger and keep their own credits and expiry.

    Args:
        user_id: Purchasing user (must exist)
        plan_id: Catalog plan to purchase
        now: Purchase time override (tests)

    Returns:
        The new UserPlan

    Raises:
        NotFoundError: If plan_id doesn't exist
    """
    plan = get_plan(plan_id)
    if not plan:
        raise NotFoundError(f"Plan {plan_id} not found")

    purchased_at = ensure_utc(now) if now else utc_now()
    expires_at = None
    if plan.duration_days:
        expires_at = purchased_at + timedelta(days=plan.duration_days)

    user_plan = UserPlan(
        user_plan_id=uuid4().hex,
        user_id=user_id,
        plan_id=plan.plan_id,
        credits_left=plan.credits,
        original_credits=plan.credits,
        is_unlimited=plan.is_unlimited,
        is_active=True,
        purchased_at=purchased_at,
        expires_at=expires_at,
    )

    with get_db_session() as session:
        session.execute(
            insert(user_plans).values(
                user_plan_id=user_plan.user_plan_id,
                user_id=user_plan.user_id,
                plan_id=user_plan.plan_id,
                credits_left=user_plan.credits_left,
                original_credits=user_plan.original_credits,
                is_unlimited=user_plan.is_unlimited,
                is_active=True,
                purchased_at=purchased_at,
                expires_at=expires_at,
            )
        )

    logger.info(
        f"[plans] purchase user={user_id} plan={plan_id} credits={plan.credits} expires_at={expires_at}",
        extra={"user_id": user_id, "user_plan_id": user_plan.user_plan_id},
    )
    return user_plan


def get_user_plan(user_plan_id: str) -> Optional[UserPlan]:
    with get_db_session() as session:
        row = session.execute(
            select(user_plans).where(user_plans.c.user_plan_id == user_plan_id)
        ).first()
        return row_to_user_plan(row) if row else None


def list_user_plans(user_id: str, *, usable_only: bool = False, now: Optional[datetime] = None) -> List[UserPlan]:
    """
    A user's ledger, most recent purchase first.

    Args:
        user_id: Owner
        usable_only: Keep only plans that can pay for an analysis right now
        now: Evaluation time override (tests)
    """
    with get_db_session() as session:
        rows = session.execute(
            select(user_plans)
            .where(user_plans.c.user_id == user_id)
            .order_by(user_plans.c.purchased_at.desc(), user_plans.c.user_plan_id.desc())
        ).all()

    ledger = [row_to_user_plan(row) for row in rows]
    if usable_only:
        ledger = [up for up in ledger if up.is_usable(now)]
    return ledger
