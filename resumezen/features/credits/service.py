"""
resumezen/features/credits/service.py

Credit accounting over the user plan ledger.

Handles:
- Eligibility: which plan (if any) pays for the next analysis
- consume: one credit per analysis, conditional decrement in a single UPDATE
- refund: one credit back, capped at the plan's original grant

Both mutations accept an attempt id. When given, the settlement is recorded
as an idempotency key "{action}:{user_plan_id}:{attempt_id}" in the same
transaction as the update, so a repeated consume/refund for the same
analysis attempt on the same plan is a no-op.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from resumezen.core import idempotency
from resumezen.core.database import get_db_session, user_plans
from resumezen.core.errors import ConflictError, CreditRaceError, EligibilityError, NotFoundError
from resumezen.core.metrics import credit_mutations_total
from resumezen.features.plans.service import list_user_plans, row_to_user_plan
from resumezen.models.user_plan import UserPlan

logger = logging.getLogger("resumezen")

CONSUME = "consume"
REFUND = "refund"


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    plan: Optional[UserPlan]
    reason: str


@dataclass(frozen=True)
class CreditMutation:
    user_plan_id: str
    action: str
    applied: bool
    credits_left: int
    is_unlimited: bool = False
    duplicate: bool = False
    capped: bool = False


def select_plan(ledger, now: Optional[datetime] = None) -> Optional[UserPlan]:
    """Pick the plan that pays: most recent purchase among usable plans.

    Ties on purchased_at fall back to the larger id so the choice is stable.
    """
    usable = [up for up in ledger if up.is_usable(now)]
    if not usable:
        return None
    return max(usable, key=lambda up: (up.purchased_at, up.user_plan_id))


def check_eligibility(user_id: str, now: Optional[datetime] = None) -> EligibilityResult:
    """Decide whether user_id may start an analysis."""
    ledger = list_user_plans(user_id)
    if not ledger:
        return EligibilityResult(eligible=False, plan=None, reason="no_plans")

    plan = select_plan(ledger, now)
    if plan is None:
        return EligibilityResult(eligible=False, plan=None, reason="no_usable_plan")
    return EligibilityResult(eligible=True, plan=plan, reason="ok")


def require_eligible(user_id: str, now: Optional[datetime] = None) -> UserPlan:
    """Return the paying plan or raise EligibilityError."""
    result = check_eligibility(user_id, now)
    if not result.eligible:
        if result.reason == "no_plans":
            message = "You don't have a plan yet. Purchase a plan to analyze your resume."
        else:
            message = "You have no resume checks left. Purchase a plan to continue."
        raise EligibilityError(message, technical_detail=result.reason)
    return result.plan


def _load(session, user_plan_id: str):
    row = session.execute(
        select(user_plans).where(user_plans.c.user_plan_id == user_plan_id)
    ).first()
    if not row:
        raise NotFoundError(f"User plan {user_plan_id} not found")
    return row


def _record(mutation: CreditMutation, result: str) -> CreditMutation:
    credit_mutations_total.inc(labels={"action": mutation.action, "result": result})
    logger.info(
        f"[credits] {mutation.action} {result} plan={mutation.user_plan_id} credits_left={mutation.credits_left}",
        extra={"user_plan_id": mutation.user_plan_id, "event_type": f"credit.{mutation.action}"},
    )
    return mutation


def _duplicate(user_plan_id: str, action: str) -> CreditMutation:
    with get_db_session() as session:
        row = _load(session, user_plan_id)
    return _record(
        CreditMutation(
            user_plan_id=user_plan_id,
            action=action,
            applied=False,
            credits_left=row.credits_left,
            is_unlimited=row.is_unlimited,
            duplicate=True,
        ),
        "duplicate",
    )


def consume(user_plan_id: str, *, attempt_id: Optional[str] = None) -> CreditMutation:
    """
    Use one credit of a plan.

    Unlimited plans succeed without mutation. The decrement is a single
    conditional UPDATE guarded by credits_left > 0, so two concurrent
    consumers of the last credit cannot both succeed.

    Raises:
        NotFoundError: unknown plan
        EligibilityError: no credits left
        CreditRaceError: a concurrent consume took the last credit
    """
    key = idempotency.build_key(CONSUME, user_plan_id, attempt_id) if attempt_id else None
    try:
        with get_db_session() as session:
            if key and idempotency.is_recorded(session, key):
                return _duplicate(user_plan_id, CONSUME)

            row = _load(session, user_plan_id)
            if row.is_unlimited:
                if key:
                    idempotency.record(session, key, scope=CONSUME)
                mutation = CreditMutation(
                    user_plan_id=user_plan_id,
                    action=CONSUME,
                    applied=False,
                    credits_left=row.credits_left,
                    is_unlimited=True,
                )
                return _record(mutation, "unlimited")

            if row.credits_left <= 0:
                credit_mutations_total.inc(labels={"action": CONSUME, "result": "exhausted"})
                raise EligibilityError(
                    "You have no resume checks left on this plan.",
                    technical_detail=f"user_plan {user_plan_id} has 0 credits",
                )

            result = session.execute(
                update(user_plans)
                .where(user_plans.c.user_plan_id == user_plan_id)
                .where(user_plans.c.credits_left > 0)
                .values(credits_left=user_plans.c.credits_left - 1)
            )
            if result.rowcount != 1:
                credit_mutations_total.inc(labels={"action": CONSUME, "result": "conflict"})
                raise CreditRaceError(
                    "You have no resume checks left on this plan.",
                    technical_detail=f"concurrent consume on user_plan {user_plan_id}",
                )
            if key:
                idempotency.record(session, key, scope=CONSUME)

            credits_left = session.execute(
                select(user_plans.c.credits_left).where(user_plans.c.user_plan_id == user_plan_id)
            ).scalar_one()
    except IntegrityError:
        # Same attempt settled concurrently; its transaction won
        return _duplicate(user_plan_id, CONSUME)

    return _record(
        CreditMutation(user_plan_id=user_plan_id, action=CONSUME, applied=True, credits_left=credits_left),
        "applied",
    )


def refund(user_plan_id: str, *, attempt_id: Optional[str] = None) -> CreditMutation:
    """
    Give one credit back to a plan.

    Never exceeds the original grant: at the cap the call succeeds with
    capped=True and no mutation. Unlimited plans are never mutated.

    With an attempt id, the refund settles that attempt's consume on the
    same plan; a refund for an attempt that never consumed from this plan
    is refused.

    Raises:
        NotFoundError: unknown plan
        ConflictError: no consume recorded for attempt_id on this plan
    """
    key = idempotency.build_key(REFUND, user_plan_id, attempt_id) if attempt_id else None
    try:
        with get_db_session() as session:
            if key and idempotency.is_recorded(session, key):
                return _duplicate(user_plan_id, REFUND)

            if attempt_id and not idempotency.is_recorded(
                session, idempotency.build_key(CONSUME, user_plan_id, attempt_id)
            ):
                credit_mutations_total.inc(labels={"action": REFUND, "result": "unmatched"})
                raise ConflictError(
                    "There is no charge on this plan for that analysis.",
                    code="no_matching_consume",
                    technical_detail=f"no consume recorded for attempt {attempt_id} on user_plan {user_plan_id}",
                )

            row = _load(session, user_plan_id)
            if row.is_unlimited:
                if key:
                    idempotency.record(session, key, scope=REFUND)
                mutation = CreditMutation(
                    user_plan_id=user_plan_id,
                    action=REFUND,
                    applied=False,
                    credits_left=row.credits_left,
                    is_unlimited=True,
                )
                return _record(mutation, "unlimited")

            result = session.execute(
                update(user_plans)
                .where(user_plans.c.user_plan_id == user_plan_id)
                .where(user_plans.c.credits_left < user_plans.c.original_credits)
                .values(credits_left=user_plans.c.credits_left + 1)
            )
            applied = result.rowcount == 1
            if key:
                idempotency.record(session, key, scope=REFUND)

            credits_left = session.execute(
                select(user_plans.c.credits_left).where(user_plans.c.user_plan_id == user_plan_id)
            ).scalar_one()
    except IntegrityError:
        return _duplicate(user_plan_id, REFUND)

    mutation = CreditMutation(
        user_plan_id=user_plan_id,
        action=REFUND,
        applied=applied,
        credits_left=credits_left,
        capped=not applied,
    )
    return _record(mutation, "applied" if applied else "capped")


def get_owned_user_plan(user_plan_id: str, user_id: str) -> UserPlan:
    """Load a ledger entry owned by user_id; other users' plans look missing."""
    with get_db_session() as session:
        row = session.execute(
            select(user_plans)
            .where(user_plans.c.user_plan_id == user_plan_id)
            .where(user_plans.c.user_id == user_id)
        ).first()
    if not row:
        raise NotFoundError(f"User plan {user_plan_id} not found")
    return row_to_user_plan(row)
