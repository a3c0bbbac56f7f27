"""
Plan catalog, purchases and credit endpoints.

The credit use/refund endpoints are internal: they require the
X-Internal-Key header in addition to the user the call is made for, and
only touch that user's own ledger entries; another user's plan id
answers 404. A refund must name the attempt whose consume it settles.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import Field

from resumezen.core.auth import get_current_user_id
from resumezen.core.errors import NotFoundError
from resumezen.core.internal_auth import require_internal
from resumezen.features.credits import service as credits
from resumezen.features.credits.service import CreditMutation
from resumezen.features.plans.service import get_plan, list_plans, list_user_plans, purchase_plan
from resumezen.models.base import CamelModel, utc_now
from resumezen.models.plan import Plan
from resumezen.models.user_plan import UserPlan

router = APIRouter(prefix="/api/plan", tags=["plans"])


class PlanOut(CamelModel):
    plan_id: str
    name: str
    price: float
    currency: str
    period: str
    credits: int
    duration_days: Optional[int]
    is_unlimited: bool
    is_popular: bool
    is_special: bool
    features: List[str]

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanOut":
        return cls.model_validate(plan.model_dump())


class UserPlanOut(CamelModel):
    user_plan_id: str
    plan_id: str
    credits_left: int
    original_credits: int
    is_unlimited: bool
    is_active: bool
    purchased_at: datetime
    expires_at: Optional[datetime]
    status: str
    usable: bool

    @classmethod
    def from_user_plan(cls, user_plan: UserPlan, now: Optional[datetime] = None) -> "UserPlanOut":
        now = now or utc_now()
        data = user_plan.model_dump(exclude={"user_id"})
        return cls(**data, status=user_plan.status(now), usable=user_plan.is_usable(now))


class EligibilityOut(CamelModel):
    eligible: bool
    reason: str
    user_plan: Optional[UserPlanOut] = None


class PurchaseRequest(CamelModel):
    plan_id: str = Field(..., min_length=1)


class CreditRequest(CamelModel):
    user_plan_id: str = Field(..., min_length=1)
    attempt_id: Optional[str] = Field(None, min_length=1, max_length=64)


class RefundRequest(CamelModel):
    """A refund settles one attempt's consume on the same plan."""
    user_plan_id: str = Field(..., min_length=1)
    attempt_id: str = Field(..., min_length=1, max_length=64)


class CreditOut(CamelModel):
    user_plan_id: str
    action: str
    applied: bool
    duplicate: bool
    capped: bool
    is_unlimited: bool
    credits_left: int

    @classmethod
    def from_mutation(cls, mutation: CreditMutation) -> "CreditOut":
        return cls(
            user_plan_id=mutation.user_plan_id,
            action=mutation.action,
            applied=mutation.applied,
            duplicate=mutation.duplicate,
            capped=mutation.capped,
            is_unlimited=mutation.is_unlimited,
            credits_left=mutation.credits_left,
        )


@router.get("", response_model=List[PlanOut])
def get_plans():
    """Catalog, cheapest first. Public."""
    return [PlanOut.from_plan(plan) for plan in list_plans()]


@router.get("/user", response_model=List[UserPlanOut])
def get_my_plans(user_id: str = Depends(get_current_user_id)):
    now = utc_now()
    return [UserPlanOut.from_user_plan(up, now) for up in list_user_plans(user_id)]


@router.get("/eligibility", response_model=EligibilityOut)
def get_eligibility(user_id: str = Depends(get_current_user_id)):
    now = utc_now()
    result = credits.check_eligibility(user_id, now)
    return EligibilityOut(
        eligible=result.eligible,
        reason=result.reason,
        user_plan=UserPlanOut.from_user_plan(result.plan, now) if result.plan else None,
    )


@router.post("/purchase", response_model=UserPlanOut, status_code=201)
def post_purchase(body: PurchaseRequest, user_id: str = Depends(get_current_user_id)):
    return UserPlanOut.from_user_plan(purchase_plan(user_id, body.plan_id))


@router.post("/credit/use", response_model=CreditOut, dependencies=[Depends(require_internal)])
def post_use_credit(body: CreditRequest, user_id: str = Depends(get_current_user_id)):
    credits.get_owned_user_plan(body.user_plan_id, user_id)
    return CreditOut.from_mutation(credits.consume(body.user_plan_id, attempt_id=body.attempt_id))


@router.post("/credit/refund", response_model=CreditOut, dependencies=[Depends(require_internal)])
def post_refund_credit(body: RefundRequest, user_id: str = Depends(get_current_user_id)):
    credits.get_owned_user_plan(body.user_plan_id, user_id)
    return CreditOut.from_mutation(credits.refund(body.user_plan_id, attempt_id=body.attempt_id))


@router.get("/{plan_id}", response_model=PlanOut)
def get_plan_by_id(plan_id: str):
    """Single catalog entry. Public."""
    plan = get_plan(plan_id)
    if plan is None:
        raise NotFoundError(f"Plan {plan_id} not found")
    return PlanOut.from_plan(plan)
