"""
resumezen/models/user_plan.py

UserPlan ledger entry: one purchased plan instance.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from resumezen.models.base import ensure_utc, utc_now


class UserPlan(BaseModel):
    """
    UserPlan represents one purchase of a Plan by a user.

    Invariants:
    - 0 <= credits_left <= original_credits
    - usable iff is_active, not expired, and (unlimited or credits_left > 0)

    Exhaustion and expiry are derived on read, never stored.
    """
    model_config = ConfigDict(frozen=True)

    user_plan_id: str
    user_id: str
    plan_id: str
    credits_left: int
    original_credits: int
    is_unlimited: bool = False
    is_active: bool = True
    purchased_at: datetime
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        moment = ensure_utc(now) if now else utc_now()
        return ensure_utc(self.expires_at) <= moment

    def is_exhausted(self) -> bool:
        return not self.is_unlimited and self.credits_left <= 0

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        return self.is_active and not self.is_expired(now) and not self.is_exhausted()

    def status(self, now: Optional[datetime] = None) -> str:
        if not self.is_active:
            return "inactive"
        if self.is_expired(now):
            return "expired"
        if self.is_exhausted():
            return "exhausted"
        return "active"
