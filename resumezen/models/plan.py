"""
resumezen/models/plan.py

Plan catalog entry.

Plans are purchasable bundles: one-time credit packs or unlimited access
for a bounded duration. Immutable once published.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class Plan(BaseModel):
    """
    Plan represents a purchasable bundle.

    Examples:
    - one-time-check (1 credit, no expiry)
    - boost-pack (5 credits, no expiry)
    - unlimited-pack (unlimited, 90 days)
    """
    model_config = ConfigDict(frozen=True)

    plan_id: str
    name: str
    price: Decimal
    currency: str = "INR"
    period: str = "one-time"
    credits: int
    duration_days: Optional[int] = None
    is_unlimited: bool = False
    is_popular: bool = False
    is_special: bool = False
    features: List[str] = []
    created_at: datetime
