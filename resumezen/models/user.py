"""
resumezen/models/user.py

Application user. Identity comes from the auth provider's token subject;
this row exists so plans and analyses have an owner to reference.
"""

import hashlib
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    created_at: datetime
    display_name: str
    status: str = "active"

    @staticmethod
    def default_display_name(user_id: str, display_name: Optional[str] = None) -> str:
        if display_name and display_name.strip():
            return display_name.strip()[:120]
        digest = hashlib.sha1(user_id.encode("utf-8")).hexdigest()
        return f"User {digest[:6]}"
