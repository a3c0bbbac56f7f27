"""
resumezen/core/idempotency.py
Idempotency keys shared by services that must apply a side effect at most once.

Keys are written in the caller's transaction so the key and the guarded
mutation commit or roll back together.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from resumezen.core.database import get_db_session, idempotency_keys


def build_key(scope: str, *tokens: str) -> str:
    """Namespace caller tokens (e.g. a user plan id and an attempt id) by scope."""
    return ":".join((scope,) + tokens)


def is_recorded(session: Session, key: str) -> bool:
    """Check whether key was already recorded (inside the caller's transaction)."""
    row = session.execute(
        select(idempotency_keys.c.key).where(idempotency_keys.c.key == key)
    ).first()
    return row is not None


def record(session: Session, key: str, scope: str, now: Optional[datetime] = None) -> None:
    """Record key in the caller's transaction.

    A concurrent writer recording the same key makes the enclosing
    transaction fail with IntegrityError on flush or commit.
    """
    session.execute(
        idempotency_keys.insert().values(
            key=key,
            scope=scope,
            created_at=now or datetime.now(timezone.utc),
        )
    )


def check_key(key: str) -> bool:
    """Check if idempotency key exists (read-only, own session)."""
    with get_db_session() as session:
        return is_recorded(session, key)


def clear_all_keys() -> None:
    """Clear all idempotency keys (testing only)."""
    with get_db_session() as session:
        session.execute(delete(idempotency_keys))
