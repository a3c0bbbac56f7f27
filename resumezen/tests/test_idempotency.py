"""
resumezen/tests/test_idempotency.py
Tests for the idempotency key store used by credit settlement.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from resumezen.core.database import get_db_session
from resumezen.core.idempotency import build_key, check_key, clear_all_keys, is_recorded, record


def test_build_key_namespaces_token():
    assert build_key("consume", "attempt-1") == "consume:attempt-1"
    assert build_key("consume", "a") != build_key("refund", "a")


def test_build_key_scopes_attempt_to_plan():
    assert build_key("consume", "plan-a", "attempt-1") == "consume:plan-a:attempt-1"
    assert build_key("refund", "plan-a", "x") != build_key("refund", "plan-b", "x")


def test_record_then_seen():
    with get_db_session() as session:
        assert not is_recorded(session, "consume:a1")
        record(session, "consume:a1", scope="consume")
        assert is_recorded(session, "consume:a1")
    assert check_key("consume:a1") is True


def test_unknown_key():
    assert check_key("consume:nonexistent") is False


def test_rolled_back_transaction_leaves_no_key():
    with pytest.raises(RuntimeError):
        with get_db_session() as session:
            record(session, "refund:a2", scope="refund")
            raise RuntimeError("settlement failed")
    assert check_key("refund:a2") is False


def test_duplicate_record_conflicts():
    with get_db_session() as session:
        record(session, "consume:a3", scope="consume")
    with pytest.raises(IntegrityError):
        with get_db_session() as session:
            record(session, "consume:a3", scope="consume")


def test_clear_all_keys():
    with get_db_session() as session:
        record(session, "consume:a4", scope="consume")
        record(session, "refund:a4", scope="refund")

    clear_all_keys()

    assert check_key("consume:a4") is False
    assert check_key("refund:a4") is False
