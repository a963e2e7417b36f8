# tests/services/test_issuer.py
"""Tests for pickup token issuance."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from kidguard.core.errors import (
    InvalidInputError,
    NotAuthorizedError,
    NotFoundError,
    StudentNotFoundError,
)
from kidguard.core.security import compute_verification_hash
from kidguard.db.time import to_millis
from kidguard.services.issuer import SELF_PICKUP_RELATIONSHIP, AuthorizationIssuer
from tests.conftest import STUDENT_ID, STUDENT_NAME, TEST_QR_SECRET


@pytest.fixture()
def issuer(memory_store, memory_directory, clock) -> AuthorizationIssuer:
    return AuthorizationIssuer(
        memory_store,
        memory_directory,
        secret=TEST_QR_SECRET,
        ttl=timedelta(minutes=5),
        clock=clock,
        timeout=2.0,
    )


@pytest.mark.asyncio
async def test_parent_can_issue_for_own_child(issuer, memory_store, parent_account, clock) -> None:
    issued = await issuer.issue(STUDENT_ID, parent_account.address)

    assert issued.student_name == STUDENT_NAME
    assert issued.relationship == SELF_PICKUP_RELATIONSHIP
    assert issued.expires_at == clock() + timedelta(minutes=5)

    record = memory_store.get(issued.authorization_id)
    assert record is not None
    assert record.pickup_wallet == parent_account.address.lower()
    assert record.consumed is False and record.active is True
    assert record.verification_hash == compute_verification_hash(
        TEST_QR_SECRET, STUDENT_ID, parent_account.address, to_millis(record.issued_at)
    )
    assert json.loads(issued.token) == {
        "id": record.id,
        "verificationHash": record.verification_hash,
    }


@pytest.mark.asyncio
async def test_token_carries_no_student_or_wallet(issuer, parent_account) -> None:
    issued = await issuer.issue(STUDENT_ID, parent_account.address)
    assert STUDENT_ID not in issued.token
    assert parent_account.address.lower() not in issued.token.lower()


@pytest.mark.asyncio
async def test_current_delegate_can_issue(
    issuer, memory_store, pickup_account, make_delegation, clock
) -> None:
    memory_store.create_delegation(
        make_delegation(start=clock() - timedelta(days=1), end=clock() + timedelta(days=1))
    )
    issued = await issuer.issue(STUDENT_ID, pickup_account.address)
    assert issued.relationship == "Grandmother"
    assert memory_store.get(issued.authorization_id).pickup_wallet == pickup_account.address.lower()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("start_offset", "end_offset", "active", "student_id"),
    [
        (timedelta(days=-3), timedelta(days=-1), True, STUDENT_ID),  # ended
        (timedelta(days=1), timedelta(days=3), True, STUDENT_ID),  # not started
        (timedelta(days=-1), timedelta(days=1), False, STUDENT_ID),  # withdrawn
        (timedelta(days=-1), timedelta(days=1), True, "CH999"),  # other student
    ],
)
async def test_unusable_delegation_is_refused(
    issuer, memory_store, pickup_account, make_delegation, clock,
    start_offset, end_offset, active, student_id,
) -> None:
    memory_store.create_delegation(
        make_delegation(
            start=clock() + start_offset,
            end=clock() + end_offset,
            active=active,
            student_id=student_id,
        )
    )
    with pytest.raises(NotAuthorizedError):
        await issuer.issue(STUDENT_ID, pickup_account.address)
    assert memory_store.list_records_for(pickup_account.address.lower()) == []


@pytest.mark.asyncio
async def test_stranger_is_refused_without_persisting(issuer, memory_store, stranger_account) -> None:
    with pytest.raises(NotAuthorizedError):
        await issuer.issue(STUDENT_ID, stranger_account.address)
    assert memory_store.list_records_for(stranger_account.address.lower()) == []


@pytest.mark.asyncio
async def test_unknown_student(issuer, parent_account) -> None:
    with pytest.raises(StudentNotFoundError):
        await issuer.issue("CH404", parent_account.address)


@pytest.mark.asyncio
@pytest.mark.parametrize(("student_id", "wallet"), [("", None), ("  ", None), (STUDENT_ID, "0x1234")])
async def test_invalid_input_rejected(issuer, parent_account, student_id, wallet) -> None:
    with pytest.raises(InvalidInputError):
        await issuer.issue(student_id, wallet or parent_account.address)


@pytest.mark.asyncio
async def test_each_issue_gets_a_fresh_id(issuer, parent_account, clock) -> None:
    first = await issuer.issue(STUDENT_ID, parent_account.address)
    clock.advance(seconds=1)
    second = await issuer.issue(STUDENT_ID, parent_account.address)
    assert first.authorization_id != second.authorization_id
    assert first.token != second.token


@pytest.mark.asyncio
async def test_revoke_and_active_listing(issuer, parent_account, clock) -> None:
    kept = await issuer.issue(STUDENT_ID, parent_account.address)
    revoked = await issuer.issue(STUDENT_ID, parent_account.address)

    record = await issuer.revoke(revoked.authorization_id, parent_account.address)
    assert record.active is False

    active = await issuer.list_active_for(parent_account.address)
    assert [r.id for r in active] == [kept.authorization_id]

    clock.advance(minutes=6)
    assert await issuer.list_active_for(parent_account.address) == []


@pytest.mark.asyncio
async def test_revoke_requires_involved_wallet(issuer, parent_account, stranger_account) -> None:
    issued = await issuer.issue(STUDENT_ID, parent_account.address)
    with pytest.raises(NotAuthorizedError):
        await issuer.revoke(issued.authorization_id, stranger_account.address)
    with pytest.raises(NotFoundError):
        await issuer.revoke("missing", parent_account.address)
