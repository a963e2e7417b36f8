# tests/v1/test_audit_api.py
"""Tests for the audit trail endpoints."""

from __future__ import annotations

from fastapi import status
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from kidguard.models import PickupAudit
from kidguard.services.audit_log import SqlAlchemyAuditLogBackend
from tests.conftest import STUDENT_ID, bearer


def _pickup(client, parent_headers, staff_headers) -> dict:
    token = client.post(
        "/api/v1/pickup/qr", json={"studentId": STUDENT_ID}, headers=parent_headers
    ).json()["token"]
    response = client.post("/api/v1/pickup/redeem", json={"token": token}, headers=staff_headers)
    assert response.status_code == status.HTTP_200_OK
    return response.json()


def test_history_visible_to_staff_and_parent(
    client, student, parent_account, parent_headers, staff_headers, stranger_account
) -> None:
    first = _pickup(client, parent_headers, staff_headers)
    second = _pickup(client, parent_headers, staff_headers)

    for headers in (staff_headers, parent_headers):
        response = client.get(f"/api/v1/audit/students/{STUDENT_ID}", headers=headers)
        assert response.status_code == status.HTTP_200_OK
        history = response.json()
        assert [entry["sequence"] for entry in history] == [2, 1]
        assert [entry["auditHash"] for entry in history] == [second["auditHash"], first["auditHash"]]
        assert history[0]["pickupBy"] == parent_account.address.lower()

    stranger = client.get(
        f"/api/v1/audit/students/{STUDENT_ID}", headers=bearer(stranger_account.address, "parent")
    )
    assert stranger.status_code == status.HTTP_403_FORBIDDEN


def test_chain_verification_endpoint(
    client, student, parent_headers, staff_headers, session_factory
) -> None:
    empty = client.get("/api/v1/audit/verify", headers=staff_headers)
    assert empty.json() == {"valid": True, "length": 0, "tailHash": None}

    _pickup(client, parent_headers, staff_headers)
    _pickup(client, parent_headers, staff_headers)
    intact = client.get("/api/v1/audit/verify", headers=staff_headers).json()
    assert intact["valid"] is True
    assert intact["length"] == 2

    with session_factory() as session, session.begin():
        session.execute(
            update(PickupAudit).where(PickupAudit.sequence == 1).values(chain_hash="e" * 64)
        )
    assert client.get("/api/v1/audit/verify", headers=staff_headers).json()["valid"] is False


def test_chain_verification_requires_staff(client, parent_headers) -> None:
    response = client.get("/api/v1/audit/verify", headers=parent_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_chain_verification_reads_one_snapshot(
    client, student, parent_headers, staff_headers, mocker
) -> None:
    recorded = _pickup(client, parent_headers, staff_headers)
    scan_all = mocker.spy(SqlAlchemyAuditLogBackend, "scan_all")
    tail = mocker.spy(SqlAlchemyAuditLogBackend, "tail")

    body = client.get("/api/v1/audit/verify", headers=staff_headers).json()

    assert body["valid"] is True
    assert body["length"] == 1
    assert scan_all.call_count == 1
    assert tail.call_count == 0
    history = client.get(f"/api/v1/audit/students/{STUDENT_ID}", headers=staff_headers).json()
    assert history[0]["auditHash"] == recorded["auditHash"]


def test_unreachable_audit_store_is_transient(client, staff_headers, mocker) -> None:
    mocker.patch.object(
        SqlAlchemyAuditLogBackend,
        "scan_all",
        side_effect=OperationalError("SELECT pickup_audit", {}, Exception("database down")),
    )
    for path in ("/api/v1/audit/verify", f"/api/v1/audit/students/{STUDENT_ID}"):
        response = client.get(path, headers=staff_headers)
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error"] == "StoreUnavailable"
        assert response.json()["retryable"] is True
