# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-jwt-secret-key")
os.environ.setdefault("QR_SECRET_KEY", "test-qr-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from kidguard.api.v1.endpoints.auth import create_access_token
from kidguard.db.session import Base, get_db, get_session_factory
from kidguard.main import app as fastapi_app
from kidguard.models import Student, WalletAccount
from kidguard.models.directory import ROLE_PARENT, ROLE_PICKUP, ROLE_STAFF
from kidguard.services.audit_log import AuditLog, InMemoryAuditLogBackend
from kidguard.services.authorization_store import InMemoryAuthorizationStore
from kidguard.services.directory import InMemoryStudentDirectory
from kidguard.services.records import DelegationRecord, StudentRecord

TEST_DB_URL = "sqlite://"
TEST_QR_SECRET = "unit-test-qr-secret"
STUDENT_ID = "CH001"
STUDENT_NAME = "Emma Johnson"
START_TIME = datetime(2026, 10, 19, 14, 30, 0, tzinfo=UTC)


class FakeClock:
    """Controllable replacement for ``utcnow``."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


def sign_text(account: Any, message: str) -> str:
    """Return a 0x-prefixed personal_sign signature of ``message``."""
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    return "0x" + bytes(signed.signature).hex()


def bearer(wallet: str, role: str) -> dict[str, str]:
    token = create_access_token(wallet.lower(), {"role": role})
    return {"Authorization": f"Bearer {token}"}


# --- Database -------------------------------------------------------------------


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        # Stores commit through their own sessions; wipe every table between tests.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# --- Application ----------------------------------------------------------------


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(
    app: FastAPI, session_factory: sessionmaker[Session]
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_session_override
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_session_factory, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


# --- Wallets --------------------------------------------------------------------


@pytest.fixture()
def parent_account() -> Any:
    return Account.create()


@pytest.fixture()
def pickup_account() -> Any:
    return Account.create()


@pytest.fixture()
def staff_account() -> Any:
    return Account.create()


@pytest.fixture()
def stranger_account() -> Any:
    return Account.create()


@pytest.fixture()
def parent_headers(parent_account: Any) -> dict[str, str]:
    return bearer(parent_account.address, ROLE_PARENT)


@pytest.fixture()
def pickup_headers(pickup_account: Any) -> dict[str, str]:
    return bearer(pickup_account.address, ROLE_PICKUP)


@pytest.fixture()
def staff_headers(staff_account: Any) -> dict[str, str]:
    return bearer(staff_account.address, ROLE_STAFF)


# --- Persisted directory rows ---------------------------------------------------


@pytest.fixture()
def student(session_factory: sessionmaker[Session], parent_account: Any) -> Student:
    row = Student(
        id=STUDENT_ID,
        name=STUDENT_NAME,
        grade="3",
        parent_wallet=parent_account.address.lower(),
    )
    with session_factory() as session, session.begin():
        session.add(row)
    return row


@pytest.fixture()
def staff_member(session_factory: sessionmaker[Session], staff_account: Any) -> WalletAccount:
    row = WalletAccount(
        wallet=staff_account.address.lower(),
        role=ROLE_STAFF,
        display_name="Front gate",
    )
    with session_factory() as session, session.begin():
        session.add(row)
    return row


# --- In-memory core -------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def memory_store() -> InMemoryAuthorizationStore:
    return InMemoryAuthorizationStore()


@pytest.fixture()
def memory_audit_log() -> AuditLog:
    return AuditLog(InMemoryAuditLogBackend())


@pytest.fixture()
def memory_directory(parent_account: Any) -> InMemoryStudentDirectory:
    return InMemoryStudentDirectory(
        [
            StudentRecord(
                id=STUDENT_ID,
                name=STUDENT_NAME,
                parent_wallet=parent_account.address.lower(),
                grade="3",
            )
        ]
    )


@pytest.fixture()
def make_delegation(
    parent_account: Any, pickup_account: Any
) -> Callable[..., DelegationRecord]:
    """Build a delegation record without going through signature checks."""

    def _make(
        *,
        start: datetime,
        end: datetime,
        student_id: str = STUDENT_ID,
        active: bool = True,
        relationship: str = "Grandmother",
        delegation_id: str = "d" * 32,
    ) -> DelegationRecord:
        return DelegationRecord(
            id=delegation_id,
            student_id=student_id,
            parent_wallet=parent_account.address.lower(),
            pickup_wallet=pickup_account.address.lower(),
            relationship=relationship,
            start_date=start,
            end_date=end,
            message="signed elsewhere",
            signature="0x" + "00" * 65,
            active=active,
        )

    return _make
