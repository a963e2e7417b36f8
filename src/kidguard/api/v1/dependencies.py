"""Shared API dependencies for authentication and service wiring."""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session, sessionmaker

from kidguard.core.settings import settings
from kidguard.db.session import get_db, get_session_factory
from kidguard.models.directory import ROLE_PARENT, ROLE_PICKUP, ROLE_STAFF, ROLES
from kidguard.services.audit_log import AuditLog, SqlAlchemyAuditLogBackend
from kidguard.services.authorization_store import SqlAlchemyAuthorizationStore
from kidguard.services.delegation import DelegationService
from kidguard.services.directory import SqlAlchemyStudentDirectory
from kidguard.services.issuer import AuthorizationIssuer
from kidguard.services.redemption import RedemptionEngine
from kidguard.services.replay import ReplayProtectionService, get_replay_service
from kidguard.services.wallet_auth import WalletAuthService

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

# Type alias for the session factory the stores open their own transactions with
SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]


@dataclass(frozen=True)
class Principal:
    """The wallet and role carried by a verified access token."""

    wallet: str
    role: str


def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> Principal:
    """Get the signed-in wallet from its JWT.

    Args:
        credentials: HTTP Bearer token credentials

    Returns:
        Principal with the wallet address and role claim

    Raises:
        HTTPException: If the token is invalid or lacks a known role
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    wallet = payload.get("sub")
    role = payload.get("role")
    if not wallet or role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return Principal(wallet=wallet, role=role)


CurrentPrincipalDep = Annotated[Principal, Depends(get_current_principal)]


def require_guardian(principal: CurrentPrincipalDep) -> Principal:
    """Allow parents and delegated pickup wallets."""
    if principal.role not in (ROLE_PARENT, ROLE_PICKUP):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only parent or pickup wallets may do this",
        )
    return principal


def require_parent(principal: CurrentPrincipalDep) -> Principal:
    if principal.role != ROLE_PARENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only parent wallets may do this",
        )
    return principal


def require_staff(principal: CurrentPrincipalDep) -> Principal:
    if principal.role != ROLE_STAFF:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only school staff may do this",
        )
    return principal


GuardianDep = Annotated[Principal, Depends(require_guardian)]
ParentDep = Annotated[Principal, Depends(require_parent)]
StaffDep = Annotated[Principal, Depends(require_staff)]


def get_directory(session_factory: SessionFactoryDep) -> SqlAlchemyStudentDirectory:
    return SqlAlchemyStudentDirectory(session_factory)


def get_authorization_store(session_factory: SessionFactoryDep) -> SqlAlchemyAuthorizationStore:
    return SqlAlchemyAuthorizationStore(session_factory)


def get_audit_log(session_factory: SessionFactoryDep) -> AuditLog:
    return AuditLog(SqlAlchemyAuditLogBackend(session_factory))


DirectoryDep = Annotated[SqlAlchemyStudentDirectory, Depends(get_directory)]
StoreDep = Annotated[SqlAlchemyAuthorizationStore, Depends(get_authorization_store)]
AuditLogDep = Annotated[AuditLog, Depends(get_audit_log)]


def get_issuer(store: StoreDep, directory: DirectoryDep) -> AuthorizationIssuer:
    return AuthorizationIssuer(store, directory)


def get_redemption_engine(store: StoreDep, audit_log: AuditLogDep) -> RedemptionEngine:
    return RedemptionEngine(store, audit_log)


def get_delegation_service(store: StoreDep, directory: DirectoryDep) -> DelegationService:
    return DelegationService(store, directory)


def get_replay_service_dep() -> ReplayProtectionService:
    return get_replay_service()


def get_wallet_auth_service(
    replay_service: Annotated[ReplayProtectionService, Depends(get_replay_service_dep)],
) -> WalletAuthService:
    return WalletAuthService(replay_service)


IssuerDep = Annotated[AuthorizationIssuer, Depends(get_issuer)]
RedemptionDep = Annotated[RedemptionEngine, Depends(get_redemption_engine)]
DelegationDep = Annotated[DelegationService, Depends(get_delegation_service)]
WalletAuthDep = Annotated[WalletAuthService, Depends(get_wallet_auth_service)]
