"""
Dependencies and guards for FastAPI endpoints
"""
from typing import Generator

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.core.errors import Unauthenticated, Forbidden
from app.core.security import decode_token, TOKEN_KIND_USER, TOKEN_KIND_GUARD
from app.models.org_user import OrgRole
from app.services.tenant_service import Principal, resolve_tenant, ensure_subscription_active


security = HTTPBearer(auto_error=False)


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Principal:
    """
    Resolve the caller and its organization from the bearer token.

    Every failure (missing header, bad signature, unknown principal, principal
    of another organization) is Unauthenticated.
    """
    if credentials is None:
        raise Unauthenticated("Not authenticated")
    try:
        payload = decode_token(credentials.credentials)
    except ValueError:
        raise Unauthenticated()
    return resolve_tenant(db, payload)


def get_current_user(principal: Principal = Depends(get_principal)) -> Principal:
    """Console user (admin/viewer)"""
    if principal.kind != TOKEN_KIND_USER:
        raise Forbidden("Console account required")
    return principal


def get_current_guard(principal: Principal = Depends(get_principal)) -> Principal:
    """Guard signed in at a field terminal"""
    if principal.kind != TOKEN_KIND_GUARD:
        raise Forbidden("Guard terminal session required")
    return principal


def require_roles(*allowed_roles: OrgRole):
    """
    Dependency factory for role-based access control on console endpoints

    Usage:
        @router.post("/{event_id}/approve")
        def approve(principal: Principal = Depends(require_roles(OrgRole.ADMIN))):
            ...
    """
    def role_checker(principal: Principal = Depends(get_current_user)) -> Principal:
        if principal.user.role not in allowed_roles:
            raise Forbidden(f"Access denied. Required roles: {[r.value for r in allowed_roles]}")
        return principal
    return role_checker


def require_active_subscription(principal: Principal = Depends(get_principal)) -> Principal:
    """Blocks mutating operations for suspended, cancelled or trial-expired organizations."""
    ensure_subscription_active(principal.organization)
    return principal


def require_admin_writer(
    principal: Principal = Depends(require_roles(OrgRole.ADMIN)),
    _active: Principal = Depends(require_active_subscription),
) -> Principal:
    """Console ADMIN of an organization whose subscription allows writes"""
    return principal


def require_guard_writer(
    principal: Principal = Depends(get_current_guard),
    _active: Principal = Depends(require_active_subscription),
) -> Principal:
    """Guard terminal of an organization whose subscription allows writes"""
    return principal
