"""
Authentication endpoints (console users and guard terminals) and organization signup
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.core.deps import get_db
from app.core.errors import Unauthenticated
from app.core.security import verify_password, create_access_token, TOKEN_KIND_USER, TOKEN_KIND_GUARD
from app.models.org_user import OrgUser
from app.models.guard import Guard
from app.schemas.auth import LoginRequest, GuardLoginRequest, TokenResponse, OrganizationSignup, OrganizationOut, SignupOut
from app.services.audit_service import Actor, log_audit
from app.services.operation import run_operation
from app.services.signup_service import signup_organization
from app.services.tenant_service import get_organization, get_organization_by_slug

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate a console user and return a JWT bound to the user's organization

    Inactive accounts and accounts of deleted organizations are rejected.
    """
    user = db.query(OrgUser).filter(OrgUser.email == login_data.email.strip().lower()).first()
    if user is None or not verify_password(login_data.password, user.password_hash):
        raise Unauthenticated("Invalid email or password")
    if not user.active:
        raise Unauthenticated("Account is inactive")
    if get_organization(db, user.organization_id) is None:
        raise Unauthenticated("Organization not found for this account")

    access_token = create_access_token(
        subject_id=user.id,
        organization_id=user.organization_id,
        kind=TOKEN_KIND_USER,
        extra={"role": user.role.value},
    )
    log_audit(
        db=db,
        organization_id=user.organization_id,
        actor=Actor.user(user.id),
        action="AUTH_LOGIN_SUCCESS",
        entity_type="auth",
        meta={"email": user.email},
    )
    return TokenResponse(access_token=access_token)


@router.post("/guard-login", response_model=TokenResponse)
def guard_login(
    login_data: GuardLoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate a guard at a field terminal (organization slug + guard code + password)

    Guards that are not active may still sign in; attendance operations then
    fail with the guard's actual employment status.
    """
    organization = get_organization_by_slug(db, login_data.organization_slug)
    if organization is None:
        raise Unauthenticated("Invalid organization, guard code or password")

    guard = (
        db.query(Guard)
        .filter(
            Guard.organization_id == organization.id,
            Guard.guard_code == login_data.guard_code.strip().upper(),
            Guard.deleted_at.is_(None),
        )
        .first()
    )
    if guard is None or not verify_password(login_data.password, guard.password_hash):
        raise Unauthenticated("Invalid organization, guard code or password")

    access_token = create_access_token(
        subject_id=guard.id,
        organization_id=organization.id,
        kind=TOKEN_KIND_GUARD,
        extra={"guard_code": guard.guard_code},
    )
    logger.info("Guard terminal login: guard_id=%s org=%s", guard.id, organization.id)
    log_audit(
        db=db,
        organization_id=organization.id,
        actor=Actor.guard(guard.id),
        action="AUTH_GUARD_LOGIN_SUCCESS",
        entity_type="auth",
    )
    return TokenResponse(access_token=access_token)


def _signup_out(outcome) -> SignupOut:
    return SignupOut(
        organization=OrganizationOut.model_validate(outcome.organization),
        admin_user_id=outcome.admin.id,
        admin_email=outcome.admin.email,
    )


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(
    signup_data: OrganizationSignup,
    db: Session = Depends(get_db)
):
    """
    Create a trial organization (TRIAL_DAYS, 30 by default) with its first ADMIN

    The plan sets the guard limit (starter 50, professional 200, enterprise 500).
    A taken slug or email fails with slug_taken / email_taken and writes nothing.
    """
    result = run_operation(
        db, signup_organization, signup_data,
        success_message="Organization created successfully",
        success_status=status.HTTP_201_CREATED,
    )
    return result.to_response(_signup_out)
