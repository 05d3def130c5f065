"""
Tenant guard: organization resolution, subscription gating and the active-guard quota.
Tenant resolution fails closed; there is no default-organization fallback.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import PLAN_GUARD_LIMITS, DEFAULT_PLAN
from app.core.errors import Unauthenticated, SubscriptionNotAllowed, QuotaExceeded, SlugTaken
from app.core.security import TOKEN_KIND_USER, TOKEN_KIND_GUARD
from app.models.organization import Organization, SubscriptionStatus
from app.models.org_user import OrgUser
from app.models.guard import Guard, EmploymentStatus
from app.services.audit_service import Actor
from app.utils.datetime_utils import now_utc, ensure_utc

logger = logging.getLogger(__name__)


@dataclass
class SubscriptionCheck:
    allowed: bool
    reason: Optional[str] = None  # suspended / cancelled / trial_expired / not_found


@dataclass
class QuotaCheck:
    allowed: bool
    current: int
    limit: int


@dataclass
class Principal:
    """Authenticated caller bound to exactly one organization."""
    kind: str
    organization: Organization
    user: Optional[OrgUser] = None
    guard: Optional[Guard] = None

    @property
    def organization_id(self) -> int:
        return self.organization.id

    @property
    def actor(self) -> Actor:
        if self.kind == TOKEN_KIND_USER:
            return Actor.user(self.user.id)
        return Actor.guard(self.guard.id)


def get_organization(db: Session, organization_id: int, lock: bool = False) -> Optional[Organization]:
    query = db.query(Organization).filter(Organization.id == organization_id, Organization.deleted_at.is_(None))
    if lock:
        query = query.with_for_update()
    return query.first()


def get_organization_by_slug(db: Session, slug: str) -> Optional[Organization]:
    return (
        db.query(Organization)
        .filter(Organization.slug == slug.strip().lower(), Organization.deleted_at.is_(None))
        .first()
    )


def resolve_tenant(db: Session, payload: Dict[str, Any]) -> Principal:
    """
    Resolve the caller's organization from a decoded token payload.

    The payload must carry `sub`, `org_id` and `kind`; the principal must exist,
    be active and belong to that organization. Raises Unauthenticated otherwise.
    """
    kind = payload.get("kind")
    try:
        subject_id = int(payload.get("sub"))
        organization_id = int(payload.get("org_id"))
    except (TypeError, ValueError):
        raise Unauthenticated()

    organization = get_organization(db, organization_id)
    if organization is None:
        raise Unauthenticated("Organization not found for this session")

    if kind == TOKEN_KIND_USER:
        user = db.query(OrgUser).filter(OrgUser.id == subject_id).first()
        if user is None or user.organization_id != organization_id:
            raise Unauthenticated("User not found")
        if not user.active:
            raise Unauthenticated("Account is inactive")
        return Principal(kind=kind, organization=organization, user=user)

    if kind == TOKEN_KIND_GUARD:
        guard = (
            db.query(Guard)
            .filter(Guard.id == subject_id, Guard.deleted_at.is_(None))
            .first()
        )
        if guard is None or guard.organization_id != organization_id:
            raise Unauthenticated("Guard not found")
        return Principal(kind=kind, organization=organization, guard=guard)

    raise Unauthenticated()


def check_subscription_active(organization: Optional[Organization], now: Optional[datetime] = None) -> SubscriptionCheck:
    """Whether the organization may perform mutating operations right now."""
    if organization is None:
        return SubscriptionCheck(allowed=False, reason="not_found")

    status = organization.subscription_status
    if status == SubscriptionStatus.SUSPENDED:
        return SubscriptionCheck(allowed=False, reason="suspended")
    if status == SubscriptionStatus.CANCELLED:
        return SubscriptionCheck(allowed=False, reason="cancelled")
    if status == SubscriptionStatus.TRIAL and organization.trial_ends_at is not None:
        if ensure_utc(organization.trial_ends_at) < ensure_utc(now or now_utc()):
            return SubscriptionCheck(allowed=False, reason="trial_expired")
    return SubscriptionCheck(allowed=True)


def ensure_subscription_active(organization: Optional[Organization], now: Optional[datetime] = None) -> None:
    check = check_subscription_active(organization, now)
    if not check.allowed:
        raise SubscriptionNotAllowed(check.reason)


def count_active_guards(db: Session, organization_id: int) -> int:
    return (
        db.query(func.count(Guard.id))
        .filter(
            Guard.organization_id == organization_id,
            Guard.employment_status == EmploymentStatus.ACTIVE,
            Guard.deleted_at.is_(None),
        )
        .scalar()
    ) or 0


def check_guard_quota(db: Session, organization_id: int, lock: bool = False) -> QuotaCheck:
    """
    Active-guard quota for the organization. Pure read.

    Fails closed: an organization that cannot be loaded has no headroom.
    lock=True holds the organization row until the caller commits, so
    concurrent guard creations in one organization are counted one at a time.
    """
    organization = get_organization(db, organization_id, lock=lock)
    if organization is None:
        logger.warning("Quota check for unknown organization_id=%s; denying", organization_id)
        return QuotaCheck(allowed=False, current=0, limit=0)
    current = count_active_guards(db, organization_id)
    return QuotaCheck(allowed=current < organization.guard_limit, current=current, limit=organization.guard_limit)


def ensure_guard_quota(db: Session, organization_id: int) -> QuotaCheck:
    check = check_guard_quota(db, organization_id, lock=True)
    if not check.allowed:
        raise QuotaExceeded(check.current, check.limit)
    return check


def slugify(name: str) -> str:
    """Lowercase, hyphen-separated slug derived from an organization name."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slug or "org"


def slug_available(db: Session, slug: str) -> bool:
    # Deleted organizations keep their slug
    return db.query(Organization.id).filter(Organization.slug == slug).first() is None


def create_organization(
    db: Session,
    name: str,
    slug: Optional[str] = None,
    subscription_status: SubscriptionStatus = SubscriptionStatus.TRIAL,
    guard_limit: Optional[int] = None,
    timezone: Optional[str] = None,
    trial_days: Optional[int] = None,
    plan: Optional[str] = None,
) -> Organization:
    """
    Create a tenant with defaults from settings (guard limit, timezone, trial length)

    A plan sets the guard limit from PLAN_GUARD_LIMITS unless guard_limit is
    given explicitly. Raises SlugTaken when the slug already exists.
    """
    slug = slugify(slug or name)
    if not slug_available(db, slug):
        raise SlugTaken(slug)

    if plan is not None and plan not in PLAN_GUARD_LIMITS:
        raise ValueError(f"Unknown plan: {plan}")
    if guard_limit is None:
        guard_limit = PLAN_GUARD_LIMITS[plan] if plan else settings.DEFAULT_GUARD_LIMIT

    now = now_utc()
    trial_ends_at = None
    if subscription_status == SubscriptionStatus.TRIAL:
        days = settings.TRIAL_DAYS if trial_days is None else trial_days
        trial_ends_at = now + timedelta(days=days)

    organization = Organization(
        name=name.strip(),
        slug=slug,
        subscription_status=subscription_status,
        trial_ends_at=trial_ends_at,
        plan=plan or DEFAULT_PLAN,
        guard_limit=guard_limit,
        timezone=timezone or settings.DEFAULT_TIMEZONE,
    )
    db.add(organization)
    db.commit()
    db.refresh(organization)
    logger.info("Organization created: id=%s slug=%s status=%s", organization.id, organization.slug, subscription_status.value)
    return organization
