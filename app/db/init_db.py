"""
Database initialization helper
Seeds an organization together with its first ADMIN console user
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.core.security import hash_password, validate_password
from app.models.org_user import OrgUser, OrgRole
from app.models.organization import Organization, SubscriptionStatus
from app.services.tenant_service import create_organization, get_organization_by_slug, slugify

logger = logging.getLogger(__name__)


def init_organization(
    db: Session,
    name: str,
    admin_email: str,
    admin_password: str,
    admin_name: str = "Organization Admin",
    slug: Optional[str] = None,
    subscription_status: SubscriptionStatus = SubscriptionStatus.TRIAL,
    guard_limit: Optional[int] = None,
    timezone: Optional[str] = None,
    plan: Optional[str] = None,
    trial_days: Optional[int] = None,
) -> Tuple[Organization, OrgUser]:
    """
    Create an organization and its first ADMIN if the slug is not taken yet

    This is a helper function and should NOT be auto-run on startup.
    Returns the existing organization and admin when the slug already exists.
    """
    password = validate_password(admin_password)
    email = admin_email.strip().lower()

    organization = get_organization_by_slug(db, slugify(slug or name))
    if organization is not None:
        admin = (
            db.query(OrgUser)
            .filter(OrgUser.organization_id == organization.id, OrgUser.role == OrgRole.ADMIN)
            .first()
        )
        if admin is not None:
            logger.info("Organization %s already initialized, skipping", organization.slug)
            return organization, admin
    else:
        organization = create_organization(
            db,
            name=name,
            slug=slug,
            subscription_status=subscription_status,
            guard_limit=guard_limit,
            timezone=timezone,
            plan=plan,
            trial_days=trial_days,
        )

    admin = OrgUser(
        organization_id=organization.id,
        email=email,
        full_name=admin_name,
        password_hash=hash_password(password),
        role=OrgRole.ADMIN,
        active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Admin user created for organization %s: %s", organization.slug, admin.email)
    return organization, admin
