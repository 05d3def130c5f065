"""
Organization self-service signup
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.errors import SlugTaken, EmailTaken
from app.db.init_db import init_organization
from app.models.organization import Organization, SubscriptionStatus
from app.models.org_user import OrgUser
from app.schemas.auth import OrganizationSignup
from app.services.audit_service import Actor, log_audit
from app.services.tenant_service import slugify, slug_available

logger = logging.getLogger(__name__)


@dataclass
class SignupOutcome:
    organization: Organization
    admin: OrgUser


def signup_organization(db: Session, signup: OrganizationSignup) -> SignupOutcome:
    """
    Create a trial organization on the requested plan together with its first ADMIN

    Raises SlugTaken when the slug belongs to any organization (deleted ones
    included) and EmailTaken when the admin email already has an account.
    Nothing is written in either case.
    """
    slug = slugify(signup.slug or signup.organization_name)
    if not slug_available(db, slug):
        raise SlugTaken(slug)
    if db.query(OrgUser.id).filter(OrgUser.email == signup.admin_email).first() is not None:
        raise EmailTaken()

    organization, admin = init_organization(
        db,
        name=signup.organization_name,
        admin_email=signup.admin_email,
        admin_password=signup.admin_password,
        admin_name=signup.admin_name,
        slug=slug,
        subscription_status=SubscriptionStatus.TRIAL,
        plan=signup.plan,
    )
    logger.info("Organization signup: id=%s slug=%s plan=%s", organization.id, organization.slug, organization.plan)
    log_audit(
        db=db,
        organization_id=organization.id,
        actor=Actor.user(admin.id),
        action="ORGANIZATION_SIGNUP",
        entity_type="organizations",
        entity_id=organization.id,
        meta={"plan": organization.plan, "guard_limit": organization.guard_limit},
    )
    return SignupOutcome(organization=organization, admin=admin)
