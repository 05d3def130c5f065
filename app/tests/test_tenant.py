"""
Tests for tenant resolution, subscription gating and the active-guard quota
"""
from datetime import timedelta

import pytest

from app.core.config import settings
from app.core.errors import Unauthenticated, SubscriptionNotAllowed, QuotaExceeded, SlugTaken, EmailTaken
from app.core.security import TOKEN_KIND_USER, TOKEN_KIND_GUARD
from app.db.init_db import init_organization
from app.models.guard import EmploymentStatus
from app.models.org_user import OrgUser
from app.models.organization import Organization, SubscriptionStatus
from app.schemas.auth import OrganizationSignup
from app.services.signup_service import signup_organization
from app.services.tenant_service import (
    check_subscription_active,
    ensure_subscription_active,
    check_guard_quota,
    ensure_guard_quota,
    count_active_guards,
    resolve_tenant,
    slugify,
    create_organization,
)
from app.tests.factories import make_org, make_user, make_guard, get_auth_token, auth
from app.utils.datetime_utils import now_utc, ensure_utc


@pytest.mark.parametrize("status,reason", [
    (SubscriptionStatus.SUSPENDED, "suspended"),
    (SubscriptionStatus.CANCELLED, "cancelled"),
])
def test_blocked_subscription_statuses(db, status, reason):
    org = make_org(db, slug="blocked", status=status)
    check = check_subscription_active(org)
    assert check.allowed is False
    assert check.reason == reason


def test_active_subscription_is_allowed(db, org):
    assert check_subscription_active(org).allowed is True


def test_trial_within_period_is_allowed(db):
    org = make_org(db, slug="trial", status=SubscriptionStatus.TRIAL, trial_ends_at=now_utc() + timedelta(days=3))
    assert check_subscription_active(org).allowed is True


def test_trial_without_end_date_is_allowed(db):
    org = make_org(db, slug="trial", status=SubscriptionStatus.TRIAL)
    assert check_subscription_active(org).allowed is True


def test_expired_trial_is_blocked(db):
    org = make_org(db, slug="trial", status=SubscriptionStatus.TRIAL, trial_ends_at=now_utc() - timedelta(days=1))
    check = check_subscription_active(org)
    assert check.allowed is False
    assert check.reason == "trial_expired"

    with pytest.raises(SubscriptionNotAllowed) as exc_info:
        ensure_subscription_active(org)
    assert exc_info.value.message == "Trial expired"


def test_trial_expiry_uses_supplied_clock(db):
    ends = now_utc() + timedelta(days=1)
    org = make_org(db, slug="trial", status=SubscriptionStatus.TRIAL, trial_ends_at=ends)
    assert check_subscription_active(org, now=ends - timedelta(minutes=1)).allowed is True
    assert check_subscription_active(org, now=ends + timedelta(minutes=1)).allowed is False


def test_missing_organization_is_not_found():
    check = check_subscription_active(None)
    assert check.allowed is False
    assert check.reason == "not_found"


def test_quota_counts_only_active_non_deleted_guards(db, org, unit1):
    make_guard(db, org, "A1", primary_unit=unit1)
    make_guard(db, org, "A2", primary_unit=unit1)
    make_guard(db, org, "S1", status=EmploymentStatus.SUSPENDED)
    make_guard(db, org, "I1", status=EmploymentStatus.INACTIVE)
    deleted = make_guard(db, org, "D1")
    deleted.deleted_at = now_utc()
    db.commit()

    assert count_active_guards(db, org.id) == 2
    check = check_guard_quota(db, org.id)
    assert check.allowed is True
    assert check.current == 2
    assert check.limit == 50


def test_quota_is_per_organization(db, org):
    other = make_org(db, slug="other", guard_limit=1)
    make_guard(db, org, "A1")
    assert count_active_guards(db, other.id) == 0
    assert check_guard_quota(db, other.id).allowed is True


def test_quota_reached(db):
    org = make_org(db, slug="small", guard_limit=2)
    make_guard(db, org, "A1")
    make_guard(db, org, "A2")

    check = check_guard_quota(db, org.id)
    assert check.allowed is False
    assert (check.current, check.limit) == (2, 2)

    with pytest.raises(QuotaExceeded) as exc_info:
        ensure_guard_quota(db, org.id)
    assert exc_info.value.message == "Guard limit reached (2/2). Please upgrade your plan."


def test_quota_fails_closed_for_unknown_organization(db):
    check = check_guard_quota(db, 4242)
    assert check.allowed is False
    assert check.limit == 0


def test_resolve_tenant_for_console_user(db, org, admin):
    principal = resolve_tenant(db, {"sub": str(admin.id), "org_id": org.id, "kind": TOKEN_KIND_USER})
    assert principal.organization_id == org.id
    assert principal.user.id == admin.id
    assert principal.actor.actor_type == "USER"


def test_resolve_tenant_for_guard(db, org, guard):
    principal = resolve_tenant(db, {"sub": str(guard.id), "org_id": org.id, "kind": TOKEN_KIND_GUARD})
    assert principal.guard.id == guard.id
    assert principal.actor.actor_type == "GUARD"
    assert principal.actor.user_id is None


def test_resolve_tenant_rejects_missing_claims(db, org, admin):
    with pytest.raises(Unauthenticated):
        resolve_tenant(db, {"sub": str(admin.id), "kind": TOKEN_KIND_USER})
    with pytest.raises(Unauthenticated):
        resolve_tenant(db, {"sub": str(admin.id), "org_id": org.id})


def test_resolve_tenant_rejects_cross_tenant_claim(db, org, admin):
    other = make_org(db, slug="other")
    with pytest.raises(Unauthenticated):
        resolve_tenant(db, {"sub": str(admin.id), "org_id": other.id, "kind": TOKEN_KIND_USER})


def test_resolve_tenant_rejects_unknown_organization(db, admin):
    with pytest.raises(Unauthenticated):
        resolve_tenant(db, {"sub": str(admin.id), "org_id": 999, "kind": TOKEN_KIND_USER})


def test_resolve_tenant_rejects_inactive_user(db, org):
    user = make_user(db, org, "former@acme.test", active=False)
    with pytest.raises(Unauthenticated):
        resolve_tenant(db, {"sub": str(user.id), "org_id": org.id, "kind": TOKEN_KIND_USER})


def test_resolve_tenant_rejects_deleted_guard(db, org, guard):
    guard.deleted_at = now_utc()
    db.commit()
    with pytest.raises(Unauthenticated):
        resolve_tenant(db, {"sub": str(guard.id), "org_id": org.id, "kind": TOKEN_KIND_GUARD})


def test_slugify():
    assert slugify("Acme Security Pvt. Ltd.") == "acme-security-pvt-ltd"
    assert slugify("  ###  ") == "org"


def test_create_organization_trial_defaults(db):
    organization = create_organization(db, name="Night Watch", trial_days=7)
    assert organization.slug == "night-watch"
    assert organization.subscription_status == SubscriptionStatus.TRIAL
    assert organization.trial_ends_at is not None
    assert organization.guard_limit > 0
    assert organization.timezone


def test_create_active_organization_has_no_trial_end(db):
    organization = create_organization(
        db, name="Day Watch", subscription_status=SubscriptionStatus.ACTIVE, guard_limit=5,
    )
    assert organization.trial_ends_at is None
    assert organization.guard_limit == 5


def test_init_organization_is_idempotent(db):
    org, admin = init_organization(db, "Harbor Patrol", "Owner@Harbor.test", "ownerpass1")
    assert org.slug == "harbor-patrol"
    assert admin.email == "owner@harbor.test"

    again_org, again_admin = init_organization(db, "Harbor Patrol", "other@harbor.test", "ownerpass1")
    assert (again_org.id, again_admin.id) == (org.id, admin.id)


def test_create_organization_rejects_taken_slug(db):
    create_organization(db, name="Acme", slug="acme")
    with pytest.raises(SlugTaken) as exc_info:
        create_organization(db, name="Acme Again", slug="ACME")
    assert exc_info.value.message == "Organization slug already taken"
    assert db.query(Organization).count() == 1


def test_deleted_organization_keeps_its_slug(db):
    gone = make_org(db, slug="gone")
    gone.deleted_at = now_utc()
    db.commit()
    with pytest.raises(SlugTaken):
        create_organization(db, name="Gone")


@pytest.mark.parametrize("plan,guard_limit", [
    ("starter", 50),
    ("professional", 200),
    ("enterprise", 500),
])
def test_plan_sets_guard_limit_and_trial_window(db, plan, guard_limit):
    before = now_utc()
    organization = create_organization(db, name=f"{plan} watch", plan=plan)
    after = now_utc()

    assert organization.plan == plan
    assert organization.guard_limit == guard_limit
    assert organization.subscription_status == SubscriptionStatus.TRIAL
    trial_ends_at = ensure_utc(organization.trial_ends_at)
    assert before + timedelta(days=settings.TRIAL_DAYS) <= trial_ends_at <= after + timedelta(days=settings.TRIAL_DAYS)


def test_explicit_guard_limit_overrides_plan(db):
    organization = create_organization(db, name="Custom", plan="enterprise", guard_limit=75)
    assert organization.guard_limit == 75


def _signup(**overrides):
    data = {
        "organization_name": "Harbor Patrol",
        "admin_email": "Owner@Harbor.test",
        "admin_password": "ownerpass1",
        "admin_name": "Harbor Owner",
    }
    data.update(overrides)
    return OrganizationSignup(**data)


def test_signup_creates_trial_organization_and_admin(db):
    outcome = signup_organization(db, _signup(plan="professional"))
    assert outcome.organization.slug == "harbor-patrol"
    assert outcome.organization.guard_limit == 200
    assert outcome.organization.subscription_status == SubscriptionStatus.TRIAL
    assert outcome.admin.organization_id == outcome.organization.id
    assert outcome.admin.email == "owner@harbor.test"
    assert check_subscription_active(outcome.organization).allowed is True


def test_signup_with_taken_slug_writes_nothing(db, org):
    with pytest.raises(SlugTaken):
        signup_organization(db, _signup(slug=org.slug))
    assert db.query(Organization).count() == 1
    assert db.query(OrgUser).count() == 0


def test_signup_with_taken_email_writes_nothing(db, admin):
    with pytest.raises(EmailTaken):
        signup_organization(db, _signup(admin_email="ADMIN@acme.test"))
    assert db.query(Organization).count() == 1


def test_signup_schema_rejects_unknown_plan_and_weak_password():
    with pytest.raises(ValueError):
        _signup(plan="platinum")
    with pytest.raises(ValueError):
        _signup(admin_password="abc")


def test_signup_over_http(client, db):
    response = client.post("/api/v1/auth/signup", json={
        "organization_name": "Night Owls",
        "admin_email": "boss@owls.test",
        "admin_password": "owlspass1",
        "plan": "enterprise",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["ok"] is True
    assert body["message"] == "Organization created successfully"
    assert body["data"]["organization"]["slug"] == "night-owls"
    assert body["data"]["organization"]["guard_limit"] == 500
    assert body["data"]["organization"]["subscription_status"] == "trial"
    assert body["data"]["organization"]["trial_ends_at"].endswith("Z")

    token = get_auth_token(client, "boss@owls.test", "owlspass1")
    response = client.get("/api/v1/guards/quota", headers=auth(token))
    assert response.status_code == 200
    assert response.json()["limit"] == 500

    response = client.post("/api/v1/auth/signup", json={
        "organization_name": "Night Owls",
        "admin_email": "second@owls.test",
        "admin_password": "owlspass1",
    })
    assert response.status_code == 409
    assert response.json() == {
        "ok": False,
        "error_kind": "slug_taken",
        "message": "Organization slug already taken",
    }
    assert db.query(Organization).count() == 1


def test_signup_rejects_unknown_plan_over_http(client):
    response = client.post("/api/v1/auth/signup", json={
        "organization_name": "Odd Plan",
        "admin_email": "boss@odd.test",
        "admin_password": "oddpass12",
        "plan": "platinum",
    })
    assert response.status_code == 422
    assert response.json()["error_kind"] == "request_invalid"
