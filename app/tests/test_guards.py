"""
Tests for the guard directory: creation under quota, lookup, search and soft delete
"""
import pytest

from app.core.errors import QuotaExceeded, DuplicateGuardCode, UnitNotFound, GuardNotFound, GuardNotActive
from app.models.guard import Guard, EmploymentStatus
from app.models.org_user import OrgRole
from app.schemas.guard import GuardCreate, GuardUpdate
from app.services import guard_service, tenant_service
from app.services.tenant_service import count_active_guards
from app.tests.factories import make_org, make_user, make_unit, make_guard, get_auth_token, auth
from app.utils.datetime_utils import now_utc


def test_scenario_d_create_guard_over_quota_writes_nothing(db, org, unit1, admin_actor):
    for i in range(50):
        make_guard(db, org, f"Q{i:03d}", primary_unit=unit1, with_password=False)
    assert count_active_guards(db, org.id) == 50

    with pytest.raises(QuotaExceeded) as exc_info:
        guard_service.create_guard(
            db, org.id, GuardCreate(full_name="One Too Many", guard_code="q999"), admin_actor,
        )
    assert exc_info.value.message == "Guard limit reached (50/50). Please upgrade your plan."
    assert db.query(Guard).filter(Guard.guard_code == "Q999").first() is None
    assert db.query(Guard).count() == 50


def test_create_guard_locks_organization_row_for_quota(db, org, admin_actor, monkeypatch):
    locks = []
    original = tenant_service.get_organization

    def recording_get_organization(session, organization_id, lock=False):
        locks.append(lock)
        return original(session, organization_id, lock=lock)

    monkeypatch.setattr(tenant_service, "get_organization", recording_get_organization)
    guard_service.create_guard(db, org.id, GuardCreate(full_name="Locked In", guard_code="L9"), admin_actor)
    assert locks == [True]

    locks.clear()
    tenant_service.check_guard_quota(db, org.id)
    assert locks == [False]


def test_create_inactive_guard_does_not_need_quota(db, admin_actor):
    org = make_org(db, slug="full", guard_limit=1)
    make_guard(db, org, "A1", with_password=False)
    guard = guard_service.create_guard(
        db, org.id,
        GuardCreate(full_name="Reserve", guard_code="R1", employment_status=EmploymentStatus.INACTIVE),
        admin_actor,
    )
    assert guard.employment_status == EmploymentStatus.INACTIVE


def test_create_guard_normalizes_code_and_hashes_password(db, org, unit1, admin_actor):
    guard = guard_service.create_guard(
        db, org.id,
        GuardCreate(full_name="  Ravi Kumar ", guard_code=" g100 ", primary_unit_id=unit1.id, password="secret12"),
        admin_actor,
    )
    assert guard.guard_code == "G100"
    assert guard.full_name == "Ravi Kumar"
    assert guard.password_hash and guard.password_hash != "secret12"


def test_duplicate_guard_code_in_same_organization(db, org, guard, admin_actor):
    with pytest.raises(DuplicateGuardCode):
        guard_service.create_guard(db, org.id, GuardCreate(full_name="Copy", guard_code="g001"), admin_actor)


def test_same_guard_code_in_other_organization(db, guard, admin_actor):
    other = make_org(db, slug="other")
    created = guard_service.create_guard(db, other.id, GuardCreate(full_name="Twin", guard_code="G001"), admin_actor)
    assert created.organization_id == other.id


def test_primary_unit_must_belong_to_organization(db, org, admin_actor):
    other = make_org(db, slug="other")
    foreign_unit = make_unit(db, other, "Elsewhere")
    with pytest.raises(UnitNotFound):
        guard_service.create_guard(
            db, org.id, GuardCreate(full_name="Lost", guard_code="L1", primary_unit_id=foreign_unit.id), admin_actor,
        )


def test_get_active_guard_statuses(db, org):
    suspended = make_guard(db, org, "S1", status=EmploymentStatus.SUSPENDED)
    with pytest.raises(GuardNotActive) as exc_info:
        guard_service.get_active_guard(db, org.id, suspended.id)
    assert exc_info.value.employment_status == "suspended"

    with pytest.raises(GuardNotFound):
        guard_service.get_active_guard(db, org.id, 12345)


def test_get_guard_is_tenant_scoped(db, guard):
    other = make_org(db, slug="other")
    with pytest.raises(GuardNotFound):
        guard_service.get_guard(db, other.id, guard.id)


def test_soft_delete_frees_quota(db, admin_actor):
    org = make_org(db, slug="tiny", guard_limit=1)
    first = make_guard(db, org, "T1", with_password=False)
    with pytest.raises(QuotaExceeded):
        guard_service.create_guard(db, org.id, GuardCreate(full_name="Second", guard_code="T2"), admin_actor)

    deleted = guard_service.soft_delete_guard(db, org.id, first.id, admin_actor)
    assert deleted.deleted_at is not None
    assert deleted.employment_status == EmploymentStatus.INACTIVE

    second = guard_service.create_guard(db, org.id, GuardCreate(full_name="Second", guard_code="T2"), admin_actor)
    assert second.employment_status == EmploymentStatus.ACTIVE
    with pytest.raises(GuardNotFound):
        guard_service.get_guard(db, org.id, first.id)


def test_reactivation_counts_against_quota(db, admin_actor):
    org = make_org(db, slug="tiny", guard_limit=1)
    make_guard(db, org, "T1", with_password=False)
    idle = make_guard(db, org, "T2", status=EmploymentStatus.INACTIVE, with_password=False)

    with pytest.raises(QuotaExceeded):
        guard_service.update_guard(
            db, org.id, idle.id, GuardUpdate(employment_status=EmploymentStatus.ACTIVE), admin_actor,
        )
    db.refresh(idle)
    assert idle.employment_status == EmploymentStatus.INACTIVE


def test_update_guard_partial(db, org, guard, unit2, admin_actor):
    updated = guard_service.update_guard(
        db, org.id, guard.id, GuardUpdate(primary_unit_id=unit2.id, phone_number="9876543210"), admin_actor,
    )
    assert updated.primary_unit_id == unit2.id
    assert updated.phone_number == "9876543210"
    assert updated.guard_code == "G001"


def test_update_guard_code_collision(db, org, guard, admin_actor):
    other_guard = make_guard(db, org, "G002", with_password=False)
    with pytest.raises(DuplicateGuardCode):
        guard_service.update_guard(db, org.id, other_guard.id, GuardUpdate(guard_code="g001"), admin_actor)


def test_list_guards_search_filter_and_pagination(db, org, unit1, unit2):
    make_guard(db, org, "A100", primary_unit=unit1, full_name="Arjun Singh", with_password=False)
    make_guard(db, org, "B200", primary_unit=unit2, full_name="Bala Murugan", phone_number="9000011111", with_password=False)
    make_guard(db, org, "C300", primary_unit=unit2, full_name="Chitra Devi", status=EmploymentStatus.SUSPENDED, with_password=False)

    items, total, _ = guard_service.list_guards(db, org.id, search="arjun")
    assert [g.guard_code for g in items] == ["A100"]
    assert total == 1

    items, _, _ = guard_service.list_guards(db, org.id, search="90000")
    assert [g.guard_code for g in items] == ["B200"]

    items, total, _ = guard_service.list_guards(db, org.id, unit_id=unit2.id)
    assert total == 2

    items, total, _ = guard_service.list_guards(db, org.id, status=EmploymentStatus.SUSPENDED)
    assert [g.guard_code for g in items] == ["C300"]

    items, total, total_pages = guard_service.list_guards(db, org.id, page=2, limit=2)
    assert total == 3
    assert total_pages == 2
    assert len(items) == 1


def test_list_guards_excludes_deleted_and_other_tenants(db, org, guard):
    other = make_org(db, slug="other")
    make_guard(db, other, "X1", with_password=False)
    gone = make_guard(db, org, "G002", with_password=False)
    gone.deleted_at = now_utc()
    db.commit()

    items, total, _ = guard_service.list_guards(db, org.id)
    assert [g.guard_code for g in items] == ["G001"]
    assert total == 1


def test_enable_face_verification(db, org, guard, admin_actor):
    updated = guard_service.enable_face_verification(
        db, org.id, guard.id, "https://files.example/faces/g001.jpg", "faces/g001.jpg", admin_actor,
    )
    assert updated.face_verification_enabled is True
    assert updated.face_data_ref == "faces/g001.jpg"


def test_api_create_and_list_guards(client, db, org, admin, unit1):
    token = get_auth_token(client, admin.email)
    response = client.post(
        "/api/v1/guards",
        json={"full_name": "Meena Rao", "guard_code": "m77", "primary_unit_id": unit1.id},
        headers=auth(token),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["ok"] is True
    assert body["message"] == "Guard created"
    assert body["data"]["guard_code"] == "M77"
    assert body["data"]["employment_status"] == "active"

    response = client.get("/api/v1/guards?search=meena", headers=auth(token))
    assert response.status_code == 200
    assert response.json()["total"] == 1

    response = client.get(f"/api/v1/guards/{body['data']['id']}", headers=auth(token))
    assert response.status_code == 200
    assert response.json()["full_name"] == "Meena Rao"


def test_api_create_guard_over_quota(client, db, org, admin):
    org.guard_limit = 1
    db.commit()
    make_guard(db, org, "A1", with_password=False)

    token = get_auth_token(client, admin.email)
    response = client.post("/api/v1/guards", json={"full_name": "Extra", "guard_code": "A2"}, headers=auth(token))
    assert response.status_code == 403
    body = response.json()
    assert body["ok"] is False
    assert body["error_kind"] == "quota_exceeded"
    assert body["message"] == "Guard limit reached (1/1). Please upgrade your plan."

    response = client.get("/api/v1/guards/quota", headers=auth(token))
    assert response.json() == {
        "allowed": False,
        "current": 1,
        "limit": 1,
        "message": "Guard limit reached (1/1). Please upgrade your plan.",
    }


def test_api_unknown_guard_is_404(client, admin):
    token = get_auth_token(client, admin.email)
    response = client.get("/api/v1/guards/9999", headers=auth(token))
    assert response.status_code == 404
    assert response.json()["error_kind"] == "guard_not_found"


def test_api_viewer_cannot_create_guard(client, db, org):
    viewer = make_user(db, org, "viewer@acme.test", role=OrgRole.VIEWER)
    token = get_auth_token(client, viewer.email)
    response = client.post("/api/v1/guards", json={"full_name": "Nope", "guard_code": "N1"}, headers=auth(token))
    assert response.status_code == 403
    assert response.json()["error_kind"] == "forbidden"
    assert db.query(Guard).count() == 0

    response = client.get("/api/v1/guards", headers=auth(token))
    assert response.status_code == 200
