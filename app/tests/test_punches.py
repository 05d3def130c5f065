"""
Tests for the attendance punch log (alternation, face verification, supervisor marking)
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import AlreadyPunchedIn, MustPunchInFirst, NotAuthorized, GuardNotActive, NoPrimaryUnit
from app.models.attendance_punch import AttendancePunch, PunchType
from app.models.guard import EmploymentStatus
from app.services.punch_service import (
    GeoPoint,
    is_face_verified,
    punch,
    supervisor_punch,
    supervisor_unit_board,
    list_guard_punches,
)
from app.tests.factories import make_guard, get_guard_token, auth

PHOTO_URL = "https://files.example/punches/p1.jpg"
PHOTO_REF = "punches/p1.jpg"


def _punch(db, org, guard, punch_type, actor, **kwargs):
    return punch(db, org.id, guard.id, None, punch_type, PHOTO_URL, PHOTO_REF, actor, **kwargs)


@pytest.mark.parametrize("enabled,score,expected", [
    (True, 70, True),
    (True, 70.0, True),
    (True, 95.5, True),
    (True, 69.9, False),
    (True, None, False),
    (False, 99, False),
    (False, None, False),
])
def test_face_verification_threshold(enabled, score, expected):
    assert is_face_verified(enabled, score) is expected


def test_punch_in_then_out(db, org, guard, unit1, admin_actor):
    punch_in = _punch(db, org, guard, PunchType.IN, admin_actor, geo=GeoPoint(12.97, 77.59, accuracy=8.0))
    assert punch_in.unit_id == unit1.id
    assert punch_in.latitude == 12.97
    assert punch_in.location_accuracy == 8.0
    assert punch_in.marked_by is None
    assert punch_in.face_verified is False

    punch_out = _punch(db, org, guard, PunchType.OUT, admin_actor)
    assert punch_out.punch_type == PunchType.OUT
    assert punch_out.punch_date == punch_in.punch_date


def test_second_punch_in_same_day_rejected(db, org, guard, admin_actor):
    _punch(db, org, guard, PunchType.IN, admin_actor)
    with pytest.raises(AlreadyPunchedIn):
        _punch(db, org, guard, PunchType.IN, admin_actor)
    assert db.query(AttendancePunch).count() == 1


def test_punch_out_without_in_rejected(db, org, guard, admin_actor):
    with pytest.raises(MustPunchInFirst):
        _punch(db, org, guard, PunchType.OUT, admin_actor)


def test_punch_out_twice_rejected(db, org, guard, admin_actor):
    _punch(db, org, guard, PunchType.IN, admin_actor)
    _punch(db, org, guard, PunchType.OUT, admin_actor)
    with pytest.raises(MustPunchInFirst):
        _punch(db, org, guard, PunchType.OUT, admin_actor)


def test_alternation_restarts_each_local_day(db, org, guard, admin_actor):
    # 10:00 IST on consecutive days
    day_one = datetime(2026, 3, 2, 4, 30, tzinfo=timezone.utc)
    day_two = day_one + timedelta(days=1)

    _punch(db, org, guard, PunchType.IN, admin_actor, now=day_one)
    with pytest.raises(MustPunchInFirst):
        _punch(db, org, guard, PunchType.OUT, admin_actor, now=day_two)
    second = _punch(db, org, guard, PunchType.IN, admin_actor, now=day_two)
    assert str(second.punch_date) == "2026-03-03"


def test_punch_date_uses_organization_timezone(db, org, guard, admin_actor):
    # 20:00 UTC is already the next day in Asia/Kolkata
    late = datetime(2026, 3, 2, 20, 0, tzinfo=timezone.utc)
    recorded = _punch(db, org, guard, PunchType.IN, admin_actor, now=late)
    assert str(recorded.punch_date) == "2026-03-03"


def test_face_score_recorded_and_verified(db, org, guard, admin_actor):
    guard.face_verification_enabled = True
    db.commit()
    recorded = _punch(db, org, guard, PunchType.IN, admin_actor, face_score=70)
    assert recorded.face_match_score == 70
    assert recorded.face_verified is True


def test_face_score_ignored_when_verification_disabled(db, org, guard, admin_actor):
    recorded = _punch(db, org, guard, PunchType.IN, admin_actor, face_score=99)
    assert recorded.face_match_score == 99
    assert recorded.face_verified is False


def test_inactive_guard_cannot_punch(db, org, unit1, admin_actor):
    idle = make_guard(db, org, "I1", primary_unit=unit1, status=EmploymentStatus.INACTIVE, with_password=False)
    with pytest.raises(GuardNotActive):
        _punch(db, org, idle, PunchType.IN, admin_actor)


def test_punch_without_unit_needs_primary_unit(db, org, admin_actor):
    floater = make_guard(db, org, "F1", with_password=False)
    with pytest.raises(NoPrimaryUnit):
        _punch(db, org, floater, PunchType.IN, admin_actor)


def _supervisor(db, org, unit):
    return make_guard(
        db, org, "SUP1", primary_unit=unit, is_supervisor=True, supervised_unit_id=unit.id, with_password=False,
    )


def test_supervisor_marks_punch_for_unit_guard(db, org, guard, unit1):
    supervisor = _supervisor(db, org, unit1)
    recorded = supervisor_punch(db, org.id, supervisor.id, guard.id, PunchType.IN, PHOTO_URL, PHOTO_REF)
    assert recorded.marked_by == supervisor.id
    assert recorded.unit_id == unit1.id
    assert recorded.guard_id == guard.id


def test_supervisor_cannot_mark_guard_of_other_unit(db, org, unit1, unit2):
    supervisor = _supervisor(db, org, unit1)
    outsider = make_guard(db, org, "G050", primary_unit=unit2, with_password=False)
    with pytest.raises(NotAuthorized):
        supervisor_punch(db, org.id, supervisor.id, outsider.id, PunchType.IN, PHOTO_URL, PHOTO_REF)
    assert db.query(AttendancePunch).count() == 0


def test_non_supervisor_cannot_mark(db, org, guard, unit1):
    peer = make_guard(db, org, "G002", primary_unit=unit1, with_password=False)
    with pytest.raises(NotAuthorized):
        supervisor_punch(db, org.id, peer.id, guard.id, PunchType.IN, PHOTO_URL, PHOTO_REF)


def test_supervisor_board(db, org, guard, unit1, unit2, admin_actor):
    supervisor = _supervisor(db, org, unit1)
    absent = make_guard(db, org, "G002", primary_unit=unit1, full_name="Zed Absent", with_password=False)
    make_guard(db, org, "G003", primary_unit=unit2, with_password=False)
    make_guard(db, org, "G004", primary_unit=unit1, status=EmploymentStatus.SUSPENDED, with_password=False)

    _punch(db, org, guard, PunchType.IN, admin_actor)
    _punch(db, org, supervisor, PunchType.IN, admin_actor)
    _punch(db, org, supervisor, PunchType.OUT, admin_actor)

    board = {entry["guard_code"]: entry for entry in supervisor_unit_board(db, org.id, supervisor.id)}
    assert set(board) == {"G001", "G002", "SUP1"}
    assert board["G001"]["status"] == "IN"
    assert board["SUP1"]["status"] == "OUT"
    assert board[absent.guard_code]["status"] == "ABSENT"
    assert board[absent.guard_code]["last_punch_time"] is None


def test_guard_punch_history_window(db, org, guard, admin_actor):
    old = datetime.now(timezone.utc) - timedelta(days=40)
    _punch(db, org, guard, PunchType.IN, admin_actor, now=old)
    _punch(db, org, guard, PunchType.IN, admin_actor)

    assert len(list_guard_punches(db, org.id, guard.id)) == 1
    assert len(list_guard_punches(db, org.id, guard.id, days=60)) == 2


def test_api_terminal_guard_punches_for_itself(client, db, org, guard):
    token = get_guard_token(client, org.slug, guard.guard_code)
    response = client.post(
        "/api/v1/punches",
        json={
            "guard_id": 9999,
            "punch_type": "IN",
            "photo_url": PHOTO_URL,
            "photo_ref": PHOTO_REF,
            "geo": {"latitude": 12.97, "longitude": 77.59},
        },
        headers=auth(token),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["ok"] is True
    assert body["data"]["guard_id"] == guard.id
    assert body["message"] == "Punch IN recorded"

    response = client.post(
        "/api/v1/punches",
        json={"punch_type": "IN", "photo_url": PHOTO_URL, "photo_ref": PHOTO_REF},
        headers=auth(token),
    )
    assert response.status_code == 409
    assert response.json()["error_kind"] == "already_punched_in"

    response = client.get(f"/api/v1/punches/guards/{guard.id}", headers=auth(token))
    assert response.status_code == 200
    assert response.json()["total"] == 1


def test_api_guard_cannot_read_other_guard_punches(client, db, org, guard, unit1):
    other = make_guard(db, org, "G002", primary_unit=unit1, with_password=False)
    token = get_guard_token(client, org.slug, guard.guard_code)
    response = client.get(f"/api/v1/punches/guards/{other.id}", headers=auth(token))
    assert response.status_code == 403
    assert response.json()["ok"] is False
