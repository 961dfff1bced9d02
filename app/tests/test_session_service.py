from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.core.errors import NoSession, Unauthenticated, ValidationFailed
from app.core.hashing import token_digest
from app.models.device_session import DeviceSession
from app.models.enums import ActorRole
from app.models.invalidated_token import InvalidatedToken


def test_issue_then_verify_round_trip(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A", issued_for="citizen")

    principal = sessions.verify(db, token)

    assert principal.identity == "a@example.com"
    assert principal.display_name == "A"
    assert principal.role == ActorRole.CITIZEN
    assert principal.expires_at > datetime.now(timezone.utc) + timedelta(hours=23)


def test_government_audience_maps_to_authority_role(db, sessions):
    token = sessions.issue(identity="r@gov.in", display_name="R", issued_for="government")
    assert sessions.verify(db, token).role == ActorRole.GOV_AUTHORITY


def test_tokens_minted_back_to_back_differ(sessions):
    t1 = sessions.issue(identity="a@example.com", display_name="A")
    t2 = sessions.issue(identity="a@example.com", display_name="A")
    assert t1 != t2


def test_unknown_audience_is_refused(sessions):
    with pytest.raises(ValueError):
        sessions.issue(identity="a@example.com", display_name="A", issued_for="auditor")


def test_expired_token_is_unauthenticated(db, sessions):
    token = sessions.issue(
        identity="a@example.com",
        display_name="A",
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
    )
    with pytest.raises(Unauthenticated):
        sessions.verify(db, token)


def test_garbage_token_is_unauthenticated(db, sessions):
    with pytest.raises(Unauthenticated):
        sessions.verify(db, "not-a-jwt")


def test_first_call_from_device_creates_session(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A")

    sessions.authenticate(db, token, device_id="phone-1", platform="android")

    s = sessions.get_session(db, user_id="a@example.com", device_id="phone-1")
    assert s is not None
    assert s.platform == "android"
    assert s.token_digest == token_digest(token)


def test_long_user_agent_is_cut_to_column_length(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A")

    sessions.authenticate(db, token, device_id="phone-1", platform="x" * 300)

    s = sessions.get_session(db, user_id="a@example.com", device_id="phone-1")
    assert len(s.platform) == 256
    assert s.device_info_json["platform"] == "x" * 256


def test_oversized_device_id_is_rejected(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A")
    with pytest.raises(ValidationFailed):
        sessions.authenticate(db, token, device_id="d" * 129)
    assert db.execute(select(DeviceSession)).first() is None


def test_later_call_rebinds_existing_session(db, sessions):
    t1 = sessions.issue(identity="a@example.com", display_name="A")
    t2 = sessions.issue(identity="a@example.com", display_name="A")

    sessions.authenticate(db, t1, device_id="phone-1")
    sessions.authenticate(db, t2, device_id="phone-1")

    rows = db.execute(select(DeviceSession)).scalars().all()
    assert len(rows) == 1
    assert rows[0].token_digest == token_digest(t2)


def test_authenticate_without_device_writes_nothing(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A")
    sessions.authenticate(db, token)
    assert db.execute(select(DeviceSession)).first() is None


def test_invalidate_kills_token_and_session(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A")
    sessions.authenticate(db, token, device_id="phone-1")

    sessions.invalidate(db, token, device_id="phone-1")

    assert sessions.get_session(db, user_id="a@example.com", device_id="phone-1") is None
    with pytest.raises(Unauthenticated):
        sessions.verify(db, token)

    row = db.execute(select(InvalidatedToken)).scalar_one()
    assert row.reason == "logout"
    assert row.token_digest == token_digest(token)


def test_refresh_requires_device_session(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A")
    with pytest.raises(NoSession):
        sessions.refresh(db, token, device_id="phone-1")

    # nothing recorded for the failed attempt
    assert db.execute(select(InvalidatedToken)).first() is None


def test_refresh_rotates_token_and_leaves_other_devices(db, sessions):
    phone = sessions.issue(identity="a@example.com", display_name="A")
    laptop = sessions.issue(identity="a@example.com", display_name="A")
    sessions.authenticate(db, phone, device_id="phone-1")
    sessions.authenticate(db, laptop, device_id="laptop-1")

    new_token = sessions.refresh(db, phone, device_id="phone-1")

    assert new_token != phone
    assert sessions.verify(db, new_token).identity == "a@example.com"
    with pytest.raises(Unauthenticated):
        sessions.verify(db, phone)

    phone_session = sessions.get_session(db, user_id="a@example.com", device_id="phone-1")
    assert phone_session.token_digest == token_digest(new_token)
    assert phone_session.last_refresh is not None

    laptop_session = sessions.get_session(db, user_id="a@example.com", device_id="laptop-1")
    assert laptop_session.token_digest == token_digest(laptop)
    assert sessions.verify(db, laptop).identity == "a@example.com"


def test_second_refresh_with_same_old_token_fails(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A")
    sessions.authenticate(db, token, device_id="phone-1")

    sessions.refresh(db, token, device_id="phone-1")
    with pytest.raises(Unauthenticated):
        sessions.refresh(db, token, device_id="phone-1")

    reasons = [r.reason for r in db.execute(select(InvalidatedToken)).scalars()]
    assert reasons == ["refresh"]


def test_chained_refresh_invalidates_every_superseded_token(db, sessions):
    t1 = sessions.issue(identity="a@example.com", display_name="A")
    sessions.authenticate(db, t1, device_id="phone-1")

    t2 = sessions.refresh(db, t1, device_id="phone-1")
    t3 = sessions.refresh(db, t2, device_id="phone-1")

    digests = {r.token_digest for r in db.execute(select(InvalidatedToken)).scalars()}
    assert digests == {token_digest(t1), token_digest(t2)}

    for stale in (t1, t2):
        with pytest.raises(Unauthenticated):
            sessions.verify(db, stale)
    assert sessions.verify(db, t3).identity == "a@example.com"
    assert sessions.get_session(db, user_id="a@example.com", device_id="phone-1").token_digest == token_digest(t3)


def test_sync_upserts_session_and_stamps_last_sync(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A")

    s = sessions.sync(db, token, device_id="tab-1", device_info={"platform": "ios", "model": "ipad"})

    assert s.last_sync is not None
    assert s.device_info_json["deviceId"] == "tab-1"
    assert s.device_info_json["model"] == "ipad"


def test_check_status_reports_invalidated_tokens(db, sessions):
    token = sessions.issue(identity="a@example.com", display_name="A")
    assert sessions.check_status(db, token).valid is True

    sessions.invalidate(db, token)

    status = sessions.check_status(db, token)
    assert status.valid is False
    assert status.principal is None
