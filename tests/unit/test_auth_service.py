from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from paperrepo.application.services.auth_service import AuthService
from paperrepo.domain.errors import (
    AuthenticationFailed,
    NotFound,
    NotificationFailed,
    PermissionDenied,
    ValidationError,
)
from paperrepo.domain.user import User
from paperrepo.utils.security import hash_password
from tests.fakes import InMemoryUserDirectory, InMemoryVerificationStore, RecordingNotifier

NOW = datetime(2026, 4, 2, 8, 30, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, value: datetime):
        self.value = value

    def __call__(self) -> datetime:
        return self.value


@pytest.fixture()
def clock():
    return _Clock(NOW)


@pytest.fixture()
def env(clock):
    users = InMemoryUserDirectory()
    verifications = InMemoryVerificationStore()
    notifier = RecordingNotifier()
    service = AuthService(
        users=users,
        verifications=verifications,
        notifier=notifier,
        otp_ttl_minutes=10,
        bcrypt_rounds=4,
        now=clock,
    )
    return service, users, verifications, notifier


def _registration(**overrides):
    payload = {
        "email": "new@uni.edu",
        "password": "secret1",
        "firstName": "Grace",
        "lastName": "Hopper",
        "department": "Computer Science",
        "phoneNumber": "+1 555 010 9999",
    }
    payload.update(overrides)
    return payload


def _verify(service, notifier, email="new@uni.edu"):
    service.send_otp(email)
    code = notifier.of_kind("verification")[-1]["code"]
    return service.verify_otp(email, code)


def test_send_otp_emails_a_six_digit_code(env):
    service, _, verifications, notifier = env

    result = service.send_otp("  New@Uni.edu ")

    assert result["message"] == "OTP sent successfully to your email"
    assert result["expiresAt"] == (NOW + timedelta(minutes=10)).isoformat()
    sent = notifier.of_kind("verification")[0]
    assert sent["to"] == "new@uni.edu"
    assert len(sent["code"]) == 6 and sent["code"].isdigit()
    assert sent["ttl"] == 10
    # Only the digest is stored.
    assert verifications.get("new@uni.edu", now=NOW)["code_hash"] != sent["code"]


@pytest.mark.parametrize(
    "email,message",
    [
        ("", "Email is required"),
        ("not-an-email", "Please enter a valid email address"),
    ],
)
def test_send_otp_validates_email(env, email, message):
    service, *_ = env
    with pytest.raises(ValidationError) as err:
        service.send_otp(email)
    assert err.value.message == message


def test_send_otp_rejects_existing_account(env):
    service, users, *_ = env
    users.add(User(id="u0", email="taken@uni.edu"))
    with pytest.raises(ValidationError) as err:
        service.send_otp("taken@uni.edu")
    assert err.value.message == "User already exists with this email"


def test_send_otp_discards_code_when_mail_fails(env):
    service, _, verifications, notifier = env
    notifier.fail = {"verification"}

    with pytest.raises(NotificationFailed) as err:
        service.send_otp("new@uni.edu")

    assert err.value.message == "Failed to send OTP. Please try again."
    assert verifications.get("new@uni.edu", now=NOW) is None


def test_verify_otp_rejects_wrong_and_expired_codes(env, clock):
    service, _, _, notifier = env
    service.send_otp("new@uni.edu")
    code = notifier.of_kind("verification")[0]["code"]
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(ValidationError) as bad:
        service.verify_otp("new@uni.edu", wrong)
    assert bad.value.message == "Invalid OTP. Please try again."

    clock.value = NOW + timedelta(minutes=11)
    with pytest.raises(ValidationError) as expired:
        service.verify_otp("new@uni.edu", code)
    assert expired.value.message == "OTP expired or not found. Please request a new one."


def test_send_otp_purges_expired_codes(env, clock):
    service, _, verifications, _ = env
    service.send_otp("stale@uni.edu")

    clock.value = NOW + timedelta(minutes=11)
    service.send_otp("new@uni.edu")

    assert "stale@uni.edu" not in verifications._rows
    assert verifications.get("new@uni.edu", now=clock.value) is not None


def test_verify_otp_requires_both_fields(env):
    service, *_ = env
    with pytest.raises(ValidationError) as err:
        service.verify_otp("new@uni.edu", "")
    assert err.value.message == "Email and OTP are required"


def test_register_after_verification_creates_pending_user(env):
    service, users, verifications, notifier = env
    assert _verify(service, notifier)["verified"] is True

    user = service.register(_registration())

    assert user.status == "pending"
    assert user.role == "user"
    assert user.first_name == "Grace"
    assert user.password_hash and user.password_hash != "secret1"
    assert verifications.get("new@uni.edu", now=NOW) is None
    assert users.get_user_by_email("new@uni.edu").id == user.id


def test_register_requires_verified_email(env):
    service, _, _, notifier = env
    service.send_otp("new@uni.edu")

    with pytest.raises(ValidationError) as err:
        service.register(_registration())
    assert err.value.message == "Email not verified. Please verify your email first."


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"password": ""}, "Email and password are required"),
        ({"department": " "}, "Please fill in all required fields"),
        ({"password": "12345"}, "Password must be at least 6 characters long"),
        ({"phoneNumber": "call me"}, "Please enter a valid phone number"),
    ],
)
def test_register_validation(env, overrides, message):
    service, _, _, notifier = env
    _verify(service, notifier)
    with pytest.raises(ValidationError) as err:
        service.register(_registration(**overrides))
    assert err.value.message == message


def test_login_checks_password_and_status(env):
    service, users, *_ = env
    digest = hash_password("secret1", rounds=4)
    users.add(User(id="p", email="pending@uni.edu", status="pending", password_hash=digest))
    users.add(User(id="r", email="rejected@uni.edu", status="rejected", password_hash=digest))
    users.add(User(id="a", email="ok@uni.edu", status="approved", password_hash=digest))

    assert service.login("OK@uni.edu", "secret1").id == "a"

    with pytest.raises(AuthenticationFailed):
        service.login("ok@uni.edu", "wrong-password")
    with pytest.raises(AuthenticationFailed):
        service.login("ghost@uni.edu", "secret1")
    with pytest.raises(PermissionDenied) as pending:
        service.login("pending@uni.edu", "secret1")
    assert "pending approval" in pending.value.message
    with pytest.raises(PermissionDenied) as rejected:
        service.login("rejected@uni.edu", "secret1")
    assert "rejected" in rejected.value.message


def test_create_account_defaults_to_approved(env):
    service, *_ = env
    admin = service.create_account(email="root@uni.edu", password="secret1", role="admin")
    assert (admin.role, admin.status) == ("admin", "approved")
    assert service.login("root@uni.edu", "secret1").id == admin.id

    with pytest.raises(ValidationError):
        service.create_account(email="x@uni.edu", password="secret1", role="owner")


def test_set_status_notifies_best_effort(env):
    service, users, _, notifier = env
    users.add(User(id="u9", email="u9@uni.edu", first_name="Lin"))

    result = service.set_status("u9", "approved")
    assert result["notified"] is True
    assert result["user"]["status"] == "approved"
    assert notifier.of_kind("account")[0]["first_name"] == "Lin"

    notifier.fail = {"account"}
    result = service.set_status("u9", "rejected")
    assert result["notified"] is False
    assert users.get_user("u9").status == "rejected"

    with pytest.raises(ValidationError):
        service.set_status("u9", "banned")
    with pytest.raises(NotFound):
        service.set_status("missing", "approved")


def test_role_changes_and_deletion(env):
    service, users, *_ = env
    users.add(User(id="a1", email="a1@uni.edu", role="admin", status="approved"))
    users.add(User(id="u1", email="u1@uni.edu", status="approved"))

    assert service.set_role("u1", "moderator").role == "moderator"
    with pytest.raises(ValidationError):
        service.set_role("u1", "superuser")

    with pytest.raises(ValidationError):
        service.delete_user("a1", acting_user_id="a1")
    service.delete_user("u1", acting_user_id="a1")
    assert users.get_user("u1") is None
    with pytest.raises(NotFound):
        service.delete_user("u1", acting_user_id="a1")


def test_stats_counts_roles_and_pending(env):
    service, users, *_ = env
    users.add(User(id="a1", email="a1@uni.edu", role="admin", status="approved"))
    users.add(User(id="m1", email="m1@uni.edu", role="moderator", status="approved"))
    users.add(User(id="u1", email="u1@uni.edu"))
    users.add(User(id="u2", email="u2@uni.edu"))

    stats = service.stats()

    assert stats["totalUsers"] == 4
    assert stats["adminUsers"] == 1
    assert stats["moderatorUsers"] == 1
    assert stats["regularUsers"] == 2
    assert stats["pendingUsers"] == 2
    assert len(stats["recentUsers"]) == 4
