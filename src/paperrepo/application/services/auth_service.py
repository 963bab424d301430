from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from paperrepo.application.ports import NotificationPort, UserDirectoryPort
from paperrepo.domain.errors import (
    AuthenticationFailed,
    NotFound,
    NotificationFailed,
    PermissionDenied,
    ValidationError,
)
from paperrepo.domain.user import User, UserRole, UserStatus
from paperrepo.utils.logging_config import LogFiles, Logger
from paperrepo.utils.security import (
    codes_match,
    generate_code,
    hash_code,
    hash_password,
    verify_password,
)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[0-9+\-\s()]{10,15}$")
MIN_PASSWORD_LENGTH = 6


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class AuthService:
    """Registration with emailed one-time codes, sign-in, and account review."""

    def __init__(
        self,
        *,
        users: UserDirectoryPort,
        verifications: Any,
        notifier: NotificationPort,
        otp_ttl_minutes: int = 10,
        bcrypt_rounds: Optional[int] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.users = users
        self.verifications = verifications
        self.notifier = notifier
        self.otp_ttl_minutes = otp_ttl_minutes
        self.bcrypt_rounds = bcrypt_rounds
        self._now = now

    # --- email verification ---

    def send_otp(self, email: Optional[str]) -> Dict[str, Any]:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")
        if not _EMAIL_RE.match(email):
            raise ValidationError("Please enter a valid email address")
        if self.users.get_user_by_email(email) is not None:
            raise ValidationError("User already exists with this email")

        self.verifications.purge_expired(now=self._now())
        code = generate_code()
        expires_at = self._now() + timedelta(minutes=self.otp_ttl_minutes)
        self.verifications.save_code(email, code_hash=hash_code(code), expires_at=expires_at)
        try:
            self.notifier.send_verification_code(email, code, self.otp_ttl_minutes)
        except NotificationFailed:
            self.verifications.discard(email)
            raise NotificationFailed("Failed to send OTP. Please try again.")

        Logger.info(f"Verification code sent to {email}", file=LogFiles.AUTH)
        return {
            "message": "OTP sent successfully to your email",
            "expiresAt": expires_at.isoformat(),
        }

    def verify_otp(self, email: Optional[str], otp: Optional[str]) -> Dict[str, Any]:
        email = normalize_email(email)
        otp = (otp or "").strip()
        if not email or not otp:
            raise ValidationError("Email and OTP are required")

        record = self.verifications.get(email, now=self._now())
        if record is None:
            raise ValidationError("OTP expired or not found. Please request a new one.")
        if not codes_match(otp, record["code_hash"]):
            Logger.warning(f"Wrong verification code for {email}", file=LogFiles.AUTH)
            raise ValidationError("Invalid OTP. Please try again.")

        self.verifications.mark_verified(email)
        return {"message": "Email verified successfully", "verified": True}

    # --- accounts ---

    def register(self, payload: Dict[str, Any]) -> User:
        email = normalize_email(payload.get("email"))
        password = str(payload.get("password") or "")
        first_name = str(payload.get("firstName") or "").strip()
        last_name = str(payload.get("lastName") or "").strip()
        department = str(payload.get("department") or "").strip()
        phone_number = str(payload.get("phoneNumber") or "").strip()

        if not email or not password:
            raise ValidationError("Email and password are required")
        if not first_name or not last_name or not department:
            raise ValidationError("Please fill in all required fields")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        if phone_number and not _PHONE_RE.match(phone_number):
            raise ValidationError("Please enter a valid phone number")

        record = self.verifications.get(email, now=self._now())
        if record is None or not record.get("verified"):
            raise ValidationError("Email not verified. Please verify your email first.")
        if self.users.get_user_by_email(email) is not None:
            raise ValidationError("User already exists")

        user = self.users.create_user(
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            role=UserRole.USER.value,
            status=UserStatus.PENDING.value,
            profile={
                "first_name": first_name,
                "last_name": last_name,
                "department": department,
                "phone_number": phone_number,
                "student_id": payload.get("studentId"),
            },
        )
        self.verifications.discard(email)
        Logger.info(f"Registered user {user.id} ({email}), awaiting approval", file=LogFiles.AUTH)
        return user

    def login(self, email: Optional[str], password: Optional[str]) -> User:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self.users.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            Logger.warning(f"Failed sign-in for {email}", file=LogFiles.AUTH)
            raise AuthenticationFailed("Invalid credentials")
        if user.status == UserStatus.PENDING.value:
            raise PermissionDenied("Your account is pending approval by an administrator")
        if user.status == UserStatus.REJECTED.value:
            raise PermissionDenied("Your account registration was rejected")

        Logger.info(f"User {user.id} signed in", file=LogFiles.AUTH)
        return user

    def create_account(
        self,
        *,
        email: str,
        password: str,
        role: str = UserRole.USER.value,
        status: str = UserStatus.APPROVED.value,
        profile: Optional[Dict[str, Any]] = None,
    ) -> User:
        """Seed an account directly, skipping email verification."""
        email = normalize_email(email)
        if not _EMAIL_RE.match(email):
            raise ValidationError("Please enter a valid email address")
        if role not in {r.value for r in UserRole}:
            raise ValidationError("Invalid role")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        return self.users.create_user(
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            role=role,
            status=status,
            profile=profile,
        )

    # --- staff ---

    def list_users(self, *, status: Optional[str] = None) -> List[User]:
        return self.users.list_users(status=status)

    def set_status(self, user_id: str, status: Optional[str]) -> Dict[str, Any]:
        if status not in {s.value for s in UserStatus}:
            raise ValidationError("Invalid status")
        user = self.users.set_status(user_id, status)
        if user is None:
            raise NotFound("user", "User not found")
        Logger.info(f"User {user_id} status -> {status}", file=LogFiles.AUTH)

        notified = True
        if status != UserStatus.PENDING.value:
            try:
                self.notifier.send_account_status(user.email, user.first_name, status)
            except NotificationFailed as exc:
                notified = False
                Logger.warning(
                    f"Account status email to {user.email} failed: {exc.message}",
                    file=LogFiles.MAIL,
                )
        return {
            "message": f"User {status} successfully",
            "user": user.to_dict(),
            "notified": notified,
        }

    def set_role(self, user_id: str, role: Optional[str]) -> User:
        if role not in {r.value for r in UserRole}:
            raise ValidationError("Invalid role")
        user = self.users.set_role(user_id, role)
        if user is None:
            raise NotFound("user", "User not found")
        Logger.info(f"User {user_id} role -> {role}", file=LogFiles.AUTH)
        return user

    def delete_user(self, user_id: str, *, acting_user_id: Optional[str] = None) -> None:
        if acting_user_id and acting_user_id == user_id:
            raise ValidationError("You cannot delete your own account")
        if not self.users.delete_user(user_id):
            raise NotFound("user", "User not found")
        Logger.info(f"User {user_id} deleted by {acting_user_id or '-'}", file=LogFiles.AUTH)

    def stats(self) -> Dict[str, Any]:
        by_role = self.users.count_by_role()
        pending = self.users.list_users(status=UserStatus.PENDING.value)
        recent = self.users.list_users(limit=5)
        return {
            "totalUsers": sum(by_role.values()),
            "adminUsers": by_role.get(UserRole.ADMIN.value, 0),
            "moderatorUsers": by_role.get(UserRole.MODERATOR.value, 0),
            "regularUsers": by_role.get(UserRole.USER.value, 0),
            "pendingUsers": len(pending),
            "recentUsers": [u.to_dict() for u in recent],
        }
