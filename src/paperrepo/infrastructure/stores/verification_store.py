from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import delete

from paperrepo.infrastructure.stores.models import Base, EmailVerificationModel
from paperrepo.infrastructure.stores.sqlalchemy_db import SessionProvider


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class EmailVerificationStore:
    """Pending registration codes, one per email address."""

    def __init__(
        self,
        db_url: Optional[str] = None,
        *,
        provider: Optional[SessionProvider] = None,
        auto_create_schema: bool = True,
    ):
        self._provider = provider or SessionProvider(db_url)
        self.db_url = self._provider.db_url
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def save_code(self, email: str, *, code_hash: str, expires_at: datetime) -> None:
        """Replace any previous code for the address."""
        email = email.strip().lower()
        with self._provider.session() as session:
            row = session.get(EmailVerificationModel, email)
            if row is None:
                row = EmailVerificationModel(email=email, created_at=_utcnow())
                session.add(row)
            row.code_hash = code_hash
            row.verified = False
            row.expires_at = expires_at
            session.commit()

    def get(self, email: str, *, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """Return the live record for the address; expired records read as missing."""
        email = email.strip().lower()
        now = now or _utcnow()
        with self._provider.session() as session:
            row = session.get(EmailVerificationModel, email)
            if row is None or _aware(row.expires_at) < now:
                return None
            return {
                "email": row.email,
                "code_hash": row.code_hash,
                "verified": bool(row.verified),
                "expires_at": _aware(row.expires_at),
            }

    def mark_verified(self, email: str) -> bool:
        email = email.strip().lower()
        with self._provider.session() as session:
            row = session.get(EmailVerificationModel, email)
            if row is None:
                return False
            row.verified = True
            session.commit()
            return True

    def discard(self, email: str) -> None:
        email = email.strip().lower()
        with self._provider.session() as session:
            session.execute(delete(EmailVerificationModel).where(EmailVerificationModel.email == email))
            session.commit()

    def purge_expired(self, *, now: Optional[datetime] = None) -> int:
        now = now or _utcnow()
        with self._provider.session() as session:
            result = session.execute(
                delete(EmailVerificationModel).where(EmailVerificationModel.expires_at < now)
            )
            session.commit()
            return int(result.rowcount or 0)
