from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError

from paperrepo.domain.errors import ValidationError
from paperrepo.domain.user import User, UserRole, UserStatus
from paperrepo.infrastructure.stores.models import Base, UserModel
from paperrepo.infrastructure.stores.sqlalchemy_db import SessionProvider


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAlchemyUserStore:
    """User directory backed by the ``users`` table."""

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

    # --- writes ---

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        role: str = UserRole.USER.value,
        status: str = UserStatus.PENDING.value,
        profile: Optional[Dict[str, Any]] = None,
    ) -> User:
        profile = profile or {}
        now = _utcnow()
        row = UserModel(
            id=uuid4().hex,
            email=email.strip().lower(),
            password_hash=password_hash,
            role=role,
            status=status,
            first_name=str(profile.get("first_name") or "").strip(),
            last_name=str(profile.get("last_name") or "").strip(),
            department=str(profile.get("department") or "").strip(),
            phone_number=str(profile.get("phone_number") or "").strip(),
            student_id=str(profile.get("student_id") or "").strip(),
            created_at=now,
            updated_at=now,
        )
        with self._provider.session() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ValidationError("User already exists") from exc
            return self._to_domain(row)

    def set_status(self, user_id: str, status: str) -> Optional[User]:
        return self._update(user_id, status=status)

    def set_role(self, user_id: str, role: str) -> Optional[User]:
        return self._update(user_id, role=role)

    def delete_user(self, user_id: str) -> bool:
        with self._provider.session() as session:
            result = session.execute(delete(UserModel).where(UserModel.id == user_id))
            session.commit()
            return bool(result.rowcount)

    def _update(self, user_id: str, **fields: Any) -> Optional[User]:
        with self._provider.session() as session:
            row = session.get(UserModel, user_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = _utcnow()
            session.commit()
            return self._to_domain(row)

    # --- reads ---

    def get_user(self, user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        with self._provider.session() as session:
            row = session.get(UserModel, str(user_id))
            return self._to_domain(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        email = (email or "").strip().lower()
        if not email:
            return None
        with self._provider.session() as session:
            row = session.execute(
                select(UserModel).where(UserModel.email == email)
            ).scalar_one_or_none()
            return self._to_domain(row) if row else None

    def get_users(self, user_ids: List[str]) -> Dict[str, User]:
        ids = sorted({uid for uid in user_ids if uid})
        if not ids:
            return {}
        with self._provider.session() as session:
            rows = session.execute(select(UserModel).where(UserModel.id.in_(ids))).scalars().all()
            return {r.id: self._to_domain(r) for r in rows}

    def list_users(
        self, *, status: Optional[str] = None, limit: Optional[int] = None
    ) -> List[User]:
        with self._provider.session() as session:
            stmt = select(UserModel)
            if status:
                stmt = stmt.where(UserModel.status == status)
            stmt = stmt.order_by(desc(UserModel.created_at))
            if limit:
                stmt = stmt.limit(int(limit))
            rows = session.execute(stmt).scalars().all()
            return [self._to_domain(r) for r in rows]

    def count_by_role(self) -> Dict[str, int]:
        with self._provider.session() as session:
            rows = session.execute(
                select(UserModel.role, func.count(UserModel.id)).group_by(UserModel.role)
            ).all()
            return {str(role): int(count) for role, count in rows}

    @staticmethod
    def _to_domain(row: UserModel) -> User:
        return User(
            id=row.id,
            email=row.email,
            role=row.role,
            status=row.status,
            first_name=row.first_name or "",
            last_name=row.last_name or "",
            department=row.department or "",
            phone_number=row.phone_number or "",
            student_id=row.student_id or "",
            password_hash=row.password_hash or "",
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
