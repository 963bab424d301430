"""User directory value objects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class UserStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


STAFF_ROLES = frozenset({UserRole.ADMIN.value, UserRole.MODERATOR.value})


@dataclass
class User:
    id: str
    email: str
    role: str = UserRole.USER.value
    status: str = UserStatus.PENDING.value
    first_name: str = ""
    last_name: str = ""
    department: str = ""
    phone_number: str = ""
    student_id: str = ""
    password_hash: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def to_dict(self) -> Dict[str, Any]:
        """Public representation; the credential hash never leaves the store layer."""
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "department": self.department,
            "phoneNumber": self.phone_number,
            "studentId": self.student_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def to_summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }
