"""UserDirectoryPort: user accounts and roles."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from paperrepo.domain.user import User


@runtime_checkable
class UserDirectoryPort(Protocol):
    def get_user(self, user_id: Optional[str]) -> Optional[User]: ...

    def get_user_by_email(self, email: str) -> Optional[User]: ...

    def get_users(self, user_ids: List[str]) -> Dict[str, User]: ...

    def list_users(
        self, *, status: Optional[str] = None, limit: Optional[int] = None
    ) -> List[User]: ...

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        role: str = "user",
        status: str = "pending",
        profile: Optional[Dict[str, Any]] = None,
    ) -> User: ...

    def set_status(self, user_id: str, status: str) -> Optional[User]: ...

    def set_role(self, user_id: str, role: str) -> Optional[User]: ...

    def delete_user(self, user_id: str) -> bool: ...

    def count_by_role(self) -> Dict[str, int]: ...
