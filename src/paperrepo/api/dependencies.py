from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from paperrepo.application.container import ServiceContainer
from paperrepo.application.services.auth_service import AuthService
from paperrepo.application.services.catalog_service import PaperCatalogService
from paperrepo.application.workflows.paper_request_workflow import PaperRequestWorkflow
from paperrepo.domain.errors import PermissionDenied
from paperrepo.domain.user import User, UserStatus


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_auth_service(container: ServiceContainer = Depends(get_container)) -> AuthService:
    return container.auth


def get_catalog_service(
    container: ServiceContainer = Depends(get_container),
) -> PaperCatalogService:
    return container.catalog


def get_request_workflow(
    container: ServiceContainer = Depends(get_container),
) -> PaperRequestWorkflow:
    return container.workflow


def get_acting_user(
    x_user_id: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
) -> Optional[User]:
    """Resolve the ``X-User-Id`` header; None when absent or unknown."""
    if not x_user_id:
        return None
    return container.users.get_user(x_user_id.strip())


def require_staff(user: Optional[User] = Depends(get_acting_user)) -> User:
    if user is None or not user.is_staff or user.status != UserStatus.APPROVED.value:
        raise PermissionDenied("Access denied. Admin or moderator privileges required.")
    return user


def require_admin(user: Optional[User] = Depends(get_acting_user)) -> User:
    if user is None or not user.is_admin or user.status != UserStatus.APPROVED.value:
        raise PermissionDenied("Access denied. Admin privileges required.")
    return user
