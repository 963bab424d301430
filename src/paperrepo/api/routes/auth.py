from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from paperrepo.api.dependencies import get_auth_service, require_admin, require_staff
from paperrepo.application.services.auth_service import AuthService
from paperrepo.domain.user import User, UserStatus

router = APIRouter()


class EmailRequest(BaseModel):
    email: Optional[str] = None


class VerifyOtpRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    department: Optional[str] = None
    phoneNumber: Optional[str] = None
    studentId: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class StatusUpdate(BaseModel):
    status: Optional[str] = None


class RoleUpdate(BaseModel):
    role: Optional[str] = None


@router.post("/auth/send-otp")
def send_otp(req: EmailRequest, auth: AuthService = Depends(get_auth_service)):
    return auth.send_otp(req.email)


@router.post("/auth/verify-otp")
def verify_otp(req: VerifyOtpRequest, auth: AuthService = Depends(get_auth_service)):
    return auth.verify_otp(req.email, req.otp)


@router.post("/auth/register", status_code=201)
def register(req: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    user = auth.register(req.model_dump())
    return {
        "message": "Registration successful. Your account is pending approval.",
        "user": user.to_dict(),
    }


@router.post("/auth/login")
def login(req: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    user = auth.login(req.email, req.password)
    return {"message": "Login successful", "user": user.to_dict()}


@router.get("/auth/admin/users")
def list_users(
    staff: User = Depends(require_staff),
    auth: AuthService = Depends(get_auth_service),
) -> List[Dict[str, Any]]:
    return [u.to_dict() for u in auth.list_users()]


@router.get("/auth/admin/users/pending")
def list_pending_users(
    staff: User = Depends(require_staff),
    auth: AuthService = Depends(get_auth_service),
) -> List[Dict[str, Any]]:
    return [u.to_dict() for u in auth.list_users(status=UserStatus.PENDING.value)]


@router.put("/auth/admin/users/{user_id}/status")
def update_user_status(
    user_id: str,
    req: StatusUpdate,
    staff: User = Depends(require_staff),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.set_status(user_id, req.status)


@router.put("/auth/admin/users/{user_id}/role")
def update_user_role(
    user_id: str,
    req: RoleUpdate,
    admin: User = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    user = auth.set_role(user_id, req.role)
    return {"message": "User role updated successfully", "user": user.to_dict()}


@router.delete("/auth/admin/users/{user_id}")
def delete_user(
    user_id: str,
    admin: User = Depends(require_admin),
    auth: AuthService = Depends(get_auth_service),
):
    auth.delete_user(user_id, acting_user_id=admin.id)
    return {"message": "User deleted successfully"}


@router.get("/auth/admin/stats")
def user_stats(
    staff: User = Depends(require_staff),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.stats()
