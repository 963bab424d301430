from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from paperrepo.api.dependencies import get_request_workflow, require_staff
from paperrepo.application.workflows.paper_request_workflow import PaperRequestWorkflow
from paperrepo.domain.errors import PermissionDenied
from paperrepo.domain.user import User

router = APIRouter()


class SubmitPaperRequest(BaseModel):
    paperId: Optional[str] = None
    userId: Optional[str] = None
    reason: Optional[str] = None
    paperTitle: Optional[str] = None


class SubmitPaperResponse(BaseModel):
    message: str
    requestId: str


class ProcessPaperRequest(BaseModel):
    status: Optional[str] = None
    adminId: Optional[str] = None
    adminMessage: Optional[str] = None


@router.post("/paper-requests/request", status_code=201, response_model=SubmitPaperResponse)
def submit_request(
    req: SubmitPaperRequest,
    workflow: PaperRequestWorkflow = Depends(get_request_workflow),
):
    created = workflow.submit(req.paperId, req.userId, req.reason, req.paperTitle)
    return SubmitPaperResponse(message="Paper request submitted successfully", requestId=created.id)


@router.get("/paper-requests/admin/requests")
def list_requests(
    staff: User = Depends(require_staff),
    workflow: PaperRequestWorkflow = Depends(get_request_workflow),
) -> List[Dict[str, Any]]:
    return workflow.with_requesters(workflow.list_all())


@router.get("/paper-requests/admin/requests/pending")
def list_pending_requests(
    staff: User = Depends(require_staff),
    workflow: PaperRequestWorkflow = Depends(get_request_workflow),
) -> List[Dict[str, Any]]:
    return workflow.with_requesters(workflow.list_pending())


@router.put("/paper-requests/admin/requests/{request_id}")
def process_request(
    request_id: str,
    req: ProcessPaperRequest,
    staff: User = Depends(require_staff),
    workflow: PaperRequestWorkflow = Depends(get_request_workflow),
) -> Dict[str, Any]:
    if req.adminId and req.adminId != staff.id:
        raise PermissionDenied("adminId does not match the acting user")
    outcome = workflow.process(request_id, req.status, staff.id, req.adminMessage)
    return outcome.to_dict()


@router.get("/paper-requests/user/{user_id}/requests")
def list_user_requests(
    user_id: str,
    workflow: PaperRequestWorkflow = Depends(get_request_workflow),
) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in workflow.list_for_user(user_id)]
