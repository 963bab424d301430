from __future__ import annotations

from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel
from starlette.datastructures import UploadFile

from paperrepo.api.dependencies import (
    get_catalog_service,
    require_admin,
    require_staff,
)
from paperrepo.application.services.catalog_service import PaperCatalogService
from paperrepo.domain.errors import ValidationError
from paperrepo.domain.user import User

router = APIRouter()

# Form fields copied verbatim from the multipart body; absent keys stay absent
# so an explicit empty doi can be told apart from a missing one.
_UPLOAD_FIELDS = (
    "title",
    "description",
    "abstract",
    "journal",
    "year",
    "publisher",
    "doi",
    "authors",
    "tags",
    "sdgs",
)


class VoteRequest(BaseModel):
    userId: Optional[str] = None


class CommentRequest(BaseModel):
    userId: Optional[str] = None
    userEmail: Optional[str] = None
    content: Optional[str] = None
    parentCommentId: Optional[str] = None


class PaperUpdate(BaseModel):
    userId: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    abstract: Optional[str] = None
    journal: Optional[str] = None
    year: Optional[Union[str, int]] = None
    publisher: Optional[str] = None
    doi: Optional[str] = None
    authors: Optional[List[Any]] = None
    tags: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    sdgs: Optional[List[Any]] = None
    references: Optional[List[Any]] = None
    isPublished: Optional[bool] = None
    conferenceProceeding: Optional[bool] = None
    impact: Optional[float] = None
    clarity: Optional[float] = None


def _changes(req: PaperUpdate) -> Dict[str, Any]:
    return req.model_dump(exclude={"userId"}, exclude_none=True)


# --- collection routes (registered before /papers/{paper_id}) ---


@router.post("/papers/upload", status_code=201)
async def upload_paper(
    request: Request,
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    form = await request.form()
    upload = form.get("paper")
    if not isinstance(upload, UploadFile):
        raise ValidationError("No file uploaded")
    catalog.check_upload_size(upload.size)
    # one byte past the limit is enough for the size check
    content = await upload.read(catalog.max_upload_bytes + 1)
    fields = {k: form.get(k) for k in _UPLOAD_FIELDS if k in form}
    paper = catalog.upload(
        user_id=str(form.get("userId") or "").strip() or None,
        filename=upload.filename,
        content_type=upload.content_type,
        content=content,
        fields=fields,
    )
    return {
        "message": "File uploaded successfully",
        "fileId": paper.id,
        "filename": paper.filename,
        "size": paper.size,
    }


@router.get("/papers/public")
def public_papers(
    q: Optional[str] = Query(default=None),
    tag: Optional[str] = Query(default=None),
    sdg: Optional[str] = Query(default=None),
    year: Optional[str] = Query(default=None),
    sort: str = Query(default="date"),
    catalog: PaperCatalogService = Depends(get_catalog_service),
) -> List[Dict[str, Any]]:
    return catalog.public_papers(q=q, tag=tag, sdg=sdg, year=year, sort=sort)


@router.get("/papers/admin/all")
def all_papers(
    staff: User = Depends(require_staff),
    catalog: PaperCatalogService = Depends(get_catalog_service),
) -> List[Dict[str, Any]]:
    return catalog.all_papers()


@router.get("/papers/admin/stats")
def paper_stats(
    staff: User = Depends(require_staff),
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    return catalog.stats()


@router.put("/papers/admin/papers/{paper_id}")
def staff_update_paper(
    paper_id: str,
    req: PaperUpdate,
    staff: User = Depends(require_staff),
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    paper = catalog.update(paper_id, staff.id, _changes(req), staff=True)
    return {"message": "Paper updated successfully", "paper": paper.to_dict()}


@router.delete("/papers/admin/papers/{paper_id}")
def admin_delete_paper(
    paper_id: str,
    admin: User = Depends(require_admin),
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    catalog.delete(paper_id, admin.id, staff=True)
    return {"message": "Paper deleted successfully"}


@router.get("/papers/get-users-for-author-selection")
def users_for_author_selection(
    catalog: PaperCatalogService = Depends(get_catalog_service),
) -> List[Dict[str, Any]]:
    return catalog.users_for_author_selection()


@router.get("/papers/user/{user_id}")
def user_papers(
    user_id: str,
    catalog: PaperCatalogService = Depends(get_catalog_service),
) -> List[Dict[str, Any]]:
    return catalog.user_papers(user_id)


@router.get("/papers/download/{paper_id}")
def download_paper(
    paper_id: str,
    userId: Optional[str] = Query(default=None),
    x_user_id: Optional[str] = Header(default=None),
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    paper, content = catalog.download(paper_id, userId or x_user_id)
    filename = paper.filename or f"{paper.title or paper.id}.pdf"
    return Response(
        content=content,
        media_type=paper.content_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


@router.post("/papers/track-citation/{paper_id}")
def track_citation(
    paper_id: str,
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    catalog.track_citation(paper_id)
    return {"message": "Citation tracked successfully"}


@router.get("/papers/authors/{name}")
def author_profile(
    name: str,
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    return catalog.author_profile(name)


# --- single paper routes ---


@router.get("/papers/{paper_id}/download-permission")
def download_permission(
    paper_id: str,
    userId: Optional[str] = Query(default=None),
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    paper, decision = catalog.download_permission(paper_id, userId)
    return decision.to_dict(paper)


@router.post("/papers/{paper_id}/like")
def like_paper(
    paper_id: str,
    req: VoteRequest,
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    paper = catalog.vote(paper_id, req.userId, "like")
    return {"message": "Paper liked successfully", "likes": paper.likes, "dislikes": paper.dislikes}


@router.post("/papers/{paper_id}/dislike")
def dislike_paper(
    paper_id: str,
    req: VoteRequest,
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    paper = catalog.vote(paper_id, req.userId, "dislike")
    return {"message": "Paper disliked successfully", "likes": paper.likes, "dislikes": paper.dislikes}


@router.post("/papers/{paper_id}/comment", status_code=201)
def comment_on_paper(
    paper_id: str,
    req: CommentRequest,
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    comment = catalog.comment(
        paper_id,
        user_id=req.userId,
        content=req.content,
        user_email=req.userEmail,
        parent_comment_id=req.parentCommentId,
    )
    return {"message": "Comment added successfully", "comment": comment.to_dict()}


@router.get("/papers/{paper_id}")
def get_paper(
    paper_id: str,
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    return catalog.paper_detail(paper_id)


@router.put("/papers/{paper_id}")
def update_paper(
    paper_id: str,
    req: PaperUpdate,
    x_user_id: Optional[str] = Header(default=None),
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    paper = catalog.update(paper_id, x_user_id or req.userId, _changes(req))
    return {"message": "File updated successfully", "fileId": paper.id, "paper": paper.to_dict()}


@router.delete("/papers/{paper_id}")
def delete_paper(
    paper_id: str,
    userId: Optional[str] = Query(default=None),
    x_user_id: Optional[str] = Header(default=None),
    catalog: PaperCatalogService = Depends(get_catalog_service),
):
    catalog.delete(paper_id, x_user_id or userId)
    return {"message": "File deleted successfully"}
