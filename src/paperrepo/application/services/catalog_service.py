from __future__ import annotations

import json
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from paperrepo.application.ports import PaperCatalogPort, UserDirectoryPort
from paperrepo.application.services.access_policy import (
    USER_NOT_FOUND,
    AccessDecision,
    evaluate_download_access,
)
from paperrepo.domain.errors import (
    AuthenticationFailed,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from paperrepo.domain.paper import Paper, PaperComment, author_display_name
from paperrepo.domain.sdg import normalize_sdgs, sdg_number
from paperrepo.domain.user import User, UserStatus
from paperrepo.utils.logging_config import LogFiles, Logger

ALLOWED_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}
DEFAULT_MAX_UPLOAD_BYTES = 16 * 1024 * 1024

SORT_KEYS = ("date", "likes", "citations", "title")

# Publication count thresholds for the author profile badge.
ACTIVITY_LEVELS = ((10, "High"), (3, "Medium"), (0, "Low"))

_DOI_ALPHABET = string.ascii_lowercase + string.digits


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_list(value: Any, field_name: str) -> List[Any]:
    """Accept a real list or a JSON-encoded list (multipart form fields)."""
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError as exc:
            raise ValidationError("Invalid authors, tags, or sdgs format") from exc
        if isinstance(parsed, list):
            return parsed
    raise ValidationError(f"Invalid {field_name} format")


def _clean_tags(values: List[Any]) -> List[str]:
    out: List[str] = []
    for v in values:
        tag = str(v).strip()
        if tag and tag not in out:
            out.append(tag)
    return out


def format_size_limit(limit_bytes: int) -> str:
    mib = 1024 * 1024
    if limit_bytes >= mib:
        return f"{limit_bytes / mib:g}MB"
    return f"{limit_bytes / 1024:g}KB"


def activity_level(publication_count: int) -> str:
    for threshold, label in ACTIVITY_LEVELS:
        if publication_count >= threshold:
            return label
    return "Low"


class PaperCatalogService:
    """Upload, browse, edit and download papers."""

    def __init__(
        self,
        *,
        papers: PaperCatalogPort,
        users: UserDirectoryPort,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.papers = papers
        self.users = users
        self.max_upload_bytes = max_upload_bytes
        self._now = now

    # --- upload ---

    def check_upload_size(self, size: Optional[int]) -> None:
        if size is not None and size > self.max_upload_bytes:
            limit = format_size_limit(self.max_upload_bytes)
            raise ValidationError(f"File too large. Maximum size is {limit}")

    def upload(
        self,
        *,
        user_id: Optional[str],
        filename: Optional[str],
        content_type: Optional[str],
        content: Optional[bytes],
        fields: Optional[Dict[str, Any]] = None,
    ) -> Paper:
        fields = fields or {}
        if not content or not filename:
            raise ValidationError("No file uploaded")
        if not user_id:
            raise ValidationError("User ID is required")
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("Only PDF and DOCX files are allowed")
        self.check_upload_size(len(content))
        if self.users.get_user(user_id) is None:
            raise NotFound("user", "User not found")

        doi = fields.get("doi")
        if doi is None:
            doi = self.generate_doi()
        metadata = {
            "title": str(fields.get("title") or "").strip() or filename,
            "description": fields.get("description") or fields.get("abstract") or "",
            "journal": fields.get("journal") or "",
            "year": str(fields.get("year") or self._now().year),
            "publisher": fields.get("publisher") or "",
            "doi": str(doi).strip(),
            "authors": _parse_list(fields.get("authors"), "authors"),
            "tags": _clean_tags(_parse_list(fields.get("tags"), "tags")),
            "sdgs": normalize_sdgs(_parse_list(fields.get("sdgs"), "sdgs")),
        }
        paper = self.papers.create_paper(
            owner_id=user_id,
            filename=filename,
            content_type=content_type,
            content=content,
            metadata=metadata,
        )
        Logger.info(f"User {user_id} uploaded paper {paper.id} ({filename})", file=LogFiles.PAPERS)
        return paper

    def generate_doi(self) -> str:
        millis = int(self._now().timestamp() * 1000)
        suffix = "".join(secrets.choice(_DOI_ALPHABET) for _ in range(9))
        return f"DOI-{millis}-{suffix}"

    # --- reads ---

    def require_paper(self, paper_id: str) -> Paper:
        paper = self.papers.get_paper(paper_id)
        if paper is None:
            raise NotFound("paper", "Paper not found")
        return paper

    def paper_detail(self, paper_id: str) -> Dict[str, Any]:
        paper = self.require_paper(paper_id)
        data = paper.to_dict(include_comments=True)
        owner = self.users.get_user(paper.owner_id)
        data["ownerDepartment"] = owner.department if owner and owner.department else "Unknown"
        return data

    def public_papers(
        self,
        *,
        q: Optional[str] = None,
        tag: Optional[str] = None,
        sdg: Optional[str] = None,
        year: Optional[str] = None,
        sort: str = "date",
    ) -> List[Dict[str, Any]]:
        if sort not in SORT_KEYS:
            raise ValidationError(f"Invalid sort; expected one of {', '.join(SORT_KEYS)}")

        papers = self.papers.list_papers()
        needle = (q or "").strip().lower()
        if needle:
            papers = [p for p in papers if self._matches(p, needle)]
        if tag:
            wanted = tag.strip().lower()
            papers = [p for p in papers if wanted in {t.lower() for t in p.tags}]
        if sdg:
            goal = sdg_number(sdg)
            papers = [p for p in papers if goal is not None and goal in {sdg_number(s) for s in p.sdgs}]
        if year:
            papers = [p for p in papers if p.year == str(year).strip()]

        papers = self._sorted(papers, sort)
        departments = self._owner_departments(papers)
        out = []
        for p in papers:
            data = p.to_dict()
            data["ownerDepartment"] = departments.get(p.owner_id) or "Unknown"
            out.append(data)
        return out

    def user_papers(self, user_id: str) -> List[Dict[str, Any]]:
        out = []
        for p in self.papers.list_papers_for_user(user_id):
            data = p.to_dict()
            data["isOwner"] = p.is_owner(user_id)
            data["isCoAuthor"] = p.is_coauthor(user_id)
            out.append(data)
        return out

    def all_papers(self) -> List[Dict[str, Any]]:
        """Staff listing: every paper with its owner summary."""
        papers = self.papers.list_papers()
        owners = self.users.get_users([p.owner_id for p in papers])
        out = []
        for p in papers:
            data = p.to_dict()
            owner = owners.get(p.owner_id)
            data["owner"] = owner.to_summary() if owner else None
            data["ownerDepartment"] = owner.department if owner and owner.department else "Unknown"
            out.append(data)
        return out

    def users_for_author_selection(self) -> List[Dict[str, Any]]:
        users = self.users.list_users(status=UserStatus.APPROVED.value)
        out = []
        for u in users:
            data = u.to_summary()
            data["department"] = u.department
            out.append(data)
        return out

    def author_profile(self, name: str) -> Dict[str, Any]:
        wanted = (name or "").strip().lower()
        if not wanted:
            raise ValidationError("Author name is required")

        papers = [
            p for p in self.papers.list_papers()
            if any(author_display_name(a).lower() == wanted for a in p.authors)
        ]
        if not papers:
            raise NotFound("author", "Author not found")

        affiliation = self._author_affiliation(papers, wanted)
        return {
            "name": name.strip(),
            "affiliation": affiliation or "Unknown",
            "publicationCount": len(papers),
            "totalLikes": sum(p.likes for p in papers),
            "totalCitations": sum(p.citation_count for p in papers),
            "activityLevel": activity_level(len(papers)),
            "papers": [p.to_dict() for p in papers],
        }

    # --- writes ---

    def update(
        self,
        paper_id: str,
        acting_user_id: Optional[str],
        payload: Dict[str, Any],
        *,
        staff: bool = False,
    ) -> Paper:
        paper = self.require_paper(paper_id)
        if not staff and not (paper.is_owner(acting_user_id) or paper.is_coauthor(acting_user_id)):
            raise PermissionDenied("Access denied")

        changes = self._collect_changes(payload)
        if not changes:
            return paper
        updated = self.papers.update_metadata(paper_id, changes)
        if updated is None:
            raise NotFound("paper", "Paper not found")
        Logger.info(
            f"Paper {paper_id} updated by {acting_user_id or '-'}: {sorted(changes)}",
            file=LogFiles.PAPERS,
        )
        return updated

    def delete(self, paper_id: str, acting_user_id: Optional[str], *, staff: bool = False) -> None:
        paper = self.require_paper(paper_id)
        if not staff and not paper.is_owner(acting_user_id):
            raise PermissionDenied("Access denied")
        self.papers.delete_paper(paper_id)
        Logger.info(f"Paper {paper_id} deleted by {acting_user_id or '-'}", file=LogFiles.PAPERS)

    def vote(self, paper_id: str, user_id: Optional[str], action: str) -> Paper:
        if not user_id:
            raise AuthenticationFailed("User authentication required")
        paper = self.papers.vote(paper_id, user_id, action)
        if paper is None:
            raise NotFound("paper", "Paper not found")
        return paper

    def comment(
        self,
        paper_id: str,
        *,
        user_id: Optional[str],
        content: Optional[str],
        user_email: Optional[str] = None,
        parent_comment_id: Optional[str] = None,
    ) -> PaperComment:
        content = (content or "").strip()
        if not user_id or not content:
            raise ValidationError("User ID and content are required")
        comment = self.papers.add_comment(
            paper_id,
            user_id=user_id,
            content=content,
            user_email=user_email or "",
            parent_comment_id=parent_comment_id,
        )
        if comment is None:
            raise NotFound("paper", "Paper not found")
        return comment

    def track_citation(self, paper_id: str) -> None:
        if not self.papers.increment_counter(paper_id, "citation_count"):
            raise NotFound("paper", "Paper not found")

    # --- downloads ---

    def download_permission(
        self, paper_id: str, user_id: Optional[str]
    ) -> Tuple[Paper, AccessDecision]:
        paper = self.require_paper(paper_id)
        viewer: Optional[User] = None
        if user_id:
            viewer = self.users.get_user(user_id)
            if viewer is None:
                return paper, AccessDecision(False, USER_NOT_FOUND)
        return paper, evaluate_download_access(paper, viewer)

    def download(self, paper_id: str, user_id: Optional[str]) -> Tuple[Paper, bytes]:
        paper = self.papers.get_paper(paper_id)
        if paper is None:
            raise NotFound("file", "File not found")
        _, decision = self.download_permission(paper_id, user_id)
        if not decision.allowed:
            raise PermissionDenied("Access denied. You need permission to download this paper.")
        content = self.papers.get_content(paper_id)
        if content is None:
            raise NotFound("file", "File not found")
        self.papers.increment_counter(paper_id, "download_count")
        Logger.info(f"Paper {paper_id} downloaded by {user_id} ({decision.reason})", file=LogFiles.PAPERS)
        return paper, content

    # --- stats ---

    def stats(self) -> Dict[str, Any]:
        papers = self.papers.list_papers()
        departments = self._owner_departments(papers)
        by_department: Dict[str, int] = {}
        for p in papers:
            dept = departments.get(p.owner_id) or "Unknown"
            by_department[dept] = by_department.get(dept, 0) + 1
        return {
            "totalPapers": len(papers),
            "papersByDepartment": by_department,
            "computerSciencePapers": by_department.get("Computer Science", 0),
            "informationTechnologyPapers": by_department.get("Information Technology", 0),
            "totalCitations": sum(p.citation_count for p in papers),
            "totalDownloads": sum(p.download_count for p in papers),
        }

    # --- helpers ---

    @staticmethod
    def _matches(paper: Paper, needle: str) -> bool:
        haystack = [paper.title, paper.description, *paper.author_names(), *paper.tags]
        return any(needle in (h or "").lower() for h in haystack)

    @staticmethod
    def _sorted(papers: List[Paper], sort: str) -> List[Paper]:
        if sort == "likes":
            return sorted(papers, key=lambda p: p.likes, reverse=True)
        if sort == "citations":
            return sorted(papers, key=lambda p: p.citation_count, reverse=True)
        if sort == "title":
            return sorted(papers, key=lambda p: p.title.lower())
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(
            papers,
            key=lambda p: (p.upload_date.replace(tzinfo=p.upload_date.tzinfo or timezone.utc)
                           if p.upload_date else epoch),
            reverse=True,
        )

    def _owner_departments(self, papers: List[Paper]) -> Dict[str, str]:
        owners = self.users.get_users([p.owner_id for p in papers])
        return {uid: u.department for uid, u in owners.items() if u.department}

    def _author_affiliation(self, papers: List[Paper], wanted: str) -> Optional[str]:
        for p in papers:
            for a in p.authors:
                if author_display_name(a).lower() != wanted or not isinstance(a, dict):
                    continue
                if a.get("affiliation"):
                    return str(a["affiliation"])
                if a.get("userId"):
                    user = self.users.get_user(str(a["userId"]))
                    if user and user.department:
                        return user.department
        owner = self.users.get_user(papers[0].owner_id)
        return owner.department if owner and owner.department else None

    @staticmethod
    def _collect_changes(payload: Dict[str, Any]) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for key in ("title", "journal", "year", "publisher"):
            value = payload.get(key)
            if value is not None and str(value).strip():
                changes[key] = str(value).strip()

        description = payload.get("description")
        if description is None:
            description = payload.get("abstract")
        if description is not None:
            changes["description"] = str(description)

        # An explicit empty string clears the DOI.
        if payload.get("doi") is not None:
            changes["doi"] = str(payload["doi"]).strip()

        tags = payload.get("tags")
        if tags is None:
            tags = payload.get("keywords")
        if tags is not None:
            changes["tags"] = _clean_tags(_parse_list(tags, "tags"))
        if payload.get("authors") is not None:
            changes["authors"] = _parse_list(payload["authors"], "authors")
        if payload.get("sdgs") is not None:
            changes["sdgs"] = normalize_sdgs(_parse_list(payload["sdgs"], "sdgs"))
        if payload.get("references") is not None:
            changes["references"] = _parse_list(payload["references"], "references")

        for src, dst in (("isPublished", "is_published"), ("conferenceProceeding", "conference_proceeding")):
            if payload.get(src) is not None:
                changes[dst] = bool(payload[src])
        for key in ("impact", "clarity"):
            if payload.get(key) is not None:
                try:
                    changes[key] = float(payload[key])
                except (TypeError, ValueError) as exc:
                    raise ValidationError(f"Invalid {key} value") from exc
        return changes
