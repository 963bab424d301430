"""Paper catalog value objects and author helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

# An author is either a plain display name or a structured record such as
# {"name": "...", "userId": "..."} or {"firstName": "...", "lastName": "..."}.
Author = Union[str, Dict[str, Any]]


def author_display_name(author: Any) -> str:
    if isinstance(author, str):
        return author.strip()
    if isinstance(author, dict):
        name = str(author.get("name") or "").strip()
        if name:
            return name
        first = str(author.get("firstName") or "").strip()
        last = str(author.get("lastName") or "").strip()
        if first and last:
            return f"{first} {last}"
    return "Unknown Author"


def author_user_id(author: Any) -> Optional[str]:
    if isinstance(author, dict):
        uid = author.get("userId")
        if uid:
            return str(uid)
    return None


def format_authors(authors: Optional[List[Author]]) -> str:
    if not authors or not isinstance(authors, list):
        return "N/A"
    return ", ".join(author_display_name(a) for a in authors)


@dataclass
class PaperComment:
    id: str
    paper_id: str
    user_id: str
    content: str
    user_email: str = ""
    parent_comment_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "userEmail": self.user_email,
            "content": self.content,
            "timestamp": self.created_at.isoformat() if self.created_at else None,
            "parentCommentId": self.parent_comment_id,
        }


@dataclass
class Paper:
    id: str
    owner_id: str
    title: str
    filename: str = ""
    content_type: str = "application/pdf"
    size: int = 0
    description: str = ""
    journal: str = ""
    year: str = ""
    publisher: str = ""
    doi: str = ""
    authors: List[Author] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    sdgs: List[str] = field(default_factory=list)
    references: List[Any] = field(default_factory=list)
    is_published: Optional[bool] = None
    conference_proceeding: Optional[bool] = None
    liked_by: List[str] = field(default_factory=list)
    disliked_by: List[str] = field(default_factory=list)
    citation_count: int = 0
    download_count: int = 0
    impact: float = 0.0
    clarity: float = 0.0
    comments: List[PaperComment] = field(default_factory=list)
    upload_date: Optional[datetime] = None
    last_modified: Optional[datetime] = None

    @property
    def likes(self) -> int:
        return len(self.liked_by)

    @property
    def dislikes(self) -> int:
        return len(self.disliked_by)

    def is_owner(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.owner_id == user_id

    def is_coauthor(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        return any(author_user_id(a) == user_id for a in self.authors)

    def author_names(self) -> List[str]:
        return [author_display_name(a) for a in self.authors]

    def attachment_meta(self) -> Dict[str, Any]:
        """Metadata handed to the notification dispatcher with the binary."""
        return {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "journal": self.journal,
            "year": self.year,
            "doi": self.doi,
            "filename": self.filename,
            "contentType": self.content_type,
        }

    def to_dict(self, *, include_comments: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "userId": self.owner_id,
            "filename": self.filename,
            "title": self.title,
            "description": self.description,
            "abstract": self.description,
            "journal": self.journal,
            "year": self.year,
            "publisher": self.publisher,
            "doi": self.doi,
            "authors": list(self.authors),
            "tags": list(self.tags),
            "sdgs": list(self.sdgs),
            "references": list(self.references),
            "isPublished": self.is_published,
            "conferenceProceeding": self.conference_proceeding,
            "contentType": self.content_type,
            "size": self.size,
            "impact": self.impact,
            "clarity": self.clarity,
            "likes": self.likes,
            "dislikes": self.dislikes,
            "citationCount": self.citation_count,
            "downloadCount": self.download_count,
            "uploadDate": self.upload_date.isoformat() if self.upload_date else None,
            "lastModified": self.last_modified.isoformat() if self.last_modified else None,
        }
        if include_comments:
            data["userLikes"] = list(self.liked_by)
            data["userDislikes"] = list(self.disliked_by)
            data["comments"] = [c.to_dict() for c in self.comments]
        else:
            data["comments"] = len(self.comments)
        return data
