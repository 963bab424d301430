from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import delete, desc, or_, select, update

from paperrepo.domain.errors import ValidationError
from paperrepo.domain.paper import Paper, PaperComment
from paperrepo.infrastructure.stores.models import (
    Base,
    PaperCommentModel,
    PaperContentModel,
    PaperModel,
)
from paperrepo.infrastructure.stores.sqlalchemy_db import SessionProvider
from paperrepo.utils.logging_config import LogFiles, Logger

# Scalar metadata columns that owners, co-authors and staff may edit.
EDITABLE_FIELDS = (
    "title",
    "description",
    "journal",
    "year",
    "publisher",
    "doi",
    "is_published",
    "conference_proceeding",
    "impact",
    "clarity",
)
# JSON list columns, keyed by their domain attribute name.
LIST_FIELDS = {
    "authors": "authors_json",
    "tags": "tags_json",
    "sdgs": "sdgs_json",
    "references": "references_json",
}

_COUNTERS = {
    "citation_count": PaperModel.citation_count,
    "download_count": PaperModel.download_count,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _safe_list(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [str(v).strip() for v in values if str(v).strip()]


class SqlAlchemyPaperStore:
    """Paper catalog: metadata rows plus a separate binary content table."""

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

    def create_paper(
        self,
        *,
        owner_id: str,
        filename: str,
        content_type: str,
        content: bytes,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Paper:
        metadata = metadata or {}
        now = _utcnow()
        row = PaperModel(
            id=uuid4().hex,
            owner_id=str(owner_id),
            filename=filename,
            content_type=content_type,
            size=len(content),
            title=str(metadata.get("title") or filename),
            description=str(metadata.get("description") or ""),
            journal=str(metadata.get("journal") or ""),
            year=str(metadata.get("year") or ""),
            publisher=str(metadata.get("publisher") or ""),
            doi=str(metadata.get("doi") or ""),
            is_published=metadata.get("is_published"),
            conference_proceeding=metadata.get("conference_proceeding"),
            citation_count=0,
            download_count=0,
            likes=0,
            dislikes=0,
            impact=0.0,
            clarity=0.0,
            upload_date=now,
        )
        for attr, column in LIST_FIELDS.items():
            row.set_list(column, metadata.get(attr) or [])
        row.set_list("liked_by_json", [])
        row.set_list("disliked_by_json", [])
        row.content = PaperContentModel(data=bytes(content))

        with self._provider.session() as session:
            session.add(row)
            session.commit()
            Logger.info(f"Stored paper {row.id} ({row.size} bytes)", file=LogFiles.PAPERS)
            return self._to_domain(row)

    def update_metadata(self, paper_id: str, changes: Dict[str, Any]) -> Optional[Paper]:
        with self._provider.session() as session:
            row = session.get(PaperModel, paper_id)
            if row is None:
                return None
            for key, value in changes.items():
                if key in LIST_FIELDS:
                    row.set_list(LIST_FIELDS[key], value)
                elif key in EDITABLE_FIELDS:
                    setattr(row, key, value)
            row.last_modified = _utcnow()
            session.commit()
            return self._to_domain(row)

    def delete_paper(self, paper_id: str) -> bool:
        with self._provider.session() as session:
            session.execute(delete(PaperCommentModel).where(PaperCommentModel.paper_id == paper_id))
            session.execute(delete(PaperContentModel).where(PaperContentModel.paper_id == paper_id))
            result = session.execute(delete(PaperModel).where(PaperModel.id == paper_id))
            session.commit()
            deleted = bool(result.rowcount)
        if deleted:
            Logger.info(f"Deleted paper {paper_id}", file=LogFiles.PAPERS)
        return deleted

    def vote(self, paper_id: str, user_id: str, action: str) -> Optional[Paper]:
        """Record a like or dislike; switching moves the vote, repeating it is rejected."""
        if action not in ("like", "dislike"):
            raise ValueError(f"unsupported vote: {action}")
        with self._provider.session() as session:
            row = session.get(PaperModel, paper_id)
            if row is None:
                return None
            liked = _safe_list(row.get_list("liked_by_json"))
            disliked = _safe_list(row.get_list("disliked_by_json"))
            target, other = (liked, disliked) if action == "like" else (disliked, liked)
            if user_id in target:
                raise ValidationError(f"You have already {action}d this paper")
            target.append(user_id)
            if user_id in other:
                other.remove(user_id)
            row.set_list("liked_by_json", liked)
            row.set_list("disliked_by_json", disliked)
            row.likes = len(liked)
            row.dislikes = len(disliked)
            session.commit()
            return self._to_domain(row)

    def add_comment(
        self,
        paper_id: str,
        *,
        user_id: str,
        content: str,
        user_email: str = "",
        parent_comment_id: Optional[str] = None,
    ) -> Optional[PaperComment]:
        with self._provider.session() as session:
            row = session.get(PaperModel, paper_id)
            if row is None:
                return None
            if parent_comment_id:
                parent = session.get(PaperCommentModel, parent_comment_id)
                if parent is None or parent.paper_id != paper_id:
                    raise ValidationError("Parent comment not found on this paper")
                if parent.parent_comment_id:
                    raise ValidationError("Replies can only be made to top-level comments")
            comment = PaperCommentModel(
                id=uuid4().hex,
                paper_id=paper_id,
                user_id=user_id,
                user_email=user_email or "",
                content=content,
                parent_comment_id=parent_comment_id or None,
                created_at=_utcnow(),
            )
            session.add(comment)
            session.commit()
            return self._comment_to_domain(comment)

    def increment_counter(self, paper_id: str, counter: str) -> bool:
        column = _COUNTERS.get(counter)
        if column is None:
            raise ValueError(f"unknown counter: {counter}")
        with self._provider.session() as session:
            result = session.execute(
                update(PaperModel).where(PaperModel.id == paper_id).values({column: column + 1})
            )
            session.commit()
            return bool(result.rowcount)

    # --- reads ---

    def get_paper(self, paper_id: Optional[str]) -> Optional[Paper]:
        if not paper_id:
            return None
        with self._provider.session() as session:
            row = session.get(PaperModel, str(paper_id))
            return self._to_domain(row) if row else None

    def get_content(self, paper_id: str) -> Optional[bytes]:
        """Read the whole binary into memory."""
        with self._provider.session() as session:
            row = session.get(PaperContentModel, paper_id)
            return bytes(row.data) if row else None

    def list_papers(self, *, owner_id: Optional[str] = None) -> List[Paper]:
        with self._provider.session() as session:
            stmt = select(PaperModel)
            if owner_id:
                stmt = stmt.where(PaperModel.owner_id == owner_id)
            stmt = stmt.order_by(desc(PaperModel.upload_date))
            rows = session.execute(stmt).scalars().all()
            return [self._to_domain(r) for r in rows]

    def list_papers_for_user(self, user_id: str) -> List[Paper]:
        """Papers the user owns or is listed on as a structured co-author."""
        with self._provider.session() as session:
            rows = session.execute(
                select(PaperModel)
                .where(
                    or_(
                        PaperModel.owner_id == user_id,
                        PaperModel.authors_json.contains(user_id),
                    )
                )
                .order_by(desc(PaperModel.upload_date))
            ).scalars().all()
            papers = [self._to_domain(r) for r in rows]
        # The substring match is only a prefilter.
        return [p for p in papers if p.is_owner(user_id) or p.is_coauthor(user_id)]

    @staticmethod
    def _comment_to_domain(row: PaperCommentModel) -> PaperComment:
        return PaperComment(
            id=row.id,
            paper_id=row.paper_id,
            user_id=row.user_id,
            user_email=row.user_email or "",
            content=row.content or "",
            parent_comment_id=row.parent_comment_id,
            created_at=row.created_at,
        )

    @classmethod
    def _to_domain(cls, row: PaperModel) -> Paper:
        return Paper(
            id=row.id,
            owner_id=row.owner_id,
            title=row.title or "",
            filename=row.filename or "",
            content_type=row.content_type or "application/pdf",
            size=int(row.size or 0),
            description=row.description or "",
            journal=row.journal or "",
            year=row.year or "",
            publisher=row.publisher or "",
            doi=row.doi or "",
            authors=row.get_list("authors_json"),
            tags=_safe_list(row.get_list("tags_json")),
            sdgs=_safe_list(row.get_list("sdgs_json")),
            references=row.get_list("references_json"),
            is_published=row.is_published,
            conference_proceeding=row.conference_proceeding,
            liked_by=_safe_list(row.get_list("liked_by_json")),
            disliked_by=_safe_list(row.get_list("disliked_by_json")),
            citation_count=int(row.citation_count or 0),
            download_count=int(row.download_count or 0),
            impact=float(row.impact or 0.0),
            clarity=float(row.clarity or 0.0),
            comments=[cls._comment_to_domain(c) for c in row.comments],
            upload_date=row.upload_date,
            last_modified=row.last_modified,
        )
