from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def _load_list(raw: Optional[str]) -> List[Any]:
    try:
        value = json.loads(raw or "[]")
    except Exception:
        return []
    return value if isinstance(value, list) else []


def _dump(value: Any) -> str:
    return json.dumps(value if value is not None else [], ensure_ascii=False)


class UserModel(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    email: Mapped[str] = mapped_column(String(256), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), default="")

    role: Mapped[str] = mapped_column(String(16), default="user", index=True)
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)

    first_name: Mapped[str] = mapped_column(String(128), default="")
    last_name: Mapped[str] = mapped_column(String(128), default="")
    department: Mapped[str] = mapped_column(String(128), default="", index=True)
    phone_number: Mapped[str] = mapped_column(String(32), default="")
    student_id: Mapped[str] = mapped_column(String(64), default="")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class EmailVerificationModel(Base):
    """One-time registration code, keyed by the email address it was sent to."""

    __tablename__ = "email_verifications"

    email: Mapped[str] = mapped_column(String(256), primary_key=True)
    code_hash: Mapped[str] = mapped_column(String(64))
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class PaperModel(Base):
    """Paper metadata; the binary lives in PaperContentModel."""

    __tablename__ = "papers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(32), index=True)

    filename: Mapped[str] = mapped_column(String(512), default="")
    content_type: Mapped[str] = mapped_column(String(128), default="application/pdf")
    size: Mapped[int] = mapped_column(Integer, default=0)

    title: Mapped[str] = mapped_column(Text, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    journal: Mapped[str] = mapped_column(String(256), default="")
    year: Mapped[str] = mapped_column(String(8), default="", index=True)
    publisher: Mapped[str] = mapped_column(String(256), default="")
    doi: Mapped[str] = mapped_column(String(256), default="")

    authors_json: Mapped[str] = mapped_column(Text, default="[]")
    tags_json: Mapped[str] = mapped_column(Text, default="[]")
    sdgs_json: Mapped[str] = mapped_column(Text, default="[]")
    references_json: Mapped[str] = mapped_column(Text, default="[]")
    is_published: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    conference_proceeding: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # Vote sets; the counters are derived from them.
    liked_by_json: Mapped[str] = mapped_column(Text, default="[]")
    disliked_by_json: Mapped[str] = mapped_column(Text, default="[]")
    likes: Mapped[int] = mapped_column(Integer, default=0)
    dislikes: Mapped[int] = mapped_column(Integer, default=0)

    citation_count: Mapped[int] = mapped_column(Integer, default=0)
    download_count: Mapped[int] = mapped_column(Integer, default=0)
    impact: Mapped[float] = mapped_column(Float, default=0.0)
    clarity: Mapped[float] = mapped_column(Float, default=0.0)

    upload_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    last_modified: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    content = relationship(
        "PaperContentModel",
        back_populates="paper",
        uselist=False,
        cascade="all, delete-orphan",
    )
    comments = relationship(
        "PaperCommentModel",
        back_populates="paper",
        cascade="all, delete-orphan",
        order_by="PaperCommentModel.created_at",
        lazy="selectin",
    )

    def get_list(self, attr: str) -> List[Any]:
        return _load_list(getattr(self, attr))

    def set_list(self, attr: str, value: Optional[List[Any]]) -> None:
        setattr(self, attr, _dump(list(value or [])))


class PaperContentModel(Base):
    __tablename__ = "paper_contents"

    paper_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("papers.id", ondelete="CASCADE"), primary_key=True
    )
    data: Mapped[bytes] = mapped_column(LargeBinary)

    paper = relationship("PaperModel", back_populates="content")


class PaperCommentModel(Base):
    __tablename__ = "paper_comments"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    paper_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("papers.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(32), index=True)
    user_email: Mapped[str] = mapped_column(String(256), default="")
    content: Mapped[str] = mapped_column(Text, default="")
    parent_comment_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    paper = relationship("PaperModel", back_populates="comments")


class PaperRequestModel(Base):
    """Access request for a paper.

    paper_id has no foreign key: requests outlive deleted papers
    and keep the title snapshot for display.
    """

    __tablename__ = "paper_requests"
    __table_args__ = (
        # At most one active request per (user, paper).
        Index(
            "uq_paper_requests_active_user_paper",
            "user_id",
            "paper_id",
            unique=True,
            sqlite_where=text("status IN ('pending', 'approved')"),
            postgresql_where=text("status IN ('pending', 'approved')"),
        ),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    paper_id: Mapped[str] = mapped_column(String(32), index=True)
    user_id: Mapped[str] = mapped_column(String(32), index=True)

    reason: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    paper_title: Mapped[str] = mapped_column(Text, default="")

    request_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    processed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_by: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    admin_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
