"""repository schema

Revision ID: 0001_repository_schema
Revises:
Create Date: 2026-10-19

Creates users, email_verifications, papers, paper_contents, paper_comments
and paper_requests, including the partial unique index that allows only one
active (pending/approved) request per user and paper.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import context, op


revision = "0001_repository_schema"
down_revision = None
branch_labels = None
depends_on = None

_ACTIVE_REQUEST = sa.text("status IN ('pending', 'approved')")


def _is_offline() -> bool:
    try:
        return bool(context.is_offline_mode())
    except Exception:
        return False


def _insp():
    return sa.inspect(op.get_bind())


def _has_table(name: str) -> bool:
    if _is_offline():
        return False
    return _insp().has_table(name)


def _get_indexes(table: str) -> set[str]:
    idx = set()
    for i in _insp().get_indexes(table):
        idx.add(str(i.get("name") or ""))
    return idx


def _create_index(name: str, table: str, cols: list[str], **kw) -> None:
    if _is_offline():
        op.create_index(name, table, cols, **kw)
        return
    if name in _get_indexes(table):
        return
    op.create_index(name, table, cols, **kw)


def upgrade() -> None:
    if not _has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=32), primary_key=True),
            sa.Column("email", sa.String(length=256), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(length=128), nullable=False, server_default=""),
            sa.Column("role", sa.String(length=16), nullable=False, server_default="user"),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("first_name", sa.String(length=128), nullable=False, server_default=""),
            sa.Column("last_name", sa.String(length=128), nullable=False, server_default=""),
            sa.Column("department", sa.String(length=128), nullable=False, server_default=""),
            sa.Column("phone_number", sa.String(length=32), nullable=False, server_default=""),
            sa.Column("student_id", sa.String(length=64), nullable=False, server_default=""),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
    _create_index("ix_users_email", "users", ["email"], unique=True)
    _create_index("ix_users_role", "users", ["role"])
    _create_index("ix_users_status", "users", ["status"])
    _create_index("ix_users_department", "users", ["department"])
    _create_index("ix_users_created_at", "users", ["created_at"])

    if not _has_table("email_verifications"):
        op.create_table(
            "email_verifications",
            sa.Column("email", sa.String(length=256), primary_key=True),
            sa.Column("code_hash", sa.String(length=64), nullable=False),
            sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        )
    _create_index("ix_email_verifications_expires_at", "email_verifications", ["expires_at"])

    if not _has_table("papers"):
        op.create_table(
            "papers",
            sa.Column("id", sa.String(length=32), primary_key=True),
            sa.Column("owner_id", sa.String(length=32), nullable=False),
            sa.Column("filename", sa.String(length=512), nullable=False, server_default=""),
            sa.Column("content_type", sa.String(length=128), nullable=False, server_default="application/pdf"),
            sa.Column("size", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("title", sa.Text(), nullable=False, server_default=""),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("journal", sa.String(length=256), nullable=False, server_default=""),
            sa.Column("year", sa.String(length=8), nullable=False, server_default=""),
            sa.Column("publisher", sa.String(length=256), nullable=False, server_default=""),
            sa.Column("doi", sa.String(length=256), nullable=False, server_default=""),
            sa.Column("authors_json", sa.Text(), nullable=False, server_default="[]"),
            sa.Column("tags_json", sa.Text(), nullable=False, server_default="[]"),
            sa.Column("sdgs_json", sa.Text(), nullable=False, server_default="[]"),
            sa.Column("references_json", sa.Text(), nullable=False, server_default="[]"),
            sa.Column("is_published", sa.Boolean(), nullable=True),
            sa.Column("conference_proceeding", sa.Boolean(), nullable=True),
            sa.Column("liked_by_json", sa.Text(), nullable=False, server_default="[]"),
            sa.Column("disliked_by_json", sa.Text(), nullable=False, server_default="[]"),
            sa.Column("likes", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("dislikes", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("citation_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("download_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("impact", sa.Float(), nullable=False, server_default="0"),
            sa.Column("clarity", sa.Float(), nullable=False, server_default="0"),
            sa.Column("upload_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("last_modified", sa.DateTime(timezone=True), nullable=True),
        )
    _create_index("ix_papers_owner_id", "papers", ["owner_id"])
    _create_index("ix_papers_year", "papers", ["year"])
    _create_index("ix_papers_upload_date", "papers", ["upload_date"])

    if not _has_table("paper_contents"):
        op.create_table(
            "paper_contents",
            sa.Column(
                "paper_id",
                sa.String(length=32),
                sa.ForeignKey("papers.id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column("data", sa.LargeBinary(), nullable=False),
        )

    if not _has_table("paper_comments"):
        op.create_table(
            "paper_comments",
            sa.Column("id", sa.String(length=32), primary_key=True),
            sa.Column(
                "paper_id",
                sa.String(length=32),
                sa.ForeignKey("papers.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("user_id", sa.String(length=32), nullable=False),
            sa.Column("user_email", sa.String(length=256), nullable=False, server_default=""),
            sa.Column("content", sa.Text(), nullable=False, server_default=""),
            sa.Column("parent_comment_id", sa.String(length=32), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        )
    _create_index("ix_paper_comments_paper_id", "paper_comments", ["paper_id"])
    _create_index("ix_paper_comments_user_id", "paper_comments", ["user_id"])

    if not _has_table("paper_requests"):
        op.create_table(
            "paper_requests",
            sa.Column("id", sa.String(length=32), primary_key=True),
            sa.Column("paper_id", sa.String(length=32), nullable=False),
            sa.Column("user_id", sa.String(length=32), nullable=False),
            sa.Column("reason", sa.Text(), nullable=False, server_default=""),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("paper_title", sa.Text(), nullable=False, server_default=""),
            sa.Column("request_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("processed_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("processed_by", sa.String(length=32), nullable=True),
            sa.Column("admin_message", sa.Text(), nullable=True),
        )
    _create_index("ix_paper_requests_paper_id", "paper_requests", ["paper_id"])
    _create_index("ix_paper_requests_user_id", "paper_requests", ["user_id"])
    _create_index("ix_paper_requests_status", "paper_requests", ["status"])
    _create_index("ix_paper_requests_request_date", "paper_requests", ["request_date"])
    _create_index(
        "uq_paper_requests_active_user_paper",
        "paper_requests",
        ["user_id", "paper_id"],
        unique=True,
        sqlite_where=_ACTIVE_REQUEST,
        postgresql_where=_ACTIVE_REQUEST,
    )


def downgrade() -> None:
    op.drop_table("paper_requests")
    op.drop_table("paper_comments")
    op.drop_table("paper_contents")
    op.drop_table("papers")
    op.drop_table("email_verifications")
    op.drop_table("users")
