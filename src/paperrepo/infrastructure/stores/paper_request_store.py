from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError

from paperrepo.domain.errors import DuplicateRequest
from paperrepo.domain.paper_request import ACTIVE_STATUSES, PaperRequest, RequestStatus
from paperrepo.infrastructure.stores.models import Base, PaperRequestModel
from paperrepo.infrastructure.stores.sqlalchemy_db import SessionProvider
from paperrepo.utils.logging_config import LogFiles, Logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAlchemyPaperRequestStore:
    """Paper access requests.

    Uniqueness of active requests per (user, paper) is enforced by a partial
    unique index, so a concurrent duplicate insert fails at commit time rather
    than slipping past the read-side check.
    """

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

    def find_active(self, *, user_id: str, paper_id: str) -> Optional[PaperRequest]:
        with self._provider.session() as session:
            row = session.execute(
                select(PaperRequestModel)
                .where(
                    PaperRequestModel.user_id == user_id,
                    PaperRequestModel.paper_id == paper_id,
                    PaperRequestModel.status.in_(ACTIVE_STATUSES),
                )
                .limit(1)
            ).scalar_one_or_none()
            return self._to_domain(row) if row else None

    def create_request(
        self,
        *,
        user_id: str,
        paper_id: str,
        reason: str,
        paper_title: str,
        request_date: Optional[datetime] = None,
    ) -> PaperRequest:
        row = PaperRequestModel(
            id=uuid4().hex,
            user_id=user_id,
            paper_id=paper_id,
            reason=reason,
            paper_title=paper_title,
            status=RequestStatus.PENDING.value,
            request_date=request_date or _utcnow(),
        )
        with self._provider.session() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                existing = self.find_active(user_id=user_id, paper_id=paper_id)
                Logger.warning(
                    f"Concurrent duplicate request user={user_id} paper={paper_id}",
                    file=LogFiles.REQUESTS,
                )
                status = existing.status if existing else RequestStatus.PENDING.value
                raise DuplicateRequest(status, existing.id if existing else None) from exc
            return self._to_domain(row)

    def record_decision(
        self,
        request_id: str,
        *,
        status: str,
        processed_by: Optional[str],
        admin_message: Optional[str] = None,
        processed_date: Optional[datetime] = None,
    ) -> Optional[PaperRequest]:
        """Move a pending request to a terminal status.

        Compare-and-set on ``status = 'pending'``; returns None when the
        request does not exist or was no longer pending.
        """
        values = {
            "status": status,
            "processed_date": processed_date or _utcnow(),
            "processed_by": processed_by,
        }
        if admin_message:
            values["admin_message"] = admin_message
        with self._provider.session() as session:
            result = session.execute(
                update(PaperRequestModel)
                .where(
                    PaperRequestModel.id == request_id,
                    PaperRequestModel.status == RequestStatus.PENDING.value,
                )
                .values(**values)
            )
            session.commit()
            if not result.rowcount:
                return None
            row = session.get(PaperRequestModel, request_id)
            return self._to_domain(row) if row else None

    def get_request(self, request_id: Optional[str]) -> Optional[PaperRequest]:
        if not request_id:
            return None
        with self._provider.session() as session:
            row = session.get(PaperRequestModel, str(request_id))
            return self._to_domain(row) if row else None

    def list_requests(self, *, status: Optional[str] = None) -> List[PaperRequest]:
        with self._provider.session() as session:
            stmt = select(PaperRequestModel)
            if status:
                stmt = stmt.where(PaperRequestModel.status == status)
            stmt = stmt.order_by(desc(PaperRequestModel.request_date))
            rows = session.execute(stmt).scalars().all()
            return [self._to_domain(r) for r in rows]

    def list_user_requests(self, user_id: str) -> List[PaperRequest]:
        with self._provider.session() as session:
            rows = session.execute(
                select(PaperRequestModel)
                .where(PaperRequestModel.user_id == user_id)
                .order_by(desc(PaperRequestModel.request_date))
            ).scalars().all()
            return [self._to_domain(r) for r in rows]

    @staticmethod
    def _to_domain(row: PaperRequestModel) -> PaperRequest:
        return PaperRequest(
            id=row.id,
            paper_id=row.paper_id,
            user_id=row.user_id,
            reason=row.reason or "",
            paper_title=row.paper_title or "",
            status=row.status,
            request_date=row.request_date,
            processed_date=row.processed_date,
            processed_by=row.processed_by,
            admin_message=row.admin_message,
        )
