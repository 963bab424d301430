"""PaperRequestPort: persistence for paper access requests."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from paperrepo.domain.paper_request import PaperRequest


@runtime_checkable
class PaperRequestPort(Protocol):
    """Storage contract for access requests.

    ``create_request`` raises ``DuplicateRequest`` when an active request for
    the same (user, paper) pair already exists, including one inserted
    concurrently.  ``record_decision`` only transitions a pending request and
    returns None otherwise.
    """

    def find_active(self, *, user_id: str, paper_id: str) -> Optional[PaperRequest]: ...

    def create_request(
        self,
        *,
        user_id: str,
        paper_id: str,
        reason: str,
        paper_title: str,
        request_date: Optional[datetime] = None,
    ) -> PaperRequest: ...

    def record_decision(
        self,
        request_id: str,
        *,
        status: str,
        processed_by: Optional[str],
        admin_message: Optional[str] = None,
        processed_date: Optional[datetime] = None,
    ) -> Optional[PaperRequest]: ...

    def get_request(self, request_id: Optional[str]) -> Optional[PaperRequest]: ...

    def list_requests(self, *, status: Optional[str] = None) -> List[PaperRequest]: ...

    def list_user_requests(self, user_id: str) -> List[PaperRequest]: ...
