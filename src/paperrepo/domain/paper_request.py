"""Paper access request value objects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses that block a new request for the same (user, paper) pair.
ACTIVE_STATUSES = (RequestStatus.PENDING.value, RequestStatus.APPROVED.value)

DECISIONS = (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value)


@dataclass
class PaperRequest:
    id: str
    paper_id: str
    user_id: str
    reason: str
    paper_title: str
    status: str = RequestStatus.PENDING.value
    request_date: Optional[datetime] = None
    processed_date: Optional[datetime] = None
    processed_by: Optional[str] = None
    admin_message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in DECISIONS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "paperId": self.paper_id,
            "userId": self.user_id,
            "reason": self.reason,
            "status": self.status,
            "paperTitle": self.paper_title,
            "requestDate": self.request_date.isoformat() if self.request_date else None,
            "processedDate": self.processed_date.isoformat() if self.processed_date else None,
            "processedBy": self.processed_by,
            "adminMessage": self.admin_message,
        }
