# src/paperrepo/application/workflows/paper_request_workflow.py
"""
Paper access request workflow.

A reader asks for a paper they cannot download; staff approve or reject the
request.  Approval emails the requester twice: a decision notice, then the
paper itself as an attachment.

States: pending -> approved | rejected (both terminal).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from paperrepo.application.ports import (
    NotificationPort,
    PaperCatalogPort,
    PaperRequestPort,
    UserDirectoryPort,
)
from paperrepo.domain.errors import (
    DuplicateRequest,
    InvalidState,
    NotFound,
    NotificationFailed,
    ValidationError,
)
from paperrepo.domain.paper_request import DECISIONS, PaperRequest, RequestStatus
from paperrepo.utils.logging_config import LogFiles, Logger

STEP_DECISION = "decision_notification"
STEP_ATTACHMENT = "attachment_notification"

KIND_NOTIFICATION_FAILED = "notification_failed"
KIND_NOT_FOUND = "not_found"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StepResult:
    """Outcome of one best-effort side effect."""

    step: str
    ok: bool
    error: Optional[str] = None
    kind: Optional[str] = None  # notification_failed, not_found

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "ok": self.ok, "error": self.error, "kind": self.kind}


@dataclass
class ProcessOutcome:
    request: PaperRequest
    steps: List[StepResult] = field(default_factory=list)

    @property
    def all_delivered(self) -> bool:
        return all(s.ok for s in self.steps)

    def step(self, name: str) -> Optional[StepResult]:
        for s in self.steps:
            if s.step == name:
                return s
        return None

    @property
    def message(self) -> str:
        if self.all_delivered:
            return "Request processed successfully"
        return "Request processed; some notifications could not be delivered"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "request": self.request.to_dict(),
            "notifications": [s.to_dict() for s in self.steps],
        }


class PaperRequestWorkflow:
    """Submit and process paper access requests.

    The decision is always persisted before any email goes out, and a failed
    email never rolls it back; each email is reported as its own step.
    """

    def __init__(
        self,
        *,
        requests: PaperRequestPort,
        papers: PaperCatalogPort,
        users: UserDirectoryPort,
        notifier: NotificationPort,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.requests = requests
        self.papers = papers
        self.users = users
        self.notifier = notifier
        self._now = now

    def submit(
        self,
        paper_id: Optional[str],
        requester_id: Optional[str],
        reason: Optional[str],
        paper_title: Optional[str] = None,
    ) -> PaperRequest:
        reason = (reason or "").strip()
        if not paper_id or not requester_id or not reason:
            raise ValidationError("All fields are required")

        paper = self.papers.get_paper(paper_id)
        if paper is None:
            raise NotFound("paper", "Paper not found")
        if self.users.get_user(requester_id) is None:
            raise NotFound("user", "User not found")

        existing = self.requests.find_active(user_id=requester_id, paper_id=paper_id)
        if existing is not None:
            raise DuplicateRequest(existing.status, existing.id)

        title = paper.title or (paper_title or "").strip()
        request = self.requests.create_request(
            user_id=requester_id,
            paper_id=paper_id,
            reason=reason,
            paper_title=title,
            request_date=self._now(),
        )
        Logger.info(
            f"Request {request.id} submitted user={requester_id} paper={paper_id}",
            file=LogFiles.REQUESTS,
        )
        return request

    def process(
        self,
        request_id: str,
        decision: Optional[str],
        processed_by: Optional[str],
        admin_message: Optional[str] = None,
    ) -> ProcessOutcome:
        if decision not in DECISIONS:
            raise ValidationError("Invalid status")

        current = self.requests.get_request(request_id)
        if current is None:
            raise NotFound("request", "Request not found")
        if current.is_terminal:
            raise InvalidState(f"Request has already been {current.status}")

        admin_message = (admin_message or "").strip() or None
        updated = self.requests.record_decision(
            request_id,
            status=decision,
            processed_by=processed_by,
            admin_message=admin_message,
            processed_date=self._now(),
        )
        if updated is None:
            # Lost the race against another reviewer.
            latest = self.requests.get_request(request_id)
            status = latest.status if latest else "processed"
            raise InvalidState(f"Request has already been {status}")

        Logger.info(
            f"Request {request_id} {decision} by {processed_by or '-'}",
            file=LogFiles.REQUESTS,
        )

        outcome = ProcessOutcome(request=updated)
        requester = self.users.get_user(updated.user_id)
        if requester is None or not requester.email:
            missing = StepResult(STEP_DECISION, False, "Requesting user not found", KIND_NOT_FOUND)
            outcome.steps.append(missing)
            if decision == RequestStatus.APPROVED.value:
                outcome.steps.append(
                    StepResult(STEP_ATTACHMENT, False, "Requesting user not found", KIND_NOT_FOUND)
                )
            self._log_failures(outcome)
            return outcome

        outcome.steps.append(
            self._attempt(
                STEP_DECISION,
                lambda: self.notifier.send_decision(
                    requester.email, updated.paper_title, decision, admin_message
                ),
            )
        )
        if decision == RequestStatus.APPROVED.value:
            outcome.steps.append(self._send_attachment(updated, requester.email, admin_message))

        self._log_failures(outcome)
        return outcome

    def list_all(self) -> List[PaperRequest]:
        return self.requests.list_requests()

    def list_pending(self) -> List[PaperRequest]:
        return self.requests.list_requests(status=RequestStatus.PENDING.value)

    def list_for_user(self, user_id: str) -> List[PaperRequest]:
        return self.requests.list_user_requests(user_id)

    def with_requesters(self, requests: List[PaperRequest]) -> List[Dict[str, Any]]:
        """Admin listing rows: the request plus a summary of who asked."""
        users = self.users.get_users([r.user_id for r in requests])
        rows: List[Dict[str, Any]] = []
        for r in requests:
            data = r.to_dict()
            user = users.get(r.user_id)
            data["user"] = user.to_summary() if user else None
            rows.append(data)
        return rows

    def _send_attachment(
        self, request: PaperRequest, to_email: str, admin_message: Optional[str]
    ) -> StepResult:
        paper = self.papers.get_paper(request.paper_id)
        content = self.papers.get_content(request.paper_id) if paper else None
        if paper is None or content is None:
            return StepResult(STEP_ATTACHMENT, False, "Paper not found", KIND_NOT_FOUND)
        return self._attempt(
            STEP_ATTACHMENT,
            lambda: self.notifier.send_approved_attachment(
                to_email, paper.attachment_meta(), content, admin_message
            ),
        )

    @staticmethod
    def _attempt(step: str, send: Callable[[], Any]) -> StepResult:
        try:
            send()
        except NotificationFailed as exc:
            return StepResult(step, False, exc.message, KIND_NOTIFICATION_FAILED)
        return StepResult(step, True)

    @staticmethod
    def _log_failures(outcome: ProcessOutcome) -> None:
        for s in outcome.steps:
            if not s.ok:
                Logger.warning(
                    f"Request {outcome.request.id} {s.step} failed ({s.kind}): {s.error}",
                    file=LogFiles.MAIL,
                )
