"""NotificationPort: outbound email notifications."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class NotificationPort(Protocol):
    """Each call is one atomic delivery; failures raise ``NotificationFailed``."""

    def send_decision(
        self,
        to_email: str,
        paper_title: str,
        decision: str,
        message: Optional[str] = None,
    ) -> Dict[str, Any]: ...

    def send_approved_attachment(
        self,
        to_email: str,
        paper_meta: Dict[str, Any],
        content: bytes,
        message: Optional[str] = None,
    ) -> Dict[str, Any]: ...

    def send_verification_code(
        self, to_email: str, code: str, ttl_minutes: int
    ) -> Dict[str, Any]: ...

    def send_account_status(
        self, to_email: str, first_name: str, status: str
    ) -> Dict[str, Any]: ...
