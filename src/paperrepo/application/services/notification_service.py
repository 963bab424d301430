from __future__ import annotations

from typing import Any, Dict, Optional

from paperrepo.application.services.email_template import (
    DEFAULT_SITE_NAME,
    attachment_filename,
    build_account_status_email,
    build_attachment_email,
    build_decision_email,
    build_verification_email,
)
from paperrepo.application.services.mail_transport import (
    MailAttachment,
    MailMessage,
    MailTransport,
)
from paperrepo.domain.errors import NotificationFailed
from paperrepo.utils.logging_config import LogFiles, Logger


class EmailNotificationDispatcher:
    """Render repository emails and hand them to a mail transport.

    Any transport failure is re-raised as ``NotificationFailed``; callers
    decide whether that aborts the operation or is only reported.
    """

    def __init__(self, transport: MailTransport, *, site_name: str = DEFAULT_SITE_NAME):
        self.transport = transport
        self.site_name = site_name

    def send_decision(
        self,
        to_email: str,
        paper_title: str,
        decision: str,
        message: Optional[str] = None,
    ) -> Dict[str, Any]:
        subject, html_body, text = build_decision_email(
            paper_title, decision, message, site_name=self.site_name
        )
        return self._deliver(MailMessage(to=[to_email], subject=subject, text=text, html=html_body))

    def send_approved_attachment(
        self,
        to_email: str,
        paper_meta: Dict[str, Any],
        content: bytes,
        message: Optional[str] = None,
    ) -> Dict[str, Any]:
        subject, html_body, text = build_attachment_email(
            paper_meta, message, site_name=self.site_name
        )
        attachment = MailAttachment(
            filename=attachment_filename(paper_meta),
            content=bytes(content),
            content_type=str(paper_meta.get("contentType") or "application/pdf"),
        )
        return self._deliver(
            MailMessage(
                to=[to_email],
                subject=subject,
                text=text,
                html=html_body,
                attachments=[attachment],
            )
        )

    def send_verification_code(self, to_email: str, code: str, ttl_minutes: int) -> Dict[str, Any]:
        subject, html_body, text = build_verification_email(
            code, ttl_minutes, site_name=self.site_name
        )
        return self._deliver(MailMessage(to=[to_email], subject=subject, text=text, html=html_body))

    def send_account_status(self, to_email: str, first_name: str, status: str) -> Dict[str, Any]:
        subject, html_body, text = build_account_status_email(
            first_name, status, site_name=self.site_name
        )
        return self._deliver(MailMessage(to=[to_email], subject=subject, text=text, html=html_body))

    def _deliver(self, message: MailMessage) -> Dict[str, Any]:
        if not message.to or not message.to[0]:
            raise NotificationFailed("Recipient email address is missing")
        try:
            result = self.transport.send(message)
        except Exception as exc:
            Logger.error(
                f"Email delivery failed subject={message.subject!r} to={message.to}: {exc}",
                file=LogFiles.MAIL,
            )
            raise NotificationFailed(f"Failed to send email: {exc}") from exc
        Logger.info(
            f"Email sent subject={message.subject!r} to={message.to} "
            f"attachments={len(message.attachments)}",
            file=LogFiles.MAIL,
        )
        return result or {}
