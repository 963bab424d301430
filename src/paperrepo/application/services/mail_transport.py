from __future__ import annotations

import base64
import logging
import smtplib
from dataclasses import dataclass, field
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Any, Dict, List, Optional, Protocol

import requests

logger = logging.getLogger(__name__)


@dataclass
class MailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass
class MailMessage:
    to: List[str]
    subject: str
    text: str
    html: str = ""
    attachments: List[MailAttachment] = field(default_factory=list)


class MailTransport(Protocol):
    def send(self, message: MailMessage) -> Dict[str, Any]: ...


class SmtpMailTransport:
    """Deliver messages over SMTP (plain, STARTTLS or implicit SSL)."""

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        use_ssl: bool = False,
        from_email: str = "",
        from_name: str = "",
        timeout_seconds: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.from_email = from_email or username
        self.from_name = from_name
        self.timeout_seconds = timeout_seconds

    def build_mime(self, message: MailMessage) -> MIMEMultipart:
        root = MIMEMultipart("mixed")
        root["Subject"] = message.subject
        root["From"] = formataddr((self.from_name, self.from_email)) if self.from_name else self.from_email
        root["To"] = ", ".join(message.to)

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(message.text, _subtype="plain", _charset="utf-8"))
        if message.html:
            body.attach(MIMEText(message.html, _subtype="html", _charset="utf-8"))
        root.attach(body)

        for att in message.attachments:
            maintype, _, subtype = (att.content_type or "application/octet-stream").partition("/")
            part = MIMEApplication(att.content, _subtype=subtype or "octet-stream")
            if maintype != "application":
                part.replace_header("Content-Type", att.content_type)
            part.add_header("Content-Disposition", "attachment", filename=att.filename)
            root.attach(part)
        return root

    def send(self, message: MailMessage) -> Dict[str, Any]:
        if not self.host:
            raise ValueError("PAPERREPO_SMTP_HOST is required for smtp delivery")
        if not self.from_email:
            raise ValueError("PAPERREPO_MAIL_FROM or SMTP username is required")
        if not message.to:
            raise ValueError("message has no recipients")

        mime = self.build_mime(message)

        if self.use_ssl:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_seconds)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds)

        with server:
            server.ehlo()
            if self.use_tls and not self.use_ssl:
                server.starttls()
                server.ehlo()
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.from_email, message.to, mime.as_string())

        logger.info("SMTP delivered subject=%r to=%s", message.subject, message.to)
        return {"provider": "smtp", "to": list(message.to)}


class ResendMailTransport:
    """Send emails via the Resend REST API (no SDK dependency)."""

    API_URL = "https://api.resend.com/emails"

    def __init__(self, *, api_key: str, from_email: str, timeout_seconds: float = 15.0):
        self.api_key = api_key
        self.from_email = from_email
        self.timeout_seconds = timeout_seconds

    def payload(self, message: MailMessage) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "from": self.from_email,
            "to": list(message.to),
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        if message.attachments:
            data["attachments"] = [
                {
                    "filename": att.filename,
                    "content": base64.b64encode(att.content).decode("ascii"),
                    "content_type": att.content_type,
                }
                for att in message.attachments
            ]
        return data

    def send(self, message: MailMessage) -> Dict[str, Any]:
        resp = requests.post(
            self.API_URL,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json=self.payload(message),
            timeout=self.timeout_seconds,
        )
        resp.raise_for_status()
        data = resp.json() if resp.content else {}
        logger.info("Resend accepted subject=%r id=%s", message.subject, data.get("id"))
        return {"provider": "resend", "id": data.get("id")}


class DisabledMailTransport:
    """Used when no provider is configured; every send fails loudly."""

    def send(self, message: MailMessage) -> Dict[str, Any]:
        logger.warning("Mail disabled, dropping subject=%r to=%s", message.subject, message.to)
        raise RuntimeError("mail delivery is not configured (PAPERREPO_MAIL_PROVIDER=none)")


def build_mail_transport(settings: Any) -> MailTransport:
    """Pick a transport from ``Settings.mail_provider``."""
    provider: Optional[str] = getattr(settings, "mail_provider", "none")
    if provider == "smtp":
        return SmtpMailTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            use_ssl=settings.smtp_use_ssl,
            from_email=settings.mail_from,
            from_name=settings.site_name,
            timeout_seconds=settings.mail_timeout_seconds,
        )
    if provider == "resend":
        return ResendMailTransport(
            api_key=settings.resend_api_key,
            from_email=formataddr((settings.site_name, settings.mail_from)),
            timeout_seconds=settings.mail_timeout_seconds,
        )
    return DisabledMailTransport()
