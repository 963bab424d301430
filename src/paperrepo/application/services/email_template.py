"""HTML / plain-text email bodies for repository notifications.

Used by the notification dispatcher for both SMTP and Resend transports:
  1. decision      : request approved / rejected, no attachment
  2. attachment    : approved paper delivered as an attachment
  3. verification  : registration code
  4. account       : account approved / rejected by staff
"""
from __future__ import annotations

import html as _html
from typing import Any, Dict, List, Optional, Tuple

from paperrepo.domain.paper import format_authors

# ── colour palette ──────────────────────────────────────────────
_BLUE = "#2563eb"
_GREEN = "#16a34a"
_RED = "#dc2626"
_GRAY_50 = "#f9fafb"
_GRAY_200 = "#e5e7eb"
_GRAY_500 = "#6b7280"
_GRAY_900 = "#111827"

DEFAULT_SITE_NAME = "Research Repository"

# (subject, html, text)
Rendered = Tuple[str, str, str]


# ── helpers ─────────────────────────────────────────────────────

def _esc(val: Any) -> str:
    return _html.escape(str(val)) if val else ""


def _decision_word(decision: str) -> str:
    return "Approved" if decision == "approved" else "Rejected"


def _wrap_html(heading: str, body: str, *, accent: str = _BLUE) -> str:
    return (
        f'<div style="font-family:Arial,Helvetica,sans-serif;max-width:600px;margin:0 auto;'
        f'padding:20px;border:1px solid {_GRAY_200};border-radius:6px;color:{_GRAY_900};">'
        f'<h2 style="margin:0 0 16px;padding-bottom:10px;border-bottom:2px solid {accent};">'
        f"{_esc(heading)}</h2>"
        f"{body}"
        f'<p style="margin-top:30px;padding-top:15px;border-top:1px solid {_GRAY_200};'
        f'font-size:13px;color:{_GRAY_500};">This is an automated email, please do not reply.</p>'
        f"</div>"
    )


def _admin_message_html(message: Optional[str]) -> str:
    if not message:
        return ""
    return f"<p><strong>Admin Message:</strong> {_esc(message)}</p>"


def _text_footer(lines: List[str], site_name: str) -> str:
    lines.append("")
    lines.append(f"Thank you for using the {site_name}.")
    lines.append("---")
    lines.append("This is an automated email, please do not reply.")
    return "\n".join(lines)


def _paper_rows(meta: Dict[str, Any]) -> List[Tuple[str, str]]:
    rows = [
        ("Title", str(meta.get("title") or "")),
        ("Authors", format_authors(meta.get("authors"))),
    ]
    for label, key in (("Journal", "journal"), ("Year", "year"), ("DOI", "doi")):
        value = str(meta.get(key) or "").strip()
        if value:
            rows.append((label, value))
    return rows


# ── decision ────────────────────────────────────────────────────

def build_decision_email(
    paper_title: str,
    decision: str,
    message: Optional[str] = None,
    *,
    site_name: str = DEFAULT_SITE_NAME,
) -> Rendered:
    word = _decision_word(decision)
    subject = f"Paper Request {word}: {paper_title}"

    if decision == "approved":
        outcome = "approved! You will receive another email with the paper attached."
        accent = _GREEN
    else:
        outcome = "rejected."
        accent = _RED

    body = (
        "<p>Dear User,</p>"
        f"<p>Your request for access to the paper <strong>{_esc(paper_title)}</strong> "
        f"has been {outcome}</p>"
        f"{_admin_message_html(message)}"
        f"<p>Thank you for using the {_esc(site_name)}.</p>"
    )
    html_body = _wrap_html(f"Paper Request {word}", body, accent=accent)

    lines = [
        f"Paper Request {word}",
        "",
        "Dear User,",
        f"Your request for access to the paper \"{paper_title}\" has been {outcome}",
    ]
    if message:
        lines.append(f"Admin Message: {message}")
    return subject, html_body, _text_footer(lines, site_name)


# ── approved attachment ─────────────────────────────────────────

def build_attachment_email(
    paper_meta: Dict[str, Any],
    message: Optional[str] = None,
    *,
    site_name: str = DEFAULT_SITE_NAME,
) -> Rendered:
    title = str(paper_meta.get("title") or "")
    subject = f"Paper Access Request Approved: {title}"
    rows = _paper_rows(paper_meta)

    details = "".join(
        f'<p style="margin:4px 0;"><strong>{_esc(label)}:</strong> {_esc(value)}</p>'
        for label, value in rows
    )
    body = (
        "<p>Dear User,</p>"
        f"<p>Your request for access to the paper <strong>{_esc(title)}</strong> "
        "has been approved by the administrator.</p>"
        f"{_admin_message_html(message)}"
        "<p>You can find the requested paper attached to this email.</p>"
        f'<div style="background:{_GRAY_50};padding:15px;border-radius:6px;margin:15px 0;">'
        f'<h3 style="margin-top:0;color:{_GRAY_500};">Paper Details:</h3>{details}</div>'
        f"<p>Thank you for using the {_esc(site_name)}.</p>"
    )
    html_body = _wrap_html("Your Paper Request Has Been Approved", body, accent=_GREEN)

    lines = [
        "Your Paper Request Has Been Approved",
        "",
        "Dear User,",
        f"Your request for access to the paper \"{title}\" has been approved by the administrator.",
    ]
    if message:
        lines.append(f"Admin Message: {message}")
    lines.append("The requested paper is attached to this email.")
    lines.append("")
    lines.append("Paper Details:")
    lines.extend(f"  {label}: {value}" for label, value in rows)
    return subject, html_body, _text_footer(lines, site_name)


def attachment_filename(paper_meta: Dict[str, Any]) -> str:
    filename = str(paper_meta.get("filename") or "").strip()
    if filename:
        return filename
    title = str(paper_meta.get("title") or "paper").strip() or "paper"
    return f"{title}.pdf"


# ── verification code ───────────────────────────────────────────

def build_verification_email(
    code: str,
    ttl_minutes: int,
    *,
    site_name: str = DEFAULT_SITE_NAME,
) -> Rendered:
    subject = f"{site_name} - Email Verification"
    body = (
        f"<p>Thank you for registering with the {_esc(site_name)}. "
        "Please use the following code to verify your email address:</p>"
        f'<div style="background:{_GRAY_50};padding:20px;text-align:center;border-radius:6px;">'
        f'<h1 style="margin:0;font-size:32px;letter-spacing:4px;color:{_BLUE};">{_esc(code)}</h1>'
        "</div>"
        f"<p>This code will expire in {int(ttl_minutes)} minutes.</p>"
        "<p>If you didn't request this verification, please ignore this email.</p>"
    )
    html_body = _wrap_html("Email Verification", body)
    lines = [
        "Email Verification",
        "",
        f"Your verification code is: {code}",
        f"This code will expire in {int(ttl_minutes)} minutes.",
        "If you didn't request this verification, please ignore this email.",
    ]
    return subject, html_body, _text_footer(lines, site_name)


# ── account status ──────────────────────────────────────────────

def build_account_status_email(
    first_name: str,
    status: str,
    *,
    site_name: str = DEFAULT_SITE_NAME,
) -> Rendered:
    word = _decision_word(status)
    subject = f"{site_name} - Account {word}"
    greeting = f"Dear {first_name}," if first_name else "Dear User,"
    if status == "approved":
        outcome = "has been approved. You can now sign in and upload papers."
        accent = _GREEN
    else:
        outcome = "has been rejected. Please contact the administrator for details."
        accent = _RED
    body = f"<p>{_esc(greeting)}</p><p>Your account {outcome}</p>"
    html_body = _wrap_html(f"Account {word}", body, accent=accent)
    lines = [f"Account {word}", "", greeting, f"Your account {outcome}"]
    return subject, html_body, _text_footer(lines, site_name)
