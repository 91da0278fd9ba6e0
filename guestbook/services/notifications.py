from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from urllib.parse import quote

from guestbook.settings import Settings
from guestbook.template_utils import get_mail_env

log = logging.getLogger(__name__)

SUBJECT = "New guestbook entry (approval required)"

_mail_env = get_mail_env()


@dataclass(frozen=True)
class NewEntry:
    """Detached copy of a freshly stored entry, safe to hand to a background task."""

    id: int
    name: str
    message: str
    created_at: str


def moderation_links(settings: Settings, entry_id: int) -> tuple[str, str]:
    token = quote(settings.admin_token, safe="")
    approve_url = f"{settings.base_url}/admin/approve?id={entry_id}&token={token}"
    reject_url = f"{settings.base_url}/admin/reject?id={entry_id}&token={token}"
    return approve_url, reject_url


def build_moderation_message(settings: Settings, entry: NewEntry) -> EmailMessage:
    approve_url, reject_url = moderation_links(settings, entry.id)
    context = {
        "name": entry.name,
        "message": entry.message,
        "created_at": entry.created_at,
        "approve_url": approve_url,
        "reject_url": reject_url,
    }

    msg = EmailMessage()
    msg["Subject"] = SUBJECT
    msg["From"] = settings.mail_from
    msg["To"] = settings.mail_to
    msg.set_content(_mail_env.get_template("moderation.txt").render(context))
    msg.add_alternative(
        _mail_env.get_template("moderation.html").render(context), subtype="html"
    )
    return msg


def open_smtp(settings: Settings) -> smtplib.SMTP:
    """Connect and authenticate. The caller is responsible for quitting."""
    context = ssl.create_default_context()
    timeout = settings.smtp_timeout_seconds

    server: smtplib.SMTP
    if settings.smtp_use_ssl:
        server = smtplib.SMTP_SSL(
            settings.smtp_host, settings.smtp_port, timeout=timeout, context=context
        )
    else:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=timeout)
    try:
        server.ehlo()
        if not settings.smtp_use_ssl and server.has_extn("starttls"):
            server.starttls(context=context)
            server.ehlo()
        server.login(settings.smtp_user, settings.smtp_pass)
    except Exception:
        server.close()
        raise
    return server


def send_moderation_mail(settings: Settings, entry: NewEntry) -> bool:
    """Send the approve/reject mail for ``entry``.

    Returns False without doing anything when SMTP is not configured.
    Transport errors propagate.
    """
    if not settings.smtp_enabled:
        return False

    msg = build_moderation_message(settings, entry)
    server = open_smtp(settings)
    try:
        server.send_message(msg)
    finally:
        server.quit()
    return True


def notify_new_entry(settings: Settings, entry: NewEntry) -> None:
    """Best-effort moderation notice. Never raises."""
    try:
        if send_moderation_mail(settings, entry):
            log.info(f"Moderation mail sent for entry #{entry.id}")
    except Exception as e:
        log.error(f"Moderation mail for entry #{entry.id} failed: {e!r}")


def verify_smtp(settings: Settings) -> bool:
    if not settings.smtp_enabled:
        log.info("SMTP disabled (SMTP_HOST/SMTP_USER/SMTP_PASS missing or empty)")
        return False

    try:
        server = open_smtp(settings)
        server.quit()
    except Exception as e:
        log.error(
            f"SMTP check failed: {e!r}\n"
            "  - Is SMTP_PASS an app password without surrounding quotes?\n"
            "  - Port 465 needs SMTP_SECURE=true, port 587 uses STARTTLS (SMTP_SECURE=false)."
        )
        return False

    log.info("SMTP ready (login ok)")
    return True
