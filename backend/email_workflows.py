import logging
import os
from typing import Dict, List

from email_templates import build_attendee_mentor_email, build_credentials_email, build_mentor_assigned_email
from emailer import send_email

logger = logging.getLogger(__name__)

FRONTEND_BASE_URL = os.environ.get("FRONTEND_BASE_URL", "")


def _login_url() -> str:
    base = FRONTEND_BASE_URL.rstrip("/")
    return f"{base}/login" if base else ""


def _safe_send(to_email: str, subject: str, html: str, text: str) -> bool:
    try:
        return send_email(to_email, subject, html, text)
    except Exception:
        logger.exception("Failed to send email to %s", to_email)
        return False


def send_import_invitations(event_name: str, credentials: List[Dict[str, str]]) -> int:
    """E-mail generated logins to imported attendees; returns how many were sent."""
    sent = 0
    login_url = _login_url()
    for entry in credentials:
        subject, html, text = build_credentials_email(
            name=entry["name"],
            event_name=event_name,
            username=entry["username"],
            password=entry["password"],
            login_url=login_url or None,
        )
        if _safe_send(entry["email"], subject, html, text):
            sent += 1
    logger.info("Sent %d/%d import invitations for %s", sent, len(credentials), event_name)
    return sent


def send_mentor_assignment_notifications(
    event_name: str,
    mentor: Dict[str, str],
    attendees: List[Dict[str, str]],
) -> int:
    if not attendees:
        return 0
    sent = 0
    subject, html, text = build_mentor_assigned_email(
        mentor["name"], event_name, [attendee["name"] for attendee in attendees]
    )
    if _safe_send(mentor["email"], subject, html, text):
        sent += 1
    for attendee in attendees:
        subject, html, text = build_attendee_mentor_email(
            attendee["name"], event_name, mentor["name"], mentor["email"]
        )
        if _safe_send(attendee["email"], subject, html, text):
            sent += 1
    return sent
