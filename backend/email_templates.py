import html as html_lib
from typing import List, Optional, Tuple

SIGNATURE_TEXT = "Regards,\nWorkshop Organising Team\n"
SIGNATURE_HTML = "<p style=\"margin-bottom: 0;\">Regards,<br><strong>Workshop Organising Team</strong></p>"


def _wrap_html(title: str, body: str) -> str:
    return f"""
    <html>
      <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #1b1f24;">
        <div style="max-width: 560px; margin: 0 auto; padding: 24px; border: 1px solid #e6e6e6; border-radius: 12px;">
          <h2 style="margin-top: 0;">{html_lib.escape(title)}</h2>
          {body}
          <hr style="border: none; border-top: 1px solid #e6e6e6; margin: 24px 0;" />
          {SIGNATURE_HTML}
        </div>
      </body>
    </html>
    """


def build_credentials_email(
    name: str,
    event_name: str,
    username: str,
    password: str,
    login_url: Optional[str] = None,
) -> Tuple[str, str, str]:
    subject = f"Your login for {event_name}"
    link_line = f"Sign in at: {login_url}\n" if login_url else ""
    text = (
        f"Hello {name},\n\n"
        f"You have been registered for {event_name}. Use these credentials to sign in:\n"
        f"Username: {username}\n"
        f"Password: {password}\n"
        f"{link_line}\n"
        "Please keep them private.\n\n"
        f"{SIGNATURE_TEXT}"
    )
    link_html = ""
    if login_url:
        safe_url = html_lib.escape(login_url, quote=True)
        link_html = (
            "<p style=\"text-align: center; margin: 24px 0;\">"
            f"<a href=\"{safe_url}\" style=\"display:inline-block;padding:12px 18px;background:#11131a;color:#fff;text-decoration:none;border-radius:6px;\">Sign in</a>"
            "</p>"
        )
    body = (
        f"<p>Hello {html_lib.escape(name)},</p>"
        f"<p>You have been registered for <strong>{html_lib.escape(event_name)}</strong>. Use these credentials to sign in:</p>"
        f"<p>Username: <strong>{html_lib.escape(username)}</strong><br>Password: <strong>{html_lib.escape(password)}</strong></p>"
        f"{link_html}"
        "<p>Please keep them private.</p>"
    )
    return subject, _wrap_html("Your workshop login", body), text


def build_mentor_assigned_email(mentor_name: str, event_name: str, attendee_names: List[str]) -> Tuple[str, str, str]:
    subject = f"New mentees for {event_name}"
    listing = "\n".join(f"- {name}" for name in attendee_names)
    text = (
        f"Hello {mentor_name},\n\n"
        f"You have been assigned {len(attendee_names)} attendee(s) for {event_name}:\n"
        f"{listing}\n\n"
        f"{SIGNATURE_TEXT}"
    )
    items = "".join(f"<li>{html_lib.escape(name)}</li>" for name in attendee_names)
    body = (
        f"<p>Hello {html_lib.escape(mentor_name)},</p>"
        f"<p>You have been assigned {len(attendee_names)} attendee(s) for <strong>{html_lib.escape(event_name)}</strong>:</p>"
        f"<ul>{items}</ul>"
    )
    return subject, _wrap_html("New mentee assignment", body), text


def build_attendee_mentor_email(attendee_name: str, event_name: str, mentor_name: str, mentor_email: str) -> Tuple[str, str, str]:
    subject = f"Your mentor for {event_name}"
    text = (
        f"Hello {attendee_name},\n\n"
        f"{mentor_name} ({mentor_email}) will be your mentor for {event_name}.\n\n"
        f"{SIGNATURE_TEXT}"
    )
    body = (
        f"<p>Hello {html_lib.escape(attendee_name)},</p>"
        f"<p><strong>{html_lib.escape(mentor_name)}</strong> ({html_lib.escape(mentor_email)}) will be your mentor for "
        f"<strong>{html_lib.escape(event_name)}</strong>.</p>"
    )
    return subject, _wrap_html("Your mentor", body), text
