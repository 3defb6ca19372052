from pathlib import Path
from datetime import datetime, timedelta, timezone
import sys

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import email_workflows
from dashboard_stats import _window_trend, percent_change
from email_templates import build_credentials_email, build_mentor_assigned_email
from emailer import load_smtp_config, send_email
from identifier_rules import initials_for
from time_utils import ensure_timezone, format_duration, parse_duration


def test_duration_helpers():
    assert format_duration(timedelta(hours=2, minutes=5, seconds=59)) == "2:05"
    assert format_duration(timedelta(seconds=-30)) == "0:00"
    assert parse_duration("2:05") == 125
    assert parse_duration("bad") is None
    assert parse_duration("1:75") is None
    assert parse_duration(None) is None


def test_ensure_timezone_attaches_zone_to_naive_values():
    aware = ensure_timezone(datetime(2026, 1, 1, 12, 0))
    assert aware.tzinfo is not None
    assert ensure_timezone(None) is None


def test_percent_change():
    assert percent_change(0, 0) == 0.0
    assert percent_change(3, 0) == 100.0
    assert percent_change(3, 2) == 50.0
    assert percent_change(1, 4) == -75.0


def test_window_trend_counts_two_weeks():
    now = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
    stamps = [now - timedelta(days=1), now - timedelta(days=2), now - timedelta(days=9), None]
    assert _window_trend(stamps, now) == 100.0


def test_initials_for():
    assert initials_for("ada  king lovelace") == "AKL"
    assert initials_for("") == ""


def test_credentials_email_escapes_html():
    subject, html, text = build_credentials_email(
        name="<Ann>", event_name="Data & AI", username="ann@example.com", password="abc123",
        login_url="https://console.example.com/login",
    )
    assert subject == "Your login for Data & AI"
    assert "&lt;Ann&gt;" in html
    assert "Data &amp; AI" in html
    assert "Password: abc123" in text
    assert "https://console.example.com/login" in text


def test_mentor_email_lists_attendees():
    _, html, text = build_mentor_assigned_email("Ada", "Workshop", ["One", "Two"])
    assert "- One\n- Two" in text
    assert "<li>Two</li>" in html


def test_mail_is_skipped_without_smtp(monkeypatch):
    for key in ("SMTP_HOST", "SMTP_PORT", "SMTP_FROM"):
        monkeypatch.delenv(key, raising=False)
    assert load_smtp_config() is None
    assert send_email("a@example.com", "Hi", "<p>Hi</p>", "Hi") is False


def test_smtp_config_from_env(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_PORT", "2525")
    monkeypatch.setenv("SMTP_FROM", "console@example.com")
    monkeypatch.setenv("SMTP_TLS", "false")
    config = load_smtp_config()
    assert config.port == 2525
    assert config.use_tls is False
    assert config.use_ssl is False


def test_invitations_count_only_delivered_mail(monkeypatch):
    delivered = []

    def fake_send(to_email, subject, html, text):
        if to_email.startswith("fail"):
            raise OSError("connection refused")
        delivered.append(to_email)
        return True

    monkeypatch.setattr(email_workflows, "send_email", fake_send)
    sent = email_workflows.send_import_invitations("Workshop", [
        {"name": "Ann", "email": "ann@example.com", "username": "ann@example.com", "password": "x1"},
        {"name": "Bo", "email": "fail@example.com", "username": "fail@example.com", "password": "x2"},
    ])
    assert sent == 1
    assert delivered == ["ann@example.com"]


def test_mentor_notifications_reach_mentor_and_attendees(monkeypatch):
    delivered = []
    monkeypatch.setattr(
        email_workflows, "send_email",
        lambda to_email, subject, html, text: delivered.append(to_email) or True,
    )
    sent = email_workflows.send_mentor_assignment_notifications(
        "Workshop",
        {"name": "Ada", "email": "ada@example.com"},
        [{"name": "One", "email": "one@example.com"}],
    )
    assert sent == 2
    assert delivered == ["ada@example.com", "one@example.com"]
