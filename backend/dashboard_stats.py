from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from identifier_rules import initials_for
from models import Attendee, AttendeeStatus, Mentor, ProgressStatus, TaskProgress
from time_utils import ensure_timezone, now_tz, parse_duration

TREND_WINDOW_DAYS = 7


def percent_change(current: int, previous: int) -> float:
    if previous == 0:
        return 100.0 if current else 0.0
    return round((current - previous) / previous * 100, 1)


def _window_trend(stamps: Iterable[Optional[datetime]], now: datetime) -> float:
    window = timedelta(days=TREND_WINDOW_DAYS)
    current = previous = 0
    for stamp in stamps:
        if stamp is None:
            continue
        stamp = ensure_timezone(stamp)
        if now - window < stamp <= now:
            current += 1
        elif now - 2 * window < stamp <= now - window:
            previous += 1
    return percent_change(current, previous)


def compute_dashboard_stats(db: Session, event_id: int, now: Optional[datetime] = None) -> Dict:
    now = ensure_timezone(now) if now else now_tz()
    attendees = db.query(Attendee).filter(Attendee.event_id == event_id).all()
    progress_rows = (
        db.query(TaskProgress)
        .join(Attendee, Attendee.id == TaskProgress.attendee_id)
        .filter(Attendee.event_id == event_id)
        .all()
    )

    distribution = {s.value: 0 for s in AttendeeStatus}
    for attendee in attendees:
        distribution[attendee.status.value] += 1

    total = len(attendees)
    completed = distribution[AttendeeStatus.COMPLETED.value]
    started = distribution[AttendeeStatus.IN_PROGRESS.value] + completed
    assigned = sum(1 for attendee in attendees if attendee.mentor_id)

    return {
        "total_applications": total,
        "started_count": started,
        "completed_count": completed,
        "completion_rate": round(completed / total * 100, 1) if total else 0.0,
        "status_distribution": distribution,
        "mentor_count": db.query(Mentor).filter(Mentor.event_id == event_id).count(),
        "assigned_count": assigned,
        "unassigned_count": total - assigned,
        "application_trend": _window_trend((a.registration_date for a in attendees), now),
        "started_trend": _window_trend(
            (p.start_time for p in progress_rows if p.status != ProgressStatus.NOT_STARTED), now
        ),
        "completed_trend": _window_trend(
            (p.end_time for p in progress_rows if p.status == ProgressStatus.COMPLETED), now
        ),
    }


def _performer_sort_key(attendee: Attendee):
    minutes = parse_duration(attendee.completion_time)
    return (
        -(attendee.score or 0),
        minutes is None,
        minutes if minutes is not None else 0,
        attendee.name.lower(),
    )


def top_performers(db: Session, event_id: int, limit: int = 5) -> List[Dict]:
    attendees = db.query(Attendee).filter(Attendee.event_id == event_id).all()
    mentor_names = {
        mentor.id: mentor.name
        for mentor in db.query(Mentor).filter(Mentor.event_id == event_id).all()
    }
    ranked = sorted(attendees, key=_performer_sort_key)[:limit]
    return [
        {
            "rank": idx,
            "attendee_id": attendee.id,
            "name": attendee.name,
            "initials": initials_for(attendee.name),
            "company": attendee.company,
            "mentor": mentor_names.get(attendee.mentor_id),
            "score": attendee.score or 0,
            "completion_time": attendee.completion_time,
        }
        for idx, attendee in enumerate(ranked, start=1)
    ]
