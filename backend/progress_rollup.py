from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from models import Attendee, AttendeeStatus, ProgressStatus, Task, TaskProgress, TaskStatus
from time_utils import ensure_timezone, format_duration, now_tz


def stamp_progress_times(progress: TaskProgress, explicit_start: bool = False, explicit_end: bool = False) -> None:
    """Fill timestamps implied by the status unless the caller supplied them."""
    if progress.status in (ProgressStatus.IN_PROGRESS, ProgressStatus.COMPLETED):
        if progress.start_time is None and not explicit_start:
            progress.start_time = now_tz()
    if progress.status == ProgressStatus.COMPLETED:
        if progress.end_time is None and not explicit_end:
            progress.end_time = now_tz()


def _completed_duration(rows) -> Optional[timedelta]:
    total = timedelta()
    counted = False
    for row in rows:
        if row.status != ProgressStatus.COMPLETED or not row.start_time or not row.end_time:
            continue
        start = ensure_timezone(row.start_time)
        end = ensure_timezone(row.end_time)
        if end > start:
            total += end - start
        counted = True
    return total if counted else None


def roll_up_attendee(db: Session, attendee: Attendee) -> Attendee:
    """Derive the attendee status and completion time from task progress; the caller commits."""
    active_task_ids = {
        task_id for (task_id,) in db.query(Task.id).filter(
            Task.event_id == attendee.event_id,
            Task.status == TaskStatus.ACTIVE,
        ).all()
    }
    rows = db.query(TaskProgress).filter(TaskProgress.attendee_id == attendee.id).all()

    completed_ids = {row.task_id for row in rows if row.status == ProgressStatus.COMPLETED}
    started = any(row.status != ProgressStatus.NOT_STARTED for row in rows)

    if active_task_ids and active_task_ids <= completed_ids:
        attendee.status = AttendeeStatus.COMPLETED
        duration = _completed_duration(rows)
        if duration is not None:
            attendee.completion_time = format_duration(duration)
    elif started:
        if attendee.status == AttendeeStatus.COMPLETED:
            attendee.completion_time = None
        attendee.status = AttendeeStatus.IN_PROGRESS
    return attendee
