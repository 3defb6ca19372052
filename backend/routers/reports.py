from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session, joinedload

from database import get_db
from models import AdminLog, Attendee, AttendeeStatus, FeedbackQuestion, FeedbackResponse, QuestionType, User
from routers.shared import get_event_or_404
from schemas import AdminLogResponse, FeedbackSummary, ReportRow
from security import require_admin, require_user
from utils import log_admin_action, table_download

router = APIRouter()

NOT_ASSIGNED = "Not Assigned"
MISSING_VALUE = "N/A"
EXPORT_HEADERS = [
    "Name",
    "Email",
    "Company",
    "Status",
    "Registration Date",
    "Mentor",
    "Score",
    "Completion Time",
]


def _report_rows(db: Session, event_id: int, status_filter: Optional[AttendeeStatus]) -> List[dict]:
    query = (
        db.query(Attendee)
        .options(joinedload(Attendee.mentor))
        .filter(Attendee.event_id == event_id)
    )
    if status_filter:
        query = query.filter(Attendee.status == status_filter)
    rows = []
    for attendee in query.order_by(Attendee.name, Attendee.id).all():
        rows.append({
            "name": attendee.name,
            "email": attendee.email,
            "company": attendee.company,
            "status": attendee.status,
            "registration_date": attendee.registration_date,
            "mentor": attendee.mentor.name if attendee.mentor else NOT_ASSIGNED,
            "score": attendee.score,
            "completion_time": attendee.completion_time,
        })
    return rows


def _export_cell(value):
    return MISSING_VALUE if value in (None, "") else value


@router.get("/events/{event_id}/reports", response_model=List[ReportRow])
def event_report(
    event_id: int,
    status_filter: Optional[AttendeeStatus] = Query(None, alias="status"),
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    get_event_or_404(db, event_id)
    return _report_rows(db, event_id, status_filter)


@router.get("/events/{event_id}/reports/export")
def export_event_report(
    event_id: int,
    request: Request,
    format: str = "csv",
    status_filter: Optional[AttendeeStatus] = Query(None, alias="status"),
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    event = get_event_or_404(db, event_id)
    rows = []
    for row in _report_rows(db, event_id, status_filter):
        registered = row["registration_date"]
        rows.append([
            row["name"],
            row["email"],
            row["company"] or "",
            row["status"].value,
            registered.strftime("%Y-%m-%d %H:%M") if registered else "",
            row["mentor"],
            _export_cell(row["score"]),
            _export_cell(row["completion_time"]),
        ])
    response = table_download(EXPORT_HEADERS, rows, f"event_{event.id}_report", format=format, title="Report")
    log_admin_action(
        db, user, "export_report", method="GET", path=request.url.path,
        meta={"event_id": event.id, "format": format, "rows": len(rows)},
    )
    return response


@router.get("/events/{event_id}/reports/feedback", response_model=List[FeedbackSummary])
def feedback_report(event_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    get_event_or_404(db, event_id)
    questions = (
        db.query(FeedbackQuestion)
        .filter(FeedbackQuestion.event_id == event_id)
        .order_by(FeedbackQuestion.order, FeedbackQuestion.id)
        .all()
    )
    responses_by_question = {q.id: [] for q in questions}
    if questions:
        for row in db.query(FeedbackResponse).filter(FeedbackResponse.question_id.in_(responses_by_question)).all():
            responses_by_question[row.question_id].append(row.response)

    summaries = []
    for question in questions:
        values = responses_by_question[question.id]
        average = None
        if question.type == QuestionType.RATING:
            ratings = [int(v) for v in values if v.strip().isdigit()]
            if ratings:
                average = round(sum(ratings) / len(ratings), 2)
        summaries.append({
            "question_id": question.id,
            "question": question.question,
            "type": question.type,
            "response_count": len(values),
            "average_rating": average,
        })
    return summaries


@router.get("/admin/logs", response_model=List[AdminLogResponse])
def list_admin_logs(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return (
        db.query(AdminLog)
        .order_by(AdminLog.created_at.desc(), AdminLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
