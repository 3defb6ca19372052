from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models import Attendee, FeedbackQuestion, FeedbackResponse, QuestionType, User
from routers.shared import get_event_or_404
from schemas import (
    FeedbackQuestionCreate,
    FeedbackQuestionResponse,
    FeedbackQuestionUpdate,
    FeedbackResponseCreate,
    FeedbackResponseOut,
)
from security import require_admin, require_user
from utils import get_or_404, log_admin_action

router = APIRouter()

RATING_MIN = 1
RATING_MAX = 5


def _validate_response_value(question: FeedbackQuestion, value: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Response must not be blank")
    if question.type != QuestionType.RATING:
        return cleaned
    try:
        rating = int(cleaned)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rating response must be a whole number")
    if not RATING_MIN <= rating <= RATING_MAX:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Rating response must be between {RATING_MIN} and {RATING_MAX}",
        )
    return str(rating)


@router.get("/events/{event_id}/feedback-questions", response_model=List[FeedbackQuestionResponse])
def list_feedback_questions(event_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    get_event_or_404(db, event_id)
    return (
        db.query(FeedbackQuestion)
        .filter(FeedbackQuestion.event_id == event_id)
        .order_by(FeedbackQuestion.order, FeedbackQuestion.id)
        .all()
    )


@router.post("/events/{event_id}/feedback-questions", response_model=FeedbackQuestionResponse, status_code=status.HTTP_201_CREATED)
def create_feedback_question(
    event_id: int,
    payload: FeedbackQuestionCreate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    get_event_or_404(db, event_id)
    order = payload.order
    if order is None:
        current_max = (
            db.query(func.max(FeedbackQuestion.order))
            .filter(FeedbackQuestion.event_id == event_id)
            .scalar()
        )
        order = 0 if current_max is None else current_max + 1

    question = FeedbackQuestion(event_id=event_id, question=payload.question, type=payload.type, order=order)
    db.add(question)
    db.commit()
    db.refresh(question)
    log_admin_action(db, user, "create_feedback_question", method="POST", path=request.url.path, meta={"question_id": question.id})
    return question


@router.patch("/feedback-questions/{question_id}", response_model=FeedbackQuestionResponse)
def update_feedback_question(
    question_id: int,
    payload: FeedbackQuestionUpdate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    question = get_or_404(db, FeedbackQuestion, question_id, "Feedback question")
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(question, key, value.strip() if key == "question" else value)
    db.commit()
    db.refresh(question)
    log_admin_action(db, user, "update_feedback_question", method="PATCH", path=request.url.path, meta={"question_id": question.id})
    return question


@router.delete("/feedback-questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_feedback_question(
    question_id: int,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    question = get_or_404(db, FeedbackQuestion, question_id, "Feedback question")
    db.query(FeedbackResponse).filter(FeedbackResponse.question_id == question.id).delete(synchronize_session=False)
    db.delete(question)
    db.commit()
    log_admin_action(db, admin, "delete_feedback_question", method="DELETE", path=request.url.path, meta={"question_id": question_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/feedback-questions/{question_id}/responses", response_model=FeedbackResponseOut, status_code=status.HTTP_201_CREATED)
def create_feedback_response(
    question_id: int,
    payload: FeedbackResponseCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    question = get_or_404(db, FeedbackQuestion, question_id, "Feedback question")
    attendee = get_or_404(db, Attendee, payload.attendee_id, "Attendee")
    if attendee.event_id != question.event_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Attendee does not belong to this event")

    row = FeedbackResponse(
        question_id=question.id,
        attendee_id=attendee.id,
        response=_validate_response_value(question, payload.response),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("/feedback-questions/{question_id}/responses", response_model=List[FeedbackResponseOut])
def list_question_responses(question_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    question = get_or_404(db, FeedbackQuestion, question_id, "Feedback question")
    return (
        db.query(FeedbackResponse)
        .filter(FeedbackResponse.question_id == question.id)
        .order_by(FeedbackResponse.id)
        .all()
    )


@router.get("/attendees/{attendee_id}/feedback-responses", response_model=List[FeedbackResponseOut])
def list_attendee_responses(attendee_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    attendee = get_or_404(db, Attendee, attendee_id, "Attendee")
    return (
        db.query(FeedbackResponse)
        .filter(FeedbackResponse.attendee_id == attendee.id)
        .order_by(FeedbackResponse.id)
        .all()
    )
