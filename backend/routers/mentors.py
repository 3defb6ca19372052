from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from email_workflows import send_mentor_assignment_notifications
from mentor_assignment import assign_mentor, release_mentor, unassign_mentors
from models import Attendee, Mentor, User
from routers.shared import build_attendee_response, build_mentor_response, get_event_or_404, mentor_in_event_or_404
from schemas import AttendeeResponse, MentorAssignRequest, MentorCreate, MentorResponse, MentorUnassignRequest, MentorUpdate
from security import require_admin, require_user
from utils import get_or_404, log_admin_action

router = APIRouter()


@router.get("/events/{event_id}/mentors", response_model=List[MentorResponse])
def list_mentors(event_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    get_event_or_404(db, event_id)
    mentors = db.query(Mentor).filter(Mentor.event_id == event_id).order_by(Mentor.name, Mentor.id).all()
    return [build_mentor_response(m) for m in mentors]


@router.post("/events/{event_id}/mentors", response_model=MentorResponse, status_code=status.HTTP_201_CREATED)
def create_mentor(
    event_id: int,
    payload: MentorCreate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    get_event_or_404(db, event_id)
    mentor = Mentor(
        event_id=event_id,
        name=payload.name,
        email=str(payload.email),
        expertise=payload.expertise,
        bio=payload.bio,
        assigned_count=0,
    )
    db.add(mentor)
    db.commit()
    db.refresh(mentor)
    log_admin_action(db, user, "create_mentor", method="POST", path=request.url.path, meta={"mentor_id": mentor.id})
    return build_mentor_response(mentor)


@router.get("/mentors/{mentor_id}", response_model=MentorResponse)
def get_mentor(mentor_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return build_mentor_response(get_or_404(db, Mentor, mentor_id, "Mentor"))


@router.patch("/mentors/{mentor_id}", response_model=MentorResponse)
def update_mentor(
    mentor_id: int,
    payload: MentorUpdate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    mentor = get_or_404(db, Mentor, mentor_id, "Mentor")
    updates = payload.model_dump(exclude_unset=True)
    for key, value in updates.items():
        if value is None and key != "bio":
            continue
        setattr(mentor, key, str(value) if key == "email" else value)
    db.commit()
    db.refresh(mentor)
    log_admin_action(db, user, "update_mentor", method="PATCH", path=request.url.path, meta={"mentor_id": mentor.id})
    return build_mentor_response(mentor)


@router.delete("/mentors/{mentor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_mentor(
    mentor_id: int,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    mentor = get_or_404(db, Mentor, mentor_id, "Mentor")
    released = release_mentor(db, mentor)
    db.delete(mentor)
    db.commit()
    log_admin_action(db, admin, "delete_mentor", method="DELETE", path=request.url.path, meta={"mentor_id": mentor_id, "released": released})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/mentors/{mentor_id}/attendees", response_model=List[AttendeeResponse])
def list_mentor_attendees(mentor_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    mentor = get_or_404(db, Mentor, mentor_id, "Mentor")
    attendees = db.query(Attendee).filter(Attendee.mentor_id == mentor.id).order_by(Attendee.name, Attendee.id).all()
    return [build_attendee_response(a) for a in attendees]


@router.post("/events/{event_id}/assign-mentors", response_model=List[AttendeeResponse])
def assign_mentors(
    event_id: int,
    payload: MentorAssignRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    event = get_event_or_404(db, event_id)
    mentor = mentor_in_event_or_404(db, payload.mentor_id, event_id)
    attendees = assign_mentor(db, mentor, payload.attendee_ids)

    if payload.send_notification and attendees:
        background_tasks.add_task(
            send_mentor_assignment_notifications,
            event.name,
            {"name": mentor.name, "email": mentor.email},
            [{"name": a.name, "email": a.email} for a in attendees],
        )

    response = [build_attendee_response(a) for a in attendees]
    log_admin_action(
        db, user, "assign_mentor", method="POST", path=request.url.path,
        meta={"mentor_id": mentor.id, "attendee_ids": [a.id for a in response]},
    )
    return response


@router.post("/events/{event_id}/unassign-mentors", response_model=List[AttendeeResponse])
def unassign_mentor_links(
    event_id: int,
    payload: MentorUnassignRequest,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    get_event_or_404(db, event_id)
    attendees = unassign_mentors(db, event_id, payload.attendee_ids)
    response = [build_attendee_response(a) for a in attendees]
    log_admin_action(
        db, user, "unassign_mentor", method="POST", path=request.url.path,
        meta={"attendee_ids": [a.id for a in response]},
    )
    return response
