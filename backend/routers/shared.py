from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from identifier_rules import initials_for
from models import Attendee, Event, Mentor
from schemas import AttendeeResponse, MentorResponse
from utils import get_or_404


def get_event_or_404(db: Session, event_id: int) -> Event:
    return get_or_404(db, Event, event_id, "Event")


def build_attendee_response(attendee: Attendee, generated_password: Optional[str] = None) -> AttendeeResponse:
    return AttendeeResponse(
        id=attendee.id,
        event_id=attendee.event_id,
        name=attendee.name,
        initials=initials_for(attendee.name),
        email=attendee.email,
        company=attendee.company,
        position=attendee.position,
        phone=attendee.phone,
        status=attendee.status,
        registration_date=attendee.registration_date,
        username=attendee.username,
        has_credentials=bool(attendee.hashed_password),
        mentor_id=attendee.mentor_id,
        score=attendee.score or 0,
        completion_time=attendee.completion_time,
        generated_password=generated_password,
    )


def build_mentor_response(mentor: Mentor) -> MentorResponse:
    return MentorResponse(
        id=mentor.id,
        event_id=mentor.event_id,
        name=mentor.name,
        initials=initials_for(mentor.name),
        email=mentor.email,
        expertise=mentor.expertise,
        bio=mentor.bio,
        assigned_count=mentor.assigned_count or 0,
    )


def mentor_in_event_or_404(db: Session, mentor_id: int, event_id: int) -> Mentor:
    mentor = get_or_404(db, Mentor, mentor_id, "Mentor")
    if mentor.event_id != event_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mentor not found")
    return mentor
