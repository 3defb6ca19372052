import logging
from collections import Counter
from typing import Iterable, List, Optional

from sqlalchemy import inspect, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from models import Attendee, Mentor

logger = logging.getLogger(__name__)


def _bump_counters(db: Session, deltas: Counter) -> None:
    for mentor_id, delta in deltas.items():
        if not mentor_id or not delta:
            continue
        db.execute(
            update(Mentor)
            .where(Mentor.id == mentor_id)
            .values(assigned_count=Mentor.assigned_count + delta)
        )


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def _locked_event_attendees(db: Session, event_id: int, attendee_ids: List[int]) -> Query:
    """Attendees of the event, row-locked so concurrent reassignments read the current mentor."""
    return (
        db.query(Attendee)
        .filter(Attendee.event_id == event_id, Attendee.id.in_(attendee_ids))
        .order_by(Attendee.id)
        .with_for_update()
    )


def _event_attendees(db: Session, event_id: int, attendee_ids: Iterable[int]) -> List[Attendee]:
    unique_ids = list(dict.fromkeys(attendee_ids))
    if not unique_ids:
        return []
    return _locked_event_attendees(db, event_id, unique_ids).all()


def assign_mentor(db: Session, mentor: Mentor, attendee_ids: Iterable[int]) -> List[Attendee]:
    """Link attendees of the mentor's event to ``mentor`` and move counters, in one commit.

    Ids that do not exist or belong to another event are ignored. Attendees
    already linked to this mentor are returned but not counted twice.
    """
    attendees = _event_attendees(db, mentor.event_id, attendee_ids)
    deltas: Counter = Counter()
    for attendee in attendees:
        if attendee.mentor_id == mentor.id:
            continue
        if attendee.mentor_id:
            deltas[attendee.mentor_id] -= 1
        attendee.mentor_id = mentor.id
        deltas[mentor.id] += 1

    db.flush()
    _bump_counters(db, deltas)
    _commit(db)
    for attendee in attendees:
        db.refresh(attendee)
    db.refresh(mentor)
    logger.info("Assigned mentor %s to %d attendees", mentor.id, deltas[mentor.id])
    return attendees


def unassign_mentors(db: Session, event_id: int, attendee_ids: Iterable[int]) -> List[Attendee]:
    attendees = _event_attendees(db, event_id, attendee_ids)
    deltas: Counter = Counter()
    for attendee in attendees:
        if attendee.mentor_id:
            deltas[attendee.mentor_id] -= 1
            attendee.mentor_id = None

    db.flush()
    _bump_counters(db, deltas)
    _commit(db)
    for attendee in attendees:
        db.refresh(attendee)
    return attendees


def move_attendee_mentor(db: Session, attendee: Attendee, new_mentor_id: Optional[int]) -> None:
    """Stage a mentor change on one attendee; the caller commits."""
    if inspect(attendee).persistent:
        db.refresh(attendee, with_for_update=True)
    old_mentor_id = attendee.mentor_id
    if old_mentor_id == new_mentor_id:
        return
    deltas: Counter = Counter()
    if old_mentor_id:
        deltas[old_mentor_id] -= 1
    if new_mentor_id:
        deltas[new_mentor_id] += 1
    attendee.mentor_id = new_mentor_id
    db.flush()
    _bump_counters(db, deltas)


def release_mentor(db: Session, mentor: Mentor) -> int:
    """Detach every attendee from ``mentor`` before it is deleted; the caller commits."""
    released = (
        db.query(Attendee)
        .filter(Attendee.mentor_id == mentor.id)
        .update({Attendee.mentor_id: None}, synchronize_session="fetch")
    )
    return released
