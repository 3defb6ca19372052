from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from dashboard_stats import compute_dashboard_stats, top_performers
from database import get_db
from models import Event, User
from routers.shared import get_event_or_404
from schemas import DashboardStats, EventCreate, EventResponse, EventUpdate, TopPerformer
from security import require_user
from time_utils import ensure_timezone
from utils import log_admin_action

router = APIRouter()


@router.get("/events", response_model=List[EventResponse])
def list_events(user: User = Depends(require_user), db: Session = Depends(get_db)):
    return db.query(Event).order_by(Event.start_date.desc(), Event.id.desc()).all()


@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(event_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return get_event_or_404(db, event_id)


@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    event = Event(**payload.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    log_admin_action(db, user, "create_event", method="POST", path=request.url.path, meta={"event_id": event.id})
    return event


@router.patch("/events/{event_id}", response_model=EventResponse)
def update_event(
    event_id: int,
    payload: EventUpdate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    event = get_event_or_404(db, event_id)
    updates = payload.model_dump(exclude_unset=True)
    for key in ("name", "start_date", "end_date", "status"):
        if key in updates and updates[key] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{key} cannot be null")

    start_date = updates.get("start_date", event.start_date)
    end_date = updates.get("end_date", event.end_date)
    if ensure_timezone(end_date) < ensure_timezone(start_date):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not be before start_date")

    for key, value in updates.items():
        setattr(event, key, value)
    db.commit()
    db.refresh(event)
    log_admin_action(db, user, "update_event", method="PATCH", path=request.url.path, meta={"event_id": event.id, "fields": sorted(updates)})
    return event


@router.get("/events/{event_id}/stats", response_model=DashboardStats)
def get_event_stats(event_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    get_event_or_404(db, event_id)
    return compute_dashboard_stats(db, event_id)


@router.get("/events/{event_id}/top-performers", response_model=List[TopPerformer])
def get_top_performers(
    event_id: int,
    limit: int = Query(5, ge=1, le=50),
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    get_event_or_404(db, event_id)
    return top_performers(db, event_id, limit=limit)
