from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from models import Attendee, Task, TaskProgress, TaskStatus, User
from progress_rollup import roll_up_attendee, stamp_progress_times
from routers.shared import get_event_or_404
from schemas import (
    TaskCreate,
    TaskProgressCreate,
    TaskProgressResponse,
    TaskProgressUpdate,
    TaskResponse,
    TaskUpdate,
)
from security import require_admin, require_user
from utils import get_or_404, log_admin_action

router = APIRouter()


@router.get("/events/{event_id}/tasks", response_model=List[TaskResponse])
def list_tasks(
    event_id: int,
    include_inactive: bool = False,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    get_event_or_404(db, event_id)
    query = db.query(Task).filter(Task.event_id == event_id)
    if not include_inactive:
        query = query.filter(Task.status == TaskStatus.ACTIVE)
    return query.order_by(Task.due_date, Task.id).all()


@router.post("/events/{event_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    event_id: int,
    payload: TaskCreate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    get_event_or_404(db, event_id)
    task = Task(event_id=event_id, **payload.model_dump())
    db.add(task)
    db.commit()
    db.refresh(task)
    log_admin_action(db, user, "create_task", method="POST", path=request.url.path, meta={"task_id": task.id})
    return task


@router.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return get_or_404(db, Task, task_id, "Task")


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    payload: TaskUpdate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    task = get_or_404(db, Task, task_id, "Task")
    updates = payload.model_dump(exclude_unset=True)
    for key in ("name", "status"):
        if key in updates and updates[key] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{key} cannot be null")
    for key, value in updates.items():
        setattr(task, key, value)
    db.commit()
    db.refresh(task)
    log_admin_action(db, user, "update_task", method="PATCH", path=request.url.path, meta={"task_id": task.id})
    return task


@router.delete("/tasks/{task_id}", response_model=TaskResponse)
def deactivate_task(
    task_id: int,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    task = get_or_404(db, Task, task_id, "Task")
    task.status = TaskStatus.INACTIVE
    db.commit()
    db.refresh(task)
    log_admin_action(db, admin, "deactivate_task", method="DELETE", path=request.url.path, meta={"task_id": task.id})
    return task


@router.get("/tasks/{task_id}/progress", response_model=List[TaskProgressResponse])
def list_task_progress(task_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    task = get_or_404(db, Task, task_id, "Task")
    return db.query(TaskProgress).filter(TaskProgress.task_id == task.id).order_by(TaskProgress.id).all()


@router.post("/tasks/{task_id}/progress", response_model=TaskProgressResponse, status_code=status.HTTP_201_CREATED)
def create_task_progress(
    task_id: int,
    payload: TaskProgressCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    task = get_or_404(db, Task, task_id, "Task")
    attendee = get_or_404(db, Attendee, payload.attendee_id, "Attendee")
    if attendee.event_id != task.event_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Attendee does not belong to this event")

    existing = db.query(TaskProgress).filter(
        TaskProgress.task_id == task.id,
        TaskProgress.attendee_id == attendee.id
    ).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Progress already recorded for this attendee")

    progress = TaskProgress(task_id=task.id, **payload.model_dump())
    stamp_progress_times(
        progress,
        explicit_start=payload.start_time is not None,
        explicit_end=payload.end_time is not None,
    )
    db.add(progress)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Progress already recorded for this attendee")
    roll_up_attendee(db, attendee)
    db.commit()
    db.refresh(progress)
    return progress


@router.patch("/task-progress/{progress_id}", response_model=TaskProgressResponse)
def update_task_progress(
    progress_id: int,
    payload: TaskProgressUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    progress = get_or_404(db, TaskProgress, progress_id, "Task progress")
    updates = payload.model_dump(exclude_unset=True)
    if "status" in updates and updates["status"] is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="status cannot be null")
    for key, value in updates.items():
        setattr(progress, key, value)
    stamp_progress_times(
        progress,
        explicit_start="start_time" in updates,
        explicit_end="end_time" in updates,
    )

    attendee = get_or_404(db, Attendee, progress.attendee_id, "Attendee")
    db.flush()
    roll_up_attendee(db, attendee)
    db.commit()
    db.refresh(progress)
    return progress


@router.get("/attendees/{attendee_id}/progress", response_model=List[TaskProgressResponse])
def list_attendee_progress(attendee_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    attendee = get_or_404(db, Attendee, attendee_id, "Attendee")
    return db.query(TaskProgress).filter(TaskProgress.attendee_id == attendee.id).order_by(TaskProgress.id).all()
