import io
import logging
import os
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy import or_
from sqlalchemy.orm import Session

from attendee_import import ImportOutcome, build_import_template, import_attendees, parse_upload
from auth import generate_password, get_password_hash
from database import get_db
from email_workflows import send_import_invitations
from mentor_assignment import move_attendee_mentor
from models import Attendee, AttendeeStatus, Event, FeedbackResponse, TaskProgress, User
from routers.shared import build_attendee_response, get_event_or_404, mentor_in_event_or_404
from schemas import AttendeeCreate, AttendeeResponse, AttendeeUpdate, ImportResult, ManualImportRequest
from security import require_admin, require_user
from utils import XLSX_MEDIA_TYPE, get_or_404, log_admin_action

router = APIRouter()
logger = logging.getLogger(__name__)

IMPORT_MAX_BYTES = int(os.environ.get("IMPORT_MAX_BYTES", 5 * 1024 * 1024))


@router.get("/events/{event_id}/attendees", response_model=List[AttendeeResponse])
def list_attendees(
    event_id: int,
    status_filter: Optional[AttendeeStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    get_event_or_404(db, event_id)
    query = db.query(Attendee).filter(Attendee.event_id == event_id)
    if status_filter:
        query = query.filter(Attendee.status == status_filter)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(Attendee.name.ilike(pattern), Attendee.email.ilike(pattern), Attendee.company.ilike(pattern))
        )
    return [build_attendee_response(a) for a in query.order_by(Attendee.name, Attendee.id).all()]


@router.post("/events/{event_id}/attendees", response_model=AttendeeResponse, status_code=status.HTTP_201_CREATED)
def create_attendee(
    event_id: int,
    payload: AttendeeCreate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    get_event_or_404(db, event_id)
    attendee = Attendee(
        event_id=event_id,
        name=payload.name,
        email=str(payload.email),
        company=payload.company,
        position=payload.position,
        phone=payload.phone,
        status=payload.status,
        username=payload.username,
    )

    generated_password = None
    if payload.generate_credentials:
        generated_password = generate_password()
        attendee.username = str(payload.email)
        attendee.hashed_password = get_password_hash(generated_password)
    elif payload.password:
        attendee.hashed_password = get_password_hash(payload.password)
        attendee.username = attendee.username or str(payload.email)

    db.add(attendee)
    if payload.mentor_id is not None:
        mentor_in_event_or_404(db, payload.mentor_id, event_id)
        move_attendee_mentor(db, attendee, payload.mentor_id)
    db.commit()
    db.refresh(attendee)
    log_admin_action(db, user, "create_attendee", method="POST", path=request.url.path, meta={"attendee_id": attendee.id})
    return build_attendee_response(attendee, generated_password=generated_password)


@router.get("/attendees/{attendee_id}", response_model=AttendeeResponse)
def get_attendee(attendee_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return build_attendee_response(get_or_404(db, Attendee, attendee_id, "Attendee"))


@router.patch("/attendees/{attendee_id}", response_model=AttendeeResponse)
def update_attendee(
    attendee_id: int,
    payload: AttendeeUpdate,
    request: Request,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    attendee = get_or_404(db, Attendee, attendee_id, "Attendee")
    updates = payload.model_dump(exclude_unset=True)
    for key in ("name", "email", "status", "score"):
        if key in updates and updates[key] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{key} cannot be null")

    if "mentor_id" in updates:
        new_mentor_id = updates.pop("mentor_id")
        if new_mentor_id is not None:
            mentor_in_event_or_404(db, new_mentor_id, attendee.event_id)
        move_attendee_mentor(db, attendee, new_mentor_id)

    password = updates.pop("password", None)
    if password:
        attendee.hashed_password = get_password_hash(password)
        attendee.username = attendee.username or attendee.email
    if "email" in updates:
        updates["email"] = str(updates["email"])

    for key, value in updates.items():
        setattr(attendee, key, value)
    db.commit()
    db.refresh(attendee)
    log_admin_action(db, user, "update_attendee", method="PATCH", path=request.url.path, meta={"attendee_id": attendee.id})
    return build_attendee_response(attendee)


@router.delete("/attendees/{attendee_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_attendee(
    attendee_id: int,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    attendee = get_or_404(db, Attendee, attendee_id, "Attendee")
    move_attendee_mentor(db, attendee, None)
    db.query(TaskProgress).filter(TaskProgress.attendee_id == attendee.id).delete(synchronize_session=False)
    db.query(FeedbackResponse).filter(FeedbackResponse.attendee_id == attendee.id).delete(synchronize_session=False)
    db.delete(attendee)
    db.commit()
    log_admin_action(db, admin, "delete_attendee", method="DELETE", path=request.url.path, meta={"attendee_id": attendee_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _import_response(
    event: Event,
    outcome: ImportOutcome,
    send_invitations: bool,
    background_tasks: BackgroundTasks,
) -> ImportResult:
    if send_invitations and outcome.credentials:
        background_tasks.add_task(send_import_invitations, event.name, [dict(c) for c in outcome.credentials])
    passwords = {c["attendee_id"]: c["password"] for c in outcome.credentials}
    return ImportResult(
        imported=len(outcome.attendees),
        skipped=outcome.skipped,
        errors=outcome.errors,
        attendees=[build_attendee_response(a, generated_password=passwords.get(a.id)) for a in outcome.attendees],
        credentials=outcome.credentials,
    )


@router.post("/events/{event_id}/import-attendees", response_model=ImportResult, status_code=status.HTTP_201_CREATED)
async def import_attendees_file(
    event_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    generate_credentials: bool = Form(False),
    send_invitations: bool = Form(False),
    skip_duplicates: bool = Form(True),
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    event = get_event_or_404(db, event_id)
    contents = await file.read()
    if len(contents) > IMPORT_MAX_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Uploaded file is too large")

    records = parse_upload(file.filename, contents)
    outcome = import_attendees(
        db,
        event_id,
        records,
        generate_credentials=generate_credentials,
        skip_duplicates=skip_duplicates,
    )
    log_admin_action(
        db, user, "import_attendees", method="POST", path=request.url.path,
        meta={"filename": file.filename, "imported": len(outcome.attendees), "skipped": outcome.skipped},
    )
    return _import_response(event, outcome, send_invitations, background_tasks)


@router.post("/events/{event_id}/import-attendees/manual", response_model=ImportResult, status_code=status.HTTP_201_CREATED)
def import_attendees_manual(
    event_id: int,
    payload: ManualImportRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_user),
    db: Session = Depends(get_db)
):
    event = get_event_or_404(db, event_id)
    records = [{"row": idx, **row.model_dump()} for idx, row in enumerate(payload.rows, start=1)]
    outcome = import_attendees(
        db,
        event_id,
        records,
        generate_credentials=payload.generate_credentials,
        skip_duplicates=payload.skip_duplicates,
    )
    log_admin_action(
        db, user, "import_attendees_manual", method="POST", path=request.url.path,
        meta={"imported": len(outcome.attendees), "skipped": outcome.skipped},
    )
    return _import_response(event, outcome, payload.send_invitations, background_tasks)


@router.get("/events/{event_id}/import-template")
def download_import_template(event_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    get_event_or_404(db, event_id)
    return StreamingResponse(
        io.BytesIO(build_import_template()),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=attendee_import_template.xlsx"}
    )
